"""Process image: the addressable data a slave exposes.

Requests only see the :class:`ProcessImage` contract. Address ranges are
half-open, ``[reference, reference + count)``, and must be fully allocated
or the lookup raises :class:`IllegalAddressError`.

Requests serve reads through the ``read_*`` snapshot methods and writes
through the ``set_*`` methods, so an implementation that guards its
tables can make each request see and change a range in one step.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod

from .values import DigitalIn, DigitalOut, Register


class IllegalAddressError(LookupError):
    """Raised when a reference or range is not allocated in the image."""

    def __init__(self, reference: int, count: int = 1) -> None:
        self.reference = reference
        self.count = count
        super().__init__(
            f"Address range {reference}-{reference + count - 1} is not allocated"
        )


class ProcessImage(ABC):
    """Query contract for the data store behind a slave.

    The range accessors return the stored value objects themselves. The
    snapshot reads return copies, and the base versions below build both
    reads and writes on the range accessors without any locking.
    """

    @abstractmethod
    def get_digital_out_range(self, reference: int, count: int) -> list[DigitalOut]:
        """Return ``count`` coils starting at ``reference``.

        Raises:
            IllegalAddressError: If the range is not fully allocated.
        """

    @abstractmethod
    def get_digital_in_range(self, reference: int, count: int) -> list[DigitalIn]:
        """Return ``count`` discrete inputs starting at ``reference``."""

    @abstractmethod
    def get_register_range(self, reference: int, count: int) -> list[Register]:
        """Return ``count`` holding registers starting at ``reference``."""

    @abstractmethod
    def get_input_register_range(self, reference: int, count: int) -> list[Register]:
        """Return ``count`` input registers starting at ``reference``."""

    def get_digital_out(self, reference: int) -> DigitalOut:
        return self.get_digital_out_range(reference, 1)[0]

    def get_register(self, reference: int) -> Register:
        return self.get_register_range(reference, 1)[0]

    # ─── snapshot reads ───────────────────────────────────────────────

    def read_coils(self, reference: int, count: int) -> list[bool]:
        """Coil states of a range."""
        return [c.is_set() for c in self.get_digital_out_range(reference, count)]

    def read_discrete_inputs(self, reference: int, count: int) -> list[bool]:
        return [d.is_set() for d in self.get_digital_in_range(reference, count)]

    def read_registers(self, reference: int, count: int) -> list[Register]:
        """Copies of a range of holding registers."""
        return [r.copy() for r in self.get_register_range(reference, count)]

    def read_input_registers(self, reference: int, count: int) -> list[Register]:
        return [r.copy() for r in self.get_input_register_range(reference, count)]

    # ─── writes ───────────────────────────────────────────────────────

    def set_coils(self, reference: int, states: list[bool]) -> None:
        """Set a run of coils starting at ``reference``.

        Nothing is written when the range is not fully allocated.
        """
        for coil, state in zip(self.get_digital_out_range(reference, len(states)), states):
            coil.set(state)

    def set_discrete_inputs(self, reference: int, states: list[bool]) -> None:
        for din, state in zip(self.get_digital_in_range(reference, len(states)), states):
            din.set(state)

    def set_registers(self, reference: int, values: list[int]) -> None:
        """Set a run of holding registers starting at ``reference``."""
        for register, value in zip(self.get_register_range(reference, len(values)), values):
            register.set_value(value)

    def set_input_registers(self, reference: int, values: list[int]) -> None:
        for register, value in zip(
            self.get_input_register_range(reference, len(values)), values
        ):
            register.set_value(value)


def _slice_range(items: list, reference: int, count: int) -> list:
    if reference < 0 or count < 0 or reference + count > len(items):
        raise IllegalAddressError(reference, count)
    return items[reference : reference + count]


class SimpleProcessImage(ProcessImage):
    """In-memory process image backed by plain lists.

    Snapshot reads and ``set_*`` writes hold one lock for the whole range,
    so a read never sees half of a concurrent write. Changes made through
    the value objects returned by the range accessors bypass the lock.

    Usage::

        image = SimpleProcessImage(coils=16, registers=8)
        image.set_coils(3, [True])
        image.set_registers(0, [1234])
    """

    def __init__(
        self,
        coils: int = 0,
        discrete_inputs: int = 0,
        registers: int = 0,
        input_registers: int = 0,
    ) -> None:
        self._lock = threading.Lock()
        self._digital_outs = [DigitalOut() for _ in range(coils)]
        self._digital_ins = [DigitalIn() for _ in range(discrete_inputs)]
        self._registers = [Register() for _ in range(registers)]
        self._input_registers = [Register() for _ in range(input_registers)]

    @property
    def coil_count(self) -> int:
        return len(self._digital_outs)

    @property
    def discrete_input_count(self) -> int:
        return len(self._digital_ins)

    @property
    def register_count(self) -> int:
        return len(self._registers)

    @property
    def input_register_count(self) -> int:
        return len(self._input_registers)

    def get_digital_out_range(self, reference: int, count: int) -> list[DigitalOut]:
        return _slice_range(self._digital_outs, reference, count)

    def get_digital_in_range(self, reference: int, count: int) -> list[DigitalIn]:
        return _slice_range(self._digital_ins, reference, count)

    def get_register_range(self, reference: int, count: int) -> list[Register]:
        return _slice_range(self._registers, reference, count)

    def get_input_register_range(self, reference: int, count: int) -> list[Register]:
        return _slice_range(self._input_registers, reference, count)

    def read_coils(self, reference: int, count: int) -> list[bool]:
        with self._lock:
            return super().read_coils(reference, count)

    def read_discrete_inputs(self, reference: int, count: int) -> list[bool]:
        with self._lock:
            return super().read_discrete_inputs(reference, count)

    def read_registers(self, reference: int, count: int) -> list[Register]:
        with self._lock:
            return super().read_registers(reference, count)

    def read_input_registers(self, reference: int, count: int) -> list[Register]:
        with self._lock:
            return super().read_input_registers(reference, count)

    def set_coils(self, reference: int, states: list[bool]) -> None:
        with self._lock:
            super().set_coils(reference, states)

    def set_discrete_inputs(self, reference: int, states: list[bool]) -> None:
        with self._lock:
            super().set_discrete_inputs(reference, states)

    def set_registers(self, reference: int, values: list[int]) -> None:
        with self._lock:
            super().set_registers(reference, values)

    def set_input_registers(self, reference: int, values: list[int]) -> None:
        with self._lock:
            super().set_input_registers(reference, values)

    def to_dict(self) -> dict:
        """Snapshot of the image as a JSON-serializable dictionary."""
        with self._lock:
            return {
                "coils": [c.is_set() for c in self._digital_outs],
                "discrete_inputs": [d.is_set() for d in self._digital_ins],
                "registers": [r.value for r in self._registers],
                "input_registers": [r.value for r in self._input_registers],
            }
