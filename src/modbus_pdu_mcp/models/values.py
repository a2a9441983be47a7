"""Value types held by a process image.

Registers are 16-bit words stored big-endian on the wire. Coils and
discrete inputs are single bits; on the wire they are packed into bytes
lowest address first (see :class:`BitVector`).
"""

from __future__ import annotations


class Register:
    """A mutable 16-bit register value."""

    def __init__(self, value: int = 0) -> None:
        self._value = value & 0xFFFF

    @classmethod
    def from_bytes(cls, data: bytes) -> Register:
        """Build a register from two big-endian bytes."""
        if len(data) < 2:
            raise ValueError(f"Register needs 2 bytes, got {len(data)}")
        return cls((data[0] << 8) | data[1])

    @property
    def value(self) -> int:
        return self._value

    def to_unsigned_short(self) -> int:
        return self._value

    def to_short(self) -> int:
        """Return the value as a signed 16-bit integer."""
        if self._value & 0x8000:
            return self._value - 0x10000
        return self._value

    def to_bytes(self) -> bytes:
        return bytes([(self._value >> 8) & 0xFF, self._value & 0xFF])

    def set_value(self, value: int) -> None:
        self._value = value & 0xFFFF

    def set_bytes(self, data: bytes) -> None:
        if len(data) < 2:
            raise ValueError(f"Register needs 2 bytes, got {len(data)}")
        self._value = (data[0] << 8) | data[1]

    def copy(self) -> Register:
        return Register(self._value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Register):
            return NotImplemented
        return self._value == other._value

    def __repr__(self) -> str:
        return f"Register(0x{self._value:04X})"


class DigitalOut:
    """A coil: a single read/write bit."""

    def __init__(self, state: bool = False) -> None:
        self._state = bool(state)

    def is_set(self) -> bool:
        return self._state

    def set(self, state: bool) -> None:
        self._state = bool(state)

    def __repr__(self) -> str:
        return f"DigitalOut({self._state})"


class DigitalIn:
    """A discrete input: a single read-only bit (writable by the owning device)."""

    def __init__(self, state: bool = False) -> None:
        self._state = bool(state)

    def is_set(self) -> bool:
        return self._state

    def set(self, state: bool) -> None:
        self._state = bool(state)

    def __repr__(self) -> str:
        return f"DigitalIn({self._state})"


class BitVector:
    """Fixed-size bit array packed the way Modbus puts bits on the wire.

    Bit ``i`` lives in byte ``i // 8`` at bit position ``i % 8``, so the
    lowest address ends up in the least significant bit of the first byte.
    Unused high bits of the last byte are always zero.
    """

    def __init__(self, size: int) -> None:
        if size < 0:
            raise ValueError(f"Bit vector size must be >= 0, got {size}")
        self._size = size
        self._data = bytearray((size + 7) // 8)

    @classmethod
    def from_bytes(cls, data: bytes, size: int | None = None) -> BitVector:
        """Build a vector from packed bytes.

        Args:
            data: Packed bits, lowest address first.
            size: Number of meaningful bits; defaults to ``len(data) * 8``.
        """
        if size is None:
            size = len(data) * 8
        if size > len(data) * 8:
            raise ValueError(
                f"{len(data)} bytes cannot hold {size} bits"
            )
        vector = cls(size)
        vector._data[:] = data[: len(vector._data)]
        vector._clear_padding()
        return vector

    @property
    def size(self) -> int:
        return self._size

    @property
    def byte_size(self) -> int:
        return len(self._data)

    def get_bit(self, index: int) -> bool:
        self._check_index(index)
        return bool(self._data[index // 8] & (1 << (index % 8)))

    def set_bit(self, index: int, state: bool) -> None:
        self._check_index(index)
        mask = 1 << (index % 8)
        if state:
            self._data[index // 8] |= mask
        else:
            self._data[index // 8] &= ~mask & 0xFF

    def to_bytes(self) -> bytes:
        return bytes(self._data)

    def to_list(self) -> list[bool]:
        return [self.get_bit(i) for i in range(self._size)]

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self._size:
            raise IndexError(f"Bit index {index} out of range 0-{self._size - 1}")

    def _clear_padding(self) -> None:
        used = self._size % 8
        if used and self._data:
            self._data[-1] &= (1 << used) - 1

    def __len__(self) -> int:
        return self._size

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BitVector):
            return NotImplemented
        return self._size == other._size and self._data == other._data

    def __repr__(self) -> str:
        bits = "".join("1" if b else "0" for b in self.to_list())
        return f"BitVector({bits or '(empty)'})"
