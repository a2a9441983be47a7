"""Register access.

Covers Read Multiple Registers (0x03), Read Input Registers (0x04),
Write Single Register (0x06) and Write Multiple Registers (0x10).

Read response payload::

    +------------+------------+-----+------------+
    | Byte Count | Register 0 | ... | Register N |
    | 1 byte     | 2 bytes BE |     | 2 bytes BE |
    +------------+------------+-----+------------+

The byte count is always twice the number of registers.
"""

from __future__ import annotations

import struct
from typing import ClassVar

from ..models.process_image import IllegalAddressError, ProcessImage
from ..models.values import Register
from .framing import PayloadReader
from .function_codes import (
    MAX_REGISTERS,
    MAX_WRITE_REGISTERS,
    ExceptionCode,
    FunctionCode,
)
from .messages import (
    ModbusRequest,
    ModbusResponse,
    ReferenceValueMessage,
    check_reference,
)


def _pack_registers(registers: list[Register]) -> bytes:
    return b"".join(r.to_bytes() for r in registers)


def _unpack_registers(data: bytes) -> list[Register]:
    return [Register.from_bytes(data[i : i + 2]) for i in range(0, len(data), 2)]


# ─── READ RESPONSES ───────────────────────────────────────────────────


class _RegisterReadResponse(ModbusResponse):
    """Common body of the holding and input register read responses."""

    def __init__(self, registers: list[Register] | None = None) -> None:
        super().__init__()
        self._registers: list[Register] | None = None
        self._byte_count = 0
        if registers is not None:
            self.set_registers(registers)

    @property
    def byte_count(self) -> int:
        return self._byte_count

    @property
    def word_count(self) -> int:
        return self._byte_count // 2

    @property
    def data_length(self) -> int:
        return self._byte_count + 1

    @property
    def registers(self) -> list[Register]:
        """Owned copies of the registers; changing them leaves the response as is."""
        if self._registers is None:
            return []
        return [r.copy() for r in self._registers]

    @registers.setter
    def registers(self, registers: list[Register]) -> None:
        self.set_registers(registers)

    def set_registers(self, registers: list[Register]) -> None:
        self._registers = list(registers)
        self._byte_count = len(self._registers) * 2

    def get_register(self, index: int) -> Register:
        """Return the register at ``index``.

        Raises:
            IndexError: If no registers were set, or ``index`` is negative
                or not below :attr:`word_count`.
        """
        if self._registers is None:
            raise IndexError("No registers defined")
        if index < 0:
            raise IndexError(f"Negative index: {index}")
        if index >= self.word_count:
            raise IndexError(f"{index} >= {self.word_count}")
        return self._registers[index]

    def get_register_value(self, index: int) -> int:
        return self.get_register(index).to_unsigned_short()

    def encode_payload(self) -> bytes:
        if self._byte_count > 0xFF:
            raise ValueError(
                f"{self.word_count} registers do not fit a single response"
            )
        return bytes([self._byte_count]) + _pack_registers(self._registers or [])

    def _read_payload(self, reader: PayloadReader) -> None:
        byte_count = reader.read_u8()
        data = reader.read(byte_count)
        if byte_count % 2:
            raise ValueError(f"Register byte count must be even, got {byte_count}")
        self.set_registers(_unpack_registers(data))


class ReadMultipleRegistersResponse(_RegisterReadResponse):
    """Response carrying holding register values."""

    FUNCTION_CODE = FunctionCode.READ_MULTIPLE_REGISTERS


class ReadInputRegistersResponse(_RegisterReadResponse):
    """Response carrying input register values."""

    FUNCTION_CODE = FunctionCode.READ_INPUT_REGISTERS


# ─── READ REQUESTS ────────────────────────────────────────────────────


class _RegisterReadRequest(ModbusRequest):
    """Request for ``word_count`` registers starting at ``reference``."""

    RESPONSE_CLASS: ClassVar[type[_RegisterReadResponse]] = _RegisterReadResponse

    def __init__(self, reference: int = 0, word_count: int = 0) -> None:
        super().__init__()
        self._reference = 0
        self._word_count = 0
        self.reference = reference
        self.word_count = word_count

    @property
    def reference(self) -> int:
        return self._reference

    @reference.setter
    def reference(self, reference: int) -> None:
        self._reference = check_reference(reference)

    @property
    def word_count(self) -> int:
        return self._word_count

    @word_count.setter
    def word_count(self, count: int) -> None:
        if not 0 <= count <= MAX_REGISTERS:
            raise ValueError(
                f"Register count must be 0-{MAX_REGISTERS}, got {count}"
            )
        self._word_count = count

    @property
    def data_length(self) -> int:
        return 4

    def encode_payload(self) -> bytes:
        return struct.pack(">HH", self._reference, self._word_count)

    def _read_payload(self, reader: PayloadReader) -> None:
        self._reference, self._word_count = struct.unpack(">HH", reader.read(4))

    def _lookup(self, store: ProcessImage) -> list[Register]:
        raise NotImplementedError

    def execute(self, store: ProcessImage) -> ModbusResponse:
        if not 1 <= self._word_count <= MAX_REGISTERS:
            return self.build_exception_response(ExceptionCode.ILLEGAL_DATA_VALUE)
        try:
            registers = self._lookup(store)
        except IllegalAddressError as e:
            return self._address_fault(e)

        response = self.build_empty_response()
        response.set_registers(registers)
        return response


class ReadMultipleRegistersRequest(_RegisterReadRequest):
    FUNCTION_CODE = FunctionCode.READ_MULTIPLE_REGISTERS
    RESPONSE_CLASS = ReadMultipleRegistersResponse

    def _lookup(self, store: ProcessImage) -> list[Register]:
        return store.read_registers(self._reference, self._word_count)


class ReadInputRegistersRequest(_RegisterReadRequest):
    FUNCTION_CODE = FunctionCode.READ_INPUT_REGISTERS
    RESPONSE_CLASS = ReadInputRegistersResponse

    def _lookup(self, store: ProcessImage) -> list[Register]:
        return store.read_input_registers(self._reference, self._word_count)


# ─── WRITE SINGLE REGISTER ────────────────────────────────────────────


class _RegisterValuePayload(ReferenceValueMessage):
    @property
    def value(self) -> int:
        return self._value

    @value.setter
    def value(self, value: int) -> None:
        self._value = value & 0xFFFF


class WriteSingleRegisterResponse(_RegisterValuePayload, ModbusResponse):
    """Echo of a successful Write Single Register request."""

    FUNCTION_CODE = FunctionCode.WRITE_SINGLE_REGISTER


class WriteSingleRegisterRequest(_RegisterValuePayload, ModbusRequest):
    """Write ``value`` to the holding register at ``reference``."""

    FUNCTION_CODE = FunctionCode.WRITE_SINGLE_REGISTER
    RESPONSE_CLASS = WriteSingleRegisterResponse

    def execute(self, store: ProcessImage) -> ModbusResponse:
        try:
            store.set_registers(self._reference, [self._value])
        except IllegalAddressError as e:
            return self._address_fault(e)

        response = self.build_empty_response()
        response.reference = self._reference
        response.value = self._value
        return response


# ─── WRITE MULTIPLE REGISTERS ─────────────────────────────────────────


class WriteMultipleRegistersResponse(ReferenceValueMessage, ModbusResponse):
    """Acknowledges a write of ``word_count`` registers at ``reference``."""

    FUNCTION_CODE = FunctionCode.WRITE_MULTIPLE_REGISTERS

    def __init__(self, reference: int = 0, word_count: int = 0) -> None:
        super().__init__(reference, word_count)

    @property
    def word_count(self) -> int:
        return self._value

    @word_count.setter
    def word_count(self, count: int) -> None:
        self._value = count & 0xFFFF


class WriteMultipleRegistersRequest(ModbusRequest):
    """Write a run of holding registers starting at ``reference``.

    Payload: ``reference:u16, word_count:u16, byte_count:u8`` followed by
    the register values.
    """

    FUNCTION_CODE = FunctionCode.WRITE_MULTIPLE_REGISTERS
    RESPONSE_CLASS = WriteMultipleRegistersResponse

    def __init__(
        self, reference: int = 0, registers: list[Register] | None = None
    ) -> None:
        super().__init__()
        self._reference = check_reference(reference)
        self._registers: list[Register] = []
        if registers is not None:
            self.registers = registers

    @property
    def reference(self) -> int:
        return self._reference

    @reference.setter
    def reference(self, reference: int) -> None:
        self._reference = check_reference(reference)

    @property
    def registers(self) -> list[Register]:
        return [r.copy() for r in self._registers]

    @registers.setter
    def registers(self, registers: list[Register]) -> None:
        if len(registers) > MAX_WRITE_REGISTERS:
            raise ValueError(
                f"At most {MAX_WRITE_REGISTERS} registers per write, got {len(registers)}"
            )
        self._registers = list(registers)

    @property
    def word_count(self) -> int:
        return len(self._registers)

    @property
    def byte_count(self) -> int:
        return len(self._registers) * 2

    @property
    def data_length(self) -> int:
        return 5 + self.byte_count

    def get_register(self, index: int) -> Register:
        if not 0 <= index < len(self._registers):
            raise IndexError(f"Register index {index} out of range")
        return self._registers[index]

    def get_register_value(self, index: int) -> int:
        return self.get_register(index).to_unsigned_short()

    def encode_payload(self) -> bytes:
        return struct.pack(
            ">HHB", self._reference, self.word_count, self.byte_count
        ) + _pack_registers(self._registers)

    def _read_payload(self, reader: PayloadReader) -> None:
        reference, word_count, byte_count = struct.unpack(">HHB", reader.read(5))
        data = reader.read(byte_count)
        if byte_count != word_count * 2:
            raise ValueError(
                f"Byte count {byte_count} does not match {word_count} registers"
            )
        self._reference = reference
        self._registers = _unpack_registers(data)

    def execute(self, store: ProcessImage) -> ModbusResponse:
        if not 1 <= self.word_count <= MAX_WRITE_REGISTERS:
            return self.build_exception_response(ExceptionCode.ILLEGAL_DATA_VALUE)
        try:
            store.set_registers(self._reference, [r.value for r in self._registers])
        except IllegalAddressError as e:
            return self._address_fault(e)

        response = self.build_empty_response()
        response.reference = self._reference
        response.word_count = self.word_count
        return response
