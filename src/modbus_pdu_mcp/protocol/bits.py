"""Bit access: Read Coils (0x01), Read Input Discretes (0x02), Write Coil (0x05).

Read requests carry ``reference:u16, bit_count:u16``. Read responses carry
``byte_count:u8`` followed by the bits packed lowest address first, with
the unused high bits of the last byte zero.
"""

from __future__ import annotations

import struct
from typing import ClassVar

from ..models.process_image import IllegalAddressError, ProcessImage
from ..models.values import BitVector
from .framing import PayloadReader
from .function_codes import (
    COIL_OFF,
    COIL_ON,
    MAX_BITS,
    ExceptionCode,
    FunctionCode,
)
from .messages import (
    ModbusRequest,
    ModbusResponse,
    ReferenceValueMessage,
    check_reference,
)


# ─── READ RESPONSES ───────────────────────────────────────────────────


class _BitReadResponse(ModbusResponse):
    """Common body of the coil and discrete input read responses."""

    def __init__(self, bit_count: int = 0) -> None:
        super().__init__()
        self._bits = BitVector(bit_count)

    @property
    def bit_count(self) -> int:
        return self._bits.size

    @property
    def byte_count(self) -> int:
        return self._bits.byte_size

    @property
    def data_length(self) -> int:
        return self.byte_count + 1

    @property
    def bits(self) -> BitVector:
        """An owned copy of the packed bits."""
        return BitVector.from_bytes(self._bits.to_bytes(), self._bits.size)

    def get_bit(self, index: int) -> bool:
        return self._bits.get_bit(index)

    def set_bit(self, index: int, state: bool) -> None:
        self._bits.set_bit(index, state)

    def encode_payload(self) -> bytes:
        if self.byte_count > 0xFF:
            raise ValueError(
                f"{self.bit_count} bits do not fit a single response"
            )
        return bytes([self.byte_count]) + self._bits.to_bytes()

    def _read_payload(self, reader: PayloadReader) -> None:
        byte_count = reader.read_u8()
        data = reader.read(byte_count)
        # the bit count is not on the wire; every packed bit is kept
        self._bits = BitVector.from_bytes(data)


class ReadCoilsResponse(_BitReadResponse):
    """Response carrying coil states."""

    FUNCTION_CODE = FunctionCode.READ_COILS

    def get_coil_status(self, index: int) -> bool:
        return self.get_bit(index)

    def set_coil_status(self, index: int, state: bool) -> None:
        self.set_bit(index, state)

    @property
    def coils(self) -> list[bool]:
        return self._bits.to_list()


class ReadInputDiscretesResponse(_BitReadResponse):
    """Response carrying discrete input states."""

    FUNCTION_CODE = FunctionCode.READ_INPUT_DISCRETES

    def get_discrete_status(self, index: int) -> bool:
        return self.get_bit(index)

    def set_discrete_status(self, index: int, state: bool) -> None:
        self.set_bit(index, state)

    @property
    def discretes(self) -> list[bool]:
        return self._bits.to_list()


# ─── READ REQUESTS ────────────────────────────────────────────────────


class _BitReadRequest(ModbusRequest):
    """Common body of the coil and discrete input read requests."""

    RESPONSE_CLASS: ClassVar[type[_BitReadResponse]] = _BitReadResponse

    def __init__(self, reference: int = 0, bit_count: int = 0) -> None:
        super().__init__()
        self._reference = 0
        self._bit_count = 0
        self.reference = reference
        self.bit_count = bit_count

    @property
    def reference(self) -> int:
        return self._reference

    @reference.setter
    def reference(self, reference: int) -> None:
        self._reference = check_reference(reference)

    @property
    def bit_count(self) -> int:
        return self._bit_count

    @bit_count.setter
    def bit_count(self, count: int) -> None:
        if count > MAX_BITS:
            raise ValueError(
                f"Maximum bit count exceeded: {count} > {MAX_BITS}"
            )
        if count < 0:
            raise ValueError(f"Bit count must be >= 0, got {count}")
        self._bit_count = count

    @property
    def data_length(self) -> int:
        return 4

    def encode_payload(self) -> bytes:
        return struct.pack(">HH", self._reference, self._bit_count)

    def _read_payload(self, reader: PayloadReader) -> None:
        # wire values are taken as-is; execute() rejects bad counts
        self._reference, self._bit_count = struct.unpack(">HH", reader.read(4))

    def _new_response(self) -> _BitReadResponse:
        return self.RESPONSE_CLASS(self._bit_count)

    def _lookup(self, store: ProcessImage) -> list[bool]:
        raise NotImplementedError

    def execute(self, store: ProcessImage) -> ModbusResponse:
        if not 1 <= self._bit_count <= MAX_BITS:
            return self.build_exception_response(ExceptionCode.ILLEGAL_DATA_VALUE)
        try:
            states = self._lookup(store)
        except IllegalAddressError as e:
            return self._address_fault(e)

        response = self.build_empty_response()
        for i, state in enumerate(states):
            response.set_bit(i, state)
        return response


class ReadCoilsRequest(_BitReadRequest):
    """Read ``bit_count`` coils starting at ``reference``.

    Raises:
        ValueError: If ``bit_count`` exceeds :data:`MAX_BITS`.
    """

    FUNCTION_CODE = FunctionCode.READ_COILS
    RESPONSE_CLASS = ReadCoilsResponse

    def _lookup(self, store: ProcessImage) -> list[bool]:
        return store.read_coils(self._reference, self._bit_count)


class ReadInputDiscretesRequest(_BitReadRequest):
    """Read ``bit_count`` discrete inputs starting at ``reference``."""

    FUNCTION_CODE = FunctionCode.READ_INPUT_DISCRETES
    RESPONSE_CLASS = ReadInputDiscretesResponse

    def _lookup(self, store: ProcessImage) -> list[bool]:
        return store.read_discrete_inputs(self._reference, self._bit_count)


# ─── WRITE COIL ───────────────────────────────────────────────────────


class _CoilPayload(ReferenceValueMessage):
    """Coil address plus the on/off word.

    On the wire "on" is ``0xFF00`` and "off" is ``0x0000``; any other
    value word is kept as received.
    """

    def __init__(self, reference: int = 0, coil: bool = False) -> None:
        super().__init__(reference, COIL_ON if coil else COIL_OFF)

    @property
    def coil(self) -> bool:
        return self._value == COIL_ON

    @coil.setter
    def coil(self, state: bool) -> None:
        self._value = COIL_ON if state else COIL_OFF


class WriteCoilResponse(_CoilPayload, ModbusResponse):
    """Echo of a successful Write Coil request."""

    FUNCTION_CODE = FunctionCode.WRITE_COIL


class WriteCoilRequest(_CoilPayload, ModbusRequest):
    """Switch the coil at ``reference`` on or off.

    A value word other than on or off is rejected by :meth:`execute`.
    """

    FUNCTION_CODE = FunctionCode.WRITE_COIL
    RESPONSE_CLASS = WriteCoilResponse

    def execute(self, store: ProcessImage) -> ModbusResponse:
        if self._value not in (COIL_ON, COIL_OFF):
            return self.build_exception_response(ExceptionCode.ILLEGAL_DATA_VALUE)
        try:
            store.set_coils(self._reference, [self.coil])
        except IllegalAddressError as e:
            return self._address_fault(e)

        response = self.build_empty_response()
        response.reference = self._reference
        response.coil = self.coil
        return response
