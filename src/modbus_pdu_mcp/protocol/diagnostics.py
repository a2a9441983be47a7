"""Read Serial Diagnostics (0x08).

Request and response share one 4-byte layout: ``sub_function:u16`` then a
single ``data:u16`` word. The indexed ``get_data`` / ``set_data``
accessors predate the single-word layout and are kept for older callers.
"""

from __future__ import annotations

import struct
import warnings

from ..models.process_image import ProcessImage
from .framing import PayloadReader
from .function_codes import ExceptionCode, FunctionCode
from .messages import ModbusMessage, ModbusRequest, ModbusResponse

# sub-function codes defined for serial line devices
RETURN_QUERY_DATA = 0x0000
RESTART_COMMUNICATIONS = 0x0001
RETURN_DIAGNOSTIC_REGISTER = 0x0002
CLEAR_COUNTERS = 0x000A
RETURN_BUS_MESSAGE_COUNT = 0x000B


class _DiagnosticsPayload(ModbusMessage):
    """Sub-function code plus one data word."""

    def __init__(self, sub_function: int = 0, data: int = 0) -> None:
        super().__init__()
        self._sub_function = sub_function & 0xFFFF
        self._data = data & 0xFFFF

    @property
    def sub_function(self) -> int:
        return self._sub_function

    @sub_function.setter
    def sub_function(self, code: int) -> None:
        # a new sub-function invalidates whatever data went with the old one
        self._sub_function = code & 0xFFFF
        self._data = 0

    @property
    def data(self) -> int:
        return self._data

    @data.setter
    def data(self, value: int) -> None:
        self._data = value & 0xFFFF

    @property
    def word_count(self) -> int:
        return 1

    def get_data(self, index: int) -> int:
        """Deprecated: use :attr:`data`. Only index 0 exists."""
        warnings.warn(
            "get_data(index) is deprecated, use the data property",
            DeprecationWarning,
            stacklevel=2,
        )
        if index != 0:
            raise IndexError(f"Diagnostics carry a single data word, got index {index}")
        return self._data

    def set_data(self, index: int, value: int) -> None:
        """Deprecated: assign :attr:`data`. Only index 0 exists."""
        warnings.warn(
            "set_data(index, value) is deprecated, use the data property",
            DeprecationWarning,
            stacklevel=2,
        )
        if index != 0:
            raise IndexError(f"Diagnostics carry a single data word, got index {index}")
        self._data = value & 0xFFFF

    @property
    def data_length(self) -> int:
        return 4

    def encode_payload(self) -> bytes:
        return struct.pack(">HH", self._sub_function, self._data)

    def _read_payload(self, reader: PayloadReader) -> None:
        self._sub_function, self._data = struct.unpack(">HH", reader.read(4))


class ReadSerialDiagnosticsResponse(_DiagnosticsPayload, ModbusResponse):
    FUNCTION_CODE = FunctionCode.READ_SERIAL_DIAGNOSTICS


class ReadSerialDiagnosticsRequest(_DiagnosticsPayload, ModbusRequest):
    """Serial line diagnostics request.

    No sub-function maps onto the process image, so a slave answers every
    diagnostics request with an illegal function exception.
    """

    FUNCTION_CODE = FunctionCode.READ_SERIAL_DIAGNOSTICS
    RESPONSE_CLASS = ReadSerialDiagnosticsResponse

    def build_empty_response(self) -> ReadSerialDiagnosticsResponse:
        response = super().build_empty_response()
        response.sub_function = self._sub_function
        return response

    def execute(self, store: ProcessImage) -> ModbusResponse:
        return self.build_exception_response(ExceptionCode.ILLEGAL_FUNCTION)
