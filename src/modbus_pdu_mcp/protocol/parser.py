"""Function-code dispatch for incoming messages."""

from __future__ import annotations

import logging

from ..models.process_image import ProcessImage
from .bits import (
    ReadCoilsRequest,
    ReadCoilsResponse,
    ReadInputDiscretesRequest,
    ReadInputDiscretesResponse,
    WriteCoilRequest,
    WriteCoilResponse,
)
from .diagnostics import ReadSerialDiagnosticsRequest, ReadSerialDiagnosticsResponse
from .framing import parse_header, peek_function_code
from .function_codes import EXCEPTION_OFFSET, FunctionCode, is_exception
from .messages import (
    EXCEPTION_CLASSES,
    ExceptionResponse,
    IllegalFunctionExceptionResponse,
    ModbusRequest,
    ModbusResponse,
)
from .registers import (
    ReadInputRegistersRequest,
    ReadInputRegistersResponse,
    ReadMultipleRegistersRequest,
    ReadMultipleRegistersResponse,
    WriteMultipleRegistersRequest,
    WriteMultipleRegistersResponse,
    WriteSingleRegisterRequest,
    WriteSingleRegisterResponse,
)

logger = logging.getLogger(__name__)

MESSAGE_TYPES: dict[FunctionCode, tuple[type[ModbusRequest], type[ModbusResponse]]] = {
    FunctionCode.READ_COILS: (ReadCoilsRequest, ReadCoilsResponse),
    FunctionCode.READ_INPUT_DISCRETES: (
        ReadInputDiscretesRequest,
        ReadInputDiscretesResponse,
    ),
    FunctionCode.READ_MULTIPLE_REGISTERS: (
        ReadMultipleRegistersRequest,
        ReadMultipleRegistersResponse,
    ),
    FunctionCode.READ_INPUT_REGISTERS: (
        ReadInputRegistersRequest,
        ReadInputRegistersResponse,
    ),
    FunctionCode.WRITE_COIL: (WriteCoilRequest, WriteCoilResponse),
    FunctionCode.WRITE_SINGLE_REGISTER: (
        WriteSingleRegisterRequest,
        WriteSingleRegisterResponse,
    ),
    FunctionCode.READ_SERIAL_DIAGNOSTICS: (
        ReadSerialDiagnosticsRequest,
        ReadSerialDiagnosticsResponse,
    ),
    FunctionCode.WRITE_MULTIPLE_REGISTERS: (
        WriteMultipleRegistersRequest,
        WriteMultipleRegistersResponse,
    ),
}


class UnsupportedFunctionError(ValueError):
    """Raised when a message carries a function code with no registered codec."""

    def __init__(self, function_code: int) -> None:
        self.function_code = function_code
        super().__init__(f"Unsupported function code 0x{function_code:02X}")


def _lookup(function_code: int) -> tuple[type[ModbusRequest], type[ModbusResponse]]:
    try:
        return MESSAGE_TYPES[FunctionCode(function_code)]
    except ValueError:
        raise UnsupportedFunctionError(function_code) from None


def create_request(function_code: int) -> ModbusRequest:
    """Build an empty request for ``function_code``."""
    return _lookup(function_code)[0]()


def create_response(function_code: int) -> ModbusResponse:
    """Build an empty response for ``function_code``.

    Codes with the exception bit set give an :class:`ExceptionResponse`.
    """
    if is_exception(function_code):
        return ExceptionResponse(function_code & ~EXCEPTION_OFFSET)
    return _lookup(function_code)[1]()


def decode_request(data: bytes, headless: bool = False) -> ModbusRequest:
    """Decode a full request message.

    Raises:
        UnsupportedFunctionError: If the function code has no codec.
        TruncatedPDUError: If the message is shorter than its shape.
    """
    request = create_request(peek_function_code(data, headless))
    request.headless = headless
    request.decode(data)
    logger.debug("Decoded request %r", request)
    return request


def decode_response(data: bytes, headless: bool = False) -> ModbusResponse:
    """Decode a full response message, exception responses included."""
    function_code = peek_function_code(data, headless)
    if is_exception(function_code):
        response = _decode_exception(data, headless)
    else:
        response = create_response(function_code)
        response.headless = headless
        response.decode(data)
    logger.debug("Decoded response %r", response)
    return response


def _decode_exception(data: bytes, headless: bool) -> ExceptionResponse:
    generic = ExceptionResponse()
    generic.headless = headless
    generic.decode(data)
    cls = EXCEPTION_CLASSES.get(generic.exception_code)
    if cls is None:
        return generic
    # re-home onto the named variant so callers can match on type
    response = cls(generic.base_function_code)
    response.copy_header_from(generic)
    return response


def process_request(
    data: bytes, store: ProcessImage, headless: bool = False
) -> bytes:
    """Serve one encoded request against ``store`` and return the encoded answer.

    Requests with an unknown function code are answered with an illegal
    function exception rather than raised.
    """
    try:
        request = decode_request(data, headless)
    except UnsupportedFunctionError as e:
        header, _ = parse_header(data, headless)
        logger.debug("Rejecting unit=%d: %s", header.unit_id, e)
        response = IllegalFunctionExceptionResponse(e.function_code)
        response.headless = headless
        response.transaction_id = header.transaction_id
        response.protocol_id = header.protocol_id
        response.unit_id = header.unit_id
        return response.encode()

    response = request.execute(store)
    logger.debug("Answered %s with %r", type(request).__name__, response)
    return response.encode()
