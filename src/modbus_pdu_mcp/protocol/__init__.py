"""Protocol layer: message envelope, per-function codecs, and dispatch."""

from .framing import MessageHeader, TruncatedPDUError, build_header, parse_header
from .function_codes import ExceptionCode, FunctionCode
from .messages import (
    ExceptionResponse,
    IllegalAddressExceptionResponse,
    IllegalFunctionExceptionResponse,
    IllegalValueExceptionResponse,
    ModbusRequest,
    ModbusResponse,
)
from .parser import (
    UnsupportedFunctionError,
    decode_request,
    decode_response,
    process_request,
)
