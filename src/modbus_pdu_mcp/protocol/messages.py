"""Base classes shared by every request and response.

Each concrete message knows its own payload layout and implements
``encode_payload`` / ``_read_payload``; everything about the envelope
(header fields, headless mode, full-message encode/decode) lives here.
"""

from __future__ import annotations

import logging
import struct
from typing import BinaryIO, ClassVar

from ..models.process_image import IllegalAddressError, ProcessImage
from .framing import (
    MessageHeader,
    PayloadReader,
    build_header,
    check_protocol_id,
    read_header,
)
from .function_codes import (
    EXCEPTION_OFFSET,
    ExceptionCode,
    describe_exception,
    is_exception,
)

logger = logging.getLogger(__name__)


class ModbusMessage:
    """Envelope fields plus the payload codec hooks."""

    FUNCTION_CODE: ClassVar[int] = 0

    def __init__(self) -> None:
        self._header = MessageHeader(function_code=self.FUNCTION_CODE)

    # ─── envelope ──────────────────────────────────────────────────────

    @property
    def function_code(self) -> int:
        return self._header.function_code

    @function_code.setter
    def function_code(self, code: int) -> None:
        self._header.function_code = code & 0xFF

    @property
    def headless(self) -> bool:
        return self._header.headless

    @headless.setter
    def headless(self, headless: bool) -> None:
        self._header.headless = bool(headless)

    @property
    def transaction_id(self) -> int:
        """Transaction identifier; not sent when the message is headless."""
        return self._header.transaction_id

    @transaction_id.setter
    def transaction_id(self, tid: int) -> None:
        self._header.transaction_id = tid & 0xFFFF

    @property
    def protocol_id(self) -> int:
        return self._header.protocol_id

    @protocol_id.setter
    def protocol_id(self, pid: int) -> None:
        self._header.protocol_id = check_protocol_id(pid)

    @property
    def unit_id(self) -> int:
        return self._header.unit_id

    @unit_id.setter
    def unit_id(self, unit: int) -> None:
        self._header.unit_id = unit & 0xFF

    @property
    def data_length(self) -> int:
        """Number of payload bytes for the current field values."""
        return len(self.encode_payload())

    @property
    def pdu_length(self) -> int:
        """Function code plus payload, as embedded by length-prefixed transports."""
        return self.data_length + 1

    @property
    def header(self) -> MessageHeader:
        """A copy of the envelope fields."""
        h = self._header
        return MessageHeader(
            unit_id=h.unit_id,
            function_code=h.function_code,
            transaction_id=h.transaction_id,
            protocol_id=h.protocol_id,
            headless=h.headless,
        )

    def copy_header_from(self, other: ModbusMessage) -> None:
        """Take over headless mode, identifiers and unit ID from ``other``."""
        self.headless = other.headless
        if not other.headless:
            self.transaction_id = other.transaction_id
            self.protocol_id = other.protocol_id
        self.unit_id = other.unit_id

    # ─── payload codec ─────────────────────────────────────────────────

    def encode_payload(self) -> bytes:
        raise NotImplementedError

    def _read_payload(self, reader: PayloadReader) -> None:
        raise NotImplementedError

    def decode_payload(self, data: bytes) -> None:
        """Populate the payload fields from raw payload bytes."""
        self._read_payload(PayloadReader(data))

    # ─── full message ──────────────────────────────────────────────────

    def encode(self) -> bytes:
        """Serialize header and payload."""
        return build_header(self._header) + self.encode_payload()

    def decode(self, data: bytes) -> None:
        """Populate this message from a full encoded message.

        The ``headless`` flag must be set beforehand; it decides whether a
        transaction/protocol header is expected.

        Raises:
            TruncatedPDUError: If ``data`` ends before the payload does.
            ValueError: If the function code does not belong to this message,
                or the protocol ID is not 0.
        """
        self._read_message(PayloadReader(data))

    def write_to(self, stream: BinaryIO) -> None:
        stream.write(self.encode())

    def read_from(self, stream: BinaryIO) -> None:
        """Like :meth:`decode`, reading exactly one message from ``stream``."""
        self._read_message(PayloadReader(stream))

    def _read_message(self, reader: PayloadReader) -> None:
        header = read_header(reader, self.headless)
        self._check_function_code(header.function_code)
        self._read_payload(reader)
        self._header = header

    def _check_function_code(self, code: int) -> None:
        if code != self.function_code:
            raise ValueError(
                f"{type(self).__name__} expects function code "
                f"0x{self.function_code:02X}, got 0x{code:02X}"
            )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ModbusMessage):
            return NotImplemented
        return (
            type(self) is type(other)
            and self.headless == other.headless
            and self.encode() == other.encode()
        )

    __hash__ = None  # mutable

    def __repr__(self) -> str:
        payload = self.encode_payload()
        return (
            f"{type(self).__name__}(unit={self.unit_id}, "
            f"function=0x{self.function_code:02X}, "
            f"payload={payload.hex(' ') if payload else '(empty)'})"
        )


class ModbusResponse(ModbusMessage):
    """Base class for responses."""

    @property
    def is_exception(self) -> bool:
        return False


class ExceptionResponse(ModbusResponse):
    """Response signalling that a request could not be served.

    The function code always carries the exception bit: it is OR'ed in on
    construction and by the ``function_code`` setter, so callers pass the
    plain function code of the failed request.
    """

    def __init__(
        self,
        function_code: int = 0,
        exception_code: int = ExceptionCode.ILLEGAL_FUNCTION,
    ) -> None:
        super().__init__()
        self.function_code = function_code
        self._exception_code = exception_code & 0xFF

    @property
    def function_code(self) -> int:
        return self._header.function_code

    @function_code.setter
    def function_code(self, code: int) -> None:
        self._header.function_code = (code | EXCEPTION_OFFSET) & 0xFF

    @property
    def base_function_code(self) -> int:
        """The function code of the request that failed."""
        return self.function_code & ~EXCEPTION_OFFSET & 0xFF

    @property
    def exception_code(self) -> int:
        return self._exception_code

    @exception_code.setter
    def exception_code(self, code: int) -> None:
        self._exception_code = code & 0xFF

    @property
    def description(self) -> str:
        return describe_exception(self._exception_code)

    @property
    def is_exception(self) -> bool:
        return True

    @property
    def data_length(self) -> int:
        return 1

    def encode_payload(self) -> bytes:
        return bytes([self._exception_code])

    def _read_payload(self, reader: PayloadReader) -> None:
        self._exception_code = reader.read_u8()

    def _check_function_code(self, code: int) -> None:
        if not is_exception(code):
            raise ValueError(f"0x{code:02X} is not an exception function code")

    def __eq__(self, other: object) -> bool:
        # named variants and the generic class share one wire form
        if not isinstance(other, ExceptionResponse):
            return NotImplemented
        return self.headless == other.headless and self.encode() == other.encode()

    __hash__ = None

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(unit={self.unit_id}, "
            f"function=0x{self.function_code:02X}, "
            f"exception={self.description})"
        )


class IllegalFunctionExceptionResponse(ExceptionResponse):
    """Exception response for an unsupported function or sub-function."""

    def __init__(self, function_code: int = 0) -> None:
        super().__init__(function_code, ExceptionCode.ILLEGAL_FUNCTION)


class IllegalAddressExceptionResponse(ExceptionResponse):
    """Exception response for a reference range the slave does not hold."""

    def __init__(self, function_code: int = 0) -> None:
        super().__init__(function_code, ExceptionCode.ILLEGAL_DATA_ADDRESS)


class IllegalValueExceptionResponse(ExceptionResponse):
    """Exception response for a request field outside its legal range."""

    def __init__(self, function_code: int = 0) -> None:
        super().__init__(function_code, ExceptionCode.ILLEGAL_DATA_VALUE)


EXCEPTION_CLASSES: dict[int, type[ExceptionResponse]] = {
    ExceptionCode.ILLEGAL_FUNCTION: IllegalFunctionExceptionResponse,
    ExceptionCode.ILLEGAL_DATA_ADDRESS: IllegalAddressExceptionResponse,
    ExceptionCode.ILLEGAL_DATA_VALUE: IllegalValueExceptionResponse,
}


class ModbusRequest(ModbusMessage):
    """Base class for requests.

    Subclasses set ``RESPONSE_CLASS`` and implement :meth:`execute`.
    """

    RESPONSE_CLASS: ClassVar[type[ModbusResponse]] = ModbusResponse

    def _new_response(self) -> ModbusResponse:
        return self.RESPONSE_CLASS()

    def build_empty_response(self) -> ModbusResponse:
        """Build the paired response with this request's envelope copied.

        Payload fields are left at their defaults.
        """
        response = self._new_response()
        response.copy_header_from(self)
        response.function_code = self.function_code
        return response

    def build_exception_response(self, code: int) -> ExceptionResponse:
        """Build an exception response answering this request."""
        cls = EXCEPTION_CLASSES.get(code)
        if cls is not None:
            response = cls(self.function_code)
        else:
            response = ExceptionResponse(self.function_code, code)
        response.copy_header_from(self)
        return response

    def execute(self, store: ProcessImage) -> ModbusResponse:
        """Serve this request against ``store``.

        Returns the populated paired response, or an exception response if
        the request cannot be served.
        """
        raise NotImplementedError

    def _address_fault(self, error: IllegalAddressError) -> ExceptionResponse:
        logger.debug(
            "%s unit=%d: %s", type(self).__name__, self.unit_id, error
        )
        return self.build_exception_response(ExceptionCode.ILLEGAL_DATA_ADDRESS)


def check_reference(reference: int) -> int:
    if not 0 <= reference <= 0xFFFF:
        raise ValueError(f"Reference must be 0-65535, got {reference}")
    return reference


class ReferenceValueMessage(ModbusMessage):
    """Payload of two words: ``reference:u16`` then a function-defined ``u16``.

    Single writes and their echoes share this layout; subclasses name the
    second word.
    """

    def __init__(self, reference: int = 0, value: int = 0) -> None:
        super().__init__()
        self._reference = check_reference(reference)
        self._value = value & 0xFFFF

    @property
    def reference(self) -> int:
        return self._reference

    @reference.setter
    def reference(self, reference: int) -> None:
        self._reference = check_reference(reference)

    @property
    def data_length(self) -> int:
        return 4

    def encode_payload(self) -> bytes:
        return struct.pack(">HH", self._reference, self._value)

    def _read_payload(self, reader: PayloadReader) -> None:
        self._reference, self._value = struct.unpack(">HH", reader.read(4))
