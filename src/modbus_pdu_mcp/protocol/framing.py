"""Message envelope codec.

Message layout (big-endian)::

    +----------------+-------------+---------+----------+------------------+
    | Transaction ID | Protocol ID | Unit ID | Function |     Payload      |
    | 2 bytes        | 2 bytes     | 1 byte  | 1 byte   | function-defined |
    +----------------+-------------+---------+----------+------------------+

- Transaction ID / Protocol ID: only present when the message is not
  headless. Serial framings carry no such header, so headless messages
  start at the unit ID.
- Protocol ID: always 0 for Modbus.
- Length fields and checksums belong to the transport and are not
  produced here.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import BinaryIO

HEADER_SIZE = 4       # transaction id + protocol id
ADDRESS_SIZE = 2      # unit id + function code
MODBUS_PROTOCOL_ID = 0


class TruncatedPDUError(EOFError):
    """Raised when a message ends before its function-defined shape is read."""

    def __init__(self, expected: int, received: int) -> None:
        self.expected = expected
        self.received = received
        super().__init__(
            f"Truncated message: expected {expected} more bytes, got {received}"
        )


def check_protocol_id(pid: int) -> int:
    """Return ``pid`` if it is the Modbus protocol ID, else raise ValueError."""
    if pid != MODBUS_PROTOCOL_ID:
        raise ValueError(f"Protocol ID must be {MODBUS_PROTOCOL_ID}, got {pid}")
    return pid


@dataclass
class MessageHeader:
    """The fields that precede every payload."""

    unit_id: int = 0
    function_code: int = 0
    transaction_id: int = 0
    protocol_id: int = MODBUS_PROTOCOL_ID
    headless: bool = False

    def __repr__(self) -> str:
        if self.headless:
            return (
                f"MessageHeader(unit={self.unit_id}, "
                f"function=0x{self.function_code:02X}, headless)"
            )
        return (
            f"MessageHeader(tid={self.transaction_id}, pid={self.protocol_id}, "
            f"unit={self.unit_id}, function=0x{self.function_code:02X})"
        )


class PayloadReader:
    """Reads exact-size fields from bytes or a caller-owned binary stream.

    The stream is never closed here. Every read either returns exactly the
    requested number of bytes or raises :class:`TruncatedPDUError`.
    """

    def __init__(self, source: bytes | bytearray | BinaryIO) -> None:
        if isinstance(source, (bytes, bytearray, memoryview)):
            source = io.BytesIO(bytes(source))
        self._stream = source
        self.consumed = 0

    def read(self, size: int) -> bytes:
        if size == 0:
            return b""
        data = self._stream.read(size)
        if data is None or len(data) < size:
            raise TruncatedPDUError(size, 0 if data is None else len(data))
        self.consumed += size
        return data

    def read_u8(self) -> int:
        return self.read(1)[0]

    def read_u16(self) -> int:
        return int.from_bytes(self.read(2), "big")


def build_header(header: MessageHeader) -> bytes:
    """Serialize the envelope fields that precede the payload."""
    out = bytearray()
    if not header.headless:
        out += (header.transaction_id & 0xFFFF).to_bytes(2, "big")
        out += (header.protocol_id & 0xFFFF).to_bytes(2, "big")
    out.append(header.unit_id & 0xFF)
    out.append(header.function_code & 0xFF)
    return bytes(out)


def read_header(reader: PayloadReader, headless: bool = False) -> MessageHeader:
    """Read the envelope fields from ``reader``, leaving it at the payload.

    Raises:
        ValueError: If the protocol ID is not 0.
    """
    header = MessageHeader(headless=headless)
    if not headless:
        header.transaction_id = reader.read_u16()
        header.protocol_id = check_protocol_id(reader.read_u16())
    header.unit_id = reader.read_u8()
    header.function_code = reader.read_u8()
    return header


def parse_header(data: bytes, headless: bool = False) -> tuple[MessageHeader, bytes]:
    """Split a message into its header and the raw payload bytes.

    Raises:
        TruncatedPDUError: If ``data`` is shorter than the header.
        ValueError: If the protocol ID is not 0.
    """
    reader = PayloadReader(data)
    header = read_header(reader, headless)
    return header, bytes(data[reader.consumed :])


def peek_function_code(data: bytes, headless: bool = False) -> int:
    """Return the function code of a message without decoding it."""
    offset = ADDRESS_SIZE - 1 if headless else HEADER_SIZE + ADDRESS_SIZE - 1
    if len(data) <= offset:
        raise TruncatedPDUError(offset + 1, len(data))
    return data[offset]
