"""Function codes, exception codes and protocol limits.

A function code identifies the request and is echoed by the response.
Exception responses carry the same code with :data:`EXCEPTION_OFFSET`
OR'ed in.
"""

from __future__ import annotations

from enum import IntEnum

EXCEPTION_OFFSET = 0x80
MAX_BITS = 2000       # coils / discrete inputs per read
MAX_REGISTERS = 125   # registers per read
MAX_WRITE_REGISTERS = 123

COIL_ON = 0xFF00
COIL_OFF = 0x0000


class FunctionCode(IntEnum):
    """Public function codes handled by this package."""

    READ_COILS = 0x01
    READ_INPUT_DISCRETES = 0x02
    READ_MULTIPLE_REGISTERS = 0x03
    READ_INPUT_REGISTERS = 0x04
    WRITE_COIL = 0x05
    WRITE_SINGLE_REGISTER = 0x06
    READ_SERIAL_DIAGNOSTICS = 0x08
    WRITE_MULTIPLE_REGISTERS = 0x10


class ExceptionCode(IntEnum):
    """Exception codes carried by exception responses."""

    ILLEGAL_FUNCTION = 0x01
    ILLEGAL_DATA_ADDRESS = 0x02
    ILLEGAL_DATA_VALUE = 0x03
    SLAVE_DEVICE_FAILURE = 0x04
    ACKNOWLEDGE = 0x05
    SLAVE_DEVICE_BUSY = 0x06
    MEMORY_PARITY_ERROR = 0x08
    GATEWAY_PATH_UNAVAILABLE = 0x0A
    GATEWAY_TARGET_NO_RESPONSE = 0x0B


EXCEPTION_DESCRIPTIONS: dict[ExceptionCode, str] = {
    ExceptionCode.ILLEGAL_FUNCTION: "Illegal Function",
    ExceptionCode.ILLEGAL_DATA_ADDRESS: "Illegal Data Address",
    ExceptionCode.ILLEGAL_DATA_VALUE: "Illegal Data Value",
    ExceptionCode.SLAVE_DEVICE_FAILURE: "Slave Device Failure",
    ExceptionCode.ACKNOWLEDGE: "Acknowledge",
    ExceptionCode.SLAVE_DEVICE_BUSY: "Slave Device Busy",
    ExceptionCode.MEMORY_PARITY_ERROR: "Memory Parity Error",
    ExceptionCode.GATEWAY_PATH_UNAVAILABLE: "Gateway Path Unavailable",
    ExceptionCode.GATEWAY_TARGET_NO_RESPONSE: "Gateway Target Device Failed to Respond",
}


def is_exception(function_code: int) -> bool:
    """Return True if the function code has the exception bit set."""
    return bool(function_code & EXCEPTION_OFFSET)


def describe_exception(code: int) -> str:
    """Return a human-readable description for an exception code."""
    try:
        return EXCEPTION_DESCRIPTIONS[ExceptionCode(code)]
    except ValueError:
        return f"Unknown exception 0x{code:02X}"
