"""MCP server entry point for the Modbus PDU codec.

Exposes tools for building, decoding and serving Modbus messages via the
Model Context Protocol, using the official Python MCP SDK with stdio
transport. Served requests run against an in-memory process image that
stands in for a slave device.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .models.process_image import IllegalAddressError, SimpleProcessImage
from .models.values import Register
from .protocol.bits import (
    ReadCoilsRequest,
    ReadInputDiscretesRequest,
    WriteCoilRequest,
)
from .protocol.diagnostics import ReadSerialDiagnosticsRequest
from .protocol.framing import TruncatedPDUError
from .protocol.function_codes import (
    EXCEPTION_DESCRIPTIONS,
    MAX_BITS,
    MAX_REGISTERS,
    FunctionCode,
)
from .protocol.messages import ExceptionResponse, ModbusMessage, ModbusRequest
from .protocol.parser import decode_request as parse_request
from .protocol.parser import decode_response as parse_response
from .protocol.parser import process_request
from .protocol.registers import (
    ReadInputRegistersRequest,
    ReadMultipleRegistersRequest,
    WriteMultipleRegistersRequest,
    WriteSingleRegisterRequest,
)

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "modbus-pdu",
    instructions="Encode, decode and serve Modbus PDUs against a simulated slave",
)

DEFAULT_IMAGE_SIZE = 64

# Simulated slave state
_process_image = SimpleProcessImage(
    coils=DEFAULT_IMAGE_SIZE,
    discrete_inputs=DEFAULT_IMAGE_SIZE,
    registers=DEFAULT_IMAGE_SIZE,
    input_registers=DEFAULT_IMAGE_SIZE,
)

REQUEST_BUILDERS = {
    "read_coils": FunctionCode.READ_COILS,
    "read_input_discretes": FunctionCode.READ_INPUT_DISCRETES,
    "read_registers": FunctionCode.READ_MULTIPLE_REGISTERS,
    "read_input_registers": FunctionCode.READ_INPUT_REGISTERS,
    "write_coil": FunctionCode.WRITE_COIL,
    "write_register": FunctionCode.WRITE_SINGLE_REGISTER,
    "diagnostics": FunctionCode.READ_SERIAL_DIAGNOSTICS,
    "write_registers": FunctionCode.WRITE_MULTIPLE_REGISTERS,
}


def _build_request(
    function: str,
    reference: int,
    count: int,
    value: int,
    values: list[int] | None,
) -> ModbusRequest:
    """Build a populated request from tool arguments."""
    code = REQUEST_BUILDERS[function]
    if code == FunctionCode.READ_COILS:
        return ReadCoilsRequest(reference, count)
    if code == FunctionCode.READ_INPUT_DISCRETES:
        return ReadInputDiscretesRequest(reference, count)
    if code == FunctionCode.READ_MULTIPLE_REGISTERS:
        return ReadMultipleRegistersRequest(reference, count)
    if code == FunctionCode.READ_INPUT_REGISTERS:
        return ReadInputRegistersRequest(reference, count)
    if code == FunctionCode.WRITE_COIL:
        return WriteCoilRequest(reference, bool(value))
    if code == FunctionCode.WRITE_SINGLE_REGISTER:
        return WriteSingleRegisterRequest(reference, value)
    if code == FunctionCode.READ_SERIAL_DIAGNOSTICS:
        # reference doubles as the sub-function code here
        return ReadSerialDiagnosticsRequest(reference, value)
    return WriteMultipleRegistersRequest(
        reference, [Register(v) for v in values or []]
    )


def _message_to_dict(message: ModbusMessage) -> dict[str, Any]:
    """Convert a decoded message to a JSON-serializable dictionary."""
    result: dict[str, Any] = {
        "type": type(message).__name__,
        "function_code": message.function_code,
        "unit_id": message.unit_id,
        "data_length": message.data_length,
        "headless": message.headless,
    }
    if not message.headless:
        result["transaction_id"] = message.transaction_id
        result["protocol_id"] = message.protocol_id

    if isinstance(message, ExceptionResponse):
        result["base_function_code"] = message.base_function_code
        result["exception_code"] = message.exception_code
        result["exception"] = message.description
        return result

    for name in ("reference", "bit_count", "word_count", "value", "coil", "sub_function", "data"):
        if hasattr(message, name):
            result[name] = getattr(message, name)
    if hasattr(message, "bits"):
        result["bits"] = message.bits.to_list()
    if hasattr(message, "registers"):
        result["registers"] = [r.value for r in message.registers]
    return result


def _parse_hex(hex_data: str) -> bytes:
    return bytes.fromhex(hex_data.replace(" ", "").replace(":", ""))


# ─── CODEC TOOLS ──────────────────────────────────────────────────────

@mcp.tool()
def encode_request(
    function: str,
    reference: int = 0,
    count: int = 1,
    value: int = 0,
    values: list[int] | None = None,
    unit_id: int = 1,
    transaction_id: int = 0,
    headless: bool = False,
) -> dict[str, Any]:
    """Build a request message and return it as hex.

    Args:
        function: One of read_coils, read_input_discretes, read_registers,
                  read_input_registers, write_coil, write_register,
                  write_registers, diagnostics.
        reference: Start address (sub-function code for diagnostics).
        count: Number of bits or registers to read.
        value: Value for single writes (non-zero switches a coil on),
               or the data word for diagnostics.
        values: Register values for write_registers.
        unit_id: Slave unit ID (0-255).
        transaction_id: Transaction ID, ignored when headless.
        headless: Omit the transaction/protocol header (serial framing).
    """
    if function not in REQUEST_BUILDERS:
        return {"error": f"Unknown function '{function}'. Valid: {list(REQUEST_BUILDERS)}"}
    if not 0 <= unit_id <= 255:
        return {"error": "Unit ID must be 0-255"}

    try:
        request = _build_request(function, reference, count, value, values)
    except ValueError as e:
        return {"error": str(e)}

    request.headless = headless
    request.unit_id = unit_id
    request.transaction_id = transaction_id
    return {
        "hex": request.encode().hex(" "),
        "pdu_length": request.pdu_length,
        "request": _message_to_dict(request),
    }


@mcp.tool()
def decode_request(hex_data: str, headless: bool = False) -> dict[str, Any]:
    """Decode a request message given as hex.

    Args:
        hex_data: Message bytes as hex, spaces allowed.
        headless: True if the message has no transaction/protocol header.
    """
    try:
        request = parse_request(_parse_hex(hex_data), headless)
    except (ValueError, TruncatedPDUError) as e:
        return {"error": str(e)}
    return _message_to_dict(request)


@mcp.tool()
def decode_response(hex_data: str, headless: bool = False) -> dict[str, Any]:
    """Decode a response message given as hex, exception responses included.

    Args:
        hex_data: Message bytes as hex, spaces allowed.
        headless: True if the message has no transaction/protocol header.
    """
    try:
        response = parse_response(_parse_hex(hex_data), headless)
    except (ValueError, TruncatedPDUError) as e:
        return {"error": str(e)}
    return _message_to_dict(response)


@mcp.tool()
def serve_request(hex_data: str, headless: bool = False) -> dict[str, Any]:
    """Answer a request message from the simulated process image.

    Write requests change the image. Out-of-range references produce an
    illegal data address exception response, as a real slave would.

    Args:
        hex_data: Request bytes as hex.
        headless: True if the request has no transaction/protocol header.
    """
    try:
        answer = process_request(_parse_hex(hex_data), _process_image, headless)
    except (ValueError, TruncatedPDUError) as e:
        return {"error": str(e)}

    response = parse_response(answer, headless)
    return {
        "hex": answer.hex(" "),
        "response": _message_to_dict(response),
    }


# ─── PROCESS IMAGE TOOLS ──────────────────────────────────────────────

@mcp.tool()
def configure_process_image(
    coils: int = DEFAULT_IMAGE_SIZE,
    discrete_inputs: int = DEFAULT_IMAGE_SIZE,
    registers: int = DEFAULT_IMAGE_SIZE,
    input_registers: int = DEFAULT_IMAGE_SIZE,
) -> dict[str, Any]:
    """Replace the simulated process image with a fresh, zeroed one.

    Args:
        coils: Number of coils.
        discrete_inputs: Number of discrete inputs.
        registers: Number of holding registers.
        input_registers: Number of input registers.
    """
    global _process_image
    sizes = (coils, discrete_inputs, registers, input_registers)
    if any(not 0 <= s <= 0x10000 for s in sizes):
        return {"error": "Table sizes must be 0-65536"}

    _process_image = SimpleProcessImage(*sizes)
    logger.info(
        "Process image reset: %d coils, %d inputs, %d registers, %d input registers",
        *sizes,
    )
    return {
        "coils": coils,
        "discrete_inputs": discrete_inputs,
        "registers": registers,
        "input_registers": input_registers,
    }


@mcp.tool()
def set_coils(reference: int, states: list[bool]) -> dict[str, Any]:
    """Set a run of coils in the simulated process image.

    Args:
        reference: First coil address.
        states: Coil states, one per address.
    """
    try:
        _process_image.set_coils(reference, states)
    except IllegalAddressError as e:
        return {"error": str(e)}
    return {"reference": reference, "count": len(states)}


@mcp.tool()
def set_discrete_inputs(reference: int, states: list[bool]) -> dict[str, Any]:
    """Set a run of discrete inputs in the simulated process image."""
    try:
        _process_image.set_discrete_inputs(reference, states)
    except IllegalAddressError as e:
        return {"error": str(e)}
    return {"reference": reference, "count": len(states)}


@mcp.tool()
def set_registers(reference: int, values: list[int]) -> dict[str, Any]:
    """Set a run of holding registers in the simulated process image.

    Args:
        reference: First register address.
        values: Register values (0-65535).
    """
    if any(not 0 <= v <= 0xFFFF for v in values):
        return {"error": "Register values must be 0-65535"}
    try:
        _process_image.set_registers(reference, values)
    except IllegalAddressError as e:
        return {"error": str(e)}
    return {"reference": reference, "count": len(values)}


@mcp.tool()
def set_input_registers(reference: int, values: list[int]) -> dict[str, Any]:
    """Set a run of input registers in the simulated process image."""
    if any(not 0 <= v <= 0xFFFF for v in values):
        return {"error": "Register values must be 0-65535"}
    try:
        _process_image.set_input_registers(reference, values)
    except IllegalAddressError as e:
        return {"error": str(e)}
    return {"reference": reference, "count": len(values)}


@mcp.tool()
def read_process_image() -> dict[str, Any]:
    """Return the full contents of the simulated process image."""
    return _process_image.to_dict()


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("modbus://catalog/function-codes")
def resource_function_codes() -> str:
    """Supported function codes with their limits."""
    codes = [
        {"code": f"0x{fc.value:02X}", "name": fc.name.lower()}
        for fc in FunctionCode
    ]
    return json.dumps({
        "function_codes": codes,
        "max_bits": MAX_BITS,
        "max_registers": MAX_REGISTERS,
    })


@mcp.resource("modbus://catalog/exception-codes")
def resource_exception_codes() -> str:
    """Exception codes and their meaning."""
    codes = [
        {"code": code.value, "name": text}
        for code, text in EXCEPTION_DESCRIPTIONS.items()
    ]
    return json.dumps({"exception_codes": codes})


@mcp.resource("modbus://process-image/summary")
def resource_process_image_summary() -> str:
    """Table sizes of the simulated process image."""
    return json.dumps({
        "coils": _process_image.coil_count,
        "discrete_inputs": _process_image.discrete_input_count,
        "registers": _process_image.register_count,
        "input_registers": _process_image.input_register_count,
    })


# ─── MCP PROMPTS ─────────────────────────────────────────────────────

@mcp.prompt()
def explain_exchange(request_hex: str, response_hex: str) -> str:
    """Walk through a captured request/response pair.

    Args:
        request_hex: Request bytes as hex.
        response_hex: Response bytes as hex.
    """
    return f"""Explain this Modbus exchange.
Request:  {request_hex}
Response: {response_hex}

Use decode_request and decode_response to parse both messages.
Consider:
- Whether the messages carry a transaction header or are headless
- Whether the response function code matches the request
- If the high bit is set, which exception was raised and the likely cause
- Whether the returned byte count matches the requested quantity"""


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
