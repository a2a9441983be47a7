"""Tests for the shared envelope and exception responses."""

import io

import pytest

from modbus_pdu_mcp.protocol.bits import ReadCoilsRequest, WriteCoilRequest
from modbus_pdu_mcp.protocol.function_codes import (
    ExceptionCode,
    describe_exception,
    is_exception,
)
from modbus_pdu_mcp.protocol.messages import (
    ExceptionResponse,
    IllegalAddressExceptionResponse,
    IllegalValueExceptionResponse,
)
from modbus_pdu_mcp.protocol.registers import (
    ReadMultipleRegistersRequest,
    WriteSingleRegisterRequest,
)


def test_exception_bit_set_on_construction():
    response = ExceptionResponse(0x03, ExceptionCode.ILLEGAL_DATA_ADDRESS)
    assert response.function_code == 0x83
    assert response.base_function_code == 0x03
    assert response.is_exception


def test_exception_bit_set_by_setter():
    response = IllegalAddressExceptionResponse()
    response.function_code = 0x01
    assert response.function_code == 0x81
    response.function_code = 0x81
    assert response.function_code == 0x81


def test_exception_wire_form():
    response = IllegalAddressExceptionResponse(0x03)
    response.transaction_id = 1
    response.unit_id = 1
    assert response.data_length == 1
    assert response.encode() == b"\x00\x01\x00\x00\x01\x83\x02"


def test_exception_description():
    assert IllegalAddressExceptionResponse(0x03).description == "Illegal Data Address"
    assert describe_exception(0x42) == "Unknown exception 0x42"


def test_is_exception():
    assert is_exception(0x83)
    assert not is_exception(0x03)


def test_exception_response_copies_envelope():
    request = ReadMultipleRegistersRequest(0, 1)
    request.transaction_id = 77
    request.unit_id = 12

    response = request.build_exception_response(ExceptionCode.SLAVE_DEVICE_BUSY)

    assert response.transaction_id == 77
    assert response.unit_id == 12
    assert response.function_code == 0x83
    assert response.exception_code == ExceptionCode.SLAVE_DEVICE_BUSY


def test_data_length_tracks_payload():
    request = ReadCoilsRequest(0, 1)
    assert request.data_length == len(request.encode_payload())
    assert request.pdu_length == 5


def test_stream_round_trip():
    """read_from consumes exactly one message from a shared stream."""
    first = ReadCoilsRequest(1, 2)
    second = ReadCoilsRequest(3, 4)
    stream = io.BytesIO()
    first.write_to(stream)
    second.write_to(stream)
    stream.seek(0)

    a = ReadCoilsRequest()
    b = ReadCoilsRequest()
    a.read_from(stream)
    b.read_from(stream)

    assert a == first
    assert b == second
    assert stream.read() == b""


def test_failed_decode_leaves_message_unchanged():
    request = ReadCoilsRequest(5, 6)
    request.transaction_id = 9
    with pytest.raises(EOFError):
        request.decode(b"\x00\x01\x00\x00\x01\x01\x00")
    assert request.reference == 5
    assert request.transaction_id == 9


def test_equality_depends_on_type():
    assert ReadCoilsRequest(0, 1) != ReadMultipleRegistersRequest(0, 1)
    assert ReadCoilsRequest(0, 1) == ReadCoilsRequest(0, 1)


def test_repr():
    assert "0x01" in repr(ReadCoilsRequest(0, 1))
    assert "Illegal Data Address" in repr(IllegalAddressExceptionResponse(1))


def test_exception_equality_ignores_named_variant():
    """A generic exception response equals the named one with the same bytes."""
    generic = ExceptionResponse(0x03, ExceptionCode.ILLEGAL_DATA_ADDRESS)
    named = IllegalAddressExceptionResponse(0x03)
    assert generic == named
    assert named == generic
    assert generic != IllegalValueExceptionResponse(0x03)
    assert generic != IllegalAddressExceptionResponse(0x04)


def test_protocol_id_must_be_zero():
    request = ReadCoilsRequest(0, 1)
    request.protocol_id = 0
    with pytest.raises(ValueError):
        request.protocol_id = 1
    assert request.encode()[2:4] == b"\x00\x00"


def test_decode_rejects_foreign_protocol_id():
    request = ReadCoilsRequest(5, 6)
    with pytest.raises(ValueError):
        request.decode(b"\x00\x01\x00\x02\x01\x01\x00\x00\x00\x08")
    assert request.reference == 5


def test_single_write_payloads_share_layout():
    """Write Coil and Write Single Register both carry reference then value."""
    assert WriteCoilRequest(0xAC, True).encode_payload() == b"\x00\xAC\xFF\x00"
    assert WriteSingleRegisterRequest(0xAC, 0x1234).encode_payload() == b"\x00\xAC\x12\x34"
    with pytest.raises(ValueError):
        WriteSingleRegisterRequest(0x10000, 1)
    request = WriteCoilRequest()
    with pytest.raises(ValueError):
        request.reference = -1
