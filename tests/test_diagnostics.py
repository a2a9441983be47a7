"""Tests for the Read Serial Diagnostics messages."""

import pytest

from modbus_pdu_mcp.models.process_image import SimpleProcessImage
from modbus_pdu_mcp.protocol.diagnostics import (
    CLEAR_COUNTERS,
    RETURN_QUERY_DATA,
    ReadSerialDiagnosticsRequest,
    ReadSerialDiagnosticsResponse,
)
from modbus_pdu_mcp.protocol.framing import TruncatedPDUError
from modbus_pdu_mcp.protocol.messages import IllegalFunctionExceptionResponse


def test_payload_is_four_bytes():
    request = ReadSerialDiagnosticsRequest(CLEAR_COUNTERS, 0x1234)
    assert request.function_code == 0x08
    assert request.data_length == 4
    assert request.word_count == 1
    assert request.encode_payload() == b"\x00\x0A\x12\x34"


def test_data_is_unsigned_16_bit():
    request = ReadSerialDiagnosticsRequest()
    request.data = -1
    assert request.data == 0xFFFF


def test_new_sub_function_clears_data():
    request = ReadSerialDiagnosticsRequest(RETURN_QUERY_DATA, 0xA537)
    request.sub_function = CLEAR_COUNTERS
    assert request.data == 0


def test_legacy_indexed_accessors():
    """Index 0 maps onto the single data word."""
    request = ReadSerialDiagnosticsRequest()
    with pytest.deprecated_call():
        request.set_data(0, 0x55AA)
    assert request.data == 0x55AA
    with pytest.deprecated_call():
        assert request.get_data(0) == request.data


@pytest.mark.parametrize("index", [-1, 1, 2])
def test_legacy_accessors_reject_other_indices(index):
    request = ReadSerialDiagnosticsRequest()
    with pytest.warns(DeprecationWarning):
        with pytest.raises(IndexError):
            request.get_data(index)
    with pytest.warns(DeprecationWarning):
        with pytest.raises(IndexError):
            request.set_data(index, 1)


def test_decode_payload():
    request = ReadSerialDiagnosticsRequest()
    request.decode_payload(b"\x00\x00\xA5\x37")
    assert request.sub_function == RETURN_QUERY_DATA
    assert request.data == 0xA537


def test_decode_short_payload():
    with pytest.raises(TruncatedPDUError):
        ReadSerialDiagnosticsResponse().decode_payload(b"\x00\x00\xA5")


def test_empty_response_carries_sub_function():
    request = ReadSerialDiagnosticsRequest(CLEAR_COUNTERS, 7)
    request.unit_id = 4

    response = request.build_empty_response()

    assert isinstance(response, ReadSerialDiagnosticsResponse)
    assert response.sub_function == CLEAR_COUNTERS
    assert response.data == 0
    assert response.unit_id == 4


def test_execute_answers_illegal_function():
    request = ReadSerialDiagnosticsRequest(RETURN_QUERY_DATA, 1)
    response = request.execute(SimpleProcessImage())
    assert isinstance(response, IllegalFunctionExceptionResponse)
    assert response.function_code == 0x88
    assert response.encode_payload() == b"\x01"


def test_round_trip():
    response = ReadSerialDiagnosticsResponse(CLEAR_COUNTERS, 0xFF00)
    response.transaction_id = 3
    decoded = ReadSerialDiagnosticsResponse()
    decoded.decode(response.encode())
    assert decoded == response
