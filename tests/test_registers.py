"""Tests for register messages."""

import threading

import pytest

from modbus_pdu_mcp.models.process_image import SimpleProcessImage
from modbus_pdu_mcp.models.values import Register
from modbus_pdu_mcp.protocol.framing import TruncatedPDUError
from modbus_pdu_mcp.protocol.function_codes import ExceptionCode
from modbus_pdu_mcp.protocol.registers import (
    ReadInputRegistersRequest,
    ReadInputRegistersResponse,
    ReadMultipleRegistersRequest,
    ReadMultipleRegistersResponse,
    WriteMultipleRegistersRequest,
    WriteMultipleRegistersResponse,
    WriteSingleRegisterRequest,
    WriteSingleRegisterResponse,
)


@pytest.mark.parametrize("count", [0, 1, 3, 125])
def test_byte_count_is_twice_register_count(count):
    response = ReadMultipleRegistersResponse([Register(i) for i in range(count)])
    assert response.byte_count == 2 * count
    assert response.word_count == count
    assert response.data_length == 2 * count + 1


def test_response_payload():
    response = ReadMultipleRegistersResponse([Register(0x022B), Register(0), Register(0x0064)])
    assert response.function_code == 0x03
    assert response.encode_payload() == b"\x06\x02\x2B\x00\x00\x00\x64"


def test_response_decode():
    response = ReadMultipleRegistersResponse()
    response.decode_payload(b"\x04\x00\x01\xFF\xFF")
    assert response.word_count == 2
    assert response.get_register_value(0) == 1
    assert response.get_register_value(1) == 0xFFFF
    assert response.data_length == 5


def test_response_decode_odd_byte_count():
    with pytest.raises(ValueError):
        ReadMultipleRegistersResponse().decode_payload(b"\x03\x00\x01\x02")


def test_response_decode_truncated():
    with pytest.raises(TruncatedPDUError):
        ReadMultipleRegistersResponse().decode_payload(b"\x04\x00\x01")


def test_get_register_bounds():
    response = ReadMultipleRegistersResponse([Register(1), Register(2)])
    assert response.get_register(1).value == 2
    with pytest.raises(IndexError):
        response.get_register(-1)
    with pytest.raises(IndexError):
        response.get_register(2)


def test_get_register_before_any_set():
    with pytest.raises(IndexError):
        ReadMultipleRegistersResponse().get_register(0)


def test_registers_returns_owned_copy():
    """Changing the returned registers leaves the response untouched."""
    response = ReadMultipleRegistersResponse([Register(5)])
    copy = response.registers
    copy[0].set_value(6)
    copy.append(Register(7))
    assert response.get_register_value(0) == 5
    assert response.word_count == 1


def test_set_registers_updates_lengths():
    response = ReadMultipleRegistersResponse([Register(1)])
    response.registers = [Register(1), Register(2), Register(3)]
    assert response.byte_count == 6
    assert response.data_length == 7


def test_request_register_count_limit():
    assert ReadMultipleRegistersRequest(0, 125).word_count == 125
    with pytest.raises(ValueError):
        ReadMultipleRegistersRequest(0, 126)


def test_request_payload():
    assert ReadMultipleRegistersRequest(0x006B, 3).encode_payload() == b"\x00\x6B\x00\x03"


def test_read_registers_execute():
    image = SimpleProcessImage(registers=10)
    image.set_registers(0, [10, 20, 30])

    response = ReadMultipleRegistersRequest(0, 3).execute(image)

    assert isinstance(response, ReadMultipleRegistersResponse)
    assert [r.value for r in response.registers] == [10, 20, 30]


def test_read_registers_response_detached_from_store():
    image = SimpleProcessImage(registers=2)
    image.set_registers(0, [1, 2])
    response = ReadMultipleRegistersRequest(0, 2).execute(image)

    image.set_registers(0, [9, 9])

    assert response.get_register_value(0) == 1


def test_read_is_not_torn_by_concurrent_write(monkeypatch):
    """A write that starts mid-read lands after the read, not inside it."""
    image = SimpleProcessImage(registers=2)
    image.set_registers(0, [1, 1])
    writer = threading.Thread(target=image.set_registers, args=(0, [9, 9]))
    original_copy = Register.copy

    def copy_then_start_writer(register):
        if writer.ident is None:
            writer.start()
            writer.join(timeout=0.05)
        return original_copy(register)

    monkeypatch.setattr(Register, "copy", copy_then_start_writer)
    response = ReadMultipleRegistersRequest(0, 2).execute(image)
    writer.join()

    assert [r.value for r in response.registers] == [1, 1]
    assert image.to_dict()["registers"] == [9, 9]


def test_read_registers_out_of_range():
    image = SimpleProcessImage(registers=10)
    response = ReadMultipleRegistersRequest(8, 3).execute(image)
    assert response.function_code == 0x83
    assert response.exception_code == ExceptionCode.ILLEGAL_DATA_ADDRESS


def test_read_input_registers():
    image = SimpleProcessImage(input_registers=4)
    image.set_input_registers(2, [0x1234])

    response = ReadInputRegistersRequest(2, 1).execute(image)

    assert isinstance(response, ReadInputRegistersResponse)
    assert response.function_code == 0x04
    assert response.encode_payload() == b"\x02\x12\x34"


def test_write_single_register():
    image = SimpleProcessImage(registers=8)
    request = WriteSingleRegisterRequest(5, 0x1234)

    response = request.execute(image)

    assert isinstance(response, WriteSingleRegisterResponse)
    assert image.get_register(5).value == 0x1234
    assert response.encode_payload() == b"\x00\x05\x12\x34"


def test_write_single_register_out_of_range():
    response = WriteSingleRegisterRequest(8, 1).execute(SimpleProcessImage(registers=8))
    assert response.function_code == 0x86


def test_write_multiple_registers_payload():
    request = WriteMultipleRegistersRequest(1, [Register(0x000A), Register(0x0102)])
    assert request.data_length == 9
    assert request.encode_payload() == b"\x00\x01\x00\x02\x04\x00\x0A\x01\x02"


def test_write_multiple_registers_limit():
    with pytest.raises(ValueError):
        WriteMultipleRegistersRequest(0, [Register() for _ in range(124)])


def test_write_multiple_registers_execute():
    image = SimpleProcessImage(registers=4)
    request = WriteMultipleRegistersRequest(1, [Register(7), Register(8)])

    response = request.execute(image)

    assert isinstance(response, WriteMultipleRegistersResponse)
    assert image.to_dict()["registers"] == [0, 7, 8, 0]
    assert response.encode_payload() == b"\x00\x01\x00\x02"


def test_write_multiple_registers_all_or_nothing():
    """A range running past the image writes nothing."""
    image = SimpleProcessImage(registers=4)
    request = WriteMultipleRegistersRequest(3, [Register(7), Register(8)])

    response = request.execute(image)

    assert response.exception_code == ExceptionCode.ILLEGAL_DATA_ADDRESS
    assert image.to_dict()["registers"] == [0, 0, 0, 0]


def test_write_multiple_registers_decode_mismatch():
    request = WriteMultipleRegistersRequest()
    with pytest.raises(ValueError):
        request.decode_payload(b"\x00\x01\x00\x02\x02\x00\x0A")


def test_write_multiple_registers_round_trip():
    request = WriteMultipleRegistersRequest(2, [Register(1), Register(0xFFFF)])
    request.headless = True
    request.unit_id = 9

    decoded = WriteMultipleRegistersRequest()
    decoded.headless = True
    decoded.decode(request.encode())

    assert decoded == request
    assert decoded.get_register_value(1) == 0xFFFF
