"""Tests for register and bit value types."""

import pytest

from modbus_pdu_mcp.models.values import BitVector, DigitalOut, Register


def test_register_bytes_big_endian():
    """Registers serialize high byte first."""
    assert Register(0x1234).to_bytes() == b"\x12\x34"


def test_register_from_bytes():
    reg = Register.from_bytes(b"\xAB\xCD")
    assert reg.value == 0xABCD
    assert reg.to_unsigned_short() == 0xABCD


def test_register_signed_view():
    """0xFFFF reads as -1 when viewed as a signed short."""
    assert Register(0xFFFF).to_short() == -1
    assert Register(0x7FFF).to_short() == 0x7FFF


def test_register_masks_to_16_bits():
    reg = Register()
    reg.set_value(0x12345)
    assert reg.value == 0x2345


def test_register_set_bytes():
    reg = Register()
    reg.set_bytes(b"\x00\x2A")
    assert reg.value == 42


def test_register_short_input():
    with pytest.raises(ValueError):
        Register.from_bytes(b"\x01")


def test_register_copy_is_independent():
    reg = Register(1)
    dup = reg.copy()
    dup.set_value(2)
    assert reg.value == 1
    assert dup == Register(2)


def test_digital_out_state():
    coil = DigitalOut()
    assert not coil.is_set()
    coil.set(True)
    assert coil.is_set()


def test_bit_vector_packing_low_bit_first():
    """Bit 0 is the least significant bit of the first byte."""
    bits = BitVector(10)
    bits.set_bit(0, True)
    bits.set_bit(9, True)
    assert bits.byte_size == 2
    assert bits.to_bytes() == b"\x01\x02"


def test_bit_vector_clear_bit():
    bits = BitVector(8)
    for i in range(8):
        bits.set_bit(i, True)
    bits.set_bit(3, False)
    assert bits.to_bytes() == b"\xF7"


def test_bit_vector_from_bytes_zeroes_padding():
    """Unused high bits of the last byte are dropped."""
    bits = BitVector.from_bytes(b"\xFF", 3)
    assert bits.to_bytes() == b"\x07"
    assert bits.to_list() == [True, True, True]


def test_bit_vector_index_bounds():
    bits = BitVector(4)
    with pytest.raises(IndexError):
        bits.get_bit(4)
    with pytest.raises(IndexError):
        bits.set_bit(-1, True)


def test_bit_vector_too_few_bytes():
    with pytest.raises(ValueError):
        BitVector.from_bytes(b"\x00", 9)
