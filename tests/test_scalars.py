import struct

import pytest

from save_data import (Bool, ByteArray, F32, I8, I16, I32, U8, U16, U32, SaveCursor,
                       UnexpectedEndOfFile)


@pytest.mark.parametrize("scalar, raw, expected", [
    (I8, b'\xFF', -1),
    (U8, b'\xFF', 255),
    (I16, b'\x00\x80', -32768),
    (U16, b'\x34\x12', 0x1234),
    (I32, b'\xFE\xFF\xFF\xFF', -2),
    (U32, b'\xFE\xFF\xFF\xFF', 0xFFFFFFFE),
    (F32, struct.pack('<f', 0.5), 0.5),
])
def test_fixed_width_decode_and_encode(scalar, raw, expected):
    node = scalar.from_bytes(raw, strict=True)

    assert node.value == expected
    assert node.to_bytes() == raw


def test_scalar_needs_its_full_width():
    cursor = SaveCursor(b'\x01\x02\x03')

    with pytest.raises(UnexpectedEndOfFile):
        I32.deserialize(cursor)
    assert cursor.position == 0


@pytest.mark.parametrize("raw, expected", [
    (b'\x00\x00\x00\x00', False),
    (b'\x01\x00\x00\x00', True),
    (b'\xFF\xFF\xFF\xFF', True),
    (b'\x00\x00\x00\x80', True),
])
def test_bool_is_a_full_word(raw, expected):
    cursor = SaveCursor(raw)

    assert Bool.deserialize(cursor).value is expected
    assert cursor.position == 4


def test_bool_encodes_zero_or_one():
    assert Bool(True).to_bytes() == b'\x01\x00\x00\x00'
    assert Bool(False).to_bytes() == b'\x00\x00\x00\x00'
    assert Bool.from_bytes(b'\xFF\xFF\xFF\xFF').to_bytes() == b'\x01\x00\x00\x00'


def test_set_checks_wire_width():
    node = U8(1)

    node.set(255)
    assert node.value == 255

    with pytest.raises(ValueError):
        node.set(256)
    with pytest.raises(ValueError):
        I32().set(2 ** 31)
    with pytest.raises(ValueError):
        I32().set(1.5)
    assert node.value == 255


def test_f32_accepts_ints_and_rejects_overflow():
    node = F32()
    node.set(3)

    assert node.value == 3.0
    assert isinstance(node.value, float)
    with pytest.raises(ValueError):
        node.set(1e300)


def test_f32_holds_single_precision_value():
    node = F32(0.1)

    assert node.value != 0.1
    assert node.value == struct.unpack('<f', struct.pack('<f', 0.1))[0]
    assert F32.from_bytes(node.to_bytes()).value == node.value


def test_scalar_equality_and_hashing():
    assert I32(5) == I32(5)
    assert I32(5) == 5
    assert I32(5) != U32(5)
    assert hash(I32(5)) == hash(5)
    assert len({I32(1), I32(1), I32(2)}) == 2


def test_defaults():
    assert I32().value == 0
    assert F32().value == 0.0
    assert Bool().value is False
    assert U16.default() == U16(0)


def test_byte_array_reads_each_byte():
    cursor = SaveCursor(b'\x01\x02\x03\x04\x05')

    node = ByteArray[4].deserialize(cursor)

    assert node.data == bytearray(b'\x01\x02\x03\x04')
    assert cursor.position == 4
    assert node.to_bytes() == b'\x01\x02\x03\x04'


def test_byte_array_types_are_cached_per_length():
    assert ByteArray[16] is ByteArray[16]
    assert ByteArray[16] is not ByteArray[8]
    assert ByteArray[16].LENGTH == 16
    assert ByteArray[16].__name__ == 'ByteArray[16]'


def test_byte_array_short_buffer_reports_index():
    with pytest.raises(UnexpectedEndOfFile) as excinfo:
        ByteArray[4].from_bytes(b'\x01\x02')

    assert excinfo.value.path == ['[2]']
    assert excinfo.value.offset == 2


def test_byte_array_length_is_fixed():
    node = ByteArray[2]()

    assert node == b'\x00\x00'
    node.set(b'\xAB\xCD')
    assert node.to_bytes() == b'\xAB\xCD'
    with pytest.raises(ValueError):
        node.set(b'\x01')


def test_unbound_byte_array_is_rejected():
    with pytest.raises(TypeError):
        ByteArray()
    with pytest.raises(TypeError):
        ByteArray[-1]
