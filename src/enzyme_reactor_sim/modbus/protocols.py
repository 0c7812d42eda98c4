"""
Register Encoding
=================

Conversion between Python values and 16-bit Modbus words.

Supported data types:
- float32: IEEE 754 single precision in two words, big-endian (high word first)
- int16:   two's complement in one word
- uint16:  one word
- bool:    coil / discrete input bit (0 or 1)

Date: October 2026
License: MIT
"""

import struct
from typing import List, Sequence, Union

DATA_TYPE_WORDS = {"float32": 2, "int16": 1, "uint16": 1, "bool": 1}

Value = Union[float, int, bool]


def word_count(data_type: str) -> int:
    try:
        return DATA_TYPE_WORDS[data_type]
    except KeyError:
        raise ValueError(f"Unknown data type: {data_type}") from None


def encode_value(value: Value, data_type: str) -> List[int]:
    """
    Encode one value into register words.

    Raises:
        ValueError: Unknown data type or integer out of range
    """
    if data_type == "float32":
        return list(struct.unpack(">HH", struct.pack(">f", float(value))))
    if data_type == "int16":
        value = int(value)
        if not -32768 <= value <= 32767:
            raise ValueError(f"int16 value {value} out of range")
        return [struct.unpack(">H", struct.pack(">h", value))[0]]
    if data_type == "uint16":
        value = int(value)
        if not 0 <= value <= 65535:
            raise ValueError(f"uint16 value {value} out of range")
        return [value]
    if data_type == "bool":
        return [1 if value else 0]
    raise ValueError(f"Unknown data type: {data_type}")


def decode_value(words: Sequence[int], data_type: str) -> Value:
    """Decode register words produced by ``encode_value``."""
    needed = word_count(data_type)
    if len(words) < needed:
        raise ValueError(f"{data_type} needs {needed} words, got {len(words)}")

    if data_type == "float32":
        return struct.unpack(">f", struct.pack(">HH", words[0], words[1]))[0]
    if data_type == "int16":
        return struct.unpack(">h", struct.pack(">H", words[0]))[0]
    if data_type == "uint16":
        return int(words[0])
    return bool(words[0])


def float32_round(value: float) -> float:
    """The value a float32 register pair actually stores."""
    return decode_value(encode_value(value, "float32"), "float32")


def validate_encoding():
    """Check the encodings against known register patterns."""
    if encode_value(7.25, "float32") != [16616, 0]:
        raise AssertionError("float32 encoding of 7.25 is wrong")
    if encode_value(-1, "int16") != [0xFFFF]:
        raise AssertionError("int16 encoding of -1 is wrong")
    if decode_value([0xFFFF], "int16") != -1:
        raise AssertionError("int16 decoding of 0xFFFF is wrong")
    if abs(float32_round(35.8) - 35.8) > 1e-5:
        raise AssertionError("float32 precision lost beyond single precision")

    print("✓ Register encoding validation passed")


if __name__ == "__main__":
    validate_encoding()
