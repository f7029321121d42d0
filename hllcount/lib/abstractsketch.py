from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Iterable
import struct
import xxhash # type: ignore

MASK64 = (1 << 64) - 1

# Type tags keep e.g. the string "1" and the integer 1 apart.
_TAG_BYTES = b'b'
_TAG_STR = b's'
_TAG_BOOL = b'?'
_TAG_INT = b'i'
_TAG_FLOAT = b'f'
_TAG_NONE = b'n'
_TAG_SEQ = b't'


def serialize_value(value: Any) -> bytes:
    """Encode a value as stable, type-tagged bytes for hashing.

    Equal logical values always produce equal bytes, across calls and
    across processes.

    Args:
        value: bytes-like, str, bool, int, float, None, or a tuple/list of those

    Returns:
        Byte encoding of the value

    Raises:
        TypeError: If the value type has no stable encoding
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return _TAG_BYTES + bytes(value)
    if isinstance(value, str):
        return _TAG_STR + value.encode('utf-8')
    # bool before int, since bool is an int subclass
    if isinstance(value, bool):
        return _TAG_BOOL + (b'\x01' if value else b'\x00')
    if isinstance(value, int):
        length = (value.bit_length() + 8) // 8
        return _TAG_INT + value.to_bytes(length, byteorder='little', signed=True)
    if isinstance(value, float):
        return _TAG_FLOAT + struct.pack('<d', value)
    if value is None:
        return _TAG_NONE
    if isinstance(value, (tuple, list)):
        parts = [_TAG_SEQ, len(value).to_bytes(8, byteorder='little')]
        for item in value:
            encoded = serialize_value(item)
            parts.append(len(encoded).to_bytes(8, byteorder='little'))
            parts.append(encoded)
        return b''.join(parts)
    raise TypeError(f"Cannot hash value of type {type(value).__name__}")


class AbstractSketch(ABC):
    """Base class for cardinality sketches."""

    @abstractmethod
    def insert(self, value: Any) -> None:
        """Add a value to the sketch."""
        pass

    @abstractmethod
    def insert_batch(self, values: Iterable[Any]) -> None:
        """Add multiple values to the sketch.

        Args:
            values: Iterable of values to add to the sketch
        """
        pass

    @abstractmethod
    def cardinality(self) -> float:
        """Estimate the number of distinct values added."""
        pass

    @abstractmethod
    def merge(self, other: 'AbstractSketch') -> None:
        """Merge another sketch into this one."""
        pass

    # Hash functions - static methods for use by all sketch implementations
    @staticmethod
    def _hash64_bytes(seed0: int, seed1: int, data: bytes) -> int:
        """Keyed 64-bit hash of a byte string.

        Both seed words key the hash: seed0 seeds xxh64 and seed1 is fed
        ahead of the data.

        Args:
            seed0: First seed word
            seed1: Second seed word
            data: Bytes to hash

        Returns:
            64-bit hash value as integer
        """
        hasher = xxhash.xxh64(seed=seed0)
        hasher.update(seed1.to_bytes(8, byteorder='little'))
        hasher.update(data)
        return hasher.intdigest()

    # Instance method that uses the sketch's seed and hash function (if available)
    def hash_value(self, value: Any) -> int:
        """Hash a value using the instance's seed pair and hash function.

        Args:
            value: Value to hash

        Returns:
            64-bit hash value as integer
        """
        seed0, seed1 = getattr(self, 'hash_seed', (0, 0))
        hash_func = getattr(self, 'hash_func', None) or self._hash64_bytes
        return hash_func(seed0, seed1, serialize_value(value)) & MASK64
