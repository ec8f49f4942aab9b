"""Running 128-bit content hash over the encoded asset buffers."""

import hashlib
import struct
from typing import Union

import numpy as np

BytesLike = Union[bytes, bytearray, memoryview, np.ndarray]


class ContentHash:
    """blake2b-128 seeded with the splat count and format version.

    Buffers are folded in with their length so that moving bytes between two
    consecutive buffers still changes the result.
    """

    def __init__(self, splat_count: int, format_version: int):
        self._hasher = hashlib.blake2b(digest_size=16)
        self._hasher.update(struct.pack('<QQ', splat_count, format_version))

    def append(self, data: BytesLike) -> 'ContentHash':
        if isinstance(data, np.ndarray):
            data = np.ascontiguousarray(data).view(np.uint8).reshape(-1).tobytes()
        data = bytes(data)
        self._hasher.update(struct.pack('<Q', len(data)))
        self._hasher.update(data)
        return self

    def append_int(self, value: int) -> 'ContentHash':
        self._hasher.update(struct.pack('<q', int(value)))
        return self

    def digest(self) -> bytes:
        return self._hasher.digest()

    def hexdigest(self) -> str:
        return self._hasher.hexdigest()
