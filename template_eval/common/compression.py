"""Zstd compression for cached page bodies.

HTML from the same site compresses very well, so cache entries are stored
as single zstd frames. The frame header carries the content size, which
lets decompress() work without streaming.
"""

from __future__ import annotations

import zstandard as zstd

# Default compression level (3 is a good balance of speed/ratio)
DEFAULT_COMPRESSION_LEVEL = 3


def compress(data: bytes, level: int = DEFAULT_COMPRESSION_LEVEL) -> bytes:
    """Compress data using zstd.

    Args:
        data: The data to compress.
        level: Compression level (1-22, default 3).

    Returns:
        Compressed data bytes.
    """
    compressor = zstd.ZstdCompressor(level=level)
    return compressor.compress(data)


def decompress(data: bytes) -> bytes:
    """Decompress zstd-compressed data.

    Args:
        data: The compressed data to decompress.

    Returns:
        Decompressed data bytes.

    Raises:
        zstandard.ZstdError: If data is not a valid zstd frame.
    """
    decompressor = zstd.ZstdDecompressor()
    return decompressor.decompress(data)
