"""EAR — audio acquisition layer.

- Decoder: raw bytes → float frames at the project sample rate
- BufferCache: fetch + decode per loop, deduplicated and cached
"""

from jamroom.ear.buffer_cache import BufferCache
from jamroom.ear.decoder import DecodedBuffer, decode_audio

__all__ = [
    "BufferCache",
    "DecodedBuffer",
    "decode_audio",
]
