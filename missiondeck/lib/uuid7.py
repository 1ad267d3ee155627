from __future__ import annotations

import secrets
import threading
import time
import uuid as _uuid

# Monotonic state for same-millisecond IDs (RFC 9562 Method 2)
_state_lock = threading.Lock()
_last_timestamp_ms = 0
_counter = 0

# Check for native uuid7 support once at module load
_USE_NATIVE = hasattr(_uuid, "uuid7")


def uuid7() -> str:
    """Generate UUID v7 (time-ordered) for record IDs."""
    if _USE_NATIVE:
        return str(_uuid.uuid7())

    global _last_timestamp_ms, _counter

    with _state_lock:
        timestamp_ms = int(time.time() * 1000)

        if timestamp_ms == _last_timestamp_ms:
            _counter = (_counter + 1) & 0xFFF  # 12-bit counter wraps
        else:
            _counter = secrets.randbits(12)
            _last_timestamp_ms = timestamp_ms

        # 48-bit timestamp | version 7 | 12-bit counter | variant 10 | 62 random bits
        uuid_int = (timestamp_ms & 0xFFFFFFFFFFFF) << 80
        uuid_int |= 0x7 << 76
        uuid_int |= _counter << 64
        uuid_int |= 0b10 << 62
        uuid_int |= secrets.randbits(62)

        return str(_uuid.UUID(int=uuid_int))
