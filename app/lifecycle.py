"""
Lifecycle policy for pastes.

Pure functions deciding whether a paste is still alive at a given instant
and what its view budget becomes after a successful read. Times are integer
milliseconds since the epoch.
"""
from typing import Optional

from app.models import Paste


def is_alive(paste: Paste, now_ms: int) -> bool:
    """
    Check whether a paste can still be served.

    A paste is alive while its expiry lies strictly in the future and it has
    views left. Both checks use the same ``now_ms`` sample, so a read that
    lands exactly on ``expires_at`` is already dead.
    """
    if paste.expires_at is not None and paste.expires_at <= now_ms:
        return False
    if paste.remaining_views is not None and paste.remaining_views <= 0:
        return False
    return True


def next_remaining_views(remaining_views: Optional[int]) -> Optional[int]:
    """Views left after one successful read (None means unlimited)."""
    if remaining_views is None:
        return None
    return max(remaining_views - 1, 0)


def compute_expires_at(now_ms: int, ttl_seconds: Optional[int]) -> Optional[int]:
    if ttl_seconds is None:
        return None
    return now_ms + ttl_seconds * 1000
