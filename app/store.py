"""
Paste store: creation and the atomic read-and-expire operation.

This is the only place paste state changes. No in-process lock guards paste
state; all synchronization is delegated to the backend's conditional update.
"""
import logging
import threading
import time
import uuid
from numbers import Integral
from typing import Callable, Optional

from app.database import Backend, open_backend
from app.errors import InternalError, NotFoundError, ValidationError
from app.lifecycle import compute_expires_at, next_remaining_views
from app.models import MAX_TIMESTAMP_MS, Paste, PasteView, ms_to_iso

logger = logging.getLogger(__name__)


def current_time_ms() -> int:
    return time.time_ns() // 1_000_000


def generate_paste_id() -> str:
    return uuid.uuid4().hex


def _validate_positive_int(name: str, value) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise ValidationError(f"{name} must be an integer >= 1")
    if value < 1:
        raise ValidationError(f"{name} must be an integer >= 1")


class PasteStore:
    """Creates pastes and serves them until their time or view budget runs out."""

    def __init__(self, backend: Backend, id_factory: Callable[[], str] = generate_paste_id):
        self.backend = backend
        self.id_factory = id_factory

    def create(
        self,
        content: str,
        ttl_seconds: Optional[int] = None,
        max_views: Optional[int] = None,
        now_ms: Optional[int] = None,
    ) -> Paste:
        """
        Create and persist a new paste.

        Args:
            content: Text content, must contain something besides whitespace
            ttl_seconds: Optional time-to-live in seconds (integer >= 1)
            max_views: Optional view budget (integer >= 1)
            now_ms: Creation instant in ms, defaults to the wall clock

        Returns:
            The stored paste

        Raises:
            ValidationError: If any input is out of shape or range
            InternalError: If the generated id is already taken
        """
        if not isinstance(content, str) or not content.strip():
            raise ValidationError("content is required and must be a non-empty string")
        _validate_positive_int("ttl_seconds", ttl_seconds)
        _validate_positive_int("max_views", max_views)

        if now_ms is None:
            now_ms = current_time_ms()

        expires_at = compute_expires_at(now_ms, ttl_seconds)
        if expires_at is not None and expires_at > MAX_TIMESTAMP_MS:
            raise ValidationError("ttl_seconds is too large")

        paste = Paste(
            id=self.id_factory(),
            content=content,
            created_at=now_ms,
            expires_at=expires_at,
            remaining_views=max_views,
            max_views=max_views,
        )
        if not self.backend.insert(paste):
            logger.error(f"Paste id collision on {paste.id}")
            raise InternalError("Failed to save paste")

        logger.info(f"Paste {paste.id} saved successfully")
        return paste

    def read_and_expire(self, paste_id: str, now_ms: Optional[int] = None) -> Paste:
        """
        Serve one read of a paste.

        The aliveness check and the view decrement happen in one conditional
        update against the backend. The returned snapshot is the state this
        read observed, before its own decrement.

        Raises:
            NotFoundError: If the paste is unknown, expired, or out of views
        """
        if now_ms is None:
            now_ms = current_time_ms()

        paste = self.backend.conditional_update_and_return(paste_id, now_ms)
        if paste is None:
            logger.warning(f"Paste {paste_id} not found or no longer available")
            raise NotFoundError()
        return paste

    def get_paste(self, paste_id: str, now_ms: Optional[int] = None) -> PasteView:
        """Read a paste and report the views left after this read."""
        paste = self.read_and_expire(paste_id, now_ms)
        return PasteView(
            content=paste.content,
            remaining_views=next_remaining_views(paste.remaining_views),
            expires_at=ms_to_iso(paste.expires_at),
        )

    def is_healthy(self) -> bool:
        """Check if the storage backend is reachable."""
        try:
            return bool(self.backend.ping())
        except Exception as e:
            logger.error(f"Health check failed: {e}")
        return False


_store: Optional[PasteStore] = None
_store_lock = threading.Lock()


def get_store() -> PasteStore:
    """Process-wide paste store, connected on first use."""
    global _store
    if _store is None:
        with _store_lock:
            if _store is None:
                _store = PasteStore(open_backend())
    return _store
