"""
Paste routes.
Handles create, fetch (API), and view (HTML) operations.
"""
import html
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import HTMLResponse

from app.config import settings
from app.errors import NotFoundError
from app.lifecycle import next_remaining_views
from app.models import PasteCreate, PasteResponse, PasteView, ms_to_iso
from app.store import PasteStore, get_store

router = APIRouter()
logger = logging.getLogger(__name__)


def get_current_time_ms(x_test_now_ms: Optional[str] = Header(None)) -> Optional[int]:
    """
    Resolve "now" for this request, respecting TEST_MODE for deterministic testing.

    Returns:
        The x-test-now-ms header value in TEST_MODE, otherwise None
        (the store falls back to the wall clock)
    """
    if settings.TEST_MODE and x_test_now_ms:
        try:
            return int(x_test_now_ms)
        except ValueError as e:
            logger.warning(f"Invalid x-test-now-ms header: {e}")
    return None


def _base_url(request: Request) -> str:
    if settings.APP_DOMAIN:
        return settings.APP_DOMAIN.rstrip("/")
    host = request.headers.get("host", "localhost")
    protocol = request.headers.get("x-forwarded-proto", "http")
    return f"{protocol}://{host}"


@router.post("/api/pastes", response_model=PasteResponse, status_code=201)
def create_paste(
    paste: PasteCreate,
    request: Request,
    now_ms: Optional[int] = Depends(get_current_time_ms),
    store: PasteStore = Depends(get_store),
) -> PasteResponse:
    """
    Create a new paste.

    Raises:
        ValidationError: If content is blank (mapped to 400)
    """
    created = store.create(
        content=paste.content,
        ttl_seconds=paste.ttl_seconds,
        max_views=paste.max_views,
        now_ms=now_ms,
    )
    return PasteResponse(id=created.id, url=f"{_base_url(request)}/p/{created.id}")


@router.get("/api/pastes/{paste_id}", response_model=PasteView)
def fetch_paste(
    paste_id: str,
    now_ms: Optional[int] = Depends(get_current_time_ms),
    store: PasteStore = Depends(get_store),
) -> PasteView:
    """
    Fetch a paste (API endpoint).
    Each fetch consumes one view of a view-limited paste.

    Raises:
        NotFoundError: If paste not found, expired, or view limit exceeded (404)
    """
    return store.get_paste(paste_id, now_ms)


@router.get("/p/{paste_id}", response_class=HTMLResponse)
def view_paste(
    paste_id: str,
    now_ms: Optional[int] = Depends(get_current_time_ms),
    store: PasteStore = Depends(get_store),
) -> HTMLResponse:
    """
    View a paste as HTML.
    Consumes a view exactly like the API endpoint.
    """
    try:
        paste = store.read_and_expire(paste_id, now_ms)
    except NotFoundError:
        return HTMLResponse(_render_404_page(), status_code=404)

    remaining = next_remaining_views(paste.remaining_views)
    views_line = "Unlimited views" if remaining is None else f"Remaining views: {remaining}"
    expiry_line = ""
    if paste.expires_at is not None:
        expiry_line = f'<div class="meta">Expires at: {ms_to_iso(paste.expires_at)}</div>'

    return HTMLResponse(_PASTE_PAGE.format(
        style=_STYLE,
        paste_id=html.escape(paste_id),
        content=html.escape(paste.content),
        views_line=views_line,
        expiry_line=expiry_line,
    ))


def _render_404_page() -> str:
    """Render a 404 error page."""
    return _NOT_FOUND_PAGE


_STYLE = """
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body {
            font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Arial, sans-serif;
            background: #0f172a;
            min-height: 100vh;
            display: flex;
            align-items: center;
            justify-content: center;
            padding: 20px;
        }
        .container {
            background: white;
            border-radius: 10px;
            max-width: 900px;
            width: 100%;
            padding: 40px;
        }
        h1 { color: #333; margin-bottom: 10px; font-size: 24px; }
        .meta { color: #666; font-size: 12px; margin-bottom: 10px; font-family: monospace; }
        pre {
            background: #f5f5f5;
            border: 1px solid #ddd;
            border-radius: 5px;
            padding: 20px;
            margin: 20px 0;
            font-family: "Courier New", monospace;
            font-size: 14px;
            white-space: pre-wrap;
            word-wrap: break-word;
        }
        a { color: #4f46e5; text-decoration: none; }
"""

_PASTE_PAGE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>Paste - Pastebin Lite</title>
    <style>{style}</style>
</head>
<body>
    <div class="container">
        <h1>Paste {paste_id}</h1>
        <div class="meta">{views_line}</div>
        {expiry_line}
        <pre>{content}</pre>
        <p><a href="/">Create a new paste</a></p>
    </div>
</body>
</html>"""

_NOT_FOUND_PAGE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>Not Found - Pastebin Lite</title>
    <style>{style}</style>
</head>
<body>
    <div class="container">
        <h1>404</h1>
        <p>This paste was not found, has expired, or its view limit has been exceeded.</p>
        <p><a href="/">Create a new paste</a></p>
    </div>
</body>
</html>""".format(style=_STYLE)
