"""Client for the external ZPL-to-PNG preview renderer.

The label text is sent byte-for-byte as the request body; nothing is
re-encoded on the way.
"""

from __future__ import annotations

import logging

import httpx

from core.config.models import EngineSettings
from core.utils.errors import PreviewRenderError

logger = logging.getLogger("labelops.render")

_ACCEPT_HEADERS = {"Accept": "image/png"}


def render_preview(
    zpl: str, settings: EngineSettings, *, client: httpx.Client | None = None
) -> bytes:
    """Render ``zpl`` to PNG bytes through the configured renderer."""

    body = _request_body(zpl)
    owns_client = client is None
    http = client or httpx.Client(timeout=settings.renderer_timeout_seconds)
    try:
        response = http.post(settings.renderer_url, content=body, headers=_ACCEPT_HEADERS)
    except httpx.HTTPError as exc:
        raise PreviewRenderError(f"Preview renderer unreachable: {exc}") from exc
    finally:
        if owns_client:
            http.close()
    return _image_from_response(response)


async def render_preview_async(
    zpl: str, settings: EngineSettings, *, client: httpx.AsyncClient | None = None
) -> bytes:
    """Async variant of :func:`render_preview` for the API."""

    body = _request_body(zpl)
    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=settings.renderer_timeout_seconds)
    try:
        response = await http.post(settings.renderer_url, content=body, headers=_ACCEPT_HEADERS)
    except httpx.HTTPError as exc:
        raise PreviewRenderError(f"Preview renderer unreachable: {exc}") from exc
    finally:
        if owns_client:
            await http.aclose()
    return _image_from_response(response)


def _request_body(zpl: str) -> bytes:
    if not zpl.strip():
        raise ValueError("Label text is empty")
    return zpl.encode("utf-8")


def _image_from_response(response: httpx.Response) -> bytes:
    if response.is_success:
        return response.content

    upstream_message = response.text or response.reason_phrase
    logger.warning("preview renderer failed: status=%d", response.status_code)
    raise PreviewRenderError(
        f"Preview renderer returned HTTP {response.status_code}",
        status_code=response.status_code,
        upstream_message=upstream_message,
    )
