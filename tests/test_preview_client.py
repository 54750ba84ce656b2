from __future__ import annotations

import httpx
import pytest

from core.config.settings_loader import load_settings
from core.render.preview_client import render_preview, render_preview_async
from core.utils.errors import PreviewRenderError

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake"
LABEL = "^XA\n^CI28\n^FO10,10^FH^FDJo_C3_A3o^FS\n^XZ\n"


def _settings(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("LABELOPS_SETTINGS_PATH", raising=False)
    monkeypatch.setenv("LABELOPS_RENDERER_URL", "http://renderer.test/labels/4x6/0/")
    return load_settings()


def test_render_preview_posts_label_bytes(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=PNG_BYTES, headers={"Content-Type": "image/png"})

    with httpx.Client(transport=httpx.MockTransport(_handler)) as client:
        image = render_preview(LABEL, _settings(monkeypatch), client=client)

    assert image == PNG_BYTES
    (request,) = seen
    assert request.method == "POST"
    assert str(request.url) == "http://renderer.test/labels/4x6/0/"
    assert request.headers["Accept"] == "image/png"
    assert request.content == LABEL.encode("utf-8")


def test_render_preview_wraps_error_status(monkeypatch: pytest.MonkeyPatch) -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, text="ERROR: Invalid label")

    with httpx.Client(transport=httpx.MockTransport(_handler)) as client:
        with pytest.raises(PreviewRenderError) as exc_info:
            render_preview(LABEL, _settings(monkeypatch), client=client)

    assert exc_info.value.status_code == 400
    assert exc_info.value.upstream_message == "ERROR: Invalid label"


def test_render_preview_wraps_transport_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with httpx.Client(transport=httpx.MockTransport(_handler)) as client:
        with pytest.raises(PreviewRenderError, match="unreachable"):
            render_preview(LABEL, _settings(monkeypatch), client=client)


def test_render_preview_rejects_empty_label(monkeypatch: pytest.MonkeyPatch) -> None:
    with pytest.raises(ValueError, match="empty"):
        render_preview("  \n", _settings(monkeypatch))


@pytest.mark.anyio
async def test_render_preview_async(monkeypatch: pytest.MonkeyPatch) -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        assert request.content == LABEL.encode("utf-8")
        return httpx.Response(200, content=PNG_BYTES)

    async with httpx.AsyncClient(transport=httpx.MockTransport(_handler)) as client:
        image = await render_preview_async(LABEL, _settings(monkeypatch), client=client)

    assert image == PNG_BYTES


@pytest.mark.anyio
async def test_render_preview_async_wraps_error_status(monkeypatch: pytest.MonkeyPatch) -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    async with httpx.AsyncClient(transport=httpx.MockTransport(_handler)) as client:
        with pytest.raises(PreviewRenderError) as exc_info:
            await render_preview_async(LABEL, _settings(monkeypatch), client=client)

    assert exc_info.value.status_code == 503
    assert exc_info.value.upstream_message == "Service Unavailable"
