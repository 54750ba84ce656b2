"""Custom exceptions for core logic."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.zpl.reports import EditReport


class ProtectedFieldError(Exception):
    """Raised in strict edit mode when an edit targets a barcode or QR block."""

    def __init__(self, message: str, *, report: EditReport | None = None) -> None:
        super().__init__(message)
        self.report = report


class PreviewRenderError(Exception):
    """Raised when the external preview renderer cannot produce an image."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        upstream_message: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.upstream_message = upstream_message
