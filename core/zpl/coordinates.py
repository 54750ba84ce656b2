"""Mapping between native label dots and preview image pixels."""

from __future__ import annotations

import math
from dataclasses import dataclass

from core.zpl.models import ZplAnalysis

# 4x6in label at 300 dpi.
NATIVE_WIDTH_DOTS = 1200
NATIVE_HEIGHT_DOTS = 1800

DEFAULT_PREVIEW_WIDTH = 420
DEFAULT_PREVIEW_HEIGHT = 630


@dataclass(frozen=True)
class EditablePosition:
    """Editable text field placed on a preview image."""

    field_index: int
    x: int
    y: int
    native_x: int
    native_y: int
    content: str
    data_line: int
    has_encoding: bool


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def map_to_image(
    native_x: int,
    native_y: int,
    target_width: int = DEFAULT_PREVIEW_WIDTH,
    target_height: int = DEFAULT_PREVIEW_HEIGHT,
    *,
    native_width: int = NATIVE_WIDTH_DOTS,
    native_height: int = NATIVE_HEIGHT_DOTS,
) -> tuple[int, int]:
    """Scale native dot coordinates to pixel coordinates, each axis on its own."""

    x = _round_half_up(native_x / native_width * target_width)
    y = _round_half_up(native_y / native_height * target_height)
    return x, y


def map_to_native(
    pixel_x: int,
    pixel_y: int,
    source_width: int = DEFAULT_PREVIEW_WIDTH,
    source_height: int = DEFAULT_PREVIEW_HEIGHT,
    *,
    native_width: int = NATIVE_WIDTH_DOTS,
    native_height: int = NATIVE_HEIGHT_DOTS,
) -> tuple[int, int]:
    """Inverse of :func:`map_to_image` for overlay clicks."""

    if source_width <= 0 or source_height <= 0:
        raise ValueError("Image size must be positive")
    x = _round_half_up(pixel_x / source_width * native_width)
    y = _round_half_up(pixel_y / source_height * native_height)
    return x, y


def editable_positions(
    analysis: ZplAnalysis,
    target_width: int = DEFAULT_PREVIEW_WIDTH,
    target_height: int = DEFAULT_PREVIEW_HEIGHT,
    *,
    native_width: int = NATIVE_WIDTH_DOTS,
    native_height: int = NATIVE_HEIGHT_DOTS,
) -> list[EditablePosition]:
    """List non-empty editable text fields with native and pixel coordinates."""

    positions: list[EditablePosition] = []
    for index, item in enumerate(analysis.fields):
        if not item.is_editable or not item.content or item.data_line is None:
            continue
        x, y = map_to_image(
            item.x,
            item.y,
            target_width,
            target_height,
            native_width=native_width,
            native_height=native_height,
        )
        positions.append(
            EditablePosition(
                field_index=index,
                x=x,
                y=y,
                native_x=item.x,
                native_y=item.y,
                content=item.content,
                data_line=item.data_line,
                has_encoding=item.has_encoding,
            )
        )
    return positions
