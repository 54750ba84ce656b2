"""Assign business roles to extracted fields.

With a known template the anchor table drives the assignment. Without one
the caller supplies the mapping (field indices, or values found by an
external extractor); this module never guesses roles from field content.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from core.zpl.models import AnchorMap, FieldMapping, FieldRole, ZplAnalysis

DEFAULT_TOLERANCE_X = 3
DEFAULT_TOLERANCE_Y = 6

_ORDER_PREFIX_RE = re.compile(r"^\s*pedido\s*:?\s*", re.IGNORECASE)
_INVOICE_PREFIX_RE = re.compile(r"^\s*nota\s*fiscal\s*:?\s*", re.IGNORECASE)


def classify_fields(
    analysis: ZplAnalysis,
    anchors: AnchorMap | None = None,
    *,
    fallback: Mapping[FieldRole | str, int] | None = None,
    tolerance_x: int = DEFAULT_TOLERANCE_X,
    tolerance_y: int = DEFAULT_TOLERANCE_Y,
) -> FieldMapping:
    """Build a role mapping from anchors when available, else from ``fallback``."""

    if anchors is not None:
        return match_anchors(analysis, anchors, tolerance_x=tolerance_x, tolerance_y=tolerance_y)
    if fallback is not None:
        return mapping_from_indices(analysis, fallback)
    return FieldMapping(analysis=analysis, indices={})


def match_anchors(
    analysis: ZplAnalysis,
    anchors: AnchorMap,
    *,
    tolerance_x: int = DEFAULT_TOLERANCE_X,
    tolerance_y: int = DEFAULT_TOLERANCE_Y,
) -> FieldMapping:
    """Greedy nearest-anchor assignment of editable text fields.

    Candidate pairs within the per-axis tolerance are taken by ascending
    Manhattan distance; a role or a field is never assigned twice.
    """

    if tolerance_x < 0 or tolerance_y < 0:
        raise ValueError("Anchor tolerance must be non-negative")

    role_order = {role: position for position, role in enumerate(anchors)}
    candidates: list[tuple[int, bool, int, int, FieldRole]] = []
    for role, (anchor_x, anchor_y) in anchors.items():
        for index, item in enumerate(analysis.fields):
            if not item.is_editable:
                continue
            dx = abs(item.x - anchor_x)
            dy = abs(item.y - anchor_y)
            if dx > tolerance_x or dy > tolerance_y:
                continue
            candidates.append((dx + dy, item.is_reversed, role_order[role], index, role))

    indices: dict[FieldRole, int] = {}
    claimed: set[int] = set()
    for _distance, _reversed, _order, index, role in sorted(candidates, key=lambda c: c[:4]):
        if role in indices or index in claimed:
            continue
        indices[role] = index
        claimed.add(index)

    ordered = {role: indices[role] for role in anchors if role in indices}
    return FieldMapping(analysis=analysis, indices=ordered)


def mapping_from_indices(
    analysis: ZplAnalysis, indices: Mapping[FieldRole | str, int]
) -> FieldMapping:
    """Wrap a caller-supplied role -> field index mapping."""

    resolved: dict[FieldRole, int] = {}
    for key, index in indices.items():
        role = FieldRole.parse(key)
        if role is None:
            raise ValueError(f"Unknown field role: {key}")
        resolved[role] = int(index)
    return FieldMapping(analysis=analysis, indices=resolved)


def mapping_from_values(
    analysis: ZplAnalysis, values: Mapping[FieldRole | str, str]
) -> FieldMapping:
    """Map each role to the first unclaimed text field containing its value.

    Unknown roles and blank values are skipped.
    """

    indices: dict[FieldRole, int] = {}
    claimed: set[int] = set()
    for key, raw_value in values.items():
        role = FieldRole.parse(key)
        if role is None:
            continue
        value = sanitize_value(role, raw_value or "")
        if not value:
            continue
        for index, item in enumerate(analysis.fields):
            if index in claimed or item.field_type != "text":
                continue
            if value in item.content:
                indices[role] = index
                claimed.add(index)
                break
    return FieldMapping(analysis=analysis, indices=indices)


def sanitize_value(role: FieldRole | None, value: str) -> str:
    """Trim a value and drop the printed caption of order/invoice numbers."""

    if not value:
        return value
    if role is FieldRole.ORDER_NUMBER:
        return _ORDER_PREFIX_RE.sub("", value).strip()
    if role is FieldRole.INVOICE_NUMBER:
        return _INVOICE_PREFIX_RE.sub("", value).strip()
    return value.strip()
