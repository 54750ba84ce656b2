"""Static table of known label layouts and exact-anchor template detection."""

from __future__ import annotations

import re
from types import MappingProxyType

from core.zpl.models import FieldRole, LabelTemplate

_POSITION_RE = re.compile(r"\^F[OT]\s*(\d+)\s*,\s*(\d+)", re.IGNORECASE)

MERCADO_ENVIOS = LabelTemplate(
    name="mercado_envios",
    description="Mercado Envios 4x6 shipping label, 300 dpi, QR model 2",
    qr_signature=r"\^BQN,2,\d+",
    required_positions=((370, 736), (370, 1047)),
    anchors=MappingProxyType(
        {
            FieldRole.TRACKING_NUMBER: (22, 512),
            FieldRole.ORDER_NUMBER: (370, 563),
            FieldRole.INVOICE_NUMBER: (370, 596),
            FieldRole.RECIPIENT_NAME: (370, 736),
            FieldRole.SENDER_NAME: (370, 992),
            FieldRole.SENDER_ADDRESS: (370, 1047),
        }
    ),
)

TEMPLATES: MappingProxyType[str, LabelTemplate] = MappingProxyType(
    {MERCADO_ENVIOS.name: MERCADO_ENVIOS}
)


def positioning_coordinates(raw: str) -> set[tuple[int, int]]:
    """Return every ``(x, y)`` written by a positioning command."""

    return {(int(match.group(1)), int(match.group(2))) for match in _POSITION_RE.finditer(raw)}


def matches_template(raw: str, template: LabelTemplate) -> bool:
    """True only if the QR signature and every required position are present."""

    if re.search(template.qr_signature, raw, re.IGNORECASE) is None:
        return False
    coordinates = positioning_coordinates(raw)
    return all(position in coordinates for position in template.required_positions)


def detect_template(raw: str, templates: list[LabelTemplate] | None = None) -> LabelTemplate | None:
    """Return the first matching known template, or None when none matches."""

    candidates = templates if templates is not None else list(TEMPLATES.values())
    for template in candidates:
        if matches_template(raw, template):
            return template
    return None


def get_template(name: str) -> LabelTemplate:
    """Look up a template by name."""

    try:
        return TEMPLATES[name]
    except KeyError as exc:
        raise ValueError(f"Unknown label template: {name}") from exc
