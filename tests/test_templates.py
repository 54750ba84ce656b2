from __future__ import annotations

import pytest

from core.zpl.models import FieldRole
from core.zpl.templates import (
    MERCADO_ENVIOS,
    detect_template,
    get_template,
    matches_template,
    positioning_coordinates,
)


def test_detects_mercado_envios(mercado_envios_label: str) -> None:
    template = detect_template(mercado_envios_label)

    assert template is MERCADO_ENVIOS
    assert template.anchors[FieldRole.RECIPIENT_NAME] == (370, 736)


@pytest.mark.parametrize("original", ["^FO370,736", "^FO370,1047"])
@pytest.mark.parametrize("shift", [(1, 0), (-1, 0), (0, 1), (0, -1)])
def test_one_dot_shift_breaks_detection(
    mercado_envios_label: str, original: str, shift: tuple[int, int]
) -> None:
    x, y = (int(part) for part in original[3:].split(","))
    shifted = f"^FO{x + shift[0]},{y + shift[1]}"

    assert detect_template(mercado_envios_label.replace(original, shifted)) is None


def test_missing_qr_signature_breaks_detection(mercado_envios_label: str) -> None:
    assert detect_template(mercado_envios_label.replace("^BQN,2,6", "^BQN,3,6")) is None
    assert detect_template(mercado_envios_label.replace("^BQN,2,6", "")) is None


def test_typeset_positions_count_as_anchors(mercado_envios_label: str) -> None:
    raw = mercado_envios_label.replace("^FO370,736", "^FT370,736")

    assert matches_template(raw, MERCADO_ENVIOS) is True


def test_plain_label_has_no_template(plain_label: str) -> None:
    assert detect_template(plain_label) is None


def test_positioning_coordinates() -> None:
    raw = "^XA^FO1,2^FDa^FS^FT3, 4^FDb^FS^FO1,2^FDc^FS^XZ"

    assert positioning_coordinates(raw) == {(1, 2), (3, 4)}


def test_get_template() -> None:
    assert get_template("mercado_envios") is MERCADO_ENVIOS
    with pytest.raises(ValueError, match="Unknown label template"):
        get_template("nope")
