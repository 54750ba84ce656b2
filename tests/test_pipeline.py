from __future__ import annotations

import pytest

from core.config.settings_loader import load_settings
from core.orchestrator.pipeline import analysis_payload, analyze_label, edit_label
from core.zpl.models import FieldRole


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("LABELOPS_SETTINGS_PATH", raising=False)
    monkeypatch.delenv("LABELOPS_RENDERER_URL", raising=False)
    return load_settings()


def test_template_label_uses_anchors(mercado_envios_label: str, settings) -> None:
    result = analyze_label(mercado_envios_label, settings, fallback={"city": 5})

    assert result.template is not None
    assert result.template.name == "mercado_envios"
    assert result.mapping_source == "template"
    assert result.mapping.get(FieldRole.RECIPIENT_NAME).content == "João da Silva"
    assert FieldRole.CITY not in result.mapping


def test_unknown_label_falls_back_to_indices_then_values(plain_label: str, settings) -> None:
    by_index = analyze_label(plain_label, settings, fallback={"recipientName": 0})
    by_value = analyze_label(plain_label, settings, values={"recipientName": "Hello"})
    nothing = analyze_label(plain_label, settings)

    assert by_index.mapping_source == "fallback"
    assert by_index.mapping.indices == {FieldRole.RECIPIENT_NAME: 0}
    assert by_value.mapping_source == "values"
    assert by_value.mapping.indices == {FieldRole.RECIPIENT_NAME: 0}
    assert nothing.mapping_source == "none"
    assert len(nothing.mapping) == 0


def test_edit_label_end_to_end(mercado_envios_label: str, settings) -> None:
    output = edit_label(
        mercado_envios_label,
        {"recipientName": "Maria Souza", "trackingNumber": "BR123"},
        settings,
    )

    result = analyze_label(output.zpl, settings)
    assert result.mapping.get(FieldRole.RECIPIENT_NAME).content == "Maria Souza"
    assert result.mapping.get(FieldRole.TRACKING_NUMBER).content == "BR123"
    assert [item.content for item in result.analysis.barcode_fields] == ["45123456789"]
    assert output.report.summary.replaced_count == 2


def test_analysis_payload_shape(mercado_envios_label: str, settings) -> None:
    payload = analysis_payload(analyze_label(mercado_envios_label, settings), settings)

    assert payload["counts"] == {"text": 7, "barcode": 1, "qrcode": 1}
    assert payload["template"] == "mercado_envios"
    assert payload["mapping_source"] == "template"
    assert payload["mapping"]["recipientName"]["index"] == 4
    assert payload["fields"][8]["field_type"] == "qrcode"
    assert payload["has_encoding_declaration"] is True
    assert payload["line_count"] == 14
    assert payload["fields"][4]["start_column"] == 0
    assert len(payload["positions"]) == 7
    assert payload["positions"][0]["native_x"] == 22
    assert payload["warnings"] == []
    assert len(payload["layers"]) == 7


def test_analysis_payload_custom_preview_size(plain_label: str, settings) -> None:
    payload = analysis_payload(
        analyze_label(plain_label, settings), settings, preview_width=1200, preview_height=1800
    )

    assert payload["positions"] == [
        {
            "field_index": 0,
            "x": 50,
            "y": 50,
            "native_x": 50,
            "native_y": 50,
            "content": "Hello",
        }
    ]
    assert payload["template"] is None
