"""Orchestration pipeline: extract -> detect template -> classify -> edit."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from core.config.models import EngineSettings
from core.zpl.classifier import classify_fields, mapping_from_values
from core.zpl.coordinates import editable_positions
from core.zpl.editor import apply_edits
from core.zpl.extractor import extract_fields
from core.zpl.layers import cluster_layers
from core.zpl.models import FieldMapping, FieldRole, LabelTemplate, ZplAnalysis
from core.zpl.reports import EditOutput
from core.zpl.templates import detect_template


@dataclass(frozen=True)
class LabelAnalysisResult:
    """In-memory analysis of one label."""

    analysis: ZplAnalysis
    template: LabelTemplate | None
    mapping: FieldMapping
    mapping_source: str


def analyze_label(
    raw: str,
    settings: EngineSettings,
    *,
    fallback: Mapping[FieldRole | str, int] | None = None,
    values: Mapping[FieldRole | str, str] | None = None,
) -> LabelAnalysisResult:
    """Extract fields and assign roles.

    Role source, first available wins: detected template anchors, the
    caller's ``fallback`` index mapping, then ``values`` matched against
    field content.
    """

    analysis = extract_fields(raw)
    template = detect_template(raw)

    if template is not None:
        mapping = classify_fields(
            analysis,
            template.anchors,
            tolerance_x=settings.anchor_tolerance_x,
            tolerance_y=settings.anchor_tolerance_y,
        )
        source = "template"
    elif fallback is not None:
        mapping = classify_fields(analysis, fallback=fallback)
        source = "fallback"
    elif values is not None:
        mapping = mapping_from_values(analysis, values)
        source = "values"
    else:
        mapping = FieldMapping(analysis=analysis, indices={})
        source = "none"

    return LabelAnalysisResult(
        analysis=analysis, template=template, mapping=mapping, mapping_source=source
    )


def edit_label(
    raw: str,
    edits: Mapping[FieldRole | str, str],
    settings: EngineSettings,
    *,
    fallback: Mapping[FieldRole | str, int] | None = None,
    values: Mapping[FieldRole | str, str] | None = None,
    strict: bool = False,
    include_layers: bool = False,
    preserve_prefix: bool = False,
) -> EditOutput:
    """Analyze ``raw`` and apply role edits with barcode/QR protection."""

    result = analyze_label(raw, settings, fallback=fallback, values=values)
    return apply_edits(
        raw,
        result.analysis,
        result.mapping,
        edits,
        strict=strict,
        include_layers=include_layers,
        layer_tolerance=settings.layer_tolerance,
        preserve_prefix=preserve_prefix,
    )


def analysis_payload(
    result: LabelAnalysisResult,
    settings: EngineSettings,
    *,
    preview_width: int | None = None,
    preview_height: int | None = None,
) -> dict[str, Any]:
    """Serialize an analysis into the JSON shape shared by CLI and API."""

    analysis = result.analysis
    fields = [
        {
            "index": index,
            "x": item.x,
            "y": item.y,
            "field_type": item.field_type,
            "content": item.content,
            "original_content": item.original_content,
            "start_line": item.start_line,
            "end_line": item.end_line,
            "start_column": item.start_column,
            "end_column": item.end_column,
            "data_line": item.data_line,
            "has_encoding": item.has_encoding,
            "terminated": item.terminated,
        }
        for index, item in enumerate(analysis.fields)
    ]
    positions = editable_positions(
        analysis,
        preview_width or settings.preview_width,
        preview_height or settings.preview_height,
        native_width=settings.native_width_dots,
        native_height=settings.native_height_dots,
    )
    return {
        "fields": fields,
        "counts": {
            "text": len(analysis.text_fields),
            "barcode": len(analysis.barcode_fields),
            "qrcode": len(analysis.qr_code_fields),
        },
        "warnings": [
            {"kind": item.kind, "start_line": item.start_line, "message": item.message}
            for item in analysis.warnings
        ],
        "has_encoding_declaration": analysis.has_encoding_declaration,
        "line_count": analysis.line_count,
        "template": result.template.name if result.template is not None else None,
        "mapping_source": result.mapping_source,
        "mapping": result.mapping.to_dict(),
        "layers": [
            {"representative": cluster.representative, "members": list(cluster.members)}
            for cluster in cluster_layers(analysis, settings.layer_tolerance)
        ],
        "positions": [
            {
                "field_index": position.field_index,
                "x": position.x,
                "y": position.y,
                "native_x": position.native_x,
                "native_y": position.native_y,
                "content": position.content,
            }
            for position in positions
        ],
    }
