"""Safe rewriting of label text fields.

Safe edits:
- replace the ``^FD`` payload of a text block, keeping every other command
- remove a whole text block when its new value is empty
- add ``^FH`` to a block whose new value needs hex escaping
- make sure each label declares ``^CI28`` right after ``^XA``

Explicitly refused:
- any change to a block carrying a barcode or QR command
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass

from core.utils.errors import ProtectedFieldError
from core.zpl.extractor import split_lines
from core.zpl.hex_codec import detect_hex_case, encode_fh
from core.zpl.layers import DEFAULT_LAYER_TOLERANCE, layers_of
from core.zpl.models import FieldMapping, FieldRole, ZplAnalysis, ZplField
from core.zpl.reports import (
    PROTECTED_REASONS,
    EditEntry,
    EditOutput,
    EditReport,
    EditSummary,
)

logger = logging.getLogger("labelops.zpl")

ENCODING_DECLARATION = "^CI28"

_LABEL_START_RE = re.compile(r"\^XA", re.IGNORECASE)
_LABEL_END_RE = re.compile(r"\^XZ", re.IGNORECASE)
_POSITION_RE = re.compile(r"\^F[OT]\s*(\d+)\s*,\s*(\d+)", re.IGNORECASE)
_ENCODING_DECLARATION_RE = re.compile(r"\^CI28", re.IGNORECASE)
_CHARSET_RE = re.compile(r"(\s*)\^CI\d+", re.IGNORECASE)
_ZPL_CONTROL_CHARS = ("^", "~")


@dataclass(frozen=True)
class _Operation:
    field_index: int
    value: str
    role: str | None


def apply_edits(
    raw: str,
    analysis: ZplAnalysis,
    mapping: FieldMapping,
    edits: Mapping[FieldRole | str, str],
    *,
    strict: bool = False,
    include_layers: bool = False,
    layer_tolerance: int = DEFAULT_LAYER_TOLERANCE,
    preserve_prefix: bool = False,
) -> EditOutput:
    """Apply role -> value edits to ``raw`` through ``mapping``.

    Args:
        raw: Label text ``analysis`` was extracted from.
        analysis: Extraction result of ``raw``.
        mapping: Role assignment built on ``analysis``.
        edits: New values; an empty string removes the block.
        strict: Raise ProtectedFieldError instead of reporting barcode/QR targets.
        include_layers: Also rewrite stacked shadow/bold copies of the target.
        layer_tolerance: Dot distance under which text blocks count as layers.
        preserve_prefix: Keep a ``Caption: `` prefix already printed on the field.

    Returns:
        EditOutput with the new text and one report entry per edit and layer.
    """

    if mapping.analysis is not analysis and mapping.analysis != analysis:
        raise ValueError("Field mapping was built on a different analysis")

    entries: list[EditEntry] = []
    operations: list[_Operation] = []
    for key, value in edits.items():
        role = FieldRole.parse(key)
        if role is None:
            entries.append(
                EditEntry(status="unmapped", role=str(key), new_value=value, reason="unknown_role")
            )
            continue
        index = mapping.indices.get(role)
        if index is None:
            entries.append(
                EditEntry(status="unmapped", role=role.value, new_value=value, reason="role_unmapped")
            )
            continue
        targets = layers_of(analysis, index, layer_tolerance) if include_layers else (index,)
        for target in targets:
            operations.append(_Operation(field_index=target, value=value, role=role.value))

    return _apply_operations(
        raw,
        analysis,
        operations,
        entries,
        requested_count=len(edits),
        strict=strict,
        preserve_prefix=preserve_prefix,
    )


def apply_field_edits(
    raw: str,
    analysis: ZplAnalysis,
    edits: Mapping[int, str],
    *,
    strict: bool = False,
    preserve_prefix: bool = False,
) -> EditOutput:
    """Apply edits addressed by field index instead of role."""

    operations = [
        _Operation(field_index=int(index), value=value, role=None) for index, value in edits.items()
    ]
    return _apply_operations(
        raw,
        analysis,
        operations,
        [],
        requested_count=len(edits),
        strict=strict,
        preserve_prefix=preserve_prefix,
    )


def ensure_encoding_declaration(raw: str) -> str:
    """Make every label declare ``^CI28`` right after ``^XA``.

    A label that already contains ``^CI28`` is left alone; another ``^CI``
    directly after ``^XA`` is switched to 28; otherwise one is inserted.
    """

    pieces: list[str] = []
    cursor = 0
    for start in _LABEL_START_RE.finditer(raw):
        label_end = _LABEL_END_RE.search(raw, start.end())
        stop = label_end.start() if label_end is not None else len(raw)
        pieces.append(raw[cursor : start.end()])
        cursor = start.end()
        if _ENCODING_DECLARATION_RE.search(raw, start.end(), stop) is not None:
            continue
        charset = _CHARSET_RE.match(raw, start.end())
        if charset is not None:
            pieces.append(charset.group(1) + ENCODING_DECLARATION)
            cursor = charset.end()
        else:
            pieces.append(ENCODING_DECLARATION)
    pieces.append(raw[cursor:])
    return "".join(pieces)


def _apply_operations(
    raw: str,
    analysis: ZplAnalysis,
    operations: list[_Operation],
    entries: list[EditEntry],
    *,
    requested_count: int,
    strict: bool,
    preserve_prefix: bool,
) -> EditOutput:
    lines = split_lines(raw)
    claimed: set[int] = set()
    planned: list[tuple[_Operation, ZplField]] = []

    for operation in operations:
        if not 0 <= operation.field_index < len(analysis.fields):
            entries.append(
                EditEntry(
                    status="rejected",
                    role=operation.role,
                    field_index=operation.field_index,
                    new_value=operation.value,
                    reason="field_out_of_range",
                )
            )
            continue

        item = analysis.fields[operation.field_index]
        if item.is_barcode or item.is_qr_code:
            reason = "protected_barcode" if item.is_barcode else "protected_qrcode"
            logger.warning(
                "edit rejected: role=%s field=%d reason=%s",
                operation.role,
                operation.field_index,
                reason,
            )
            entries.append(_rejected(operation, item, reason))
            continue
        if operation.field_index in claimed:
            entries.append(_rejected(operation, item, "duplicate_target"))
            continue
        if not _matches_source(lines, item):
            logger.warning(
                "edit rejected: field=%d does not match the label text", operation.field_index
            )
            entries.append(_rejected(operation, item, "analysis_mismatch"))
            continue

        claimed.add(operation.field_index)
        planned.append((operation, item))

    if strict and any(entry.reason in PROTECTED_REASONS for entry in entries):
        report = _build_report(entries, requested_count, inserted=False)
        raise ProtectedFieldError("Edit targets a barcode or QR block", report=report)

    applied: list[EditEntry] = []
    # Bottom-up and right-to-left so earlier lines and columns stay valid.
    ordered = sorted(
        planned, key=lambda pair: (pair[1].start_line, pair[1].start_column), reverse=True
    )
    for operation, item in ordered:
        if operation.value == "":
            _remove_block(lines, item)
            applied.append(
                EditEntry(
                    status="removed",
                    role=operation.role,
                    field_index=operation.field_index,
                    start_line=item.start_line,
                    end_line=item.end_line,
                    original_value=item.content,
                    new_value="",
                )
            )
            continue

        written, upgraded = _replace_payload(lines, item, operation.value, preserve_prefix)
        applied.append(
            EditEntry(
                status="replaced",
                role=operation.role,
                field_index=operation.field_index,
                start_line=item.start_line,
                end_line=item.end_line,
                original_value=item.content,
                new_value=written,
                encoding_upgraded=upgraded,
            )
        )

    if not applied:
        return EditOutput(zpl=raw, report=_build_report(entries, requested_count, inserted=False))

    rewritten = "\n".join(lines)
    declared = ensure_encoding_declaration(rewritten)
    entries.extend(sorted(applied, key=lambda entry: entry.field_index or 0))
    return EditOutput(
        zpl=declared,
        report=_build_report(entries, requested_count, inserted=declared != rewritten),
    )


def _rejected(operation: _Operation, item: ZplField, reason: str) -> EditEntry:
    return EditEntry(
        status="rejected",
        role=operation.role,
        field_index=operation.field_index,
        start_line=item.start_line,
        end_line=item.end_line,
        original_value=item.content,
        new_value=operation.value,
        reason=reason,
    )


def _build_report(entries: list[EditEntry], requested_count: int, *, inserted: bool) -> EditReport:
    statuses = [entry.status for entry in entries]
    return EditReport(
        entries=list(entries),
        summary=EditSummary(
            requested_count=requested_count,
            replaced_count=statuses.count("replaced"),
            removed_count=statuses.count("removed"),
            rejected_count=statuses.count("rejected"),
            unmapped_count=statuses.count("unmapped"),
            encoding_declaration_inserted=inserted,
        ),
    )


def _split_ending(line: str) -> tuple[str, str]:
    if line.endswith("\r"):
        return line[:-1], "\r"
    return line, ""


def _matches_source(lines: list[str], item: ZplField) -> bool:
    if item.end_line > len(lines) or item.start_line >= item.end_line:
        return False
    first, _ending = _split_ending(lines[item.start_line])
    position = _POSITION_RE.match(first, item.start_column)
    if position is None or (int(position.group(1)), int(position.group(2))) != (item.x, item.y):
        return False
    if item.data_line is None:
        return True
    if item.data_start is None or item.data_stop is None:
        return False
    body, _ending = _split_ending(lines[item.data_line])
    return body[item.data_start : item.data_stop] == item.original_content


def _replace_payload(
    lines: list[str], item: ZplField, value: str, preserve_prefix: bool
) -> tuple[str, bool]:
    if item.data_line is None or item.data_start is None or item.data_stop is None:
        raise ValueError(f"Field at ({item.x},{item.y}) has no data command to replace")
    body, ending = _split_ending(lines[item.data_line])

    text = value
    if preserve_prefix:
        separator = item.content.find(": ")
        if separator > -1:
            text = item.content[: separator + 2] + value

    needs_hex = (
        item.has_encoding
        or not text.isascii()
        or any(char in text for char in _ZPL_CONTROL_CHARS)
    )
    payload = encode_fh(text, hex_case=detect_hex_case(item.original_content)) if needs_hex else text

    head = body[: item.data_start]
    upgraded = needs_hex and not item.has_encoding
    if upgraded:
        data_command = item.data_start - len("^FD")
        head = body[:data_command] + "^FH" + body[data_command : item.data_start]

    lines[item.data_line] = head + payload + body[item.data_stop :] + ending
    return text, upgraded


def _remove_block(lines: list[str], item: ZplField) -> None:
    first_body, _first_ending = _split_ending(lines[item.start_line])
    last_body, last_ending = _split_ending(lines[item.end_line - 1])

    remnant = first_body[: item.start_column] + last_body[item.end_column :]
    replacement = [remnant + last_ending] if remnant.strip() else []
    lines[item.start_line : item.end_line] = replacement
