"""Block scanner that extracts positioned fields from ZPL.

Rules:
- Only content between ``^XA`` and ``^XZ`` is scanned. Labels without any
  ``^XA`` are scanned from the first line (hand-edited fragments).
- ``^FO``/``^FT`` opens a block; ``^FS`` closes it on the same or a later line.
  Scanning resumes right after ``^FS``, so one line may hold many blocks.
- A positioning command met inside an open block closes the open block and
  starts a new adjacent one.
- When a block carries several ``^FD`` commands, the last one wins.
- Blocks with neither payload nor code marker are dropped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from core.zpl.hex_codec import decode_fh_detailed
from core.zpl.models import ExtractionWarning, ZplAnalysis, ZplField

_LABEL_START_RE = re.compile(r"\^XA", re.IGNORECASE)
_LABEL_END_RE = re.compile(r"\^XZ", re.IGNORECASE)
_POSITION_RE = re.compile(r"\^F[OT]\s*(\d+)\s*,\s*(\d+)", re.IGNORECASE)
_DATA_RE = re.compile(r"\^FD", re.IGNORECASE)
_TERMINATOR_RE = re.compile(r"\^FS", re.IGNORECASE)
_FIELD_HEX_RE = re.compile(r"\^FH", re.IGNORECASE)
_FIELD_REVERSE_RE = re.compile(r"\^FR", re.IGNORECASE)
_QR_RE = re.compile(r"\^BQ", re.IGNORECASE)
# ^BY only sets module defaults and never draws a symbol by itself.
_BARCODE_RE = re.compile(r"\^B(?![QY])[A-Z0-9]", re.IGNORECASE)
_ENCODING_DECLARATION_RE = re.compile(r"\^CI28", re.IGNORECASE)
_QR_MODE_PREFIX_RE = re.compile(r"^[HQML][AM],", re.IGNORECASE)


@dataclass
class _OpenBlock:
    x: int
    y: int
    start_line: int
    start_column: int
    last_line: int
    payload: str | None = None
    data_line: int | None = None
    data_start: int | None = None
    data_stop: int | None = None
    decode_payload: bool = False
    is_barcode: bool = False
    is_qr_code: bool = False
    has_encoding: bool = False
    is_reversed: bool = False


def split_lines(raw: str) -> list[str]:
    """Split on ``\\n`` keeping any ``\\r`` so that joining restores the input."""

    return raw.split("\n")


def extract_fields(raw: str) -> ZplAnalysis:
    """Scan raw label text and return every positioned text/barcode/QR field."""

    lines = [line.rstrip("\r") for line in split_lines(raw)]
    scanner = _Scanner(lines)
    in_label = _LABEL_START_RE.search(raw) is None

    for index, line in enumerate(lines):
        cursor = 0
        while True:
            if not in_label:
                start = _LABEL_START_RE.search(line, cursor)
                if start is None:
                    break
                in_label = True
                cursor = start.end()

            label_end = _LABEL_END_RE.search(line, cursor)
            stop = label_end.start() if label_end is not None else len(line)
            scanner.scan(index, cursor, stop)
            if label_end is None:
                break
            scanner.close_open(index, label_end.start())
            in_label = False
            cursor = label_end.end()

    if scanner.block is not None:
        last = len(lines) - 1
        scanner.finish(len(lines), len(lines[last]), terminated=False)

    return ZplAnalysis(
        fields=tuple(scanner.fields),
        warnings=tuple(scanner.warnings),
        has_encoding_declaration=_ENCODING_DECLARATION_RE.search(raw) is not None,
        line_count=len(lines),
    )


class _Scanner:
    def __init__(self, lines: list[str]) -> None:
        self.lines = lines
        self.block: _OpenBlock | None = None
        self.fields: list[ZplField] = []
        self.warnings: list[ExtractionWarning] = []

    def scan(self, index: int, cursor: int, stop: int) -> None:
        """Walk ``[cursor, stop)`` of one line, opening and closing blocks."""

        line = self.lines[index]
        while True:
            position = _POSITION_RE.search(line, cursor, stop)
            segment_end = position.start() if position is not None else stop

            if self.block is not None:
                closed_at = _scan_segment(self.block, line, cursor, segment_end, index)
                if closed_at is not None:
                    self.finish(index + 1, closed_at, terminated=True)
                    cursor = closed_at
                    continue

            if position is None:
                return
            self.close_open(index, position.start())
            self.block = _OpenBlock(
                x=int(position.group(1)),
                y=int(position.group(2)),
                start_line=index,
                start_column=position.start(),
                last_line=index,
            )
            cursor = position.end()

    def close_open(self, index: int, column: int) -> None:
        """Close an unterminated block where line ``index`` reaches ``column``."""

        if self.block is None:
            return
        if self.block.last_line == index:
            self.finish(index + 1, column, terminated=False)
        else:
            self.finish(index, len(self.lines[index - 1]), terminated=False)

    def finish(self, end_line: int, end_column: int, *, terminated: bool) -> None:
        block = self.block
        self.block = None
        if block is None:
            return
        if block.payload is None and not (block.is_barcode or block.is_qr_code):
            return

        payload = block.payload or ""
        content = payload
        if block.decode_payload:
            decoded = decode_fh_detailed(payload)
            content = decoded.text
            if decoded.passthrough_runs:
                self.warnings.append(
                    ExtractionWarning(
                        kind="malformed_hex",
                        start_line=block.start_line,
                        message=(
                            f"{len(decoded.passthrough_runs)} hex run(s) are not valid UTF-8 "
                            "and were kept verbatim"
                        ),
                    )
                )
        if block.is_qr_code:
            content = _QR_MODE_PREFIX_RE.sub("", content, count=1)

        if not terminated:
            self.warnings.append(
                ExtractionWarning(
                    kind="unterminated_block",
                    start_line=block.start_line,
                    message=f"block at ({block.x},{block.y}) has no ^FS; closed at line {end_line}",
                )
            )
        if block.is_barcode and block.is_qr_code:
            self.warnings.append(
                ExtractionWarning(
                    kind="ambiguous_block",
                    start_line=block.start_line,
                    message=f"block at ({block.x},{block.y}) carries both barcode and QR commands",
                )
            )

        self.fields.append(
            ZplField(
                x=block.x,
                y=block.y,
                content=content,
                original_content=payload,
                start_line=block.start_line,
                end_line=end_line,
                start_column=block.start_column,
                end_column=end_column,
                data_line=block.data_line,
                data_start=block.data_start,
                data_stop=block.data_stop,
                is_barcode=block.is_barcode,
                is_qr_code=block.is_qr_code,
                has_encoding=block.has_encoding,
                is_reversed=block.is_reversed,
                terminated=terminated,
            )
        )


def _scan_segment(block: _OpenBlock, line: str, start: int, stop: int, index: int) -> int | None:
    """Record markers/payload of ``line[start:stop]``; return the column after ``^FS``."""

    terminator = _TERMINATOR_RE.search(line, start, stop)
    limit = terminator.start() if terminator is not None else stop
    data_commands = list(_DATA_RE.finditer(line, start, limit))
    head = line[start : data_commands[0].start() if data_commands else limit]

    if head.strip():
        block.last_line = index
    if _QR_RE.search(head):
        block.is_qr_code = True
    if _BARCODE_RE.search(head):
        block.is_barcode = True
    if _FIELD_HEX_RE.search(head):
        block.has_encoding = True
    if _FIELD_REVERSE_RE.search(head):
        block.is_reversed = True

    if data_commands:
        data = data_commands[-1]
        block.payload = line[data.end() : limit]
        block.data_line = index
        block.data_start = data.end()
        block.data_stop = limit
        block.decode_payload = block.has_encoding
        block.last_line = index

    if terminator is None:
        return None
    block.last_line = index
    return terminator.end()
