"""Data models for ZPL field extraction, classification and templates."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

FieldType = Literal["text", "barcode", "qrcode"]


class FieldRole(str, Enum):
    """Business roles a label field can be assigned to."""

    RECIPIENT_NAME = "recipientName"
    STREET_ADDRESS = "streetAddress"
    CITY = "city"
    ZIP_CODE = "zipCode"
    SENDER_NAME = "senderName"
    SENDER_ADDRESS = "senderAddress"
    ORDER_NUMBER = "orderNumber"
    INVOICE_NUMBER = "invoiceNumber"
    TRACKING_NUMBER = "trackingNumber"
    ESTIMATED_DELIVERY_DATE = "estimatedDeliveryDate"

    @classmethod
    def parse(cls, value: str | FieldRole) -> FieldRole | None:
        """Resolve a role from its value or enum name, returning None if unknown."""

        if isinstance(value, FieldRole):
            return value
        try:
            return cls(value)
        except ValueError:
            pass
        return cls.__members__.get(value.upper())


@dataclass(frozen=True)
class ZplField:
    """One positioned block found in the label markup.

    ``start_line``/``end_line`` form a half-open line range. The block begins
    at ``start_column`` of its first line and stops before ``end_column`` of
    line ``end_line - 1``, so several blocks can share one line.

    ``data_line`` is the line holding the winning data command, or None for
    code blocks without a payload; the raw payload sits at
    ``[data_start, data_stop)`` of that line.
    """

    x: int
    y: int
    content: str
    original_content: str
    start_line: int
    end_line: int
    start_column: int = 0
    end_column: int = 0
    data_line: int | None = None
    data_start: int | None = None
    data_stop: int | None = None
    is_barcode: bool = False
    is_qr_code: bool = False
    has_encoding: bool = False
    is_reversed: bool = False
    terminated: bool = True

    @property
    def field_type(self) -> FieldType:
        if self.is_barcode:
            return "barcode"
        if self.is_qr_code:
            return "qrcode"
        return "text"

    @property
    def is_ambiguous(self) -> bool:
        return self.is_barcode and self.is_qr_code

    @property
    def is_editable(self) -> bool:
        return self.field_type == "text" and self.data_line is not None


@dataclass(frozen=True)
class ExtractionWarning:
    """Non-fatal issue found while scanning a label."""

    kind: Literal["ambiguous_block", "unterminated_block", "malformed_hex"]
    start_line: int
    message: str


@dataclass(frozen=True)
class ZplAnalysis:
    """Full parse result for one label; views are pure filters over ``fields``.

    ``line_count`` is the ``end_line`` given to a block closed by end of input.
    """

    fields: tuple[ZplField, ...] = ()
    warnings: tuple[ExtractionWarning, ...] = ()
    has_encoding_declaration: bool = False
    line_count: int = 0

    @property
    def text_fields(self) -> list[ZplField]:
        return [item for item in self.fields if item.field_type == "text"]

    @property
    def barcode_fields(self) -> list[ZplField]:
        return [item for item in self.fields if item.field_type == "barcode"]

    @property
    def qr_code_fields(self) -> list[ZplField]:
        return [item for item in self.fields if item.field_type == "qrcode"]

    def index_of(self, target: ZplField) -> int:
        """Return the position of ``target`` by identity."""

        for index, item in enumerate(self.fields):
            if item is target:
                return index
        raise ValueError("Field does not belong to this analysis")


@dataclass(frozen=True)
class FieldMapping:
    """Role assignment holding indices into one analysis' field list.

    Lookups resolve to the very ``ZplField`` instances of ``analysis``.
    """

    analysis: ZplAnalysis
    indices: Mapping[FieldRole, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for role, index in self.indices.items():
            if not 0 <= index < len(self.analysis.fields):
                raise ValueError(f"Field index {index} for role {role.value} is out of range")

    def get(self, role: FieldRole) -> ZplField | None:
        index = self.indices.get(role)
        if index is None:
            return None
        return self.analysis.fields[index]

    def __contains__(self, role: object) -> bool:
        return role in self.indices

    def __len__(self) -> int:
        return len(self.indices)

    def __iter__(self) -> Iterator[FieldRole]:
        return iter(self.indices)

    def items(self) -> list[tuple[FieldRole, ZplField]]:
        return [(role, self.analysis.fields[index]) for role, index in self.indices.items()]

    def to_dict(self) -> dict[str, dict[str, object]]:
        """Serialize to a JSON-friendly role -> field summary."""

        payload: dict[str, dict[str, object]] = {}
        for role, index in self.indices.items():
            item = self.analysis.fields[index]
            payload[role.value] = {
                "index": index,
                "x": item.x,
                "y": item.y,
                "content": item.content,
                "line": item.data_line if item.data_line is not None else item.start_line,
            }
        return payload


AnchorMap = Mapping[FieldRole, tuple[int, int]]


@dataclass(frozen=True)
class LabelTemplate:
    """Known fixed label layout recognized by exact structural signals."""

    name: str
    description: str
    qr_signature: str
    required_positions: tuple[tuple[int, int], ...]
    anchors: AnchorMap
