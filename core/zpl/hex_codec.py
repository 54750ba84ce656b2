"""Field-hex (``^FH``) codec for UTF-8 label payloads.

Each byte of the UTF-8 text is written as ``_`` plus two hex digits. Decoding
is best-effort per escape run: a run whose bytes are not valid UTF-8 is kept
verbatim instead of failing the whole payload.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Literal

logger = logging.getLogger("labelops.zpl")

HexCase = Literal["upper", "lower"]

_HEX_RUN_RE = re.compile(r"(?:_[0-9A-Fa-f]{2})+")
_HEX_PAIR_RE = re.compile(r"_([0-9A-Fa-f]{2})")


@dataclass(frozen=True)
class DecodeResult:
    """Decoded text plus the escape runs that were decoded or passed through."""

    text: str
    decoded_runs: list[str] = field(default_factory=list)
    passthrough_runs: list[str] = field(default_factory=list)

    @property
    def fully_decoded(self) -> bool:
        return not self.passthrough_runs


def decode_fh_detailed(payload: str) -> DecodeResult:
    """Decode every ``_XX`` run of ``payload`` and report how each run fared."""

    decoded_runs: list[str] = []
    passthrough_runs: list[str] = []

    def _replace(match: re.Match[str]) -> str:
        run = match.group(0)
        raw = bytes(int(pair, 16) for pair in _HEX_PAIR_RE.findall(run))
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            logger.debug("hex run left undecoded: %d bytes are not valid UTF-8", len(raw))
            passthrough_runs.append(run)
            return run
        decoded_runs.append(run)
        return text

    text = _HEX_RUN_RE.sub(_replace, payload)
    return DecodeResult(text=text, decoded_runs=decoded_runs, passthrough_runs=passthrough_runs)


def decode_fh(payload: str) -> str:
    """Decode ``_XX`` escape runs; non-matching text passes through unchanged."""

    return decode_fh_detailed(payload).text


def encode_fh(text: str, *, hex_case: HexCase = "upper") -> str:
    """Encode every UTF-8 byte of ``text`` as ``_XX``."""

    template = "_{:02X}" if hex_case == "upper" else "_{:02x}"
    return "".join(template.format(byte) for byte in text.encode("utf-8"))


def detect_hex_case(payload: str) -> HexCase:
    """Return the case used by the escape runs of ``payload`` (upper when unknown)."""

    digits = "".join(_HEX_PAIR_RE.findall(payload))
    letters = [char for char in digits if char.isalpha()]
    if letters and all(char.islower() for char in letters):
        return "lower"
    return "upper"
