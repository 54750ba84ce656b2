from __future__ import annotations

from core.zpl.hex_codec import decode_fh, decode_fh_detailed, detect_hex_case, encode_fh


def test_decode_lowercase_and_uppercase_runs() -> None:
    assert decode_fh("_50_48_4f_4e_45") == "PHONE"
    assert decode_fh("_50_48_4F_4E_45") == "PHONE"


def test_encode_defaults_to_uppercase_and_can_write_lowercase() -> None:
    assert encode_fh("PHONE") == "_50_48_4F_4E_45"
    assert encode_fh("PHONE", hex_case="lower") == "_50_48_4f_4e_45"


def test_multibyte_text_survives_encode_decode() -> None:
    for text in ("João", "Avenida São Paulo, nº 12", "配送先", "caixa 📦"):
        assert decode_fh(encode_fh(text)) == text


def test_encode_writes_one_escape_per_utf8_byte() -> None:
    assert encode_fh("ã") == "_C3_A3"
    assert encode_fh("") == ""


def test_decode_keeps_literal_text_around_runs() -> None:
    assert decode_fh("Jo_C3_A3o da Silva") == "João da Silva"
    assert decode_fh("no escapes here") == "no escapes here"


def test_invalid_utf8_run_is_kept_verbatim() -> None:
    result = decode_fh_detailed("_C3_28 ok _4F_4B")

    assert result.text == "_C3_28 ok OK"
    assert result.passthrough_runs == ["_C3_28"]
    assert result.decoded_runs == ["_4F_4B"]
    assert result.fully_decoded is False


def test_incomplete_escape_is_not_a_run() -> None:
    assert decode_fh("_4") == "_4"
    assert decode_fh("_G1") == "_G1"


def test_detect_hex_case() -> None:
    assert detect_hex_case("_50_48_4f_4e_45") == "lower"
    assert detect_hex_case("_50_48_4F") == "upper"
    assert detect_hex_case("_50_48") == "upper"
    assert detect_hex_case("plain") == "upper"
