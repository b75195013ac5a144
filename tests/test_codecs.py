import base64

import pytest

from lab_results.commons.errors import InvalidPayloadEncodingError, MalformedHeaderError
from lab_results.parsers.base import resolve_delimiters, tokenize
from lab_results.parsers.codecs import (
    ZERO_DATETIME,
    decode_payload,
    decode_text,
    map_abnormal,
    map_report_status,
    mime_type,
    normalize_datetime,
)


# ----------------- escapes -----------------
def test_decode_all_escape_tokens():
    raw = "a\\S\\b\\F\\c\\R\\d\\T\\e\\X0d\\f\\E\\g"
    assert decode_text(raw) == "a^b|c~d&e\rf\\g"


def test_escape_marker_is_not_double_substituted():
    # \E\ se decodifica al final: el resultado no vuelve a interpretarse
    assert decode_text("\\E\\E\\") == "\\E\\"
    assert decode_text("plain text") == "plain text"


# ----------------- fechas -----------------
def test_datetime_empty_is_zero_sentinel():
    assert normalize_datetime("") == ZERO_DATETIME
    assert normalize_datetime("--") == ZERO_DATETIME


def test_datetime_date_only():
    assert normalize_datetime("20240131") == "2024-01-31"


def test_datetime_minutes_default_seconds():
    assert normalize_datetime("202401311415") == "2024-01-31 14:15:00"


def test_datetime_full_precision_strips_punctuation():
    assert normalize_datetime("2024-01-31T14:15:16") == "2024-01-31 14:15:16"
    assert normalize_datetime("20240131141516.123+0500") == "2024-01-31 14:15:16"


# ----------------- mapeos -----------------
@pytest.mark.parametrize(
    "flag,expected",
    [("", "normal"), ("A", "abnormal"), ("H", "high"), ("L", "low"),
     ("HH", "critically high"), ("LL", "critically low")],
)
def test_abnormal_flags(flag, expected):
    assert map_abnormal(flag) == expected


def test_abnormal_unknown_passes_through_decoded():
    assert map_abnormal("POS") == "POS"
    assert map_abnormal("\\T\\") == "&"


def test_report_status():
    assert map_report_status("F") == "final"
    assert map_report_status("P") == "preliminary"
    assert map_report_status("C") == "corrected"
    assert map_report_status("X") == "X"


def test_mime_types():
    assert mime_type("pdf") == "application/pdf"
    assert mime_type("DOC") == "application/msword"
    assert mime_type("txt") == "text/plain"
    assert mime_type("png") == "application/octet-stream"


# ----------------- payloads -----------------
def test_payload_base64():
    data = base64.b64encode(b"%PDF-1.4 demo").decode()
    assert decode_payload("Base64", data) == b"%PDF-1.4 demo"


def test_payload_base64_invalid():
    with pytest.raises(InvalidPayloadEncodingError):
        decode_payload("Base64", "!!!not-base64!!!")


def test_payload_hex_drops_trailing_nibble():
    assert decode_payload("Hex", "48656c6c6f") == b"Hello"
    assert decode_payload("Hex", "48656c6c6f7") == b"Hello"


def test_payload_hex_invalid():
    with pytest.raises(InvalidPayloadEncodingError):
        decode_payload("Hex", "zz11")


def test_payload_plain_text_is_unescaped():
    assert decode_payload("A", "line1\\X0d\\line2") == b"line1\rline2"


def test_payload_unknown_encoding():
    with pytest.raises(InvalidPayloadEncodingError):
        decode_payload("UU", "abc")


# ----------------- separadores -----------------
def test_resolve_default_delimiters():
    seps = resolve_delimiters("MSH|^~\\&|LAB")
    assert (seps.field, seps.component, seps.repetition, seps.segment) == ("|", "^", "~", "\r")


def test_resolve_requires_msh_first():
    with pytest.raises(MalformedHeaderError):
        resolve_delimiters("PID|1||123")


def test_resolve_rejects_repeated_delimiters():
    with pytest.raises(MalformedHeaderError):
        resolve_delimiters("MSH|||")


def test_tokenize_keeps_order_and_skips_empty():
    text = "MSH#*!\\&#LAB\r\nPID#1##123\r\n\rOBX#1#NM#A*B"
    seps = resolve_delimiters(text)
    segs = tokenize(text, seps)
    assert [s.name for s in segs] == ["MSH", "PID", "OBX"]
    assert segs[2].component(3, 1) == "B"
    assert segs[1].field(3) == "123"
    assert segs[1].field(30) == ""


def test_line_feed_inside_field_does_not_split_segment():
    text = "MSH|^~\\&|LAB\rNTE|1|L|line one\nline two\r"
    segs = tokenize(text, resolve_delimiters(text))
    assert [s.name for s in segs] == ["MSH", "NTE"]
    assert segs[1].field(3) == "line one\nline two"


def test_line_feed_only_file_is_split_on_lf():
    text = "MSH|^~\\&|LAB\nPID|1||123\n"
    segs = tokenize(text, resolve_delimiters(text))
    assert [s.name for s in segs] == ["MSH", "PID"]
