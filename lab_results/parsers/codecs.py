import base64
import binascii
import re

from lab_results.commons.errors import InvalidPayloadEncodingError

# El reemplazo de \E\ debe ir al final para no re-interpretar lo ya sustituido
_ESCAPES = (
    ("\\S\\", "^"),
    ("\\F\\", "|"),
    ("\\R\\", "~"),
    ("\\T\\", "&"),
    ("\\X0d\\", "\r"),
    ("\\E\\", "\\"),
)

ZERO_DATETIME = "0000-00-00 00:00:00"

_ABNORMAL = {
    "": "normal",
    "A": "abnormal",
    "H": "high",
    "L": "low",
    "HH": "critically high",
    "LL": "critically low",
}

_REPORT_STATUS = {
    "F": "final",
    "P": "preliminary",
    "C": "corrected",
}

_MIME_TYPES = {
    "pdf": "application/pdf",
    "doc": "application/msword",
    "rtf": "application/rtf",
    "txt": "text/plain",
    "zip": "application/zip",
}


def decode_text(value: str) -> str:
    """Decode the HL7 escape sequences of a single field value."""
    for token, char in _ESCAPES:
        value = value.replace(token, char)
    return value


def normalize_datetime(value: str) -> str:
    """
    Convierte un TS de HL7 (YYYYMMDD[HHMM[SS]]...) a 'YYYY-MM-DD[ HH:MM:SS]'.
    - vacío  -> '0000-00-00 00:00:00'
    - <= 8   -> solo fecha
    - 9..12  -> fecha y hora con segundos '00'
    - > 12   -> precisión completa
    """
    digits = re.sub(r"[^0-9]", "", value or "")
    if not digits:
        return ZERO_DATETIME
    ret = f"{digits[0:4]}-{digits[4:6]}-{digits[6:8]}"
    if len(digits) > 8:
        ret += f" {digits[8:10]}:{digits[10:12]}:"
        ret += digits[12:14] if len(digits) > 12 else "00"
    return ret


def map_abnormal(flag: str) -> str:
    # Los códigos fuera de la tabla dependen del laboratorio: se dejan tal cual
    return _ABNORMAL.get(flag, decode_text(flag))


def map_report_status(status: str) -> str:
    return _REPORT_STATUS.get(status, decode_text(status))


def mime_type(fileext: str) -> str:
    return _MIME_TYPES.get(fileext.lower(), "application/octet-stream")


def decode_payload(enctype: str, src: str) -> bytes:
    """Decode encapsulated data (OBX-5 of type ED) according to its encoding type.

    Raises InvalidPayloadEncodingError for unknown encodings or undecodable data.
    """
    if enctype == "Base64":
        try:
            return base64.b64decode("".join(src.split()), validate=True)
        except (binascii.Error, ValueError) as ex:
            raise InvalidPayloadEncodingError(f"Invalid Base64 payload: {ex}")
    if enctype == "A":
        return decode_text(src).encode("utf-8")
    if enctype == "Hex":
        # Un nibble final suelto se descarta
        even = src[: len(src) - len(src) % 2]
        if not re.fullmatch(r"[0-9A-Fa-f]*", even):
            raise InvalidPayloadEncodingError("Invalid Hex payload")
        return bytes.fromhex(even)
    raise InvalidPayloadEncodingError(f"Invalid encapsulated data encoding type: {enctype}")
