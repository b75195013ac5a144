from typing import List

from lab_results.commons.errors import MalformedHeaderError
from lab_results.parsers.models import SEGMENT_SEP, Delimiters, Segment


def resolve_delimiters(hl7: str) -> Delimiters:
    """
    Detecta separadores desde el propio MSH:
    - field sep = MSH[3]
    - comp / rept = primeros caracteres de MSH-2
    El separador de segmento es fijo (CR).
    """
    if not hl7.startswith("MSH"):
        raise MalformedHeaderError("Input does not begin with a MSH segment")
    if len(hl7) < 6:
        raise MalformedHeaderError("MSH segment is too short to declare its delimiters")
    seps = Delimiters(field=hl7[3], component=hl7[4], repetition=hl7[5])
    chars = {seps.field, seps.component, seps.repetition, seps.segment}
    if len(chars) != 4 or "\n" in chars:
        raise MalformedHeaderError(f"MSH delimiters are not distinct: {hl7[3:6]!r}")
    return seps


def split_segments(hl7: str) -> List[str]:
    """Divide en segmentos HL7 por CR, omite vacíos.

    Un LF dentro de un campo (p.ej. Base64 partido en líneas) no corta el segmento;
    solo los archivos sin ningún CR se tratan como separados por LF.
    """
    text = hl7.replace("\r\n", SEGMENT_SEP)
    if SEGMENT_SEP not in text:
        text = text.replace("\n", SEGMENT_SEP)
    return [s for s in text.split(SEGMENT_SEP) if s]


def tokenize(hl7: str, seps: Delimiters) -> List[Segment]:
    return [Segment(tuple(s.split(seps.field)), seps) for s in split_segments(hl7)]
