# ===============================
# File: lab_results/commons/errors.py
# ===============================
"""Errores del receptor de resultados.

Cualquier error aborta el resto del mensaje. Las filas ya persistidas antes del
error NO se revierten; ``persisted`` indica cuántas quedaron guardadas para que
el conteo del lote pueda reportarlo.
"""
from typing import Optional


class HL7ResultError(Exception):
    kind = "hl7-error"

    def __init__(self, message: str, segment: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.segment = segment
        self.persisted = {"reports": 0, "results": 0, "documents": 0}

    def __str__(self) -> str:
        return self.message


class MalformedHeaderError(HL7ResultError):
    kind = "malformed-header"


class UnsupportedMessageTypeError(HL7ResultError):
    kind = "unsupported-message-type"


class OrderNotFoundError(HL7ResultError):
    kind = "order-not-found"


class EncounterMismatchError(HL7ResultError):
    kind = "encounter-mismatch"


class UnknownSegmentError(HL7ResultError):
    kind = "unknown-or-misplaced-segment"


class InvalidPayloadEncodingError(HL7ResultError):
    kind = "invalid-payload-encoding"


class CategoryNotConfiguredError(HL7ResultError):
    kind = "category-not-configured"


class DocumentStoreError(HL7ResultError):
    kind = "document-store-failure"
