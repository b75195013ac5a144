# lab_results/validation/validators.py
from pydantic import BaseModel, ValidationError, field_validator

from lab_results.commons.errors import UnsupportedMessageTypeError
from lab_results.parsers.models import Segment

SUPPORTED_MESSAGE_TYPE = ("ORU", "R01")


class MessageHeader(BaseModel):
    msh_9: str  # Debe existir (ej: "ORU^R01" o "ORU^R01^ORU_R01")
    component_sep: str = "^"
    message_id: str = ""

    @field_validator("msh_9")
    @classmethod
    def _not_empty(cls, v: str):
        if not v or not v.strip():
            raise ValueError("MSH-9 is required")
        return v

    @property
    def message_type(self) -> tuple:
        return tuple(self.msh_9.split(self.component_sep)[:2])


def validate_message_header(msh: Segment) -> MessageHeader:
    """Construye el encabezado desde el MSH y exige un ORU^R01."""
    msh9 = msh.field(8)
    try:
        header = MessageHeader(
            msh_9=msh9, component_sep=msh.delimiters.component, message_id=msh.field(9)
        )
    except ValidationError as ve:
        raise UnsupportedMessageTypeError(f"Message type '{msh9}' does not seem valid: {ve}")
    if header.message_type != SUPPORTED_MESSAGE_TYPE:
        raise UnsupportedMessageTypeError(f"Message type '{msh9}' does not seem valid")
    return header
