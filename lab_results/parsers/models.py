# ===============================
# File: lab_results/parsers/models.py
# ===============================
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

SEGMENT_SEP = "\r"


@dataclass(frozen=True)
class Delimiters:
    field: str = "|"
    component: str = "^"
    repetition: str = "~"
    segment: str = SEGMENT_SEP


@dataclass(frozen=True)
class Segment:
    fields: Tuple[str, ...]
    delimiters: Delimiters = Delimiters()

    @property
    def name(self) -> str:
        return self.fields[0] if self.fields else ""

    def field(self, idx: int) -> str:
        # Campos ausentes al final del segmento se tratan como vacíos
        return self.fields[idx] if 0 <= idx < len(self.fields) else ""

    def components(self, idx: int) -> List[str]:
        return self.field(idx).split(self.delimiters.component)

    def component(self, idx: int, comp: int) -> str:
        comps = self.components(idx)
        return comps[comp] if 0 <= comp < len(comps) else ""


class OrderLineSource(str, Enum):
    ORDERED = "1"
    ADDED = "2"  # agregado al recibir resultados (reflex / manual)


@dataclass
class Order:
    id: int
    patient_id: int
    encounter_id: Optional[int] = None


@dataclass
class OrderLine:
    order_id: int
    procedure_code: str
    procedure_name: str
    sequence: int
    source: OrderLineSource = OrderLineSource.ORDERED


@dataclass
class PatientIdentity:
    ssn: str = ""
    dob: str = ""  # YYYYMMDD
    last_name: str = ""
    first_name: str = ""


@dataclass
class ReportRecord:
    order_id: Optional[int] = None
    order_seq: Optional[int] = None
    date_collected: Optional[str] = None
    date_report: Optional[str] = None
    report_status: Optional[str] = None
    report_notes: str = ""

    def is_empty(self) -> bool:
        return self == ReportRecord()


@dataclass
class ResultRecord:
    report_id: Optional[int] = None
    data_type: Optional[str] = None  # N, S, F, E o L
    result_code: Optional[str] = None
    result_text: Optional[str] = None
    result: Optional[str] = None
    document_id: Optional[int] = None
    date: Optional[str] = None
    facility: Optional[str] = None
    units: Optional[str] = None
    range: Optional[str] = None
    abnormal: Optional[str] = None
    result_status: Optional[str] = None
    comments: str = ""

    def is_empty(self) -> bool:
        return self == ResultRecord()


@dataclass
class ReceiveSummary:
    message_id: str = ""
    encounter_id: Optional[int] = None
    patient: PatientIdentity = field(default_factory=PatientIdentity)
    report_ids: List[int] = field(default_factory=list)
    result_ids: List[int] = field(default_factory=list)
    document_ids: List[int] = field(default_factory=list)
