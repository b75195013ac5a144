# ===============================
# File: lab_results/parsers/oru.py
# ===============================
"""Receptor de mensajes ORU^R01.

Recorre los segmentos en orden y mantiene un único reporte (OBR) y un único
resultado (OBX) en memoria. Cada uno se persiste ("flush") cuando aparece el
siguiente segmento que lo cierra, o al final del mensaje.
"""
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from lab_results.commons.errors import (
    CategoryNotConfiguredError,
    DocumentStoreError,
    EncounterMismatchError,
    HL7ResultError,
    OrderNotFoundError,
    UnknownSegmentError,
)
from lab_results.commons.logger import logger, message_logger
from lab_results.parsers.base import resolve_delimiters, tokenize
from lab_results.parsers.codecs import (
    decode_payload,
    decode_text,
    map_abnormal,
    map_report_status,
    mime_type,
    normalize_datetime,
)
from lab_results.parsers.matcher import OrderLineMatcher
from lab_results.parsers.models import (
    Order,
    PatientIdentity,
    ReceiveSummary,
    ReportRecord,
    ResultRecord,
    Segment,
)
from lab_results.validation.validators import validate_message_header

# Separador de líneas en los comentarios del resultado
COMMENT_DELIM = "\n"
# OBX-5 más largo que esto se guarda como texto largo en los comentarios
LONG_TEXT_THRESHOLD = 200


class Context(Enum):
    NONE = "none"
    HEADER = "MSH"
    PATIENT = "PID"
    ORDER_REQUEST = "ORC"
    REPORT_REQUEST = "OBR"
    RESULT = "OBX"


def _to_int(value: str) -> int:
    digits = ""
    for ch in value.strip():
        if not ch.isdigit():
            break
        digits += ch
    return int(digits) if digits else 0


class ResultsReceiver:
    """Parses one ORU^R01 message and persists its reports/results.

    An instance handles a single message; create a new one per message.
    """

    def __init__(self, repository, category_name: str, now: Optional[Callable] = None):
        self.repository = repository
        self.category_name = category_name
        self.now = now or datetime.now
        self.context = Context.NONE
        self.matcher = OrderLineMatcher(repository)
        self.summary = ReceiveSummary()
        self.log = logger

        self.category_id: Optional[int] = None
        self.order_id = 0
        self.encounter_id = 0
        self.order: Optional[Order] = None
        self.report_id: Optional[int] = None
        self.report_date: Optional[str] = None
        self.report: ReportRecord = ReportRecord()
        self.result: ResultRecord = ResultRecord()

        # (segmento, contexto) -> handler; contexto None = válido en cualquier contexto
        self._handlers: Dict[Tuple[str, Optional[Context]], Callable[[Segment], None]] = {
            ("MSH", None): self._on_msh,
            ("PID", None): self._on_pid,
            ("PV1", None): self._on_pv1,
            ("ORC", None): self._on_orc,
            ("OBR", None): self._on_obr,
            ("OBX", None): self._on_obx,
            ("ZEF", None): self._on_zef,
            ("NTE", Context.ORDER_REQUEST): self._on_order_note,
            ("NTE", Context.REPORT_REQUEST): self._on_report_note,
            ("NTE", Context.RESULT): self._on_result_note,
        }

    # -------- entrada principal --------
    def receive(self, hl7_text: str) -> ReceiveSummary:
        seps = resolve_delimiters(hl7_text)
        self.category_id = self.repository.find_category_id(self.category_name)
        if self.category_id is None:
            raise CategoryNotConfiguredError(
                f"Document category for lab results does not exist: {self.category_name}"
            )

        try:
            for seg in tokenize(hl7_text, seps):
                self.dispatch(seg)
            self.flush_result()
            # Solo hace algo si quedó un reporte sin resultados
            self.flush_report()
        except HL7ResultError as ex:
            self.log.debug(f"Mensaje abortado [{ex.kind}]: {ex}")
            ex.persisted = {
                "reports": len(self.summary.report_ids),
                "results": len(self.summary.result_ids),
                "documents": len(self.summary.document_ids),
            }
            raise
        return self.summary

    def dispatch(self, seg: Segment):
        handler = self._handlers.get((seg.name, self.context)) or self._handlers.get(
            (seg.name, None)
        )
        if handler is None:
            raise UnknownSegmentError(
                f"Segment name '{seg.name}' is misplaced or unknown", segment=seg.name
            )
        handler(seg)

    # -------- flush --------
    def flush_result(self) -> Optional[int]:
        try:
            if self.result.is_empty():
                return None
            result_id = self.repository.insert_result(self.result)
            self.summary.result_ids.append(result_id)
            return result_id
        finally:
            self.result = ResultRecord()

    def flush_report(self) -> Optional[int]:
        try:
            if self.report.is_empty():
                return None
            report_id = self.repository.insert_report(self.report)
            self.summary.report_ids.append(report_id)
            self.log.debug(f"Reporte {report_id} guardado (orden {self.report.order_id})")
            return report_id
        finally:
            self.report = ReportRecord()

    # -------- handlers --------
    def _on_msh(self, seg: Segment):
        self.context = Context.HEADER
        header = validate_message_header(seg)
        self.summary.message_id = header.message_id
        self.log = message_logger(header.message_id)

    def _on_pid(self, seg: Segment):
        self.context = Context.PATIENT
        self.flush_result()
        self.flush_report()
        self.summary.patient = PatientIdentity(
            ssn=seg.field(4),
            dob=seg.field(7),
            last_name=seg.component(5, 0),
            first_name=seg.component(5, 1),
        )

    def _on_pv1(self, seg: Segment):
        # Número de encuentro del solicitante (PV1-19), si viene
        if seg.field(19):
            self.encounter_id = _to_int(seg.component(19, 0))
            self.summary.encounter_id = self.encounter_id

    def _on_orc(self, seg: Segment):
        self.context = Context.ORDER_REQUEST
        self.flush_result()
        self.flush_report()
        self.order = None
        self.matcher.reset()
        # Un id vacío o "0" no reemplaza la orden vigente
        if _to_int(seg.field(2)):
            self.order_id = _to_int(seg.field(2))

    def _on_order_note(self, seg: Segment):
        pass

    def _resolve_order(self) -> Order:
        if self.order is not None and self.order.id == self.order_id:
            return self.order
        order = self.repository.get_order(self.order_id)
        # La orden debe existir; no se manejan resultados de órdenes manuales
        if order is None:
            raise OrderNotFoundError(f"Procedure order '{self.order_id}' was not found")
        if self.encounter_id and order.encounter_id != self.encounter_id:
            raise EncounterMismatchError(
                f"Encounter ID '{order.encounter_id}' for OBR placer order number "
                f"'{self.order_id}' does not match the PV1 encounter number '{self.encounter_id}'"
            )
        self.order = order
        self.matcher.reset(order.id)
        return order

    def _on_obr(self, seg: Segment):
        self.context = Context.REPORT_REQUEST
        self.flush_result()
        self.flush_report()
        self.report_id = None
        # Un id vacío o "0" no reemplaza la orden vigente
        if _to_int(seg.field(2)):
            self.order_id = _to_int(seg.field(2))
        procedure_code = seg.component(4, 0)
        procedure_name = seg.component(4, 1)
        order = self._resolve_order()
        line = self.matcher.match(order.id, procedure_code, procedure_name)

        self.report_date = normalize_datetime(seg.field(22))[:10]
        self.report = ReportRecord(
            order_id=order.id,
            order_seq=line.sequence,
            date_collected=normalize_datetime(seg.field(7)),
            date_report=self.report_date,
            report_status=map_report_status(seg.field(25)),
            report_notes="",
        )

    def _on_report_note(self, seg: Segment):
        self.report.report_notes += decode_text(seg.field(3)) + "\n"

    def _open_result(self, data_type: str) -> ResultRecord:
        self.flush_result()
        if not self.report_id:
            self.report_id = self.flush_report()
        self.result = ResultRecord(
            report_id=self.report_id, data_type=data_type, comments=COMMENT_DELIM
        )
        return self.result

    def _store_document(self, fileext: str, data: bytes) -> int:
        if self.order is None:
            raise OrderNotFoundError("Embedded document received before any OBR order")
        filename = f"{self.now().strftime('%Y%m%d_%H%M%S')}.{fileext}"
        try:
            doc_id = self.repository.create_document(
                self.order.patient_id, self.category_id, filename, mime_type(fileext), data
            )
        except DocumentStoreError:
            raise
        except Exception as ex:
            raise DocumentStoreError(f"Cannot create document {filename}: {ex}")
        self.summary.document_ids.append(doc_id)
        return doc_id

    def _on_obx(self, seg: Segment):
        self.context = Context.RESULT
        value_type = seg.field(2)
        raw_value = seg.field(5)
        ares = self._open_result(value_type[:1])  # N, S, F o E
        if value_type == "ED":
            # Documento embebido: OBX-5 = ext ^ ... ^ ... ^ codificación ^ datos
            fileext = seg.component(5, 0).lower()
            data = decode_payload(seg.component(5, 3), seg.component(5, 4))
            ares.document_id = self._store_document(fileext, data)
        elif len(raw_value) > LONG_TEXT_THRESHOLD:
            # Texto largo con "~" como separador de líneas; va en la primera línea de comentarios
            ares.data_type = "L"
            ares.result = ""
            ares.comments = decode_text(raw_value) + COMMENT_DELIM
        else:
            ares.result = decode_text(raw_value)
        ares.result_code = decode_text(seg.component(3, 0))
        ares.result_text = decode_text(seg.component(3, 1))
        ares.date = normalize_datetime(seg.field(14))
        ares.facility = decode_text(seg.field(15))
        ares.units = decode_text(seg.field(6))
        ares.range = decode_text(seg.field(7))
        ares.abnormal = map_abnormal(seg.field(8))  # depende del laboratorio
        ares.result_status = map_report_status(seg.field(11))

    def _on_zef(self, seg: Segment):
        # ZEF se trata como un OBX con un PDF embebido en Base64
        self.context = Context.RESULT
        ares = self._open_result("E")
        data = decode_payload("Base64", seg.field(2))
        ares.document_id = self._store_document("pdf", data)
        ares.date = self.report_date

    def _on_result_note(self, seg: Segment):
        self.result.comments += decode_text(seg.field(3)) + COMMENT_DELIM


def receive_hl7_results(hl7_text: str, repository, category_name: str) -> ReceiveSummary:
    return ResultsReceiver(repository, category_name).receive(hl7_text)
