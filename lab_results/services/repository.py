# lab_results/services/repository.py
from dataclasses import asdict, replace
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Union

from lab_results.commons.errors import DocumentStoreError
from lab_results.commons.logger import logger
from lab_results.commons.types import OrderSeed
from lab_results.parsers.models import (
    Order,
    OrderLine,
    OrderLineSource,
    ReportRecord,
    ResultRecord,
)


class ResultsRepository(Protocol):
    """Colaborador de persistencia que consume el receptor. Todas las llamadas son bloqueantes."""

    def find_category_id(self, name: str) -> Optional[int]: ...

    def get_order(self, order_id: int) -> Optional[Order]: ...

    def find_order_line(
        self, order_id: int, procedure_code: str, after_seq: int = 0
    ) -> Optional[OrderLine]: ...

    def add_order_line(
        self,
        order_id: int,
        procedure_code: str,
        procedure_name: str,
        source: OrderLineSource = OrderLineSource.ADDED,
    ) -> OrderLine: ...

    def insert_report(self, report: ReportRecord) -> int: ...

    def insert_result(self, result: ResultRecord) -> int: ...

    def create_document(
        self, patient_id: int, category_id: int, filename: str, media_type: str, data: bytes
    ) -> int: ...


class InMemoryRepository:
    """Repositorio en memoria; opcionalmente escribe los documentos en disco."""

    def __init__(
        self,
        categories: Optional[Dict[str, int]] = None,
        documents_root: Optional[Union[str, Path]] = None,
    ):
        self.categories: Dict[str, int] = dict(categories or {})
        self.orders: Dict[int, Order] = {}
        self.order_lines: List[OrderLine] = []
        self.reports: Dict[int, ReportRecord] = {}
        self.results: Dict[int, ResultRecord] = {}
        self.documents: Dict[int, dict] = {}
        self.documents_root = Path(documents_root) if documents_root else None

    # -------- orders --------
    def add_order(self, order: Order, lines: Optional[List[OrderLine]] = None) -> Order:
        self.orders[order.id] = order
        for line in lines or []:
            self.order_lines.append(line)
        return order

    def load_orders(self, seeds: List[OrderSeed]):
        for seed in seeds:
            order = Order(id=seed.id, patient_id=seed.patient_id, encounter_id=seed.encounter_id)
            lines = [
                OrderLine(
                    order_id=seed.id,
                    procedure_code=ln.code,
                    procedure_name=ln.name,
                    sequence=ln.seq if ln.seq is not None else i,
                )
                for i, ln in enumerate(seed.lines, start=1)
            ]
            self.add_order(order, lines)
        logger.debug(f"{len(seeds)} orden(es) cargadas en el repositorio")

    def find_category_id(self, name: str) -> Optional[int]:
        return self.categories.get(name)

    def get_order(self, order_id: int) -> Optional[Order]:
        return self.orders.get(order_id)

    def find_order_line(
        self, order_id: int, procedure_code: str, after_seq: int = 0
    ) -> Optional[OrderLine]:
        # Las líneas con seq <= after_seq van al final; luego seq ascendente
        candidates = [
            ln
            for ln in self.order_lines
            if ln.order_id == order_id and ln.procedure_code == procedure_code
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda ln: (ln.sequence <= after_seq, ln.sequence))

    def add_order_line(
        self,
        order_id: int,
        procedure_code: str,
        procedure_name: str,
        source: OrderLineSource = OrderLineSource.ADDED,
    ) -> OrderLine:
        seqs = [ln.sequence for ln in self.order_lines if ln.order_id == order_id]
        line = OrderLine(
            order_id=order_id,
            procedure_code=procedure_code,
            procedure_name=procedure_name,
            sequence=max(seqs, default=0) + 1,
            source=source,
        )
        self.order_lines.append(line)
        return line

    # -------- reports / results --------
    def insert_report(self, report: ReportRecord) -> int:
        report_id = len(self.reports) + 1
        self.reports[report_id] = replace(report)
        return report_id

    def insert_result(self, result: ResultRecord) -> int:
        result_id = len(self.results) + 1
        self.results[result_id] = replace(result)
        return result_id

    # -------- documents --------
    def create_document(
        self, patient_id: int, category_id: int, filename: str, media_type: str, data: bytes
    ) -> int:
        doc_id = len(self.documents) + 1
        path = None
        if self.documents_root is not None:
            dst_dir = self.documents_root / str(patient_id) / str(category_id)
            try:
                dst_dir.mkdir(parents=True, exist_ok=True)
                path = dst_dir / f"{doc_id}_{filename}"
                path.write_bytes(data)
            except OSError as ex:
                raise DocumentStoreError(f"Cannot store document {filename}: {ex}")
        self.documents[doc_id] = {
            "patient_id": patient_id,
            "category_id": category_id,
            "filename": filename,
            "media_type": media_type,
            "size": len(data),
            "path": str(path) if path else None,
            "data": data,
        }
        return doc_id

    def dump(self) -> dict:
        """Snapshot JSON-serializable de lo persistido."""
        return {
            "reports": [{"id": k, **asdict(v)} for k, v in self.reports.items()],
            "results": [{"id": k, **asdict(v)} for k, v in self.results.items()],
            "documents": [
                {"id": k, **{f: v for f, v in d.items() if f != "data"}}
                for k, d in self.documents.items()
            ],
            "order_lines": [
                {**asdict(ln), "source": ln.source.value}
                for ln in self.order_lines
                if ln.source == OrderLineSource.ADDED
            ],
        }
