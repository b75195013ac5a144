from typing import Dict

from lab_results.commons.logger import logger
from lab_results.parsers.models import OrderLine, OrderLineSource


class OrderLineMatcher:
    """Selects the order line a result belongs to.

    When an order repeats a procedure code, the line chosen is the one whose
    sequence follows the last sequence used for that code; results are assumed
    to come back in the same relative order as they were ordered. The tracker
    is scoped to a single order and must be reset when the order changes.
    """

    def __init__(self, repository):
        self.repository = repository
        self.order_id = None
        self.last_seq: Dict[str, int] = {}

    def reset(self, order_id=None):
        self.order_id = order_id
        self.last_seq = {}

    def match(self, order_id: int, procedure_code: str, procedure_name: str = "") -> OrderLine:
        if order_id != self.order_id:
            self.reset(order_id)
        last = self.last_seq.get(procedure_code, 0)
        line = self.repository.find_order_line(order_id, procedure_code, last)
        if line is None:
            # No está en la orden: se agregó después (reflex del laboratorio o pedido manual)
            line = self.repository.add_order_line(
                order_id, procedure_code, procedure_name, OrderLineSource.ADDED
            )
            logger.info(
                f"Orden {order_id}: procedimiento {procedure_code} agregado (seq {line.sequence})"
            )
        self.last_seq[procedure_code] = line.sequence
        return line
