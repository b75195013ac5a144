from pathlib import Path
from typing import Any, Optional

from lab_results.commons.config import load_orders, load_settings
from lab_results.commons.types import Settings
from lab_results.parsers.models import ReceiveSummary
from lab_results.parsers.oru import ResultsReceiver
from lab_results.services.repository import InMemoryRepository, ResultsRepository


class HL7Engine:
    """Engine facade that loads config and receives ORU messages into a repository.
    Acepta una ruta YAML, un dict ya cargado o un Settings.
    """

    def __init__(
        self, config_path_or_obj: Any = None, repository: Optional[ResultsRepository] = None
    ):
        if isinstance(config_path_or_obj, Settings):
            self.cfg = config_path_or_obj
        else:
            self.cfg = load_settings(config_path_or_obj)

        self.repository = repository if repository is not None else self._default_repository()

    def _default_repository(self) -> InMemoryRepository:
        results_cfg = self.cfg.results
        repo = InMemoryRepository(
            categories={results_cfg.category_name: results_cfg.category_id},
            documents_root=self.cfg.paths.documents,
        )
        if results_cfg.orders_file and Path(results_cfg.orders_file).exists():
            repo.load_orders(load_orders(results_cfg.orders_file))
        return repo

    def receive(self, hl7_text: str, now: Optional[Any] = None) -> ReceiveSummary:
        receiver = ResultsReceiver(self.repository, self.cfg.results.category_name, now=now)
        return receiver.receive(hl7_text)
