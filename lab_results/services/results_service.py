# lab_results/services/results_service.py
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Union

from lab_results.commons.errors import HL7ResultError
from lab_results.commons.logger import logger, message_logger


@dataclass
class BatchReport:
    messages: List[str] = field(default_factory=list)
    file_count: int = 0
    bad_count: int = 0

    @property
    def error(self) -> str:
        if self.bad_count:
            return f"{self.bad_count} error(s) encountered from new results"
        return ""


class ResultsService:
    """Procesa archivos HL7 de resultados uno a uno, en orden."""

    def __init__(self, engine, paths):
        self.engine = engine
        self.paths = paths

    def process_text(self, hl7_text: str, src: str = "") -> Optional[str]:
        """Devuelve None si todo fue bien o el texto del error."""
        try:
            summary = self.engine.receive(hl7_text)
        except HL7ResultError as ex:
            persisted = ex.persisted
            if persisted["reports"] or persisted["results"]:
                # Sin rollback: lo ya guardado de este mensaje permanece
                logger.warning(
                    f"{src}: {persisted['reports']} reporte(s) y {persisted['results']} "
                    f"resultado(s) quedaron guardados antes del error"
                )
            logger.error(f"Error procesando {src or 'mensaje'} [{ex.kind}]: {ex}")
            return str(ex)
        except Exception as ex:
            logger.exception(f"Error inesperado procesando {src or 'mensaje'}: {ex}")
            return f"Unexpected error: {ex}"
        message_logger(summary.message_id).info(
            f"Mensaje procesado desde {src or 'texto'}: {len(summary.report_ids)} reporte(s), "
            f"{len(summary.result_ids)} resultado(s)"
        )
        return None

    def process_files(self, files: Iterable[Union[str, Path]]) -> BatchReport:
        report = BatchReport()
        for f in files:
            f = Path(f)
            report.file_count += 1
            try:
                text = f.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as ex:
                logger.warning(f"No se pudo leer {f}: {ex}")
                report.messages.append(f"File '{f.name}' cannot be read, ignored")
                report.bad_count += 1
                continue
            msg = self.process_text(text, str(f))
            if msg:
                report.messages.append(f"Error processing file '{f.name}': {msg}")
                report.bad_count += 1
                continue
            report.messages.append(f"New file '{f.name}' processed successfully")
        return report

    def process_inbox(self, glob_pat: str) -> BatchReport:
        inbox = Path(self.paths.inbox)
        files = sorted(inbox.glob(glob_pat))
        if files:
            logger.info(f"Backlog detectado: {len(files)} archivo(s) en {inbox}")
        return self.process_files(files)
