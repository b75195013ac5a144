import json
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from lab_results.commons.errors import HL7ResultError
from lab_results.commons.hl7_engine import HL7Engine
from lab_results.commons.logger import setup_logging
from lab_results.services.results_service import ResultsService

app = typer.Typer(add_completion=False, help="Lab Results Receiver (HL7 ORU^R01)")


def _write_output(output_dir: str, data: dict) -> Path:
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    ts = datetime.utcnow().strftime("%Y%m%d-%H%M%S-%f")
    p = out / f"{ts}_results.json"
    p.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
    return p


@app.command()
def receive(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="archivo HL7 a procesar"),
    config: Optional[str] = typer.Option(None, help="ruta del settings.yaml"),
):
    """Procesa un solo mensaje e imprime el resumen en JSON."""
    engine = HL7Engine(config)
    setup_logging(engine.cfg.paths.logs_root, engine.cfg.log_level, engine.cfg.app.name)
    try:
        summary = engine.receive(file.read_text(encoding="utf-8"))
    except HL7ResultError as ex:
        typer.echo(f"Error processing file '{file.name}': {ex}", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(asdict(summary), ensure_ascii=False, indent=2))


@app.command()
def results(config: Optional[str] = typer.Option(None, help="ruta del settings.yaml")):
    """Una pasada sobre el inbox: procesa los archivos en orden y guarda lo persistido en JSON."""
    engine = HL7Engine(config)
    logger = setup_logging(engine.cfg.paths.logs_root, engine.cfg.log_level, engine.cfg.app.name)
    logger.log("INFO", f"{engine.cfg.app.name}: iniciando lectura de resultados pendientes")
    svc = ResultsService(engine, engine.cfg.paths)
    batch = svc.process_inbox(engine.cfg.results.filename_glob)
    for m in batch.messages:
        typer.echo(m)
    if batch.file_count:
        p = _write_output(engine.cfg.paths.output, engine.repository.dump())
        logger.info(f"Resultados escritos en {p}")
    if batch.bad_count:
        typer.echo(batch.error, err=True)
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
