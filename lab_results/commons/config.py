import os
import sys
from pathlib import Path
from typing import Any, List, Union

import yaml

from lab_results.commons.types import OrderSeed, Settings

DEFAULT_SETTINGS = "lab_results/configs/settings.yaml"


def resource_path(relative_path: str) -> str:
    """Devuelve la ruta absoluta a un recurso, ya sea ejecutando como .exe o en desarrollo"""
    if hasattr(sys, "_MEIPASS"):
        # Si es un ejecutable generado por PyInstaller
        base_path = sys._MEIPASS
    else:
        base_path = os.path.abspath(".")

    return os.path.join(base_path, relative_path)


def load_settings(path_or_obj: Union[str, Path, dict, None] = None) -> Settings:
    # Soportar rutas o dict ya cargado
    if isinstance(path_or_obj, dict):
        return Settings.model_validate(path_or_obj)
    config_path = resource_path(str(path_or_obj or DEFAULT_SETTINGS))
    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    settings = Settings.model_validate(data)
    if os.getenv("LOG_LEVEL"):
        settings.log_level = os.environ["LOG_LEVEL"]
    return settings


def load_orders(path: Union[str, Path]) -> List[OrderSeed]:
    with open(path, "r", encoding="utf-8") as f:
        data: Any = yaml.safe_load(f) or {}
    items = data.get("orders", []) if isinstance(data, dict) else data
    return [OrderSeed.model_validate(o) for o in items]
