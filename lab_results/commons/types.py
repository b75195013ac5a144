from typing import List, Optional

from pydantic import BaseModel, Field


class OrderLineSeed(BaseModel):
    code: str
    name: str = ""
    seq: Optional[int] = None


class OrderSeed(BaseModel):
    id: int
    patient_id: int
    encounter_id: Optional[int] = None
    lines: List[OrderLineSeed] = []


class AppCfg(BaseModel):
    name: str = "lab-results-receiver"


class PathsCfg(BaseModel):
    logs_root: str = "logs"
    inbox: str = "inbox"
    output: str = "output"
    documents: str = "documents"


class ResultsCfg(BaseModel):
    category_name: str = "Lab Report"
    category_id: int = 1
    filename_glob: str = "*.hl7"
    orders_file: Optional[str] = None


class Settings(BaseModel):
    app: AppCfg = Field(default_factory=AppCfg)
    paths: PathsCfg = Field(default_factory=PathsCfg)
    results: ResultsCfg = Field(default_factory=ResultsCfg)
    log_level: str = "INFO"
