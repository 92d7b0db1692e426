from datetime import date
from typing import Literal

from pydantic import BaseModel, Field

from vn_price_compare.domain.models import Exchange

SortOption = Literal["symbol", "change", "start_price", "end_price", "company"]


class Settings(BaseModel):
    exchange: Exchange
    start: date
    end: date
    output: str
    log_level: str = "INFO"
    timeout: float = Field(20, gt=0)
    deadline: float | None = Field(None, gt=0)
    sort_by: SortOption | None = None
    descending: bool = False
    vn30_only: bool = False
    search: str | None = None
    companies: str | None = None
    artifacts_dir: str | None = "artifacts"
