from pydantic import BaseModel, Field
from typing import Any, List, Optional

from forecast.report import AnalysisReport


class TransactionIn(BaseModel):
    # date and amount stay loose: bad values are skipped or zeroed, not rejected
    date: Any = None
    type: str = Field(..., description="'cost' or 'revenue'")
    category: Optional[str] = None
    amount: Any = 0


class AnalyzeRequest(BaseModel):
    transactions: List[TransactionIn] = Field(default_factory=list)


class CachedReportResponse(BaseModel):
    recent: bool
    report: AnalysisReport
