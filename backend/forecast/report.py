# backend/forecast/report.py
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ModelType = Literal["neural-network", "statistical"]


class _ReportModel(BaseModel):
    # serialised with camelCase keys for the frontend
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Summary(_ReportModel):
    top_spending_categories: List[str]
    average_monthly_spending: float
    average_monthly_revenue: float
    spending_trend: str
    total_historical_cost: float
    total_historical_revenue: float


class Predictions(_ReportModel):
    months: List[str]
    costs: Dict[str, List[float]]
    revenue: Optional[Dict[str, List[float]]] = None
    total_cost: List[float]
    total_revenue: List[float]
    net_balance: List[float]


class CategoryInsight(_ReportModel):
    current_average: float
    predicted_trend: str
    recommendation: str


class Metadata(_ReportModel):
    analyzed_at: datetime
    transaction_count: int = Field(..., ge=0)
    months_analyzed: int = Field(..., ge=1)
    model_type: ModelType


class AnalysisReport(_ReportModel):
    summary: Summary
    predictions: Predictions
    insights: List[str]
    category_breakdown: Dict[str, CategoryInsight]
    metadata: Metadata

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
