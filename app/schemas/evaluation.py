# app/schemas/evaluation.py
from pydantic import Field

from app.schemas.base import CamelModel


class MetricEntry(CamelModel):
    label: str
    percentage: int = Field(ge=0, le=100)
    grade: str


class EvaluationResult(CamelModel):
    """Transient evaluator output; persisted JSON-encoded in TaskSolution.feedback."""

    feedback: str
    metrics: list[MetricEntry] = []
    is_correct: bool = False

    @property
    def average_percentage(self) -> int:
        if not self.metrics:
            return 0
        return round(sum(m.percentage for m in self.metrics) / len(self.metrics))
