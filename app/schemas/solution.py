# app/schemas/solution.py
from datetime import datetime
from typing import Literal

from pydantic import Field

from app.schemas.base import CamelModel
from app.schemas.evaluation import EvaluationResult


class SolutionCreate(CamelModel):
    description: str
    task_description: str = ""
    mentor_check: bool = False
    # the caller may also pass userId in the query string
    user_id: int | None = None


class SolutionCreated(CamelModel):
    success: bool = True
    solution_id: int
    status: str


class MySolution(CamelModel):
    """What the solution tab renders; evaluation stays null until reviewed."""
    id: int
    content: str
    description: str
    status: str
    evaluation: EvaluationResult | None = None


class MySolutionResponse(CamelModel):
    solution: MySolution | None = None


class SolutionPublic(CamelModel):
    id: int
    task_id: int
    user_id: int
    description: str
    status: str
    feedback: str | None = None
    rating: int | None = None
    created_at: datetime | None = None
    reviewed_at: datetime | None = None


class SolutionUpdate(CamelModel):
    """Mentor review of a solution. The only status a mentor can set is 'reviewed'."""
    status: Literal["reviewed"] | None = None
    feedback: str | None = None
    rating: int | None = Field(default=None, ge=0, le=100)
