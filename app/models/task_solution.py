# app/models/task_solution.py
import enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Index,
)
from sqlalchemy.sql import func

from app.db.base_class import Base


class SolutionStatus(str, enum.Enum):
    PENDING = "pending"
    MENTOR_REVIEW = "mentor_review"
    REVIEWED = "reviewed"
    FAILED = "failed"


# statuses the client keeps polling on
IN_PROGRESS_STATUSES = (SolutionStatus.PENDING.value, SolutionStatus.MENTOR_REVIEW.value)
TERMINAL_STATUSES = (SolutionStatus.REVIEWED.value, SolutionStatus.FAILED.value)


class TaskSolution(Base):
    __tablename__ = "task_solutions"
    __table_args__ = (
        Index("ix_task_solutions_task_user_created", "task_id", "user_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)

    task_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)

    description = Column(Text, nullable=False)
    # kept so a lost evaluation job can be re-enqueued from the row alone
    task_description = Column(Text, nullable=True)

    # pending / mentor_review / reviewed / failed
    status = Column(
        String(20), nullable=False, default=SolutionStatus.PENDING.value, index=True
    )

    # raw mentor text, or the JSON-encoded evaluation result
    feedback = Column(Text, nullable=True)
    rating = Column(Integer, nullable=True)

    evaluation_attempts = Column(Integer, nullable=False, default=0)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )
