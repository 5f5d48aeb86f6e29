# app/services/evaluation_service.py
from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.task_solution import SolutionStatus, TaskSolution
from app.schemas.evaluation import EvaluationResult
from app.schemas.solution import SolutionUpdate
from app.services.llm_client import (
    CORRECT_THRESHOLD,
    EvaluationError,
    request_evaluation,
)

logger = logging.getLogger(__name__)

Evaluator = Callable[[str, str], EvaluationResult]

MENTOR_EDITABLE_STATUSES = (
    SolutionStatus.MENTOR_REVIEW.value,
    SolutionStatus.REVIEWED.value,
)


class SolutionNotFound(EvaluationError):
    pass


class InvalidTransition(EvaluationError):
    pass


def _get_solution(db: Session, solution_id: int) -> TaskSolution:
    solution: Optional[TaskSolution] = db.get(TaskSolution, solution_id)
    if solution is None:
        raise SolutionNotFound(f"solution {solution_id} not found")
    return solution


def apply_evaluation(
    db: Session,
    solution: TaskSolution,
    result: EvaluationResult,
) -> TaskSolution:
    """
    Write an evaluation back onto the row:
      - feedback <- JSON-encoded result
      - rating <- mean metric percentage
      - status: 'pending' -> 'reviewed'
    """
    solution.feedback = result.model_dump_json(by_alias=True)
    solution.rating = result.average_percentage
    solution.status = SolutionStatus.REVIEWED.value
    solution.reviewed_at = datetime.now(timezone.utc)

    db.add(solution)
    db.commit()
    db.refresh(solution)
    return solution


def run_evaluation_for_solution(
    db: Session,
    solution_id: int,
    *,
    evaluator: Evaluator | None = None,
) -> TaskSolution:
    """
    Called by the worker: evaluate one solution and store the result.

    Only a 'pending' row is evaluated, so a duplicated job never
    overwrites a reviewed (or mentor) solution.

    Raises:
        SolutionNotFound: unknown solution_id
        EvaluatorUnavailable: the LLM call failed; the caller decides on retry
    """
    solution = _get_solution(db, solution_id)

    if solution.status != SolutionStatus.PENDING.value:
        logger.info(
            f"Skipping evaluation of solution {solution_id}: status is {solution.status}"
        )
        return solution

    solution.evaluation_attempts = (solution.evaluation_attempts or 0) + 1
    db.add(solution)
    db.commit()

    evaluate = evaluator or request_evaluation
    result = evaluate(solution.task_description or "", solution.description)

    # the row may have been reviewed by someone else while the LLM was busy
    db.refresh(solution)
    if solution.status != SolutionStatus.PENDING.value:
        logger.info(
            f"Discarding evaluation of solution {solution_id}: status changed to {solution.status}"
        )
        return solution

    solution = apply_evaluation(db, solution, result)
    logger.info(
        f"Solution {solution_id} reviewed: rating={solution.rating}, "
        f"is_correct={result.is_correct}"
    )
    return solution


def mark_evaluation_failed(db: Session, solution_id: int, reason: str) -> TaskSolution:
    """Dead-letter a pending solution after its retries are exhausted."""
    solution = _get_solution(db, solution_id)
    if solution.status != SolutionStatus.PENDING.value:
        return solution

    solution.status = SolutionStatus.FAILED.value
    db.add(solution)
    db.commit()
    db.refresh(solution)
    logger.error(f"Evaluation of solution {solution_id} failed permanently: {reason}")
    return solution


def mentor_review(
    db: Session,
    *,
    solution: TaskSolution,
    obj_in: SolutionUpdate,
) -> TaskSolution:
    """
    Mentor (or admin) updates a solution awaiting or past mentor review.
    'mentor_review' -> 'reviewed'; once reviewed, only feedback and rating
    may change. Rows owned by the AI pipeline are rejected.
    """
    update_data = obj_in.model_dump(exclude_unset=True)
    # status is NOT NULL; an explicit null means "leave it"
    if update_data.get("status") is None:
        update_data.pop("status", None)
    new_status = update_data.get("status")

    if solution.status not in MENTOR_EDITABLE_STATUSES:
        raise InvalidTransition(
            f"solution {solution.id} is {solution.status} and is not open for mentor review"
        )

    for field, value in update_data.items():
        setattr(solution, field, value)

    if new_status == SolutionStatus.REVIEWED.value and solution.reviewed_at is None:
        solution.reviewed_at = datetime.now(timezone.utc)

    db.add(solution)
    db.commit()
    db.refresh(solution)
    return solution


def decode_evaluation(solution: TaskSolution) -> EvaluationResult | None:
    """
    Turn the stored feedback back into an EvaluationResult.
    Returns None until the solution is reviewed.
    """
    if solution.status != SolutionStatus.REVIEWED.value or not solution.feedback:
        return None

    try:
        return EvaluationResult.model_validate(json.loads(solution.feedback))
    except (ValueError, TypeError, ValidationError):
        pass

    # plain text written by a mentor
    rating = solution.rating or 0
    return EvaluationResult(
        feedback=solution.feedback,
        metrics=[],
        is_correct=rating >= CORRECT_THRESHOLD,
    )


def list_stale_pending_solutions(
    db: Session,
    *,
    older_than: timedelta,
    limit: int = 100,
) -> List[TaskSolution]:
    cutoff = datetime.now(timezone.utc) - older_than
    return (
        db.query(TaskSolution)
        .filter(
            TaskSolution.status == SolutionStatus.PENDING.value,
            TaskSolution.created_at < cutoff,
        )
        .order_by(TaskSolution.created_at.asc())
        .limit(limit)
        .all()
    )


def recover_stale_solutions(
    db: Session,
    *,
    enqueue: Callable[[int], str],
    older_than: timedelta | None = None,
) -> int:
    """
    Re-enqueue pending solutions whose job was lost (worker restart, Redis
    flush, failed enqueue). Rows that already used up their attempts are
    marked failed instead. Returns the number of re-enqueued rows.
    """
    older_than = older_than or timedelta(minutes=settings.STALE_PENDING_MINUTES)
    max_attempts = settings.EVALUATION_MAX_RETRIES + 1

    requeued = 0
    for solution in list_stale_pending_solutions(db, older_than=older_than):
        if (solution.evaluation_attempts or 0) >= max_attempts:
            mark_evaluation_failed(
                db, solution.id, f"gave up after {solution.evaluation_attempts} attempts"
            )
            continue
        enqueue(solution.id)
        requeued += 1

    if requeued:
        logger.info(f"Re-enqueued {requeued} stale pending solutions")
    return requeued
