# app/services/solution_service.py
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.profile import Profile
from app.models.task_solution import SolutionStatus, TaskSolution
from app.schemas.solution import MySolution, SolutionCreate
from app.services.evaluation_service import decode_evaluation
from app.workers.queue import enqueue_evaluation_task

logger = logging.getLogger(__name__)


def create_solution_and_enqueue_task(
    db: Session,
    *,
    task_id: int,
    profile: Profile,
    obj_in: SolutionCreate,
) -> TaskSolution:
    """
    Store a submitted solution and schedule its evaluation.

    status starts as 'mentor_review' when the user asked for a mentor,
    otherwise 'pending' with an evaluation job on the queue. The response
    never waits for the evaluator.
    """
    status = (
        SolutionStatus.MENTOR_REVIEW.value
        if obj_in.mentor_check
        else SolutionStatus.PENDING.value
    )
    solution = TaskSolution(
        task_id=task_id,
        user_id=profile.id,
        description=obj_in.description,
        task_description=obj_in.task_description,
        status=status,
    )

    db.add(solution)
    db.commit()
    db.refresh(solution)

    if solution.status == SolutionStatus.PENDING.value:
        try:
            job_id = enqueue_evaluation_task(solution.id)
            logger.info(f"Enqueued evaluation job {job_id} for solution {solution.id}")
        except Exception as e:
            # the row stays pending; recover_stale_solutions picks it up later
            logger.error(
                f"Could not enqueue evaluation for solution {solution.id}: {e}",
                exc_info=True,
            )

    return solution


def get_solution(db: Session, solution_id: int) -> Optional[TaskSolution]:
    return db.get(TaskSolution, solution_id)


def get_latest_solution(
    db: Session,
    *,
    task_id: int,
    user_id: int,
) -> Optional[TaskSolution]:
    """
    The user's current solution for a task: latest wins, ties on
    created_at broken by the higher id.
    """
    return (
        db.query(TaskSolution)
        .filter(
            TaskSolution.task_id == task_id,
            TaskSolution.user_id == user_id,
        )
        .order_by(TaskSolution.created_at.desc(), TaskSolution.id.desc())
        .first()
    )


def to_my_solution(solution: TaskSolution) -> MySolution:
    return MySolution(
        id=solution.id,
        content=solution.description,
        description=solution.description,
        status=solution.status,
        evaluation=decode_evaluation(solution),
    )


def list_solutions_for_task(
    db: Session,
    *,
    task_id: int,
    skip: int = 0,
    limit: int = 100,
) -> List[TaskSolution]:
    return (
        db.query(TaskSolution)
        .filter(TaskSolution.task_id == task_id)
        .order_by(TaskSolution.created_at.desc(), TaskSolution.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def list_solutions_for_user(
    db: Session,
    *,
    user_id: int,
    skip: int = 0,
    limit: int = 100,
) -> List[TaskSolution]:
    return (
        db.query(TaskSolution)
        .filter(TaskSolution.user_id == user_id)
        .order_by(TaskSolution.created_at.desc(), TaskSolution.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
