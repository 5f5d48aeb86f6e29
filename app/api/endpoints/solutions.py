# app/api/endpoints/solutions.py
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.security import resolve_profile
from app.db.session import get_db
from app.schemas.solution import (
    MySolutionResponse,
    SolutionCreate,
    SolutionCreated,
    SolutionPublic,
    SolutionUpdate,
)
from app.services import evaluation_service, solution_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["solutions"])


@router.post(
    "/tasks/{task_id}/solutions",
    response_model=SolutionCreated,
    status_code=status.HTTP_201_CREATED,
)
def create_solution(
    task_id: int,
    obj_in: SolutionCreate,
    user_id: int | None = Query(None, alias="userId"),
    db: Session = Depends(get_db),
):
    """
    Submit a solution. Responds right away with the new row's status;
    the AI evaluation runs on the worker and the client polls /my.
    """
    profile = resolve_profile(db, obj_in.user_id if obj_in.user_id is not None else user_id)

    try:
        solution = solution_service.create_solution_and_enqueue_task(
            db, task_id=task_id, profile=profile, obj_in=obj_in
        )
    except SQLAlchemyError:
        db.rollback()
        logger.error(
            f"Failed to save solution for task {task_id}, user {profile.id}",
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save solution",
        )

    return SolutionCreated(success=True, solution_id=solution.id, status=solution.status)


@router.get("/tasks/{task_id}/solutions/my", response_model=MySolutionResponse)
def get_my_solution(
    task_id: int,
    user_id: int | None = Query(None, alias="userId"),
    db: Session = Depends(get_db),
):
    """
    The caller's latest solution for the task. evaluation is null until
    the status is 'reviewed'.
    """
    profile = resolve_profile(db, user_id)
    solution = solution_service.get_latest_solution(
        db, task_id=task_id, user_id=profile.id
    )
    if solution is None:
        return MySolutionResponse(solution=None)
    return MySolutionResponse(solution=solution_service.to_my_solution(solution))


@router.get("/tasks/{task_id}/solutions", response_model=List[SolutionPublic])
def list_task_solutions(
    task_id: int,
    db: Session = Depends(get_db),
    skip: int = 0,
    limit: int = Query(100, le=500),
):
    return solution_service.list_solutions_for_task(
        db, task_id=task_id, skip=skip, limit=limit
    )


@router.get("/users/{user_id}/solutions", response_model=List[SolutionPublic])
def list_user_solutions(
    user_id: int,
    db: Session = Depends(get_db),
    skip: int = 0,
    limit: int = Query(100, le=500),
):
    return solution_service.list_solutions_for_user(
        db, user_id=user_id, skip=skip, limit=limit
    )


@router.patch("/solutions/{solution_id}", response_model=SolutionPublic)
def review_solution(
    solution_id: int,
    obj_in: SolutionUpdate,
    user_id: int | None = Query(None, alias="userId"),
    db: Session = Depends(get_db),
):
    """
    Mentor review:
      - write feedback / rating
      - status 'mentor_review' -> 'reviewed' (terminal)
    Pending or failed rows belong to the AI evaluation and get 409.
    """
    reviewer = resolve_profile(db, user_id)
    if not reviewer.is_mentor:
        raise HTTPException(status_code=403, detail="Only mentors can review solutions")

    solution = solution_service.get_solution(db, solution_id)
    if not solution:
        raise HTTPException(status_code=404, detail="Solution not found")

    try:
        solution = evaluation_service.mentor_review(db, solution=solution, obj_in=obj_in)
    except evaluation_service.InvalidTransition as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except SQLAlchemyError:
        db.rollback()
        logger.error(f"Failed to update solution {solution_id}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update solution",
        )

    logger.info(
        f"Solution {solution_id} updated by mentor {reviewer.id}: status={solution.status}"
    )
    return solution
