"""
Evaluation Tasks for Worker
These tasks are executed by RQ workers to evaluate task solutions asynchronously
"""

import logging

from rq import get_current_job

from app.db.session import SessionLocal
from app.services.evaluation_service import (
    SolutionNotFound,
    mark_evaluation_failed,
    run_evaluation_for_solution,
)
from app.services.llm_client import EvaluatorUnavailable

logger = logging.getLogger(__name__)


def _has_retries_left() -> bool:
    job = get_current_job()
    return bool(job is not None and job.retries_left)


def evaluate_solution_task(solution_id: int) -> dict:
    """
    Worker task to evaluate a solution with the LLM.

    Enqueued by enqueue_evaluation_task() in queue.py with an RQ Retry
    policy. An unavailable evaluator re-raises while retries remain so
    RQ schedules the next attempt; on the last attempt the solution is
    marked 'failed' instead.

    Args:
        solution_id: ID of the task solution to evaluate

    Returns:
        Dictionary with the evaluation summary
    """
    db = SessionLocal()
    try:
        logger.info(f"Starting evaluation task for solution {solution_id}")

        solution = run_evaluation_for_solution(db, solution_id)

        logger.info(
            f"Completed evaluation task for solution {solution_id}: "
            f"status={solution.status}, rating={solution.rating}"
        )
        return {
            "status": "success",
            "solution_id": solution.id,
            "solution_status": solution.status,
            "rating": solution.rating,
        }

    except SolutionNotFound as e:
        logger.error(f"Evaluation skipped for solution {solution_id}: {e}")
        return {
            "status": "error",
            "solution_id": solution_id,
            "error": str(e),
        }

    except EvaluatorUnavailable as e:
        db.rollback()
        if _has_retries_left():
            logger.warning(
                f"Evaluator unavailable for solution {solution_id}, will retry: {e}"
            )
            raise

        mark_evaluation_failed(db, solution_id, str(e))
        return {
            "status": "error",
            "solution_id": solution_id,
            "solution_status": "failed",
            "error": str(e),
        }

    except Exception:
        db.rollback()
        logger.error(
            f"Unexpected error during evaluation task for solution {solution_id}",
            exc_info=True,
        )
        raise

    finally:
        db.close()
