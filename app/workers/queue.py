# app/workers/queue.py

from redis import Redis
from rq import Queue, Retry

from app.core.config import settings

_redis_conn: Redis | None = None


def get_redis_connection() -> Redis:
    global _redis_conn
    if _redis_conn is None:
        redis_url = settings.REDIS_URL
        _redis_conn = Redis.from_url(redis_url)
    return _redis_conn


def get_queue(name: str | None = None) -> Queue:
    return Queue(
        name or settings.EVALUATION_QUEUE_NAME,
        connection=get_redis_connection(),
        is_async=settings.RQ_IS_ASYNC,
    )


def enqueue_evaluation_task(solution_id: int) -> str:
    from app.workers.tasks import evaluate_solution_task

    q = get_queue(settings.EVALUATION_QUEUE_NAME)
    job = q.enqueue(
        evaluate_solution_task,
        solution_id,
        retry=Retry(
            max=settings.EVALUATION_MAX_RETRIES,
            interval=settings.EVALUATION_RETRY_INTERVALS,
        ),
        job_timeout=settings.EVALUATION_JOB_TIMEOUT,
        description=f"evaluate task solution {solution_id}",
    )
    return job.id
