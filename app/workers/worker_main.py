# app/workers/worker_main.py

import logging

from rq import Queue, SimpleWorker

from app.core.config import settings
from app.core.logging_config import setup_logging
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.services.evaluation_service import recover_stale_solutions
from app.workers.queue import enqueue_evaluation_task, get_redis_connection

logger = logging.getLogger(__name__)

QUEUE_NAMES = [settings.EVALUATION_QUEUE_NAME]


def recover_on_startup() -> int:
    db = SessionLocal()
    try:
        return recover_stale_solutions(db, enqueue=enqueue_evaluation_task)
    finally:
        db.close()


def main():
    setup_logging()
    Base.metadata.create_all(bind=engine)

    requeued = recover_on_startup()
    logger.info(f"Worker starting on {QUEUE_NAMES}, re-enqueued {requeued} stale solutions")

    redis_conn = get_redis_connection()
    queues = [Queue(name, connection=redis_conn) for name in QUEUE_NAMES]

    # the scheduler is what runs Retry intervals
    worker = SimpleWorker(queues, connection=redis_conn)
    worker.work(with_scheduler=True)


if __name__ == "__main__":
    main()
