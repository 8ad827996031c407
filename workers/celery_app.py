# =============================================================================
# workers/celery_app.py - Celery Application
# =============================================================================
# The Celery app that runs the daily listing expiry sweep. Broker and result
# backend share the Redis instance used by the response cache.
#
# Usage:
#   # Worker with embedded beat scheduler
#   celery -A workers.celery_app worker --beat -Q default,maintenance --loglevel=info
#
#   # Or through the installed script
#   start-worker
# =============================================================================

import logging

from celery import Celery
from celery.signals import task_failure, task_postrun, task_prerun
from dotenv import load_dotenv

# Workers are started outside uvicorn, so .env is loaded here before settings
load_dotenv()

from app.config import settings  # noqa: E402

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def _redacted(url: str) -> str:
    return url.split("@")[-1] if "@" in url else url


def create_celery_app() -> Celery:
    """Build the worker app; settings come from workers.config.CeleryConfig."""
    app = Celery(
        "tesatiki_worker",
        broker=settings.REDIS_URL,
        backend=settings.REDIS_URL,
        include=["workers.tasks"],
    )
    app.config_from_object("workers.config:CeleryConfig")

    logger.info(f"Tesatiki worker app using broker {_redacted(settings.REDIS_URL)}")
    return app


celery_app = create_celery_app()


# =============================================================================
# Task Lifecycle Logging
# =============================================================================

@task_prerun.connect
def log_task_start(sender=None, task_id=None, task=None, **extra):
    logger.info(f"Running {task.name} [{task_id}]")


@task_postrun.connect
def log_task_end(sender=None, task_id=None, task=None, state=None, **extra):
    logger.info(f"Finished {task.name} [{task_id}] state={state}")


@task_failure.connect
def log_task_failure(sender=None, task_id=None, exception=None, **extra):
    logger.error(f"{sender.name} [{task_id}] raised: {exception}")


# =============================================================================
# CLI Entry Point
# =============================================================================

def main():
    """Start a worker with an embedded beat scheduler (start-worker script)."""
    logger.info("Starting Tesatiki worker (queues: default, maintenance)")
    celery_app.worker_main([
        "worker",
        "--beat",
        "--loglevel=info",
        "--concurrency=2",
        "-Q", "default,maintenance",
    ])


if __name__ == "__main__":
    main()
