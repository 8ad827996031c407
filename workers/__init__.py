# =============================================================================
# workers/ - Celery Background Task Workers
# =============================================================================
# This package contains the Celery configuration and task definitions for
# scheduled listing maintenance.
#
# Components:
# - celery_app.py: Celery application configuration
# - tasks.py: Task definitions (listing expiry sweep)
# - config.py: Worker settings and the beat schedule
#
# Usage:
#   # Start worker with the embedded beat scheduler
#   celery -A workers.celery_app worker --beat -Q default,maintenance --loglevel=info
#
#   # Trigger a sweep by hand
#   from workers.tasks import run_listing_expiry_sweep
#   result = run_listing_expiry_sweep.delay()
# =============================================================================

from .celery_app import celery_app
from . import tasks

__all__ = [
    "celery_app",
    "tasks",
]
