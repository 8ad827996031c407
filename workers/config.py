# =============================================================================
# workers/config.py - Celery Worker Configuration
# =============================================================================
# Queues, routing, limits and the beat schedule for the expiry sweep.
# Applied with celery_app.config_from_object("workers.config:CeleryConfig").
# =============================================================================

from celery.schedules import crontab

from app.config import settings


class CeleryConfig:
    """Worker settings for the Tesatiki maintenance worker."""

    # -------------------------------------------------------------------------
    # Broker (Redis, shared with the response cache)
    # -------------------------------------------------------------------------

    broker_url = settings.REDIS_URL
    result_backend = settings.REDIS_URL

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    # A sweep interrupted by a worker crash is redelivered
    task_acks_late = True
    worker_prefetch_multiplier = 1

    # Sweep results are kept for a day
    result_expires = 86400

    # A full sweep pages through every expired listing's image versions
    task_time_limit = 1800
    task_soft_time_limit = 1500

    task_serializer = "json"
    result_serializer = "json"
    accept_content = ["json"]

    # -------------------------------------------------------------------------
    # Queues
    # -------------------------------------------------------------------------

    task_queues = {
        "default": {
            "exchange": "default",
            "routing_key": "default",
        },
        "maintenance": {
            "exchange": "maintenance",
            "routing_key": "maintenance",
        },
    }

    task_routes = {
        "workers.tasks.run_listing_expiry_sweep": {"queue": "maintenance"},
    }

    task_default_queue = "default"

    # -------------------------------------------------------------------------
    # Beat Schedule
    # -------------------------------------------------------------------------

    beat_schedule = {
        "listing-expiry-sweep": {
            "task": "workers.tasks.run_listing_expiry_sweep",
            "schedule": crontab(hour=settings.SWEEP_CRON_HOUR, minute=0),
        },
    }

    worker_send_task_events = True
    task_send_sent_event = True

    timezone = "UTC"
    enable_utc = True
