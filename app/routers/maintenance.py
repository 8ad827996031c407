# =============================================================================
# app/routers/maintenance.py - Manual Maintenance Trigger
# =============================================================================
# POST /api/run-scheduled-task runs the listing expiry sweep inline. The
# same sweep runs daily from Celery beat (workers/tasks.py).
# =============================================================================

import logging

from fastapi import APIRouter, Depends

from app.auth import AuthUser, require_admin
from app.dependencies import MaintenanceServiceDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Maintenance"])


@router.post("/api/run-scheduled-task")
async def run_scheduled_task(
    maintenance: MaintenanceServiceDep,
    admin: AuthUser = Depends(require_admin),
) -> dict:
    """
    Demote expired paid listings and delete expired free ones.

    Per-listing failures are listed in the response; they do not stop the
    sweep.
    """
    logger.info(f"Manual expiry sweep triggered by admin {admin.user_id}")
    report = await maintenance.run_expiry_sweep()
    return report.to_response()
