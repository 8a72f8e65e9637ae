import logging
from datetime import datetime, timezone
from traceback import format_exc
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.models.reconcile import ReconcileResponse, RehostSummary
from app.services.errors import PersistenceError
from app.services.media_rehost import MediaRehoster, get_media_rehoster
from app.services.reconciler import TaskReconciler, get_task_reconciler

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Scheduled jobs. Access is restricted by host routing, not by tokens.
cron_router = APIRouter()


@cron_router.get("/update-video-status", response_model=ReconcileResponse)
async def update_video_status(
    reconciler: Annotated[TaskReconciler, Depends(get_task_reconciler)],
):
    """Run one reconciliation pass over all unfinished video tasks."""
    try:
        summary = await reconciler.reconcile()
    except PersistenceError as e:
        logger.error(f"Failed to update video statuses: {str(e)}\n{format_exc()}")
        return JSONResponse(
            status_code=500, content={"success": False, "error": str(e)}
        )

    for result in summary.results:
        if not result.success:
            logger.warning(
                f"Task {result.id} ({result.external_task_id}) failed: {result.error}"
            )

    return ReconcileResponse(
        success=True,
        processed=summary.processed,
        success_count=summary.succeeded,
        fail_count=summary.failed,
        timestamp=datetime.now(timezone.utc),
    )


@cron_router.post("/rehost-media", response_model=RehostSummary)
async def rehost_media(
    rehoster: Annotated[MediaRehoster, Depends(get_media_rehoster)],
):
    """Copy media of completed tasks into our storage bucket."""
    try:
        return await rehoster.rehost_completed()
    except PersistenceError as e:
        logger.error(f"Failed to rehost media: {str(e)}\n{format_exc()}")
        return JSONResponse(
            status_code=500, content={"success": False, "error": str(e)}
        )
