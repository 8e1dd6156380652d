"""Admin routes: permanent removal of archived drafts."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from draftbox.config import Settings, get_settings
from draftbox.dependencies import get_draft_service
from draftbox.routers.drafts import result_response
from draftbox.schemas.draft import DraftStatusResponse
from draftbox.services.draft_service import DraftService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])


@router.delete("/drafts/{draft_id}", response_model=DraftStatusResponse)
async def purge_draft(
    draft_id: str,
    settings: Settings = Depends(get_settings),
    service: DraftService = Depends(get_draft_service),
):
    """Permanently remove an archived draft.

    Disabled unless `ADMIN_PURGE_ENABLED` is set. Active drafts must be
    archived through the normal delete first.
    """
    if not settings.admin_purge_enabled:
        logger.warning("Rejected purge of draft=%s: admin purge disabled", draft_id)
        raise HTTPException(status_code=403, detail="Draft purge is disabled")

    result = await service.purge_draft(draft_id)
    return result_response(
        result,
        DraftStatusResponse(status="success" if result.ok else "error", message=result.message),
    )
