"""Draft routes: save/update, list, load and soft delete."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from draftbox.dependencies import get_draft_service
from draftbox.schemas.draft import (
    DraftData,
    DraftLoadResponse,
    DraftSaveRequest,
    DraftSaveResponse,
    DraftStatusResponse,
    DraftSummary,
)
from draftbox.services.draft_service import DraftOutcome, DraftResult, DraftService

router = APIRouter(prefix="/drafts", tags=["drafts"])

OUTCOME_STATUS_CODES = {
    DraftOutcome.SUCCESS: 200,
    DraftOutcome.BUSY: 503,
    DraftOutcome.NOT_FOUND: 404,
    DraftOutcome.ARCHIVED: 410,
    DraftOutcome.CONFLICT: 409,
    DraftOutcome.ERROR: 500,
}


def result_response(result: DraftResult, body) -> JSONResponse:
    """Serialize a response body with the HTTP status matching the outcome."""
    headers = {"Retry-After": "1"} if result.outcome is DraftOutcome.BUSY else None
    return JSONResponse(
        status_code=OUTCOME_STATUS_CODES[result.outcome],
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers=headers,
    )


def _status(result: DraftResult) -> str:
    return "success" if result.ok else "error"


@router.post("", response_model=DraftSaveResponse, response_model_exclude_none=True)
async def save_or_update_draft(
    body: DraftSaveRequest,
    service: DraftService = Depends(get_draft_service),
):
    """Create a draft, or update the draft whose id is given."""
    result = await service.save_or_update(
        draft_id=body.id,
        title=body.title,
        class_label=body.class_label,
        author_name=body.author_name,
        content=body.content,
    )
    return result_response(
        result,
        DraftSaveResponse(status=_status(result), message=result.message, id=result.draft_id if result.ok else None),
    )


@router.get("", response_model=list[DraftSummary])
async def get_draft_list(service: DraftService = Depends(get_draft_service)):
    """Most recently updated drafts, newest first."""
    items = await service.get_draft_list()
    return [DraftSummary.from_item(item) for item in items]


@router.get("/{draft_id}", response_model=DraftLoadResponse, response_model_exclude_none=True)
async def load_draft(draft_id: str, service: DraftService = Depends(get_draft_service)):
    result = await service.load_draft(draft_id)
    if result.ok:
        body = DraftLoadResponse(status="success", data=DraftData.from_content(result.draft))
    else:
        body = DraftLoadResponse(status="error", message=result.message)
    return result_response(result, body)


@router.delete("/{draft_id}", response_model=DraftStatusResponse)
async def delete_draft(draft_id: str, service: DraftService = Depends(get_draft_service)):
    """Archive a draft. The data is kept and can be restored by saving it again."""
    result = await service.delete_draft(draft_id)
    return result_response(result, DraftStatusResponse(status=_status(result), message=result.message))
