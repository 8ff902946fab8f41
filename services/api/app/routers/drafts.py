"""
Draft endpoints:
  POST /drafts — save a new draft (every field optional)
  GET  /drafts — the caller's drafts
"""
from fastapi import APIRouter, Depends

from app.identity import require_user_id
from app.repository import ContentRepository, get_repository
from app.schemas import DraftCreate, DraftListResponse, DraftResponse

router = APIRouter()


@router.post("/drafts", response_model=DraftResponse)
async def save_draft(
    body: DraftCreate,
    user_id: str = Depends(require_user_id),
    repo: ContentRepository = Depends(get_repository),
):
    draft = await repo.save_draft(
        user_id,
        title=body.title,
        description=body.description,
        content=body.content,
        category=body.category,
        tags=body.tags,
    )
    return DraftResponse(draft=draft)


@router.get("/drafts", response_model=DraftListResponse)
async def list_drafts(
    user_id: str = Depends(require_user_id),
    repo: ContentRepository = Depends(get_repository),
):
    return DraftListResponse(drafts=await repo.list_drafts(user_id))
