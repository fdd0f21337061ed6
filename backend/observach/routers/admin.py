"""Admin moderation endpoints: approve or reject observations and comments."""
from fastapi import APIRouter, Depends

from observach.auth import get_current_actor
from observach.deps import get_engine
from observach.moderation import Actor, ModerationEngine
from observach.schemas import OkResponse, StatusUpdate

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.patch("/observations/{observation_id}/status", response_model=OkResponse)
def set_observation_status(
    observation_id: int,
    payload: StatusUpdate,
    actor: Actor = Depends(get_current_actor),
    engine: ModerationEngine = Depends(get_engine),
):
    engine.set_observation_status(actor, observation_id, payload.status)
    return OkResponse()


@router.patch("/comments/{comment_id}/status", response_model=OkResponse)
def set_comment_status(
    comment_id: int,
    payload: StatusUpdate,
    actor: Actor = Depends(get_current_actor),
    engine: ModerationEngine = Depends(get_engine),
):
    engine.set_comment_status(actor, comment_id, payload.status)
    return OkResponse()
