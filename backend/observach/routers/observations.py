"""Observation feed, submission gateway, votes and comments."""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from observach.auth import get_current_actor
from observach.config import get_settings
from observach.deps import get_engine, get_storage
from observach.errors import ValidationError
from observach.moderation import Actor, ModerationEngine
from observach.schemas import (
    CommentCreate,
    CreatedResponse,
    ObservationList,
    OkResponse,
    VoteRequest,
)
from observach.storage import PhotoStorage
from observach.store import OBSERVATION_TEXT_FIELDS, normalize_text, parse_observed_at

settings = get_settings()

router = APIRouter(prefix="/api/observations", tags=["observations"])


# ── Views ─────────────────────────────────────────────────────

@router.get("/public", response_model=ObservationList)
def list_public(
    actor: Actor = Depends(get_current_actor),
    engine: ModerationEngine = Depends(get_engine),
):
    return ObservationList(items=engine.public_view(actor))


@router.get("/mine", response_model=ObservationList)
def list_mine(
    actor: Actor = Depends(get_current_actor),
    engine: ModerationEngine = Depends(get_engine),
):
    return ObservationList(items=engine.mine_view(actor))


@router.get("/pending", response_model=ObservationList)
def list_pending(
    actor: Actor = Depends(get_current_actor),
    engine: ModerationEngine = Depends(get_engine),
):
    return ObservationList(items=engine.pending_queue(actor))


# ── Submission ────────────────────────────────────────────────

@router.post("", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_observation(
    popular_name: Optional[str] = Form(default=None, alias="popularName"),
    scientific_name: Optional[str] = Form(default=None, alias="scientificName"),
    group: Optional[str] = Form(default=None),
    location: Optional[str] = Form(default=None),
    sex: Optional[str] = Form(default=None),
    observed_at: Optional[str] = Form(default=None, alias="observedAt"),
    photo: Optional[UploadFile] = File(default=None),
    actor: Actor = Depends(get_current_actor),
    engine: ModerationEngine = Depends(get_engine),
    storage: PhotoStorage = Depends(get_storage),
):
    """Accept a multipart sighting report; the photo is stored before the row is written."""
    if photo is None or not photo.filename:
        raise ValidationError("Photo is required")

    fields = {
        "popular_name": popular_name,
        "scientific_name": scientific_name,
        "group": group,
        "location": location,
        "sex": sex,
        "observed_at": observed_at,
    }
    missing = [name for name in OBSERVATION_TEXT_FIELDS + ("observed_at",) if not normalize_text(fields[name])]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(sorted(missing))}")
    fields["observed_at"] = parse_observed_at(observed_at)

    content_type = photo.content_type or "application/octet-stream"
    if not content_type.startswith("image/"):
        raise ValidationError("Photo must be an image")
    payload = await photo.read(settings.max_upload_bytes + 1)
    if not payload:
        raise ValidationError("Photo is required")
    if len(payload) > settings.max_upload_bytes:
        raise ValidationError("Photo exceeds the maximum upload size")

    fields["photo_ref"] = storage.save(payload, photo.filename, content_type)
    try:
        obs = engine.submit_observation(actor, fields)
    except Exception:
        storage.delete(fields["photo_ref"])
        raise
    return CreatedResponse(id=obs.id)


# ── Community ─────────────────────────────────────────────────

@router.post("/{observation_id}/vote", response_model=OkResponse)
def cast_vote(
    observation_id: int,
    payload: VoteRequest,
    actor: Actor = Depends(get_current_actor),
    engine: ModerationEngine = Depends(get_engine),
):
    engine.vote(actor, observation_id, payload.value)
    return OkResponse()


@router.post("/{observation_id}/comments", response_model=OkResponse, status_code=status.HTTP_201_CREATED)
def create_comment(
    observation_id: int,
    payload: CommentCreate,
    actor: Actor = Depends(get_current_actor),
    engine: ModerationEngine = Depends(get_engine),
):
    engine.comment(actor, observation_id, payload.text)
    return OkResponse()
