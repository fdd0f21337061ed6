"""FastAPI dependencies wiring the store and engine onto a request session."""
from fastapi import Depends
from sqlalchemy.orm import Session

from observach.database import get_db
from observach.moderation import ModerationEngine
from observach.storage import PhotoStorage, get_photo_storage
from observach.store import ContentStore


def get_store(db: Session = Depends(get_db)) -> ContentStore:
    return ContentStore(db)


def get_engine(store: ContentStore = Depends(get_store)) -> ModerationEngine:
    return ModerationEngine(store)


def get_storage() -> PhotoStorage:
    return get_photo_storage()
