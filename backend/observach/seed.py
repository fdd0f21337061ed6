"""Bootstrap data: the single seeded administrator account."""
import logging

from sqlalchemy.orm import Session

from observach.auth import hash_password
from observach.config import get_settings
from observach.models import Role, User
from observach.store import ContentStore

logger = logging.getLogger(__name__)


def seed_admin(db: Session) -> User:
    """Create the configured admin user unless its email is already registered."""
    settings = get_settings()
    store = ContentStore(db)
    existing = store.get_user_by_email(settings.admin_email)
    if existing:
        return existing
    admin = store.create_user(
        settings.admin_name,
        settings.admin_email,
        hash_password(settings.admin_password),
        Role.ADMIN,
    )
    logger.info("Seeded admin user %s", admin.email)
    return admin
