from sqlalchemy import select
from app.core.config import settings
from app.core.logger import logger
from app.core.security import hash_password
from app.database import SessionLocal, TransactionScope
from app.models.auth import User


def ensure_admin_user() -> None:
    """Make sure the configured admin account exists and can sign in.

    An account already registered under ADMIN_EMAIL is promoted instead of
    duplicated; its password is left alone.
    """
    with SessionLocal() as db, TransactionScope(db):
        admin = db.execute(select(User).where(User.email == settings.ADMIN_EMAIL)).scalars().first()

        if admin is None:
            db.add(User(
                username=settings.ADMIN_EMAIL.split('@')[0],
                email=settings.ADMIN_EMAIL,
                hashed_password=hash_password(settings.ADMIN_PASSWORD),
                role='admin',
                is_verified=True,
                is_active=True,
            ))
            logger.info(f"Admin account {settings.ADMIN_EMAIL} created")
            return

        if admin.role != 'admin' or admin.is_blocked or not admin.is_active:
            admin.role = 'admin'
            admin.is_blocked = False
            admin.is_active = True
            admin.is_verified = True
            logger.warning(f"Account {settings.ADMIN_EMAIL} restored as admin")
