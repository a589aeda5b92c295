from typing import Callable, List

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings
from app.core.logger import logger
from app.models.base import Base


db_engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args={"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {},
)


if settings.DATABASE_URL.startswith("sqlite"):
    @event.listens_for(db_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


SessionLocal = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    import app.models

    if settings.ENV == "dev":
        Base.metadata.create_all(bind=db_engine)
        logger.info("DEV: tables ensured with create_all()")
    else:
        logger.info("PROD: schema is expected to exist, skipping create_all()")


class TransactionScope:
    """Explicit unit of work around one lifecycle operation.

    Commits on a clean exit and rolls back when the block raises, so a
    failed operation never leaves partial markers, attachments or messages
    behind. Callbacks registered with ``after_commit`` run only once the
    commit went through (remote file cleanup, notifications).

        with TransactionScope(db) as tx:
            message_service.delete(tx, user_id, conversation_id, message_id)
    """

    def __init__(self, session: Session):
        self.session = session
        self._after_commit: List[Callable[[], None]] = []

    def __enter__(self) -> "TransactionScope":
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self.session.rollback()
            self._after_commit.clear()
            return False

        self.session.commit()
        hooks, self._after_commit = self._after_commit, []
        for hook in hooks:
            try:
                hook()
            except Exception:
                logger.exception("Post-commit hook failed")
        return False

    def after_commit(self, hook: Callable[[], None]) -> None:
        self._after_commit.append(hook)
