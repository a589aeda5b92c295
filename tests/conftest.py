import os
import tempfile

_tmp_dir = tempfile.mkdtemp(prefix="chato-tests-")

os.environ.update({
    "ENV": "test",
    "DATABASE_URL": f"sqlite:///{os.path.join(_tmp_dir, 'test.db')}",
    "SECRET_KEY": "test-secret",
    "ADMIN_EMAIL": "admin@chato.io",
    "ADMIN_PASSWORD": "admin-password",
    "EMAIL_HOST": "localhost",
    "EMAIL_USER": "mailer",
    "EMAIL_PASSWORD": "mailer-password",
    "EMAIL_FROM": "no-reply@chato.io",
    "CLOUDINARY_CLOUD_NAME": "test",
    "CLOUDINARY_API_KEY": "test",
    "CLOUDINARY_API_SECRET": "test",
    "LOG_LEVEL": "WARNING",
})

import pytest
from fastapi.testclient import TestClient

from app.core.errors import MediaProcessingError
from app.core.media_handle.cloudinary import MediaProcessor, StoredMedia, get_media_processor
from app.core.security import create_access_token, hash_password
from app.database import SessionLocal, TransactionScope, db_engine
from app.main import app
from app.models import Conversation, ConversationType, User
from app.models.base import Base
from app.services.messages import MessageLifecycle


PASSWORD = "password123"
_password_hash = hash_password(PASSWORD)


class FakeMediaProcessor(MediaProcessor):
    """Stores nothing remotely; records uploads and removals."""

    def __init__(self, fail_after=None):
        super().__init__(folder="test")
        self.fail_after = fail_after
        self.uploaded = []
        self.removed = []

    def process(self, raw, size, fmt):
        if self.fail_after is not None and len(self.uploaded) >= self.fail_after:
            raise MediaProcessingError("Failed to upload attachment")
        public_id = f"test/{len(self.uploaded) + 1}"
        self.uploaded.append((public_id, raw, size, fmt))
        return StoredMedia(url=f"https://media.test/{public_id}.{fmt}", public_id=public_id)

    def remove(self, public_id):
        self.removed.append(public_id)
        return True


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.drop_all(bind=db_engine)
    Base.metadata.create_all(bind=db_engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def media():
    return FakeMediaProcessor()


@pytest.fixture
def lifecycle(media):
    return MessageLifecycle(media)


@pytest.fixture
def client(media):
    app.dependency_overrides[get_media_processor] = lambda: media
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make_user(username, **fields):
        values = {
            "username": username,
            "email": f"{username}@chato.io",
            "hashed_password": _password_hash,
            "is_verified": True,
            "is_active": True,
        }
        values.update(fields)
        user = User(**values)
        db.add(user)
        db.commit()
        return user
    return _make_user


@pytest.fixture
def make_conversation(db):
    def _make_conversation(*users, type=ConversationType.private):
        conversation = Conversation(type=type, participants=list(users))
        db.add(conversation)
        db.commit()
        return conversation
    return _make_conversation


@pytest.fixture
def alice(make_user):
    return make_user("alice")


@pytest.fixture
def bob(make_user):
    return make_user("bob")


@pytest.fixture
def carol(make_user):
    return make_user("carol")


@pytest.fixture
def private_chat(make_conversation, alice, bob):
    return make_conversation(alice, bob)


@pytest.fixture
def send(db, lifecycle):
    def _send(user, conversation, body="hi", **kwargs):
        with TransactionScope(db) as tx:
            message = lifecycle.create(tx, user.id, conversation.id, body=body, **kwargs)
        return message.id
    return _send


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}
    return _auth_headers
