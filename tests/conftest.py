"""
Pytest configuration and fixtures for Vibe API tests.
"""
import os
import tempfile

# Settings are read once; point them at throwaway locations before the app loads
os.environ.setdefault("VIBE_DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("VIBE_MEDIA_ROOT", tempfile.mkdtemp(prefix="vibe-media-"))

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from vibe.database import Base, enable_sqlite_foreign_keys, get_db
from vibe.limiter import limiter
from vibe.main import app
from vibe.models import Audio, Post, PostStatus, User, follows
from vibe.auth import get_password_hash, create_access_token
from vibe.services.media import LocalMediaStore, get_media_store
from vibe.services.notifications import NotificationDispatcher, NotificationHub, get_dispatcher

# Disable rate limiting for tests
limiter.enabled = False

# Use in-memory SQLite for tests with shared connection
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Global session for sharing across requests
_test_session = None


def get_test_db():
    """Get the shared test database session."""
    global _test_session
    try:
        yield _test_session
    finally:
        pass


class RecordingDispatcher(NotificationDispatcher):
    """Dispatcher that records events instead of pushing them to streams."""

    def __init__(self):
        super().__init__(NotificationHub())
        self.sent = []

    def notify(self, recipient_id, event):
        self.sent.append((recipient_id, event))
        return True

    def of_type(self, kind):
        return [(recipient, event) for recipient, event in self.sent if event.type == kind]


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    global _test_session

    # Create all tables
    Base.metadata.create_all(bind=engine)

    # Create a session
    _test_session = TestingSessionLocal()

    # Override the get_db dependency
    app.dependency_overrides[get_db] = get_test_db

    yield _test_session

    # Cleanup
    app.dependency_overrides.clear()
    _test_session.close()
    _test_session = None

    # Drop all tables
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def media(db, tmp_path):
    """Media store rooted in a per-test directory."""
    store = LocalMediaStore(str(tmp_path / "public"), "/public")
    app.dependency_overrides[get_media_store] = lambda: store
    return store


@pytest.fixture(scope="function")
def dispatcher(db):
    recorder = RecordingDispatcher()
    app.dependency_overrides[get_dispatcher] = lambda: recorder
    return recorder


@pytest.fixture(scope="function")
def client(db, media, dispatcher):
    """Create a test client."""
    with TestClient(app) as c:
        yield c


# ============================================================
# USERS
# ============================================================

def make_user(db, username, is_private=False, role="user", password="testpassword123"):
    user = User(
        username=username,
        email=f"{username}@example.com",
        hashed_password=get_password_hash(password),
        name=username.title(),
        is_private=is_private,
        role=role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def headers_for(user):
    return {"Authorization": f"Bearer {create_access_token({'sub': user.id})}"}


def follow(db, follower, followed):
    db.execute(follows.insert().values(follower_id=follower.id, followed_id=followed.id))
    db.commit()


def make_post(db, owner, caption="Hello", status=PostStatus.PUBLISHED, age=None, **fields):
    post = Post(user_id=owner.id, caption=caption, status=status, **fields)
    if age is not None:
        post.created_at = datetime.now(timezone.utc) - age
    db.add(post)
    db.commit()
    db.refresh(post)
    return post


@pytest.fixture(scope="function")
def test_user(db):
    """Create a test user."""
    return make_user(db, "test")


@pytest.fixture(scope="function")
def other_user(db):
    return make_user(db, "other")


@pytest.fixture(scope="function")
def admin_user(db):
    return make_user(db, "admin", role="admin")


@pytest.fixture(scope="function")
def auth_token(test_user):
    """Get an auth token for the test user."""
    return create_access_token({"sub": test_user.id})


@pytest.fixture(scope="function")
def auth_headers(auth_token):
    """Get auth headers for the test user."""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture(scope="function")
def other_headers(other_user):
    return headers_for(other_user)


@pytest.fixture(scope="function")
def audio_track(db):
    track = Audio(audio_name="Summer Nights", artist_name=["DJ Test"], audio="/public/audio/track.mp3")
    db.add(track)
    db.commit()
    db.refresh(track)
    return track

