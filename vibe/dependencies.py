"""
FastAPI dependencies wiring services to the request session and the
process-wide collaborators (media store, notification dispatcher).
"""
from typing import Dict, Optional

from fastapi import Depends, UploadFile
from sqlalchemy.orm import Session

from .database import get_db
from .services.audio import AudioService
from .services.engagement import EngagementService
from .services.media import LocalMediaStore, get_media_store
from .services.notifications import NotificationDispatcher, get_dispatcher
from .services.posts import PostService
from .services.profiles import ProfileService
from .services.relationships import RelationshipService
from .services.visibility import VisibilityFilter


def get_post_service(
    db: Session = Depends(get_db),
    media: LocalMediaStore = Depends(get_media_store),
) -> PostService:
    return PostService(db, media)


def get_engagement_service(
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> EngagementService:
    return EngagementService(db, dispatcher)


def get_profile_service(
    db: Session = Depends(get_db),
    media: LocalMediaStore = Depends(get_media_store),
) -> ProfileService:
    return ProfileService(db, media)


def get_audio_service(
    db: Session = Depends(get_db),
    media: LocalMediaStore = Depends(get_media_store),
) -> AudioService:
    return AudioService(db, media)


def get_relationship_service(db: Session = Depends(get_db)) -> RelationshipService:
    return RelationshipService(db)


def get_visibility(db: Session = Depends(get_db)) -> VisibilityFilter:
    return VisibilityFilter(db)


def store_uploads(media: LocalMediaStore, uploads: Dict[str, Optional[UploadFile]]) -> Dict[str, Optional[str]]:
    """Store each present upload under its folder; all-or-nothing."""
    stored: Dict[str, Optional[str]] = {}
    with media.released_on_failure(stored.values()):
        for folder, upload in uploads.items():
            stored[folder] = media.store(upload, folder) if upload and upload.filename else None
    return stored
