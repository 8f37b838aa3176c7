"""
Audio track routes. Creating, editing and deleting tracks is admin-only.
"""
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from typing import List, Optional

from ..auth import get_admin_user, get_required_user
from ..dependencies import get_audio_service, store_uploads
from ..models.user import User
from ..responses import created, deleted, success
from ..schemas.posts import normalize_id_list
from ..serializers import audio_to_dict
from ..services.audio import AudioService

router = APIRouter(prefix="/api/audio", tags=["audio"])


@router.post("")
def create_audio(
    audio_name: Optional[str] = Form(None),
    artist_name: Optional[List[str]] = Form(None),
    audio: Optional[UploadFile] = File(None),
    audio_image: Optional[UploadFile] = File(None),
    service: AudioService = Depends(get_audio_service),
    admin: User = Depends(get_admin_user),
):
    """Upload an audio track with an optional cover image."""
    artists = normalize_id_list(artist_name, "artist_name")
    stored = store_uploads(service.media, {"audio": audio, "audio_images": audio_image})
    track = service.create(audio_name, artists, stored["audio"], stored["audio_images"])
    return created(audio_to_dict(track), "Audio created successfully")


@router.get("")
def list_audio(
    q: Optional[str] = Query(None),
    service: AudioService = Depends(get_audio_service),
    current_user: User = Depends(get_required_user),
):
    return success([audio_to_dict(a) for a in service.tracks(q)])


@router.get("/{audio_id}")
def get_audio(
    audio_id: str,
    service: AudioService = Depends(get_audio_service),
    current_user: User = Depends(get_required_user),
):
    return success(audio_to_dict(service.get(audio_id)))


@router.patch("/{audio_id}")
def update_audio(
    audio_id: str,
    audio_name: Optional[str] = Form(None),
    artist_name: Optional[List[str]] = Form(None),
    audio: Optional[UploadFile] = File(None),
    audio_image: Optional[UploadFile] = File(None),
    service: AudioService = Depends(get_audio_service),
    admin: User = Depends(get_admin_user),
):
    """Edit a track. New files replace the old ones."""
    artists = normalize_id_list(artist_name, "artist_name")
    stored = store_uploads(service.media, {"audio": audio, "audio_images": audio_image})
    track = service.update(audio_id, audio_name, artists, stored["audio"], stored["audio_images"])
    return success(audio_to_dict(track), "Audio updated successfully")


@router.delete("/{audio_id}")
def delete_audio(
    audio_id: str,
    service: AudioService = Depends(get_audio_service),
    admin: User = Depends(get_admin_user),
):
    """Delete a track and its files. Posts using it keep no audio."""
    service.delete(audio_id)
    return deleted("Audio deleted successfully")
