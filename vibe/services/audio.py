"""
Audio track registry. Tracks are created, edited and removed by admins; posts refer
to them by id and lose the reference when a track is deleted.
"""
from typing import List, Optional, Sequence

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..database import escape_like
from ..errors import Conflict, InvalidArgument, NotFound
from ..logging_config import get_logger
from ..models import Audio, Post
from ..responses import require, require_valid_id
from .media import LocalMediaStore

logger = get_logger("audio")


class AudioService:
    def __init__(self, db: Session, media: LocalMediaStore):
        self.db = db
        self.media = media

    def get(self, audio_id: str) -> Audio:
        require_valid_id(audio_id, "audio")
        audio = self.db.get(Audio, audio_id)
        if not audio:
            raise NotFound("Audio", audio_id)
        return audio

    def tracks(self, query: Optional[str] = None) -> List[Audio]:
        q = self.db.query(Audio)
        if query and query.strip():
            q = q.filter(Audio.audio_name.ilike(f"%{escape_like(query.strip())}%", escape="\\"))
        return q.order_by(Audio.created_at.desc()).all()

    def create(self, audio_name: Optional[str], artist_name: Sequence[str],
               audio_ref: Optional[str], image_ref: Optional[str] = None) -> Audio:
        """Register a track. Stored files are released if registration fails."""
        with self.media.released_on_failure([audio_ref, image_ref]):
            require(audio_name, "Audio name")
            if not audio_ref:
                raise InvalidArgument("Audio file is required", {"field": "audio"})
            audio_name = audio_name.strip()
            if self.db.query(Audio.id).filter(Audio.audio_name == audio_name).first():
                raise Conflict("An audio track with this name already exists", {"field": "audio_name"})

            audio = Audio(
                audio_name=audio_name,
                artist_name=list(artist_name),
                audio=audio_ref,
                audio_image=image_ref,
            )
            self.db.add(audio)
            self.db.commit()

        self.db.refresh(audio)
        logger.info("Audio created", audio_id=audio.id, audio_name=audio.audio_name)
        return audio

    def update(self, audio_id: str, audio_name: Optional[str] = None, artist_name: Optional[Sequence[str]] = None,
               audio_ref: Optional[str] = None, image_ref: Optional[str] = None) -> Audio:
        """Patch a track. Replaced files are released only after the commit."""
        replaced = []
        with self.media.released_on_failure([audio_ref, image_ref]):
            try:
                audio = self.get(audio_id)
                if audio_name is not None:
                    audio_name = audio_name.strip()
                    require(audio_name, "Audio name")
                    taken = self.db.query(Audio.id).filter(
                        Audio.audio_name == audio_name, Audio.id != audio.id
                    ).first()
                    if taken:
                        raise Conflict("An audio track with this name already exists", {"field": "audio_name"})
                    audio.audio_name = audio_name
                if artist_name:
                    audio.artist_name = list(artist_name)
                if audio_ref:
                    replaced.append(audio.audio)
                    audio.audio = audio_ref
                if image_ref:
                    replaced.append(audio.audio_image)
                    audio.audio_image = image_ref
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        self.media.release_quietly(*replaced)
        self.db.refresh(audio)
        logger.info("Audio updated", audio_id=audio.id, replaced_media=len([r for r in replaced if r]))
        return audio

    def delete(self, audio_id: str) -> None:
        audio = self.get(audio_id)
        media = [audio.audio, audio.audio_image]

        self.db.execute(
            update(Post).where(Post.audio_id == audio.id).values(audio_id=None),
            execution_options={"synchronize_session": "fetch"},
        )
        self.db.delete(audio)
        self.db.commit()

        self.media.release_quietly(*media)
        logger.info("Audio deleted", audio_id=audio_id)
