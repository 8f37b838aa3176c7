"""
Audio track model. Posts may reference a track by id.
"""
from sqlalchemy import Column, String, DateTime, JSON
from datetime import datetime, timezone
from ..database import Base, new_id


class Audio(Base):
    __tablename__ = "audio"

    id = Column(String(24), primary_key=True, default=new_id)
    audio_name = Column(String(200), nullable=False, index=True)
    artist_name = Column(JSON, default=list)
    audio = Column(String(500), nullable=False)
    audio_image = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
