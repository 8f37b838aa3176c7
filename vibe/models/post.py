"""
Post model and its per-user engagement sets (likes, saves, tags).
"""
from sqlalchemy import Column, String, DateTime, Text, Table, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from ..database import Base, new_id


def _engagement_table(name: str) -> Table:
    return Table(
        name,
        Base.metadata,
        Column("user_id", String(24), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        Column("post_id", String(24), ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True, index=True),
        Column("created_at", DateTime, default=lambda: datetime.now(timezone.utc)),
    )


post_likes = _engagement_table("post_likes")
post_saves = _engagement_table("post_saves")
post_tags = _engagement_table("post_tags")


class PostStatus:
    DRAFT = "draft"
    PUBLISHED = "published"

    ALL = (DRAFT, PUBLISHED)


class Post(Base):
    __tablename__ = "posts"

    id = Column(String(24), primary_key=True, default=new_id)
    user_id = Column(String(24), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    caption = Column(Text, nullable=True)
    image = Column(String(500), nullable=True)
    video = Column(String(500), nullable=True)
    audio_id = Column(String(24), ForeignKey("audio.id", ondelete="SET NULL"), nullable=True, index=True)
    status = Column(String(20), default=PostStatus.PUBLISHED, nullable=False, index=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), index=True)
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    user = relationship("User", back_populates="posts")
    audio = relationship("Audio")
    likes = relationship("User", secondary=post_likes, viewonly=True)
    saves = relationship("User", secondary=post_saves, viewonly=True)
    tagged_friends = relationship("User", secondary=post_tags, viewonly=True)
    comments = relationship(
        "Comment",
        back_populates="post",
        cascade="all, delete-orphan",
        order_by="Comment.created_at",
    )

    @property
    def media_refs(self):
        return [ref for ref in (self.image, self.video) if ref]
