"""
Comment model. Comments of a post form an arena: replies point at their
parent by id (``parent_id``) rather than holding embedded children.
"""
from sqlalchemy import Column, String, DateTime, Text, Table, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from ..database import Base, new_id


comment_likes = Table(
    "comment_likes",
    Base.metadata,
    Column("user_id", String(24), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("comment_id", String(24), ForeignKey("comments.id", ondelete="CASCADE"), primary_key=True, index=True),
    Column("created_at", DateTime, default=lambda: datetime.now(timezone.utc)),
)


class Comment(Base):
    __tablename__ = "comments"

    id = Column(String(24), primary_key=True, default=new_id)
    post_id = Column(String(24), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(24), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    # Not a foreign key: removing a root leaves its replies in place
    parent_id = Column(String(24), nullable=True, index=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), index=True)
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    post = relationship("Post", back_populates="comments")
    user = relationship("User")
    likes = relationship("User", secondary=comment_likes, viewonly=True)

    @property
    def is_root(self) -> bool:
        return self.parent_id is None
