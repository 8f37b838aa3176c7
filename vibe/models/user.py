"""
User model plus the follow/block relationship tables.
"""
from sqlalchemy import Column, String, DateTime, Boolean, Text, Table, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from ..database import Base, new_id


follows = Table(
    "follows",
    Base.metadata,
    Column("follower_id", String(24), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("followed_id", String(24), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime, default=lambda: datetime.now(timezone.utc)),
    CheckConstraint("follower_id <> followed_id", name="ck_follows_not_self"),
)

blocks = Table(
    "blocks",
    Base.metadata,
    Column("blocker_id", String(24), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("blocked_id", String(24), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime, default=lambda: datetime.now(timezone.utc)),
    CheckConstraint("blocker_id <> blocked_id", name="ck_blocks_not_self"),
)

# Pending follows toward private accounts
follow_requests = Table(
    "follow_requests",
    Base.metadata,
    Column("requester_id", String(24), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("target_id", String(24), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime, default=lambda: datetime.now(timezone.utc)),
)


class User(Base):
    __tablename__ = "users"

    id = Column(String(24), primary_key=True, default=new_id)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    name = Column(String(100))
    bio = Column(Text, nullable=True)
    gender = Column(String(20), nullable=True)
    profile_pic = Column(String(500), nullable=True)
    is_private = Column(Boolean, default=False, nullable=False)
    role = Column(String(20), default="user", nullable=False)  # user, admin
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    posts = relationship(
        "Post",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="Post.created_at.desc()",
    )
    followings = relationship(
        "User",
        secondary=follows,
        primaryjoin=id == follows.c.follower_id,
        secondaryjoin=id == follows.c.followed_id,
        viewonly=True,
    )
    followers = relationship(
        "User",
        secondary=follows,
        primaryjoin=id == follows.c.followed_id,
        secondaryjoin=id == follows.c.follower_id,
        viewonly=True,
    )
    blocked_users = relationship(
        "User",
        secondary=blocks,
        primaryjoin=id == blocks.c.blocker_id,
        secondaryjoin=id == blocks.c.blocked_id,
        viewonly=True,
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
