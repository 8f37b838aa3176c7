"""
Profile editing and account removal.
"""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.orm import Session

from ..errors import Conflict, InvalidArgument
from ..logging_config import get_logger
from ..models import (
    Comment,
    Post,
    User,
    blocks,
    comment_likes,
    follow_requests,
    follows,
    post_likes,
    post_saves,
    post_tags,
)
from .media import LocalMediaStore

logger = get_logger("profiles")

GENDERS = ("male", "female", "other")

FETCH = {"synchronize_session": "fetch"}


@dataclass
class ProfilePatch:
    username: Optional[str] = None
    name: Optional[str] = None
    bio: Optional[str] = None
    gender: Optional[str] = None
    is_private: Optional[bool] = None
    profile_pic: Optional[str] = None


class ProfileService:
    def __init__(self, db: Session, media: LocalMediaStore):
        self.db = db
        self.media = media

    def update(self, user: User, patch: ProfilePatch) -> User:
        """Apply a profile patch. A new picture replaces and releases the old one."""
        new_media = [patch.profile_pic] if patch.profile_pic else []
        replaced = None

        with self.media.released_on_failure(new_media):
            try:
                if patch.username is not None:
                    username = patch.username.strip()
                    if not username:
                        raise InvalidArgument("Username cannot be empty", {"field": "username"})
                    taken = self.db.query(User.id).filter(User.username == username, User.id != user.id).first()
                    if taken:
                        raise Conflict("Username already in use", {"field": "username"})
                    user.username = username
                if patch.name is not None:
                    user.name = patch.name.strip() or None
                if patch.bio is not None:
                    user.bio = patch.bio.strip() or None
                if patch.gender is not None:
                    if patch.gender not in GENDERS:
                        raise InvalidArgument(f"Invalid gender '{patch.gender}'", {"allowed": list(GENDERS)})
                    user.gender = patch.gender
                if patch.profile_pic:
                    replaced = user.profile_pic
                    user.profile_pic = patch.profile_pic
                if patch.is_private is not None:
                    if user.is_private and not patch.is_private:
                        self._accept_pending(user.id)
                    user.is_private = patch.is_private

                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        self.media.release_quietly(replaced)
        self.db.refresh(user)
        logger.info("Profile updated", user_id=user.id, replaced_picture=bool(replaced))
        return user

    def _accept_pending(self, user_id: str) -> None:
        """Going public turns pending follow requests into follows."""
        requester_ids = list(self.db.execute(
            select(follow_requests.c.requester_id).where(follow_requests.c.target_id == user_id)
        ).scalars())
        if not requester_ids:
            return
        self.db.execute(delete(follow_requests).where(follow_requests.c.target_id == user_id))
        already = set(self.db.execute(
            select(follows.c.follower_id).where(
                follows.c.followed_id == user_id,
                follows.c.follower_id.in_(requester_ids),
            )
        ).scalars())
        rows = [{"follower_id": r, "followed_id": user_id} for r in requester_ids if r not in already]
        if rows:
            self.db.execute(follows.insert(), rows)
        logger.info("Pending follow requests accepted", user_id=user_id, count=len(rows))

    def delete_account(self, user: User) -> None:
        """Remove a user with their posts, comments and every edge that names them.

        Comments by others on the user's posts go with the posts. Replies by
        others to the user's comments stay as orphans, like any deleted root.
        """
        user_id = user.id
        post_ids = select(Post.id).where(Post.user_id == user_id)
        media = [
            ref
            for row in self.db.execute(select(Post.image, Post.video).where(Post.user_id == user_id))
            for ref in row
            if ref
        ]
        media.append(user.profile_pic)

        try:
            doomed_comments = or_(Comment.user_id == user_id, Comment.post_id.in_(post_ids))
            self.db.execute(delete(comment_likes).where(or_(
                comment_likes.c.user_id == user_id,
                comment_likes.c.comment_id.in_(select(Comment.id).where(doomed_comments)),
            )))
            self.db.execute(delete(Comment).where(doomed_comments), execution_options=FETCH)
            for table in (post_likes, post_saves, post_tags):
                self.db.execute(delete(table).where(or_(table.c.user_id == user_id, table.c.post_id.in_(post_ids))))
            for table, left, right in (
                (follows, follows.c.follower_id, follows.c.followed_id),
                (blocks, blocks.c.blocker_id, blocks.c.blocked_id),
                (follow_requests, follow_requests.c.requester_id, follow_requests.c.target_id),
            ):
                self.db.execute(delete(table).where(or_(left == user_id, right == user_id)))
            self.db.execute(delete(Post).where(Post.user_id == user_id), execution_options=FETCH)
            self.db.execute(delete(User).where(User.id == user_id), execution_options=FETCH)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.media.release_quietly(*media)
        logger.info("Account deleted", user_id=user_id, released_media=len([m for m in media if m]))
