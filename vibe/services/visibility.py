"""
Visibility filter applied to every read path.

Multi-post reads drop posts whose owner has blocked the viewer and only show
published posts, newest first. Profile-scoped reads refuse blocked viewers
and non-followers of private accounts.
"""
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Query, Session

from ..errors import Forbidden, NotFound
from ..models import Audio, Post, PostStatus, User, blocks, follows, post_likes, post_saves, post_tags
from ..responses import require_valid_id
from .relationships import RelationshipService

Page = Tuple[List[Post], int]


class VisibilityFilter:
    def __init__(self, db: Session):
        self.db = db
        self.relationships = RelationshipService(db)

    def _visible(self, viewer_id: str) -> Query:
        return self.db.query(Post).filter(
            Post.status == PostStatus.PUBLISHED,
            ~Post.user_id.in_(self.relationships.blocked_by_ids(viewer_id)),
        )

    @staticmethod
    def _page(query: Query, page: int, per_page: int) -> Page:
        total = query.count()
        items = query.order_by(Post.created_at.desc()).offset((page - 1) * per_page).limit(per_page).all()
        return items, total

    # -- feeds ---------------------------------------------------------

    def global_feed(self, viewer_id: str, page: int = 1, per_page: int = 20) -> Page:
        return self._page(self._visible(viewer_id), page, per_page)

    def following_feed(self, viewer_id: str, page: int = 1, per_page: int = 20) -> Page:
        followings = select(follows.c.followed_id).where(follows.c.follower_id == viewer_id)
        query = self._visible(viewer_id).filter(Post.user_id.in_(followings))
        return self._page(query, page, per_page)

    def audio_feed(self, audio_id: str, viewer_id: str, page: int = 1, per_page: int = 20) -> Page:
        require_valid_id(audio_id, "audio")
        if not self.db.get(Audio, audio_id):
            raise NotFound("Audio", audio_id)
        query = self._visible(viewer_id).filter(Post.audio_id == audio_id)
        return self._page(query, page, per_page)

    def tagged_feed(self, viewer_id: str, target_id: Optional[str] = None,
                    page: int = 1, per_page: int = 20) -> Page:
        """Posts the target (default: the viewer) is tagged in."""
        target_id = target_id or viewer_id
        if target_id != viewer_id:
            self.relationships.ensure_profile_visible(self.relationships.get_user(target_id), viewer_id)

        tagged = select(post_tags.c.post_id).where(post_tags.c.user_id == target_id)
        blocked_target = select(blocks.c.blocker_id).where(blocks.c.blocked_id == target_id)
        query = self._visible(viewer_id).filter(
            Post.id.in_(tagged),
            ~Post.user_id.in_(blocked_target),
        )
        return self._page(query, page, per_page)

    def saved_posts(self, viewer_id: str, page: int = 1, per_page: int = 20) -> Page:
        saved = select(post_saves.c.post_id).where(post_saves.c.user_id == viewer_id)
        return self._page(self._visible(viewer_id).filter(Post.id.in_(saved)), page, per_page)

    def liked_posts(self, viewer_id: str, page: int = 1, per_page: int = 20) -> Page:
        liked = select(post_likes.c.post_id).where(post_likes.c.user_id == viewer_id)
        return self._page(self._visible(viewer_id).filter(Post.id.in_(liked)), page, per_page)

    # -- profile reads ---------------------------------------------------

    def user_posts(self, target_id: str, viewer_id: str, page: int = 1, per_page: int = 20) -> Page:
        target = self.relationships.get_user(target_id)
        self.relationships.ensure_profile_visible(target, viewer_id)
        query = self.db.query(Post).filter(
            Post.user_id == target.id,
            Post.status == PostStatus.PUBLISHED,
        )
        return self._page(query, page, per_page)

    def profile(self, target_id: str, viewer_id: str) -> User:
        """A user's profile. Private accounts still show their header."""
        target = self.relationships.get_user(target_id)
        if target.id != viewer_id and self.relationships.has_blocked(target.id, viewer_id):
            raise Forbidden("This profile is not available")
        return target

    def post(self, post_id: str, viewer_id: str) -> Post:
        """A single post, visible to the viewer."""
        require_valid_id(post_id, "post")
        post = self.db.get(Post, post_id)
        if not post:
            raise NotFound("Post", post_id)
        if post.user_id == viewer_id:
            return post
        if post.status != PostStatus.PUBLISHED:
            raise NotFound("Post", post_id)
        self.relationships.ensure_profile_visible(post.user, viewer_id)
        return post
