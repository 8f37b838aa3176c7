"""
Post lifecycle: create, update, delete, and the draft/published state machine.

    draft --publish--> published --unpublish--> draft
    draft --remove_draft--> (deleted, media released)
"""
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..database import is_valid_id
from ..errors import Forbidden, InvalidArgument, InvalidReference, InvalidStateTransition, NotFound
from ..logging_config import get_logger
from ..models import Audio, Comment, Post, PostStatus, User, comment_likes, follows, post_likes, post_saves, post_tags
from ..responses import require_valid_id
from .media import LocalMediaStore

logger = get_logger("posts")


@dataclass
class PostPatch:
    """Fields an owner may change. ``None`` means leave untouched."""
    caption: Optional[str] = None
    audio_id: Optional[str] = None
    tagged_friends: Optional[Sequence[str]] = None
    image: Optional[str] = None
    video: Optional[str] = None

    @property
    def new_media(self) -> List[str]:
        return [ref for ref in (self.image, self.video) if ref]


class PostService:
    def __init__(self, db: Session, media: LocalMediaStore):
        self.db = db
        self.media = media

    # -- helpers -------------------------------------------------------

    def _owned(self, post_id: str, caller_id: str) -> Post:
        require_valid_id(post_id, "post")
        post = self.db.get(Post, post_id)
        if not post:
            raise NotFound("Post", post_id)
        if post.user_id != caller_id:
            raise Forbidden("You can only manage your own posts")
        return post

    def _check_audio(self, audio_id: Optional[str]) -> Optional[str]:
        if not audio_id:
            return None
        if not is_valid_id(audio_id):
            raise InvalidReference("Invalid audio ID format", {"audio_id": audio_id})
        if not self.db.get(Audio, audio_id):
            raise InvalidReference("Audio track not found", {"audio_id": audio_id})
        return audio_id

    def resolve_tags(self, owner_id: str, candidates: Optional[Iterable[str]]) -> List[str]:
        """Deduplicate tag candidates, keeping only friends the owner follows.

        The owner, malformed ids and unknown users are dropped silently.
        """
        seen = []
        for candidate in candidates or ():
            if candidate == owner_id or not is_valid_id(candidate) or candidate in seen:
                continue
            seen.append(candidate)
        if not seen:
            return []

        friends = set(self.db.execute(
            select(follows.c.followed_id).where(
                follows.c.follower_id == owner_id,
                follows.c.followed_id.in_(seen),
            )
        ).scalars())
        return [user_id for user_id in seen if user_id in friends]

    def _set_tags(self, post: Post, user_ids: List[str]) -> None:
        self.db.execute(delete(post_tags).where(post_tags.c.post_id == post.id))
        if user_ids:
            self.db.execute(post_tags.insert(), [{"user_id": u, "post_id": post.id} for u in user_ids])

    # -- create / update -----------------------------------------------

    @contextmanager
    def _unit(self, stored_media):
        """Roll back the session and release ``stored_media`` on failure."""
        with self.media.released_on_failure(stored_media):
            try:
                yield
            except Exception:
                self.db.rollback()
                raise

    def create(
        self,
        owner: User,
        caption: Optional[str] = None,
        image: Optional[str] = None,
        video: Optional[str] = None,
        audio_id: Optional[str] = None,
        tagged_friends: Optional[Iterable[str]] = None,
        status: Optional[str] = None,
    ) -> Post:
        """Create a post. Stored media is released if anything fails."""
        with self._unit([image, video]):
            caption = caption.strip() if caption else None
            if not caption and not image and not video:
                raise InvalidArgument("Post must have a caption, image, or video")

            status = status or PostStatus.PUBLISHED
            if status not in PostStatus.ALL:
                raise InvalidArgument(f"Invalid status '{status}'", {"allowed": list(PostStatus.ALL)})

            post = Post(
                user_id=owner.id,
                caption=caption,
                image=image,
                video=video,
                audio_id=self._check_audio(audio_id),
                status=status,
            )
            self.db.add(post)
            self.db.flush()
            self._set_tags(post, self.resolve_tags(owner.id, tagged_friends))
            self.db.commit()

        self.db.refresh(post)
        logger.info("Post created", post_id=post.id, user_id=owner.id, status=post.status)
        return post

    def update(self, post_id: str, caller_id: str, patch: PostPatch) -> Post:
        """Apply an owner's patch.

        New media is committed before old media is released, so a failed
        write leaves the previous references in place.
        """
        with self._unit(patch.new_media):
            post = self._owned(post_id, caller_id)
            replaced = []

            if patch.caption is not None:
                post.caption = patch.caption.strip() or None
            if patch.audio_id is not None:
                post.audio_id = self._check_audio(patch.audio_id)
            if patch.image:
                replaced.append(post.image)
                post.image = patch.image
            if patch.video:
                replaced.append(post.video)
                post.video = patch.video
            if patch.tagged_friends is not None:
                self._set_tags(post, self.resolve_tags(post.user_id, patch.tagged_friends))

            if not post.caption and not post.image and not post.video:
                raise InvalidArgument("Post must have a caption, image, or video")

            self.db.commit()

        self.media.release_quietly(*replaced)
        self.db.refresh(post)
        logger.info("Post updated", post_id=post.id, replaced_media=len([r for r in replaced if r]))
        return post

    # -- delete ----------------------------------------------------------

    def _destroy(self, post: Post) -> None:
        """Delete the post with its comments and engagement rows, then release media."""
        media = post.media_refs
        post_id = post.id

        comment_ids = select(Comment.id).where(Comment.post_id == post_id)
        self.db.execute(delete(comment_likes).where(comment_likes.c.comment_id.in_(comment_ids)))
        for table in (post_likes, post_saves, post_tags):
            self.db.execute(delete(table).where(table.c.post_id == post_id))
        # Comments (roots and replies) go with the post through the ORM cascade
        self.db.delete(post)
        self.db.commit()

        self.media.release_quietly(*media)
        logger.info("Post deleted", post_id=post_id, released_media=len(media))

    def delete(self, post_id: str, caller_id: str) -> None:
        self._destroy(self._owned(post_id, caller_id))

    # -- state machine -----------------------------------------------------

    def publish(self, post_id: str, caller_id: str) -> Post:
        post = self._owned(post_id, caller_id)
        if post.status == PostStatus.PUBLISHED:
            raise InvalidStateTransition("This post is already published")
        post.status = PostStatus.PUBLISHED
        self.db.commit()
        self.db.refresh(post)
        logger.info("Draft published", post_id=post.id)
        return post

    def unpublish(self, post_id: str, caller_id: str) -> Post:
        post = self._owned(post_id, caller_id)
        if post.status == PostStatus.DRAFT:
            raise InvalidStateTransition("This post is already a draft")
        post.status = PostStatus.DRAFT
        self.db.commit()
        self.db.refresh(post)
        logger.info("Post moved to drafts", post_id=post.id)
        return post

    def remove_draft(self, post_id: str, caller_id: str) -> None:
        """Permanently delete a draft and its media."""
        post = self._owned(post_id, caller_id)
        if post.status != PostStatus.DRAFT:
            raise InvalidStateTransition("Only drafts can be removed")
        self._destroy(post)

    def drafts(self, caller_id: str) -> List[Post]:
        return self.db.query(Post).filter(
            Post.user_id == caller_id,
            Post.status == PostStatus.DRAFT,
        ).order_by(Post.created_at.desc()).all()
