"""
Engagement engine: likes, saves, comments, replies and the comment tree.

Toggles are set flips against association tables. Notifications go out only
after the mutation has committed and never affect the outcome.
"""
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..errors import Forbidden, NotFound
from ..logging_config import get_logger, timed
from ..models import Comment, Post, PostStatus, User, comment_likes, post_likes, post_saves
from ..responses import require, require_valid_id
from ..serializers import user_summary
from ..timeago import age_label
from .membership import count_members, toggle_member
from .notifications import NotificationDispatcher, NotificationType
from .relationships import RelationshipService
from .visibility import VisibilityFilter

logger = get_logger("engagement")


class EngagementService:
    def __init__(self, db: Session, dispatcher: NotificationDispatcher):
        self.db = db
        self.dispatcher = dispatcher
        self.relationships = RelationshipService(db)
        self.visibility = VisibilityFilter(db)

    # -- lookups -------------------------------------------------------

    def _post(self, post_id: str) -> Post:
        require_valid_id(post_id, "post")
        post = self.db.get(Post, post_id)
        if not post:
            raise NotFound("Post", post_id)
        return post

    def _interactable_post(self, post_id: str, caller_id: str, action: str) -> Post:
        post = self._post(post_id)
        if post.status != PostStatus.PUBLISHED and post.user_id != caller_id:
            raise NotFound("Post", post_id)
        self.relationships.ensure_not_blocked(post.user_id, caller_id, action)
        return post

    def _comment(self, comment_id: str, resource: str = "Comment") -> Comment:
        require_valid_id(comment_id, resource.lower())
        comment = self.db.get(Comment, comment_id)
        if not comment:
            raise NotFound(resource, comment_id)
        return comment

    def _actor(self, user_id: str) -> User:
        return self.db.get(User, user_id)

    # -- post likes & saves --------------------------------------------

    def toggle_like(self, post_id: str, caller_id: str) -> Dict:
        post = self._interactable_post(post_id, caller_id, "like")
        owner_id = post.user_id

        liked = toggle_member(self.db, post_likes, user_id=caller_id, post_id=post_id)
        logger.info("Post like toggled", post_id=post_id, user_id=caller_id, liked=liked)

        if liked:
            self.dispatcher.engagement(
                NotificationType.LIKE,
                actor=self._actor(caller_id),
                recipient_id=owner_id,
                target_id=post_id,
                message="Liked your post",
            )
        return {"liked": liked, "likes_count": count_members(self.db, post_likes, post_id=post_id)}

    def toggle_save(self, post_id: str, caller_id: str) -> Dict:
        self._interactable_post(post_id, caller_id, "save")
        saved = toggle_member(self.db, post_saves, user_id=caller_id, post_id=post_id)
        logger.info("Post save toggled", post_id=post_id, user_id=caller_id, saved=saved)
        return {"saved": saved}

    def likers(self, post_id: str, viewer_id: str) -> List[User]:
        post = self.visibility.post(post_id, viewer_id)
        return self.db.query(User).join(post_likes, post_likes.c.user_id == User.id).filter(
            post_likes.c.post_id == post.id
        ).order_by(post_likes.c.created_at.desc()).all()

    # -- comments --------------------------------------------------------

    def add_comment(self, post_id: str, caller_id: str, text: Optional[str]) -> Comment:
        require(text, "Comment text")
        post = self._interactable_post(post_id, caller_id, "comment on")

        comment = Comment(post_id=post.id, user_id=caller_id, text=text.strip())
        self.db.add(comment)
        self.db.commit()
        self.db.refresh(comment)
        logger.info("Comment added", comment_id=comment.id, post_id=post.id, user_id=caller_id)

        self.dispatcher.engagement(
            NotificationType.COMMENT,
            actor=comment.user,
            recipient_id=post.user_id,
            target_id=post.id,
            message="Commented on your post",
        )
        return comment

    def add_reply(self, parent_id: str, caller_id: str, text: Optional[str]) -> Comment:
        """Reply to a comment or another reply. Replies notify no one."""
        require(text, "Reply text")
        parent = self._comment(parent_id)
        post = self._post(parent.post_id)
        self.relationships.ensure_not_blocked(post.user_id, caller_id, "reply on")

        reply = Comment(post_id=parent.post_id, user_id=caller_id, text=text.strip(), parent_id=parent.id)
        self.db.add(reply)
        self.db.commit()
        self.db.refresh(reply)
        logger.info("Reply added", comment_id=reply.id, parent_id=parent.id, user_id=caller_id)
        return reply

    def toggle_comment_like(self, comment_id: str, caller_id: str) -> Dict:
        comment = self._comment(comment_id)
        post = self._post(comment.post_id)
        self.relationships.ensure_not_blocked(post.user_id, caller_id, "like")
        author_id = comment.user_id

        liked = toggle_member(self.db, comment_likes, user_id=caller_id, comment_id=comment_id)
        logger.info("Comment like toggled", comment_id=comment_id, user_id=caller_id, liked=liked)

        if liked:
            self.dispatcher.engagement(
                NotificationType.LIKE,
                actor=self._actor(caller_id),
                recipient_id=author_id,
                target_id=comment_id,
                message="Liked your comment",
            )
        return {"liked": liked, "likes_count": count_members(self.db, comment_likes, comment_id=comment_id)}

    def edit_comment(self, comment_id: str, caller_id: str, text: Optional[str]) -> Comment:
        comment = self._comment(comment_id)
        if comment.user_id != caller_id:
            raise Forbidden("You can only update your own comment")
        require(text, "Comment text")
        comment.text = text.strip()
        self.db.commit()
        self.db.refresh(comment)
        return comment

    def _remove(self, comment: Comment) -> None:
        self.db.execute(delete(comment_likes).where(comment_likes.c.comment_id == comment.id))
        self.db.delete(comment)
        self.db.commit()

    def delete_comment(self, comment_id: str, caller_id: str) -> None:
        """Delete a root comment. Its replies are left as they are."""
        comment = self._comment(comment_id)
        if not comment.is_root:
            raise NotFound("Comment", comment_id)
        if comment.user_id != caller_id:
            raise Forbidden("You can only delete your own comment")
        self._remove(comment)
        logger.info("Comment deleted", comment_id=comment_id, post_id=comment.post_id)

    def delete_reply(self, reply_id: str, caller) -> None:
        """Delete a reply. Admins may delete any reply."""
        reply = self._comment(reply_id, "Reply")
        if reply.is_root:
            raise NotFound("Reply", reply_id)
        if reply.user_id != caller.id and not caller.is_admin:
            raise Forbidden("You can only delete your own reply")
        self._remove(reply)
        logger.info("Reply deleted", reply_id=reply_id, by_admin=reply.user_id != caller.id)

    def comments(self, post_id: str, viewer_id: str) -> List[Comment]:
        """Flat list of a post's comments and replies, oldest first."""
        post = self.visibility.post(post_id, viewer_id)
        return list(post.comments)

    # -- tree ------------------------------------------------------------

    @timed(logger)
    def comment_tree(self, post_id: str, viewer_id: str, now: Optional[datetime] = None) -> List[Dict]:
        """Nested comment view: roots newest first, replies in insertion order."""
        post = self.visibility.post(post_id, viewer_id)
        now = now or datetime.now(timezone.utc)

        records = self.db.query(Comment).filter(Comment.post_id == post.id).order_by(Comment.created_at).all()
        if not records:
            return []

        liked_ids = set(self.db.execute(
            select(comment_likes.c.comment_id).where(
                comment_likes.c.user_id == viewer_id,
                comment_likes.c.comment_id.in_([c.id for c in records]),
            )
        ).scalars())
        like_counts = defaultdict(int)
        for (comment_id,) in self.db.execute(
            select(comment_likes.c.comment_id).where(comment_likes.c.comment_id.in_([c.id for c in records]))
        ):
            like_counts[comment_id] += 1

        children = defaultdict(list)
        for record in records:
            if record.parent_id is not None:
                children[record.parent_id].append(record)

        def node(record: Comment, depth: int) -> Dict:
            return {
                "id": record.id,
                "parent_id": record.parent_id,
                "user": user_summary(record.user),
                "text": record.text,
                "likes_count": like_counts[record.id],
                "liked": record.id in liked_ids,
                "age": age_label(record.created_at, now),
                "created_at": record.created_at.isoformat(),
                "depth": depth,
                "replies": [],
            }

        roots = [r for r in reversed(records) if r.parent_id is None]
        tree = [node(r, 0) for r in roots]

        # Iterative expansion; a cycle in parent ids cannot loop forever
        seen = {r.id for r in roots}
        stack = list(zip(roots, tree))
        while stack:
            record, current = stack.pop()
            for child in children.get(record.id, ()):
                if child.id in seen:
                    continue
                seen.add(child.id)
                child_node = node(child, current["depth"] + 1)
                current["replies"].append(child_node)
                stack.append((child, child_node))
        return tree
