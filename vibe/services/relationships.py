"""
Identity & relationship store: follow, follow requests and blocks.
"""
from typing import List

from sqlalchemy import or_, and_, delete, select
from sqlalchemy.orm import Session

from ..database import escape_like
from ..errors import Forbidden, InvalidArgument, NotFound
from ..logging_config import get_logger
from ..models import User, blocks, follow_requests, follows
from ..responses import require_valid_id
from .membership import add_member, has_member, remove_member, toggle_member

logger = get_logger("relationships")


class FollowState:
    FOLLOWING = "following"
    REQUESTED = "requested"
    NONE = "none"


class RelationshipService:
    """Follow and block edges between users."""

    def __init__(self, db: Session):
        self.db = db

    # -- lookups -------------------------------------------------------

    def get_user(self, user_id: str) -> User:
        require_valid_id(user_id, "user")
        user = self.db.get(User, user_id)
        if not user:
            raise NotFound("User", user_id)
        return user

    def has_blocked(self, blocker_id: str, blocked_id: str) -> bool:
        return has_member(self.db, blocks, blocker_id=blocker_id, blocked_id=blocked_id)

    def is_following(self, follower_id: str, followed_id: str) -> bool:
        return has_member(self.db, follows, follower_id=follower_id, followed_id=followed_id)

    def blocked_by_ids(self, viewer_id: str):
        """Subquery of users whose block list contains ``viewer_id``."""
        return select(blocks.c.blocker_id).where(blocks.c.blocked_id == viewer_id)

    def ensure_not_blocked(self, owner_id: str, caller_id: str, action: str = "interact with") -> None:
        if owner_id != caller_id and self.has_blocked(owner_id, caller_id):
            raise Forbidden(f"You cannot {action} this user's content")

    def ensure_profile_visible(self, target: User, viewer_id: str) -> None:
        """Blocked viewers and non-followers of private accounts are refused."""
        if target.id == viewer_id:
            return
        if self.has_blocked(target.id, viewer_id):
            raise Forbidden("This profile is not available")
        if target.is_private and not self.is_following(viewer_id, target.id):
            raise Forbidden("This account is private")

    # -- block ---------------------------------------------------------

    def toggle_block(self, blocker_id: str, target_id: str) -> bool:
        """Block or unblock ``target_id``. Returns True when now blocked."""
        require_valid_id(target_id, "user")
        if blocker_id == target_id:
            raise InvalidArgument("You cannot block yourself")
        self.get_user(target_id)

        if remove_member(self.db, blocks, blocker_id=blocker_id, blocked_id=target_id):
            self.db.commit()
            logger.info("User unblocked", blocker_id=blocker_id, target_id=target_id)
            return False

        add_member(self.db, blocks, blocker_id=blocker_id, blocked_id=target_id)
        self._sever(blocker_id, target_id)
        self.db.commit()
        logger.info("User blocked", blocker_id=blocker_id, target_id=target_id)
        return True

    def _sever(self, a: str, b: str) -> None:
        """Drop follows and pending requests between two users, both ways."""
        self.db.execute(delete(follows).where(or_(
            and_(follows.c.follower_id == a, follows.c.followed_id == b),
            and_(follows.c.follower_id == b, follows.c.followed_id == a),
        )))
        self.db.execute(delete(follow_requests).where(or_(
            and_(follow_requests.c.requester_id == a, follow_requests.c.target_id == b),
            and_(follow_requests.c.requester_id == b, follow_requests.c.target_id == a),
        )))

    def blocked_users(self, user_id: str) -> List[User]:
        return self.db.query(User).join(blocks, blocks.c.blocked_id == User.id).filter(
            blocks.c.blocker_id == user_id
        ).order_by(blocks.c.created_at.desc()).all()

    # -- follow --------------------------------------------------------

    def toggle_follow(self, caller_id: str, target_id: str) -> str:
        """Follow, unfollow, request or cancel a request. Returns the new state."""
        require_valid_id(target_id, "user")
        if caller_id == target_id:
            raise InvalidArgument("You cannot follow yourself")
        target = self.get_user(target_id)

        if self.has_blocked(target_id, caller_id) or self.has_blocked(caller_id, target_id):
            raise Forbidden("You cannot follow this user")

        if remove_member(self.db, follows, follower_id=caller_id, followed_id=target_id):
            self.db.commit()
            logger.info("Unfollowed", follower_id=caller_id, followed_id=target_id)
            return FollowState.NONE

        if target.is_private:
            requested = toggle_member(self.db, follow_requests, requester_id=caller_id, target_id=target_id)
            logger.info(
                "Follow request sent" if requested else "Follow request cancelled",
                requester_id=caller_id,
                target_id=target_id,
            )
            return FollowState.REQUESTED if requested else FollowState.NONE

        add_member(self.db, follows, follower_id=caller_id, followed_id=target_id)
        self.db.commit()
        logger.info("Followed", follower_id=caller_id, followed_id=target_id)
        return FollowState.FOLLOWING

    def follow_requests(self, user_id: str) -> List[User]:
        return self.db.query(User).join(
            follow_requests, follow_requests.c.requester_id == User.id
        ).filter(follow_requests.c.target_id == user_id).order_by(
            follow_requests.c.created_at.desc()
        ).all()

    def respond_follow_request(self, owner_id: str, requester_id: str, accept: bool) -> None:
        require_valid_id(requester_id, "user")
        if not has_member(self.db, follow_requests, requester_id=requester_id, target_id=owner_id):
            raise NotFound("Follow request")
        # add_member may roll back the session; it must run before the removal
        if accept:
            add_member(self.db, follows, follower_id=requester_id, followed_id=owner_id)
        remove_member(self.db, follow_requests, requester_id=requester_id, target_id=owner_id)
        self.db.commit()
        logger.info(
            "Follow request accepted" if accept else "Follow request rejected",
            owner_id=owner_id,
            requester_id=requester_id,
        )

    def followers(self, user: User, viewer_id: str) -> List[User]:
        self.ensure_profile_visible(user, viewer_id)
        return list(user.followers)

    def followings(self, user: User, viewer_id: str) -> List[User]:
        self.ensure_profile_visible(user, viewer_id)
        return list(user.followings)

    # -- discovery -----------------------------------------------------

    def _hidden_from(self, viewer_id: str):
        """Users the viewer should not be offered: self and either side of a block."""
        blocked = select(blocks.c.blocked_id).where(blocks.c.blocker_id == viewer_id)
        return or_(
            User.id == viewer_id,
            User.id.in_(self.blocked_by_ids(viewer_id)),
            User.id.in_(blocked),
        )

    def suggested_users(self, viewer_id: str, limit: int = 10) -> List[User]:
        following = select(follows.c.followed_id).where(follows.c.follower_id == viewer_id)
        return self.db.query(User).filter(
            ~self._hidden_from(viewer_id),
            ~User.id.in_(following),
            User.role == "user",
            User.is_active.is_(True),
        ).order_by(User.created_at.desc()).limit(limit).all()

    def search_users(self, viewer_id: str, query: str, limit: int = 20) -> List[User]:
        query = (query or "").strip()
        if not query:
            raise InvalidArgument("Search query is required")
        pattern = f"%{escape_like(query)}%"
        return self.db.query(User).filter(
            ~self._hidden_from(viewer_id),
            or_(User.username.ilike(pattern, escape="\\"), User.name.ilike(pattern, escape="\\")),
            User.is_active.is_(True),
        ).order_by(User.username).limit(limit).all()
