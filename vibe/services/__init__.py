from .media import LocalMediaStore, get_media_store
from .notifications import NotificationDispatcher, NotificationHub, notification_hub, get_dispatcher
from .relationships import RelationshipService, FollowState
from .visibility import VisibilityFilter
from .posts import PostService, PostPatch
from .profiles import ProfileService, ProfilePatch
from .audio import AudioService
from .engagement import EngagementService

__all__ = [
    "LocalMediaStore",
    "get_media_store",
    "NotificationDispatcher",
    "NotificationHub",
    "notification_hub",
    "get_dispatcher",
    "RelationshipService",
    "FollowState",
    "VisibilityFilter",
    "PostService",
    "PostPatch",
    "ProfileService",
    "ProfilePatch",
    "AudioService",
    "EngagementService",
]
