from .user import User, follows, blocks, follow_requests
from .audio import Audio
from .post import Post, PostStatus, post_likes, post_saves, post_tags
from .comment import Comment, comment_likes

__all__ = [
    "User",
    "Audio",
    "Post",
    "PostStatus",
    "Comment",
    "follows",
    "blocks",
    "follow_requests",
    "post_likes",
    "post_saves",
    "post_tags",
    "comment_likes",
]
