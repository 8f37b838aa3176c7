"""
Comment routes: top-level comments, nested replies and comment likes.
"""
from fastapi import APIRouter, Depends, Query

from ..auth import Principal, get_principal
from ..dependencies import get_engagement_service
from ..responses import created, deleted, success
from ..schemas.posts import CommentCreate, CommentUpdate
from ..serializers import comment_to_dict
from ..services.engagement import EngagementService

router = APIRouter(prefix="/api", tags=["comments"])


@router.post("/posts/{post_id}/comments")
def add_comment(
    post_id: str,
    body: CommentCreate,
    engagement: EngagementService = Depends(get_engagement_service),
    principal: Principal = Depends(get_principal),
):
    """Comment on a post. The post owner is notified."""
    comment = engagement.add_comment(post_id, principal.id, body.text)
    return created(comment_to_dict(comment, principal.id), "Comment added successfully")


@router.get("/posts/{post_id}/comments")
def get_comments(
    post_id: str,
    flat: bool = Query(False, description="Oldest-first list instead of the nested tree"),
    engagement: EngagementService = Depends(get_engagement_service),
    principal: Principal = Depends(get_principal),
):
    """Comment tree of a post: newest roots first, replies nested under their parent."""
    if flat:
        return success([comment_to_dict(c, principal.id) for c in engagement.comments(post_id, principal.id)])
    return success(engagement.comment_tree(post_id, principal.id))


@router.post("/comments/{comment_id}/replies")
def add_reply(
    comment_id: str,
    body: CommentCreate,
    engagement: EngagementService = Depends(get_engagement_service),
    principal: Principal = Depends(get_principal),
):
    reply = engagement.add_reply(comment_id, principal.id, body.text)
    return created(comment_to_dict(reply, principal.id), "Reply added successfully")


@router.post("/comments/{comment_id}/like")
def toggle_comment_like(
    comment_id: str,
    engagement: EngagementService = Depends(get_engagement_service),
    principal: Principal = Depends(get_principal),
):
    result = engagement.toggle_comment_like(comment_id, principal.id)
    return success(result, "Comment liked" if result["liked"] else "Comment unliked")


@router.patch("/comments/{comment_id}")
def edit_comment(
    comment_id: str,
    body: CommentUpdate,
    engagement: EngagementService = Depends(get_engagement_service),
    principal: Principal = Depends(get_principal),
):
    """Edit a comment or reply (author only)."""
    comment = engagement.edit_comment(comment_id, principal.id, body.text)
    return success(comment_to_dict(comment, principal.id), "Comment updated successfully")


@router.delete("/comments/replies/{reply_id}")
def delete_reply(
    reply_id: str,
    engagement: EngagementService = Depends(get_engagement_service),
    principal: Principal = Depends(get_principal),
):
    """Delete a reply. Authors and admins only."""
    engagement.delete_reply(reply_id, principal)
    return deleted("Reply deleted successfully")


@router.delete("/comments/{comment_id}")
def delete_comment(
    comment_id: str,
    engagement: EngagementService = Depends(get_engagement_service),
    principal: Principal = Depends(get_principal),
):
    engagement.delete_comment(comment_id, principal.id)
    return deleted("Comment deleted successfully")
