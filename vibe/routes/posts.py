"""
Posts routes: lifecycle, drafts, feeds, likes and saves.
"""
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from typing import List, Optional

from ..auth import Principal, get_principal, get_required_user
from ..dependencies import (
    get_engagement_service,
    get_post_service,
    get_visibility,
    store_uploads,
)
from ..models.user import User
from ..responses import created, deleted, paginated, success
from ..schemas.posts import normalize_id_list
from ..serializers import post_to_dict, user_summary
from ..services.engagement import EngagementService
from ..services.posts import PostPatch, PostService
from ..services.visibility import VisibilityFilter

router = APIRouter(prefix="/api/posts", tags=["posts"])


def _page(result, viewer_id: str, page: int, per_page: int) -> dict:
    posts, total = result
    return paginated([post_to_dict(p, viewer_id) for p in posts], total, page, per_page)


# ============================================================
# LIFECYCLE
# ============================================================

@router.post("")
def create_post(
    caption: Optional[str] = Form(None),
    status: Optional[str] = Form(None),
    audio_id: Optional[str] = Form(None),
    tagged_friends: Optional[List[str]] = Form(None),
    post_image: Optional[UploadFile] = File(None),
    post_video: Optional[UploadFile] = File(None),
    service: PostService = Depends(get_post_service),
    current_user: User = Depends(get_required_user),
):
    """Create a post with an optional image, video and audio track."""
    tags = normalize_id_list(tagged_friends)
    stored = store_uploads(service.media, {"post_images": post_image, "post_videos": post_video})
    post = service.create(
        current_user,
        caption=caption,
        image=stored["post_images"],
        video=stored["post_videos"],
        audio_id=audio_id,
        tagged_friends=tags,
        status=status,
    )
    return created(post_to_dict(post, current_user.id), "Post created successfully")


@router.patch("/{post_id}")
def update_post(
    post_id: str,
    caption: Optional[str] = Form(None),
    audio_id: Optional[str] = Form(None),
    tagged_friends: Optional[List[str]] = Form(None),
    post_image: Optional[UploadFile] = File(None),
    post_video: Optional[UploadFile] = File(None),
    service: PostService = Depends(get_post_service),
    principal: Principal = Depends(get_principal),
):
    """Update a post (owner only). New media replaces the old files."""
    tags = normalize_id_list(tagged_friends) if tagged_friends is not None else None
    stored = store_uploads(service.media, {"post_images": post_image, "post_videos": post_video})
    post = service.update(post_id, principal.id, PostPatch(
        caption=caption,
        audio_id=audio_id,
        tagged_friends=tags,
        image=stored["post_images"],
        video=stored["post_videos"],
    ))
    return success(post_to_dict(post, principal.id), "Post updated successfully")


@router.delete("/{post_id}")
def delete_post(
    post_id: str,
    service: PostService = Depends(get_post_service),
    principal: Principal = Depends(get_principal),
):
    """Delete a post with its comments and media (owner only)."""
    service.delete(post_id, principal.id)
    return deleted("Post deleted successfully")


@router.post("/{post_id}/publish")
def publish_post(
    post_id: str,
    service: PostService = Depends(get_post_service),
    principal: Principal = Depends(get_principal),
):
    """Publish a draft."""
    post = service.publish(post_id, principal.id)
    return success(post_to_dict(post, principal.id), "Draft published successfully")


@router.post("/{post_id}/unpublish")
def unpublish_post(
    post_id: str,
    service: PostService = Depends(get_post_service),
    principal: Principal = Depends(get_principal),
):
    """Move a published post back to drafts."""
    post = service.unpublish(post_id, principal.id)
    return success(post_to_dict(post, principal.id), "Post moved to drafts")


@router.delete("/{post_id}/draft")
def remove_draft(
    post_id: str,
    service: PostService = Depends(get_post_service),
    principal: Principal = Depends(get_principal),
):
    """Permanently delete a draft and its media."""
    service.remove_draft(post_id, principal.id)
    return deleted("Draft and its media deleted successfully")


@router.get("/drafts")
def get_drafts(
    service: PostService = Depends(get_post_service),
    principal: Principal = Depends(get_principal),
):
    """The current user's drafts, newest first."""
    drafts = service.drafts(principal.id)
    return success([post_to_dict(p, principal.id) for p in drafts])


# ============================================================
# FEEDS
# ============================================================

@router.get("/feed")
def get_feed(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    visibility: VisibilityFilter = Depends(get_visibility),
    principal: Principal = Depends(get_principal),
):
    """All published posts the viewer may see."""
    return _page(visibility.global_feed(principal.id, page, per_page), principal.id, page, per_page)


@router.get("/following")
def get_following_feed(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    visibility: VisibilityFilter = Depends(get_visibility),
    principal: Principal = Depends(get_principal),
):
    """Published posts from accounts the viewer follows."""
    return _page(visibility.following_feed(principal.id, page, per_page), principal.id, page, per_page)


@router.get("/saved")
def get_saved_posts(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    visibility: VisibilityFilter = Depends(get_visibility),
    principal: Principal = Depends(get_principal),
):
    return _page(visibility.saved_posts(principal.id, page, per_page), principal.id, page, per_page)


@router.get("/liked")
def get_liked_posts(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    visibility: VisibilityFilter = Depends(get_visibility),
    principal: Principal = Depends(get_principal),
):
    return _page(visibility.liked_posts(principal.id, page, per_page), principal.id, page, per_page)


@router.get("/tagged")
def get_tagged_posts(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    visibility: VisibilityFilter = Depends(get_visibility),
    principal: Principal = Depends(get_principal),
):
    """Posts the current user is tagged in."""
    return _page(visibility.tagged_feed(principal.id, page=page, per_page=per_page), principal.id, page, per_page)


@router.get("/audio/{audio_id}")
def get_posts_by_audio(
    audio_id: str,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    visibility: VisibilityFilter = Depends(get_visibility),
    principal: Principal = Depends(get_principal),
):
    """Published posts using an audio track."""
    return _page(visibility.audio_feed(audio_id, principal.id, page, per_page), principal.id, page, per_page)


# ============================================================
# SINGLE POST & ENGAGEMENT
# ============================================================

@router.get("/{post_id}")
def get_post(
    post_id: str,
    visibility: VisibilityFilter = Depends(get_visibility),
    principal: Principal = Depends(get_principal),
):
    return success(post_to_dict(visibility.post(post_id, principal.id), principal.id))


@router.get("/{post_id}/likes")
def get_post_likes(
    post_id: str,
    engagement: EngagementService = Depends(get_engagement_service),
    principal: Principal = Depends(get_principal),
):
    """Users who liked a post."""
    return success([user_summary(u) for u in engagement.likers(post_id, principal.id)])


@router.post("/{post_id}/like")
def toggle_like(
    post_id: str,
    engagement: EngagementService = Depends(get_engagement_service),
    principal: Principal = Depends(get_principal),
):
    """Like a post, or remove the like if already liked."""
    result = engagement.toggle_like(post_id, principal.id)
    return success(result, "Post liked" if result["liked"] else "Post unliked")


@router.post("/{post_id}/save")
def toggle_save(
    post_id: str,
    engagement: EngagementService = Depends(get_engagement_service),
    principal: Principal = Depends(get_principal),
):
    """Save a post, or remove it from saved posts."""
    result = engagement.toggle_save(post_id, principal.id)
    return success(result, "Post saved" if result["saved"] else "Post removed from saved")
