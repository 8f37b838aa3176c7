"""
User routes: profiles, discovery, follows, follow requests and blocks.
"""
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from typing import Optional

from ..auth import Principal, get_admin_user, get_principal, get_required_user
from ..dependencies import (
    get_profile_service,
    get_relationship_service,
    get_visibility,
    store_uploads,
)
from ..models.user import User
from ..responses import deleted, paginated, success
from ..serializers import post_to_dict, user_summary, user_to_dict
from ..services.profiles import ProfilePatch, ProfileService
from ..services.relationships import FollowState, RelationshipService
from ..services.visibility import VisibilityFilter

router = APIRouter(prefix="/api/users", tags=["users"])

FOLLOW_MESSAGES = {
    FollowState.FOLLOWING: "User followed",
    FollowState.REQUESTED: "Follow request sent",
    FollowState.NONE: "User unfollowed",
}


# ============================================================
# DISCOVERY & CURRENT USER
# ============================================================

@router.get("/search")
def search_users(
    q: str = Query("", description="Matched against username and name"),
    limit: int = Query(20, ge=1, le=50),
    relationships: RelationshipService = Depends(get_relationship_service),
    principal: Principal = Depends(get_principal),
):
    users = relationships.search_users(principal.id, q, limit)
    return success([user_summary(u) for u in users])


@router.get("/suggested")
def suggested_users(
    limit: int = Query(10, ge=1, le=50),
    relationships: RelationshipService = Depends(get_relationship_service),
    principal: Principal = Depends(get_principal),
):
    """Accounts the current user does not follow yet."""
    return success([user_summary(u) for u in relationships.suggested_users(principal.id, limit)])


@router.get("/me/blocked")
def blocked_users(
    relationships: RelationshipService = Depends(get_relationship_service),
    principal: Principal = Depends(get_principal),
):
    return success([user_summary(u) for u in relationships.blocked_users(principal.id)])


@router.get("/me/follow-requests")
def follow_requests(
    relationships: RelationshipService = Depends(get_relationship_service),
    principal: Principal = Depends(get_principal),
):
    """Pending requests to follow the current (private) account."""
    return success([user_summary(u) for u in relationships.follow_requests(principal.id)])


@router.post("/me/follow-requests/{requester_id}/accept")
def accept_follow_request(
    requester_id: str,
    relationships: RelationshipService = Depends(get_relationship_service),
    principal: Principal = Depends(get_principal),
):
    relationships.respond_follow_request(principal.id, requester_id, accept=True)
    return success(message="Follow request accepted")


@router.post("/me/follow-requests/{requester_id}/reject")
def reject_follow_request(
    requester_id: str,
    relationships: RelationshipService = Depends(get_relationship_service),
    principal: Principal = Depends(get_principal),
):
    relationships.respond_follow_request(principal.id, requester_id, accept=False)
    return success(message="Follow request rejected")


@router.patch("/me")
def update_profile(
    username: Optional[str] = Form(None),
    name: Optional[str] = Form(None),
    bio: Optional[str] = Form(None),
    gender: Optional[str] = Form(None),
    is_private: Optional[bool] = Form(None),
    profile_pic: Optional[UploadFile] = File(None),
    profiles: ProfileService = Depends(get_profile_service),
    current_user: User = Depends(get_required_user),
):
    """Edit the current user's profile. A new picture replaces the old file."""
    stored = store_uploads(profiles.media, {"profile_pics": profile_pic})
    user = profiles.update(current_user, ProfilePatch(
        username=username,
        name=name,
        bio=bio,
        gender=gender,
        is_private=is_private,
        profile_pic=stored["profile_pics"],
    ))
    return success(user_to_dict(user, include_private=True), "Profile updated successfully")


@router.delete("/me")
def delete_account(
    profiles: ProfileService = Depends(get_profile_service),
    current_user: User = Depends(get_required_user),
):
    """Delete the current account, its posts and its media."""
    profiles.delete_account(current_user)
    return deleted("Account deleted successfully")


# ============================================================
# PROFILES
# ============================================================

@router.get("/{user_id}")
def get_profile(
    user_id: str,
    visibility: VisibilityFilter = Depends(get_visibility),
    relationships: RelationshipService = Depends(get_relationship_service),
    principal: Principal = Depends(get_principal),
):
    """A user's profile header, with the viewer's follow and block state."""
    user = visibility.profile(user_id, principal.id)
    data = user_to_dict(user, include_private=user.id == principal.id)
    data["is_following"] = relationships.is_following(principal.id, user.id)
    data["is_blocked"] = user.id in principal.blocked_users
    return success(data)


@router.delete("/{user_id}")
def delete_user(
    user_id: str,
    profiles: ProfileService = Depends(get_profile_service),
    relationships: RelationshipService = Depends(get_relationship_service),
    admin: User = Depends(get_admin_user),
):
    """Admin removal of any account."""
    profiles.delete_account(relationships.get_user(user_id))
    return deleted("User deleted successfully")


@router.get("/{user_id}/posts")
def get_user_posts(
    user_id: str,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    visibility: VisibilityFilter = Depends(get_visibility),
    principal: Principal = Depends(get_principal),
):
    posts, total = visibility.user_posts(user_id, principal.id, page, per_page)
    return paginated([post_to_dict(p, principal.id) for p in posts], total, page, per_page)


@router.get("/{user_id}/tagged")
def get_user_tagged(
    user_id: str,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    visibility: VisibilityFilter = Depends(get_visibility),
    principal: Principal = Depends(get_principal),
):
    """Posts a user is tagged in."""
    posts, total = visibility.tagged_feed(principal.id, user_id, page, per_page)
    return paginated([post_to_dict(p, principal.id) for p in posts], total, page, per_page)


@router.get("/{user_id}/followers")
def get_followers(
    user_id: str,
    relationships: RelationshipService = Depends(get_relationship_service),
    principal: Principal = Depends(get_principal),
):
    user = relationships.get_user(user_id)
    return success([user_summary(u) for u in relationships.followers(user, principal.id)])


@router.get("/{user_id}/followings")
def get_followings(
    user_id: str,
    relationships: RelationshipService = Depends(get_relationship_service),
    principal: Principal = Depends(get_principal),
):
    user = relationships.get_user(user_id)
    return success([user_summary(u) for u in relationships.followings(user, principal.id)])


# ============================================================
# FOLLOW & BLOCK
# ============================================================

@router.post("/{user_id}/follow")
def toggle_follow(
    user_id: str,
    relationships: RelationshipService = Depends(get_relationship_service),
    principal: Principal = Depends(get_principal),
):
    """Follow or unfollow. Private accounts get a follow request instead."""
    state = relationships.toggle_follow(principal.id, user_id)
    return success({"state": state}, FOLLOW_MESSAGES[state])


@router.post("/{user_id}/block")
def toggle_block(
    user_id: str,
    relationships: RelationshipService = Depends(get_relationship_service),
    principal: Principal = Depends(get_principal),
):
    """Block or unblock a user. Blocking removes follows in both directions."""
    blocked = relationships.toggle_block(principal.id, user_id)
    return success({"blocked": blocked}, "User blocked" if blocked else "User unblocked")
