"""
Model to response-dict conversion shared by the routes.
"""
from typing import Optional

from .models import Audio, Comment, Post, User


def _iso(moment) -> Optional[str]:
    return moment.isoformat() if moment else None


def user_summary(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "name": user.name,
        "profile_pic": user.profile_pic,
    }


def user_to_dict(user: User, include_private: bool = False) -> dict:
    """Profile view. Email and role are only shown to the user themself."""
    data = {
        **user_summary(user),
        "bio": user.bio,
        "gender": user.gender,
        "is_private": user.is_private,
        "followers_count": len(user.followers),
        "followings_count": len(user.followings),
        "posts_count": sum(1 for p in user.posts if p.status == "published"),
        "created_at": _iso(user.created_at),
    }
    if include_private:
        data["email"] = user.email
        data["role"] = user.role
    return data


def audio_to_dict(audio: Audio) -> dict:
    return {
        "id": audio.id,
        "audio_name": audio.audio_name,
        "artist_name": audio.artist_name or [],
        "audio": audio.audio,
        "audio_image": audio.audio_image,
        "created_at": _iso(audio.created_at),
    }


def post_to_dict(post: Post, viewer_id: Optional[str] = None) -> dict:
    """Convert a Post model to a dictionary response."""
    like_ids = {u.id for u in post.likes}
    return {
        "id": post.id,
        "user": user_summary(post.user),
        "caption": post.caption,
        "image": post.image,
        "video": post.video,
        "audio": audio_to_dict(post.audio) if post.audio else None,
        "status": post.status,
        "tagged_friends": [user_summary(u) for u in post.tagged_friends],
        "likes_count": len(like_ids),
        "comments_count": len(post.comments),
        "liked": viewer_id in like_ids if viewer_id else False,
        "saved": any(u.id == viewer_id for u in post.saves) if viewer_id else False,
        "created_at": _iso(post.created_at),
        "updated_at": _iso(post.updated_at),
    }


def comment_to_dict(comment: Comment, viewer_id: Optional[str] = None) -> dict:
    like_ids = {u.id for u in comment.likes}
    return {
        "id": comment.id,
        "post_id": comment.post_id,
        "parent_id": comment.parent_id,
        "user": user_summary(comment.user),
        "text": comment.text,
        "likes_count": len(like_ids),
        "liked": viewer_id in like_ids if viewer_id else False,
        "created_at": _iso(comment.created_at),
    }
