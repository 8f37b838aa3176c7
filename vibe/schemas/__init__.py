from .auth import UserCreate, UserLogin, UserResponse, TokenResponse, RefreshRequest
from .posts import CommentCreate, CommentUpdate, normalize_id_list

__all__ = [
    "UserCreate", "UserLogin", "UserResponse", "TokenResponse", "RefreshRequest",
    "CommentCreate", "CommentUpdate", "normalize_id_list",
]
