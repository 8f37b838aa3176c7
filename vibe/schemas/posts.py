"""
Request payloads for posts and comments, and boundary normalization of
loosely-typed form fields.
"""
import json
from typing import Any, List, Optional

from pydantic import BaseModel

from ..errors import InvalidArgument


def normalize_id_list(raw: Any, field_name: str = "tagged_friends") -> List[str]:
    """Turn a JSON array string, comma-separated string or list into ids.

    Repeated form fields arrive as a list; each element may itself be a
    JSON array or a comma-separated string.
    """
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        ids: List[str] = []
        for item in raw:
            ids.extend(normalize_id_list(item, field_name))
        return ids
    if not isinstance(raw, str):
        raise InvalidArgument(f"{field_name} must be a list of ids", {"field": field_name})

    text = raw.strip()
    if not text:
        return []
    if text.startswith("["):
        try:
            parsed = json.loads(text)
        except ValueError:
            raise InvalidArgument(f"{field_name} is not valid JSON", {"field": field_name})
        if not isinstance(parsed, list) or not all(isinstance(v, str) for v in parsed):
            raise InvalidArgument(f"{field_name} must be a list of ids", {"field": field_name})
        return [v.strip() for v in parsed if v.strip()]
    return [part.strip() for part in text.split(",") if part.strip()]


class CommentCreate(BaseModel):
    text: Optional[str] = None


class CommentUpdate(BaseModel):
    text: Optional[str] = None
