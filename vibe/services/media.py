"""
Media reference resolver.

Uploaded files are written under ``settings.media_root`` and addressed by a
stable public reference such as ``/public/post_images/<id>.jpg``. Releasing a
reference deletes the file; releasing something that is already gone is not
an error.
"""
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterable, Optional
import shutil
import uuid

from fastapi import UploadFile

from ..config import get_settings
from ..errors import InvalidArgument
from ..logging_config import get_logger

logger = get_logger("media")

FOLDERS = {
    "post_images": {"image/"},
    "post_videos": {"video/"},
    "profile_pics": {"image/"},
    "audio": {"audio/"},
    "audio_images": {"image/"},
}


class LocalMediaStore:
    """Stores uploads on local disk and hands back public references."""

    def __init__(self, root: str, url_prefix: str = "/public", max_bytes: Optional[int] = None):
        self.root = Path(root)
        self.url_prefix = "/" + url_prefix.strip("/")
        self.max_bytes = max_bytes

    def store(self, upload: UploadFile, folder: str) -> str:
        """Write an upload into ``folder`` and return its reference."""
        if folder not in FOLDERS:
            raise InvalidArgument(f"Unknown media folder '{folder}'")

        content_type = upload.content_type or ""
        if not any(content_type.startswith(prefix) for prefix in FOLDERS[folder]):
            raise InvalidArgument(
                f"Unsupported file type '{content_type}' for {folder}",
                {"field": folder, "content_type": content_type},
            )
        if self.max_bytes and upload.size and upload.size > self.max_bytes:
            raise InvalidArgument(
                f"File too large (max {self.max_bytes // (1024 * 1024)}MB)",
                {"field": folder, "size": upload.size},
            )

        suffix = Path(upload.filename or "").suffix.lower()
        name = f"{uuid.uuid4().hex}{suffix}"
        target_dir = self.root / folder
        target_dir.mkdir(parents=True, exist_ok=True)

        target = target_dir / name
        self._write(upload.file, target)

        reference = f"{self.url_prefix}/{folder}/{name}"
        logger.info("Stored media", reference=reference, content_type=content_type)
        return reference

    def _write(self, source: BinaryIO, target: Path) -> None:
        source.seek(0)
        with target.open("wb") as out:
            shutil.copyfileobj(source, out)

    def path_for(self, reference: str) -> Optional[Path]:
        """Map a reference back to its file, or None for foreign references."""
        if not reference or not reference.startswith(self.url_prefix + "/"):
            return None
        relative = reference[len(self.url_prefix) + 1:]
        path = (self.root / relative).resolve()
        if self.root.resolve() not in path.parents:
            return None
        return path

    def release(self, reference: Optional[str]) -> None:
        """Delete the file behind a reference. Idempotent."""
        path = self.path_for(reference) if reference else None
        if path is None:
            return
        path.unlink(missing_ok=True)
        logger.info("Released media", reference=reference)

    def release_quietly(self, *references: Optional[str]) -> None:
        """Release references, logging failures instead of raising them."""
        for reference in references:
            if not reference:
                continue
            try:
                self.release(reference)
            except OSError as e:
                logger.warning("Failed to release media", error=e, reference=reference)

    @contextmanager
    def released_on_failure(self, references: Iterable[Optional[str]]):
        """Release ``references`` if the managed block raises."""
        try:
            yield
        except Exception:
            self.release_quietly(*references)
            raise


_store: Optional[LocalMediaStore] = None


def get_media_store() -> LocalMediaStore:
    """FastAPI dependency returning the process-wide store."""
    global _store
    if _store is None:
        settings = get_settings()
        _store = LocalMediaStore(
            settings.media_root,
            settings.media_url_prefix,
            max_bytes=settings.max_upload_mb * 1024 * 1024,
        )
    return _store
