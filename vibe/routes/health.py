"""
Vibe Health Check Routes
Liveness and detailed component status
"""
from fastapi import APIRouter, Depends
from datetime import datetime, timezone
from pathlib import Path
from sqlalchemy import func, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import sys
import psutil
from typing import Dict, Any

from ..config import get_settings
from ..database import get_db
from ..models import Audio, Comment, Post, User
from ..services.notifications import notification_hub

router = APIRouter(prefix="/api/health", tags=["health"])

START_TIME = datetime.now(timezone.utc)
VERSION = "1.0.0"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def get_uptime() -> str:
    """Get process uptime as human-readable string"""
    delta = datetime.now(timezone.utc) - START_TIME
    hours, remainder = divmod(delta.seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    if delta.days > 0:
        return f"{delta.days}d {hours}h {minutes}m"
    elif hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    else:
        return f"{minutes}m {seconds}s"


def check_database(db: Session) -> Dict[str, Any]:
    """Check database connectivity and row counts"""
    try:
        db.execute(text("SELECT 1"))
        counts = {
            model.__tablename__: db.query(func.count(model.id)).scalar()
            for model in (User, Post, Comment, Audio)
        }
        return {
            "status": "healthy",
            "row_counts": counts,
        }
    except SQLAlchemyError as e:
        return {
            "status": "unhealthy",
            "error": str(e),
        }


def check_storage(media_root: str) -> Dict[str, Any]:
    """Check the media root and its free space"""
    media_path = Path(media_root)
    if not media_path.exists():
        # Created lazily on first upload
        return {
            "status": "warning",
            "path": media_root,
            "error": "Media root does not exist yet",
        }

    try:
        usage = psutil.disk_usage(str(media_path))
    except OSError as e:
        return {
            "status": "unhealthy",
            "error": str(e),
        }

    file_counts = {
        sub.name: sum(1 for _ in sub.iterdir())
        for sub in media_path.iterdir() if sub.is_dir()
    }
    free_percent = usage.free / usage.total * 100
    status = "healthy" if free_percent > 10 else "warning" if free_percent > 5 else "critical"

    return {
        "status": status,
        "path": media_root,
        "total_gb": round(usage.total / (1024**3), 2),
        "free_gb": round(usage.free / (1024**3), 2),
        "free_percent": round(free_percent, 1),
        "file_counts": file_counts,
    }


def check_system() -> Dict[str, Any]:
    """Check system resources"""
    memory = psutil.virtual_memory()
    return {
        "status": "healthy" if memory.percent < 90 else "warning",
        "cpu_percent": psutil.cpu_percent(interval=None),
        "memory_percent": memory.percent,
        "memory_available_gb": round(memory.available / (1024**3), 2),
        "python_version": sys.version.split()[0],
    }


# ============================================================
# ROUTES
# ============================================================

@router.get("")
def health_check():
    """Liveness probe for load balancers and monitoring."""
    settings = get_settings()
    return {
        "ok": True,
        "status": "healthy",
        "environment": settings.environment,
        "version": VERSION,
        "uptime": get_uptime(),
        "timestamp": _now(),
    }


@router.get("/detailed")
def health_detailed(db: Session = Depends(get_db)):
    """
    Detailed status of all components.
    Use for monitoring dashboards.
    """
    database = check_database(db)
    storage = check_storage(get_settings().media_root)
    system = check_system()

    statuses = [database["status"], storage["status"], system["status"]]
    if "unhealthy" in statuses:
        overall = "unhealthy"
    elif "warning" in statuses or "critical" in statuses:
        overall = "degraded"
    else:
        overall = "healthy"

    return {
        "ok": overall != "unhealthy",
        "status": overall,
        "uptime": get_uptime(),
        "started_at": START_TIME.isoformat().replace("+00:00", "Z"),
        "checks": {
            "database": database,
            "storage": storage,
            "system": system,
            "notifications": {
                "status": "healthy",
                "online_users": notification_hub.online_count,
                "open_streams": notification_hub.channel_count,
            },
        },
        "timestamp": _now(),
    }
