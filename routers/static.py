import os
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import FileResponse, PlainTextResponse

from constants import FRONTEND_DIR, FRONTEND_DIR_CANDIDATES
from logging_config import get_logger

logger = get_logger(__name__)

static_router = APIRouter(tags=["static"])


def find_frontend_dir() -> str:
    """FRONTEND_DIR if set, else the first candidate holding an index.html."""
    if FRONTEND_DIR:
        return os.path.realpath(FRONTEND_DIR)
    for candidate in FRONTEND_DIR_CANDIDATES:
        if os.path.isfile(os.path.join(candidate, "index.html")):
            return os.path.realpath(candidate)
    return os.path.realpath(FRONTEND_DIR_CANDIDATES[0])


def resolve_asset(frontend_dir: str, url_path: str) -> Optional[str]:
    """Map a URL path onto a file under frontend_dir. None means it escapes the directory."""
    frontend_dir = os.path.realpath(frontend_dir)
    relative = url_path.lstrip("/") or "index.html"
    target = os.path.realpath(os.path.join(frontend_dir, relative))
    if target != frontend_dir and not target.startswith(frontend_dir + os.sep):
        return None
    return target


@static_router.get("/{path:path}", include_in_schema=False)
async def serve_frontend(path: str):
    frontend_dir = find_frontend_dir()
    target = resolve_asset(frontend_dir, path)
    if target is None:
        logger.warning(f"Rejected path traversal attempt: {path}")
        return PlainTextResponse("Forbidden", status_code=403)
    if os.path.isfile(target):
        return FileResponse(target)

    # SPA fallback
    index = os.path.join(frontend_dir, "index.html")
    if os.path.isfile(index):
        return FileResponse(index, media_type="text/html; charset=utf-8")
    logger.error(f"No index.html in frontend dir {frontend_dir}")
    return PlainTextResponse("Internal error", status_code=500)
