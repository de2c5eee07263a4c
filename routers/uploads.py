"""Image uploads referenced by timeline attachments and expense receipts.

Files are named ``<user_id>_<token>.<ext>``; the prefix is the ownership check.
"""
import io
import logging
import re
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import FileResponse, JSONResponse
from PIL import Image, UnidentifiedImageError

from config import MAX_UPLOAD_SIZE, UPLOAD_DIR
from security import require_user_id

logger = logging.getLogger(__name__)

router = APIRouter()

_MAX_IMAGE_DIMENSION = 8000  # pixels per side
_FORMATS = {"jpg": "JPEG", "png": "PNG", "gif": "GIF", "webp": "WEBP"}
_MEDIA_TYPES = {"jpg": "image/jpeg", "png": "image/png", "gif": "image/gif", "webp": "image/webp"}
_NAME_RE = re.compile(r"^(\d+)_[A-Za-z0-9_-]+\.(jpg|png|gif|webp)$")


def _detect_image_ext(data: bytes) -> Optional[str]:
    if data.startswith(b"\xff\xd8\xff"):
        return "jpg"
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "png"
    if data.startswith(b"GIF87a") or data.startswith(b"GIF89a"):
        return "gif"
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    return None


async def _read_limited_upload(upload: UploadFile, max_bytes: int) -> Optional[bytes]:
    chunks = []
    total = 0
    while True:
        chunk = await upload.read(1024 * 1024)
        if not chunk:
            break
        total += len(chunk)
        if total > max_bytes:
            return None
        chunks.append(chunk)
    return b"".join(chunks)


def _reencode(data: bytes, ext: str) -> bytes:
    """Validate dimensions and strip EXIF/metadata by re-saving through Pillow."""
    img = Image.open(io.BytesIO(data))
    if img.width > _MAX_IMAGE_DIMENSION or img.height > _MAX_IMAGE_DIMENSION:
        raise ValueError(f"Image must be {_MAX_IMAGE_DIMENSION}px or smaller in each dimension")
    buf = io.BytesIO()
    img.save(buf, format=_FORMATS[ext])
    return buf.getvalue()


def _error(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse({"ok": False, "error": message}, status_code=status_code)


@router.post("/api/uploads")
async def api_upload(file: UploadFile = File(...), uid: int = Depends(require_user_id)):
    data = await _read_limited_upload(file, MAX_UPLOAD_SIZE)
    if data is None:
        return _error("File must be under 5 MB", 413)
    ext = _detect_image_ext(data)
    if not ext:
        return _error("Unsupported image format")
    try:
        data = _reencode(data, ext)
    except ValueError as exc:
        return _error(str(exc))
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError):
        logger.warning("Could not process upload from user %s", uid)
        return _error("Could not process image")
    name = f"{uid}_{secrets.token_urlsafe(16)}.{ext}"
    (UPLOAD_DIR / name).write_bytes(data)
    return JSONResponse({"ok": True, "url": f"/api/uploads/{name}"}, status_code=201)


@router.get("/api/uploads/{name}")
def api_upload_get(name: str, uid: int = Depends(require_user_id)):
    match = _NAME_RE.match(name)
    # someone else's file gets the same answer as a missing one
    if not match or int(match.group(1)) != uid:
        return _error("File not found", 404)
    path = UPLOAD_DIR / name
    if not path.exists():
        return _error("File not found", 404)
    return FileResponse(path, media_type=_MEDIA_TYPES[match.group(2)])
