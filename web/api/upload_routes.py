"""Image upload API: background images and ad creatives."""
from __future__ import annotations

import logging
import time
from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from starlette.concurrency import run_in_threadpool
from werkzeug.utils import secure_filename

import config
from portal.exceptions import UpstreamFailure, ValidationError
from portal.services.settings_store import SettingsStore
from web.api.deps import get_settings_store

logger = logging.getLogger("portal.upload")

router = APIRouter(prefix="/api", tags=["upload"])

_CHUNK_SIZE = 64 * 1024


async def _read_limited(upload: UploadFile, limit: int) -> bytes:
    """Read the whole upload, refusing anything larger than ``limit`` bytes."""
    chunks = []
    size = 0
    while True:
        chunk = await upload.read(_CHUNK_SIZE)
        if not chunk:
            break
        size += len(chunk)
        if size > limit:
            raise ValidationError("File too large")
        chunks.append(chunk)
    return b"".join(chunks)


@router.post("/upload")
async def upload_file(
    request: Request,
    file: UploadFile = File(...),
    is_ad: str = Form(""),
    store: SettingsStore = Depends(get_settings_store),
):
    """Save an image under the public image dir. Unless ``is_ad=true`` it becomes the page background."""
    data = await _read_limited(file, config.MAX_UPLOAD_BYTES)
    name = secure_filename(file.filename or "") or "image"
    filename = f"upload_{int(time.time())}_{name}"
    upload_dir: Path = request.app.state.upload_dir
    path = upload_dir / filename
    try:
        await run_in_threadpool(path.write_bytes, data)
    except OSError as e:
        logger.error("Failed to save upload %s: %s", filename, e)
        raise UpstreamFailure("Failed to save file") from e

    file_url = f"/img/{filename}"
    if is_ad.strip().lower() != "true":
        try:
            await store.upsert("background_image", f"url({file_url})")
        except UpstreamFailure:
            # Nothing references the image yet
            await run_in_threadpool(path.unlink, missing_ok=True)
            raise
    logger.info("Stored upload %s (%d bytes, ad=%s)", filename, len(data), is_ad or "false")
    return {"success": True, "url": file_url}
