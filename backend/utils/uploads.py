import os
import shutil
import uuid
import logging
from pathlib import Path

from fastapi import HTTPException, UploadFile

from config import settings

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = ["image/jpeg", "image/png", "image/webp"]


def upload_dir() -> Path:
    path = Path(settings.UPLOAD_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


# Store an uploaded image and return its public /uploads URL
def save_upload(file: UploadFile) -> str:
    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(status_code=400, detail="Invalid file type")

    ext = (file.filename or "image").split(".")[-1]
    unique_filename = f"{uuid.uuid4()}.{ext}"
    save_path = upload_dir() / unique_filename
    try:
        with open(save_path, "wb") as buffer:
            shutil.copyfileobj(file.file, buffer)
    except OSError as e:
        raise HTTPException(status_code=500, detail=f"File save error: {e}")
    finally:
        file.file.close()
    return f"/uploads/{unique_filename}"


def remove_upload(url: str) -> None:
    # Only files under /uploads belong to us
    if not url or not url.startswith("/uploads/"):
        return
    path = upload_dir() / url[len("/uploads/"):]
    try:
        if path.exists():
            os.remove(path)
    except OSError:
        logger.warning("Could not remove uploaded file %s", path)
