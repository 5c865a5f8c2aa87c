"""Disk-backed image store for complaint evidence."""
import hashlib
import io
import os
import uuid
from typing import Dict, Optional, Tuple

from flask import current_app
from PIL import Image, UnidentifiedImageError
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

ALLOWED_IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "webp", "gif"}
DEFAULT_MAX_IMAGE_BYTES = 8 * 1024 * 1024  # 8 MB
UPLOAD_URL_PREFIX = "/uploads/"

# Pillow format name -> extensions it may legitimately arrive under
_FORMAT_EXTENSIONS = {
    "JPEG": {"jpg", "jpeg"},
    "PNG": {"png"},
    "WEBP": {"webp"},
    "GIF": {"gif"},
}


def _fail_if(condition: bool, message: str) -> None:
    if condition:
        raise ValueError(message)


def compute_hash(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def validate_image_file(file: FileStorage, max_bytes: int = DEFAULT_MAX_IMAGE_BYTES) -> Tuple[bytes, str]:
    _fail_if(not file, "No file provided")
    filename = secure_filename(file.filename or "")
    _fail_if(not filename or "." not in filename, "Unsupported file name")
    ext = filename.rsplit(".", 1)[1].lower()
    _fail_if(ext not in ALLOWED_IMAGE_EXTENSIONS, "File type not allowed")

    content = file.read(max_bytes + 1)
    _fail_if(len(content) == 0, "Empty file")
    _fail_if(len(content) > max_bytes, "File exceeds size limits")

    try:
        with Image.open(io.BytesIO(content)) as img:
            detected = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise ValueError("Invalid image data") from exc
    _fail_if(ext not in _FORMAT_EXTENSIONS.get(detected or "", set()), "Image content does not match extension")

    file.stream.seek(0)
    return content, ext


def save_image_bytes(image_bytes: bytes, upload_dir: str, extension: str) -> Tuple[str, str]:
    os.makedirs(upload_dir, exist_ok=True)
    safe_name = secure_filename(f"{uuid.uuid4().hex}.{extension}")
    path = os.path.join(upload_dir, safe_name)
    with open(path, "wb") as f:
        f.write(image_bytes)
    return path, safe_name


def persist_image(file: FileStorage, upload_dir: str, max_bytes: int = DEFAULT_MAX_IMAGE_BYTES) -> Dict:
    image_bytes, ext = validate_image_file(file, max_bytes=max_bytes)
    stored_path, stored_name = save_image_bytes(image_bytes, upload_dir, ext)
    return {
        "path": stored_path,
        "file_name": stored_name,
        "reference": f"{UPLOAD_URL_PREFIX}{stored_name}",
        "extension": ext,
        "image_hash": compute_hash(image_bytes),
    }


def store_complaint_image(file: Optional[FileStorage]) -> Optional[str]:
    """Persist an uploaded image and return its reference path, or None if nothing was sent."""
    if file is None or not file.filename:
        return None
    stored = persist_image(
        file,
        current_app.config["COMPLAINT_UPLOAD_FOLDER"],
        max_bytes=int(current_app.config.get("MAX_IMAGE_UPLOAD_BYTES", DEFAULT_MAX_IMAGE_BYTES)),
    )
    current_app.logger.info(
        "Complaint image stored",
        extra={"file_name": stored["file_name"], "image_hash": stored["image_hash"]},
    )
    return stored["reference"]


def discard_complaint_image(reference: Optional[str]) -> None:
    """Remove a stored image whose complaint was never saved."""
    if not reference or not reference.startswith(UPLOAD_URL_PREFIX):
        return
    file_name = secure_filename(reference[len(UPLOAD_URL_PREFIX):])
    path = os.path.join(current_app.config["COMPLAINT_UPLOAD_FOLDER"], file_name)
    try:
        os.remove(path)
    except FileNotFoundError:
        return
    current_app.logger.info("Orphaned complaint image removed", extra={"file_name": file_name})
