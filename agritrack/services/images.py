"""Subida de imágenes de producto: host externo (opcional) o carpeta local."""
from __future__ import annotations

import logging
import os
import shutil
import uuid
from typing import Optional

import requests
from fastapi import UploadFile

from ..core.config import settings

log = logging.getLogger(__name__)

LOCAL_PREFIX = "/uploads/"
ALLOWED_EXT = {".jpg", ".jpeg", ".png", ".gif", ".webp"}


class ImageUploadError(Exception):
    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code


def _temp_path(filename: str) -> str:
    ext = os.path.splitext(filename or "")[1].lower()
    if ext not in ALLOWED_EXT:
        raise ImageUploadError(f"Unsupported image type: {ext or 'none'}", 400)
    os.makedirs(settings.upload_dir, exist_ok=True)
    return os.path.join(settings.upload_dir, f"{uuid.uuid4().hex}{ext}")


def _remove(path: str) -> None:
    try:
        if os.path.exists(path):
            os.remove(path)
    except OSError as e:
        log.warning("could not remove temp file %s: %r", path, e)


def _push_to_host(path: str) -> str:
    data = {"upload_preset": settings.image_upload_preset} if settings.image_upload_preset else {}
    with open(path, "rb") as fh:
        r = requests.post(settings.image_upload_url, files={"file": fh}, data=data, timeout=30)
    r.raise_for_status()
    js = r.json()
    url = js.get("secure_url") or js.get("url")
    if not url:
        raise ImageUploadError("Image host returned no URL")
    return url


def store_image(upload: Optional[UploadFile]) -> Optional[str]:
    """
    Guarda la imagen y devuelve su URL pública (None si no vino archivo).
    Con IMAGE_UPLOAD_URL el archivo temporal se envía al host y se borra;
    sin host se conserva y se sirve bajo /uploads. Ante cualquier error el
    temporal se elimina.
    """
    if upload is None or not upload.filename:
        return None
    path = _temp_path(upload.filename)
    try:
        with open(path, "wb") as out:
            shutil.copyfileobj(upload.file, out)
        if os.path.getsize(path) > settings.max_upload_mb * 1024 * 1024:
            raise ImageUploadError("File too large", 413)
        if not settings.image_upload_url:
            return LOCAL_PREFIX + os.path.basename(path)
        url = _push_to_host(path)
    except requests.RequestException as e:
        _remove(path)
        raise ImageUploadError(f"Image upload failed: {e}") from e
    except Exception:
        _remove(path)
        raise
    _remove(path)
    return url


def discard_image(url: Optional[str]) -> None:
    """Borra una imagen local (p. ej. si falló la escritura del producto)."""
    if url and url.startswith(LOCAL_PREFIX):
        _remove(os.path.join(settings.upload_dir, url[len(LOCAL_PREFIX):]))
