"""Storage service — attachment files on Supabase Storage (prod) or local disk (dev).

Supabase bucket: card-attachments (must be created in Supabase dashboard).
Local fallback: UPLOAD_DIR, or instance/uploads/ when unset.

Files are handed over as paths on disk and streamed, never read fully into
memory, so large attachments from an import do not bloat the process.
"""

import logging
import mimetypes
import os
import shutil
import uuid

import requests
from flask import current_app

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Longer extensions are dropped from storage paths.
MAX_EXTENSION_LENGTH = 16


def _get_supabase_config():
    """Return Supabase storage config if available, else None."""
    url = current_app.config.get("SUPABASE_URL")
    key = current_app.config.get("SUPABASE_SERVICE_KEY")
    bucket = current_app.config.get("SUPABASE_STORAGE_BUCKET") or "card-attachments"

    if url and key:
        return {"url": url.rstrip("/"), "key": key, "bucket": bucket}
    return None


def _local_root():
    return current_app.config.get("UPLOAD_DIR") or os.path.join(
        current_app.instance_path, "uploads"
    )


def infer_content_type(filename):
    """Guess a MIME type from the filename extension."""
    content_type, _ = mimetypes.guess_type(filename or "")
    return content_type or DEFAULT_CONTENT_TYPE


def build_storage_path(card_id, filename):
    """Unique storage path for a card's file, keeping the original extension."""
    ext = os.path.splitext(filename)[1].lower()
    if len(ext) > MAX_EXTENSION_LENGTH:
        ext = ""
    return f"{card_id}/{uuid.uuid4().hex}{ext}"


def upload_path(path, storage_path, content_type=None):
    """Upload a file from disk and return metadata dict.

    Args:
        path: Local file to upload (left in place; the caller owns it).
        storage_path: Destination path in the bucket / upload dir.
        content_type: MIME type; inferred from storage_path when None.

    Returns dict with:
        storage_path: path in bucket or on disk
        content_type: MIME type
        byte_size: bytes
        public_url: URL to access the file
    """
    content_type = content_type or infer_content_type(storage_path)
    byte_size = os.path.getsize(path)

    # Try Supabase first, fall back to local
    supabase = _get_supabase_config()
    if supabase:
        public_url = _upload_supabase(supabase, storage_path, path, content_type)
    else:
        public_url = _upload_local(storage_path, path)

    return {
        "storage_path": storage_path,
        "content_type": content_type,
        "byte_size": byte_size,
        "public_url": public_url,
    }


def _upload_supabase(config, storage_path, path, content_type):
    """Upload to Supabase Storage. Returns public URL."""
    url = f"{config['url']}/storage/v1/object/{config['bucket']}/{storage_path}"

    headers = {
        "Authorization": f"Bearer {config['key']}",
        "Content-Type": content_type,
        "x-upsert": "true",
    }

    try:
        with open(path, "rb") as f:
            resp = requests.post(url, headers=headers, data=f, timeout=60)
        resp.raise_for_status()

        # Build public URL
        public_url = f"{config['url']}/storage/v1/object/public/{config['bucket']}/{storage_path}"
        logger.info(f"Uploaded to Supabase: {storage_path}")
        return public_url

    except requests.RequestException as e:
        logger.error(f"Supabase upload failed: {e}")
        # Fall back to local
        return _upload_local(storage_path, path)


def _upload_local(storage_path, path):
    """Copy to local filesystem (dev fallback). Returns URL path."""
    filepath = os.path.join(_local_root(), storage_path)
    os.makedirs(os.path.dirname(filepath), exist_ok=True)

    with open(path, "rb") as src, open(filepath, "wb") as dst:
        shutil.copyfileobj(src, dst)

    logger.info(f"Uploaded locally: {filepath}")
    return f"/uploads/{storage_path}"


def delete_file(storage_path):
    """Delete a file from storage. Best-effort, does not raise."""
    supabase = _get_supabase_config()
    if supabase:
        try:
            url = f"{supabase['url']}/storage/v1/object/{supabase['bucket']}/{storage_path}"
            headers = {"Authorization": f"Bearer {supabase['key']}"}
            requests.delete(url, headers=headers, timeout=10)
        except requests.RequestException as e:
            logger.warning(f"Failed to delete from Supabase: {e}")
    else:
        filepath = os.path.join(_local_root(), storage_path)
        try:
            os.remove(filepath)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to delete local file: {e}")
