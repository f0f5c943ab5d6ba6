"""
Supabase Storage helpers
Upload files and resolve their public URLs
"""

import logging
import uuid
from typing import Any, Optional

from wastewise import config
from wastewise.errors import StorageError

logger = logging.getLogger(__name__)


def unique_filename(filename: Optional[str]) -> str:
    """Random name that keeps the original extension"""
    file_extension = filename.rsplit('.', 1)[-1] if filename and '.' in filename else 'jpg'
    return f"{uuid.uuid4()}.{file_extension.lower()}"


def _upload_error(upload_result: Any) -> Optional[str]:
    # The client may return an UploadResponse object or a dict
    error = getattr(upload_result, 'error', None)
    if not error and isinstance(upload_result, dict):
        error = upload_result.get('error') or upload_result.get('message')
    return error


def _public_url(public_url_resp: Any) -> Optional[str]:
    if isinstance(public_url_resp, str):
        return public_url_resp
    if isinstance(public_url_resp, dict):
        # Different versions return either 'publicUrl' or 'public_url'
        return public_url_resp.get('publicUrl') or public_url_resp.get('public_url') or public_url_resp.get('url')
    return getattr(public_url_resp, 'public_url', None) or getattr(public_url_resp, 'publicUrl', None)


def upload_file(client, bucket_name: str, path: str, content: bytes, content_type: str) -> str:
    """Upload bytes to a bucket and return the object's public URL"""
    try:
        upload_result = client.storage.from_(bucket_name).upload(
            path=path,
            file=content,
            file_options={"content-type": content_type}
        )
    except Exception as e:
        logger.error("Upload to %s/%s failed: %s", bucket_name, path, e)
        raise StorageError(f"Upload failed: {e}") from e

    error = _upload_error(upload_result)
    if error:
        raise StorageError(f"Upload failed: {error}")

    public_url = _public_url(client.storage.from_(bucket_name).get_public_url(path))

    # Public buckets can always be addressed directly
    if not public_url:
        supabase_url = (config.SUPABASE_URL or '').rstrip('/')
        if not supabase_url:
            raise StorageError("Could not resolve public URL for uploaded file")
        public_url = f"{supabase_url}/storage/v1/object/public/{bucket_name}/{path}"

    logger.debug("Uploaded %s/%s", bucket_name, path)
    return public_url


def remove_file(client, bucket_name: str, path: str) -> None:
    """Delete an object, used to clean up after a failed pipeline"""
    client.storage.from_(bucket_name).remove([path])
    logger.info("Removed orphaned upload %s/%s", bucket_name, path)
