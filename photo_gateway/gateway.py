# gateway.py
import logging
import shutil
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Optional

from .exceptions import (
    DeleteError,
    GatewayError,
    StoragePermissionError,
    UploadError,
    ValidationError,
)
from .storage.base import StorageClient
from .storage.dto import StagedBlob, StorageReference

SERVICE_MESSAGE = "Photo Upload API"
HEALTH_MESSAGE = "Photo upload server is running"


def _stage_upload(
    file_stream: BinaryIO, file_name: str, mime_type: Optional[str], staged_path: Path
) -> StagedBlob:
    """Copies the incoming stream to a local staging file."""
    staged_path.parent.mkdir(parents=True, exist_ok=True)
    with open(staged_path, "wb") as out:
        shutil.copyfileobj(file_stream, out)
    return StagedBlob(
        path=staged_path,
        original_name=file_name,
        mime_type=mime_type or "application/octet-stream",
    )


def _cleanup_local_file(path: Path):
    """Removes a temporary local file."""
    try:
        if path.is_file():
            path.unlink()
    except FileNotFoundError:
        logging.warning(f"Could not remove temporary file {path} as it was not found.")
    except OSError as e:
        logging.error(f"Error removing temporary file {path}: {e}")


def upload_photo(
    storage_client: StorageClient,
    file_stream: Optional[BinaryIO],
    file_name: Optional[str],
    mime_type: Optional[str],
    upload_dir: Path,
) -> StorageReference:
    """
    Stages an uploaded photo locally and forwards it to the storage backend.
    The staged copy is always removed, whether the upload succeeded or not.
    """
    if file_stream is None or not file_name:
        raise ValidationError("No file uploaded")

    logging.info(f"Uploading file: {file_name}")
    staged_path = upload_dir / uuid.uuid4().hex
    try:
        blob = _stage_upload(file_stream, file_name, mime_type, staged_path)
        return storage_client.store(blob)
    except StoragePermissionError:
        raise
    except GatewayError as e:
        logging.error(f"Upload error: {e}")
        raise UploadError(str(e)) from e
    except Exception as e:
        logging.error(f"Unexpected upload error: {e}", exc_info=True)
        raise UploadError(str(e)) from e
    finally:
        _cleanup_local_file(staged_path)


def delete_photo(storage_client: StorageClient, file_id: str):
    """Deletes a stored photo; any backend failure becomes a DeleteError."""
    if not file_id or not file_id.strip():
        raise ValidationError("No file id given")

    try:
        storage_client.remove(file_id)
    except Exception as e:
        logging.error(f"Delete error: {e}")
        raise DeleteError(str(e)) from e
    logging.info(f"Deleted file {file_id}")


def health() -> dict:
    """Liveness snapshot. Does not contact the storage backend."""
    return {
        "status": "ok",
        "message": HEALTH_MESSAGE,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def service_index() -> dict:
    return {
        "status": "ok",
        "message": SERVICE_MESSAGE,
        "endpoints": {
            "health": "/api/health",
            "upload": "POST /api/upload-photo",
            "delete": "DELETE /api/delete-photo/:fileId",
        },
    }
