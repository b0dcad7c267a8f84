from typing import Optional

from fastapi import APIRouter, File, Path, Request, UploadFile

from . import gateway
from .config import Settings
from .schemas import (
    DeletePhotoResponse,
    ErrorResponse,
    HealthResponse,
    IndexResponse,
    UploadPhotoResponse,
)
from .storage.base import StorageClient

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "No file was uploaded"},
    500: {"model": ErrorResponse, "description": "The storage backend failed"},
}


def get_storage_client(request: Request) -> StorageClient:
    return request.app.state.storage_client


@router.get("/", response_model=IndexResponse)
def index():
    """List the available endpoints."""
    return gateway.service_index()


@router.get("/api/health", response_model=HealthResponse)
def health():
    """Liveness check. Does not verify that the storage backend is reachable."""
    return gateway.health()


@router.post(
    "/api/upload-photo",
    response_model=UploadPhotoResponse,
    responses=ERROR_RESPONSES,
)
def upload_photo(request: Request, photo: Optional[UploadFile] = File(None)):
    """
    Upload a single photo (multipart field `photo`) to the configured backend.

    Returns:
        UploadPhotoResponse: The public URL and the id to delete the photo with.
    """
    settings: Settings = request.app.state.settings
    reference = gateway.upload_photo(
        get_storage_client(request),
        file_stream=photo.file if photo else None,
        file_name=photo.filename if photo else None,
        mime_type=photo.content_type if photo else None,
        upload_dir=settings.UPLOAD_DIR,
    )
    return UploadPhotoResponse(url=reference.url, file_id=reference.file_id)


@router.delete(
    "/api/delete-photo/{file_id:path}",
    response_model=DeletePhotoResponse,
    responses={500: ERROR_RESPONSES[500]},
)
def delete_photo(
    request: Request,
    file_id: str = Path(..., description="The id returned by the upload"),
):
    """Delete a previously uploaded photo."""
    gateway.delete_photo(get_storage_client(request), file_id)
    return DeletePhotoResponse()
