####################################
# --- Request/response schemas --- #
####################################

from typing import Dict

from pydantic import BaseModel, ConfigDict, Field


class UploadPhotoResponse(BaseModel):
    """Response model for `POST /api/upload-photo`."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "success": True,
                "url": "https://drive.google.com/uc?id=1AbCdEfGhIjKlMnOp",
                "fileId": "1AbCdEfGhIjKlMnOp",
            }
        },
    )

    success: bool = True
    url: str
    file_id: str = Field(alias="fileId")


class DeletePhotoResponse(BaseModel):
    """Response model for `DELETE /api/delete-photo/{fileId}`."""

    success: bool = True


class ErrorResponse(BaseModel):
    """Body returned for every failed request."""

    success: bool = False
    error: str


class HealthResponse(BaseModel):
    """Response model for `GET /api/health`."""

    status: str
    message: str
    timestamp: str


class IndexResponse(BaseModel):
    """Response model for `GET /`."""

    status: str
    message: str
    endpoints: Dict[str, str]
