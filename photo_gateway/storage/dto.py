# storage/dto.py
from pathlib import Path
from pydantic import BaseModel


class StagedBlob(BaseModel):
    """
    A local copy of an uploaded file, waiting to be forwarded to the backend.
    """

    path: Path
    original_name: str
    mime_type: str = "application/octet-stream"


class StorageReference(BaseModel):
    """
    What the backend hands back after a successful upload: an id usable for
    deletion and a public URL.
    """

    file_id: str
    url: str
