# cloudinary_client.py
import logging
import time
import uuid

import cloudinary.exceptions
import cloudinary.uploader

from .exceptions import BackendError
from .storage.base import StorageClient
from .storage.dto import StagedBlob, StorageReference


class CloudinaryClient(StorageClient):
    """
    Client for storing photos in Cloudinary, implementing the StorageClient interface.

    Account credentials are passed with every call instead of through the
    global `cloudinary.config()`.
    """

    def __init__(self, cloud_name: str, api_key: str, api_secret: str, folder: str = "photos"):
        self.folder = folder
        self._credentials = {
            "cloud_name": cloud_name,
            "api_key": api_key,
            "api_secret": api_secret,
        }
        logging.info(f"Cloudinary client initialized for cloud '{cloud_name}'.")

    def describe_target(self) -> str:
        return f"Cloudinary folder '{self.folder}'"

    def store(self, blob: StagedBlob) -> StorageReference:
        """
        Uploads a staged file under a time-derived public id with a random suffix,
        so uploads landing in the same millisecond never overwrite each other.
        """
        public_id = f"photo_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"
        try:
            logging.info(
                f"Uploading {blob.original_name} to Cloudinary as {self.folder}/{public_id}..."
            )
            result = cloudinary.uploader.upload(
                str(blob.path),
                folder=self.folder,
                public_id=public_id,
                resource_type="image",
                **self._credentials,
            )
        except (cloudinary.exceptions.Error, OSError) as e:
            logging.error(f"Failed to upload '{blob.original_name}' to Cloudinary: {e}")
            raise BackendError(str(e)) from e

        logging.info(f"Successfully uploaded {blob.original_name}: {result['secure_url']}")
        return StorageReference(file_id=result["public_id"], url=result["secure_url"])

    def remove(self, file_id: str):
        """
        Deletes an image from Cloudinary by its public id.
        """
        try:
            logging.info(f"Deleting Cloudinary image '{file_id}'...")
            result = cloudinary.uploader.destroy(
                file_id, resource_type="image", **self._credentials
            )
        except (cloudinary.exceptions.Error, OSError) as e:
            logging.error(f"Failed to delete Cloudinary image '{file_id}': {e}")
            raise BackendError(str(e)) from e

        outcome = result.get("result")
        if outcome != "ok":
            logging.error(f"Cloudinary refused to delete '{file_id}': {outcome}")
            raise BackendError(f"Cloudinary could not delete '{file_id}': {outcome}")
