# gdrive.py
import logging
from typing import Optional

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload

from .exceptions import BackendError, StoragePermissionError
from .storage.base import StorageClient
from .storage.dto import StagedBlob, StorageReference

SCOPES = ["https://www.googleapis.com/auth/drive"]
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
PUBLIC_URL_TEMPLATE = "https://drive.google.com/uc?id={file_id}"


def _escape_query_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _error_message(error: Exception) -> str:
    """Extracts the provider's own message from an API error."""
    if isinstance(error, HttpError):
        return getattr(error, "reason", None) or str(error)
    return str(error)


class GoogleDriveClient(StorageClient):
    """
    Client for storing photos in Google Drive with a service account,
    implementing the StorageClient interface.
    """

    def __init__(
        self,
        credentials_info: dict,
        folder_id: Optional[str] = None,
        parent_folder_name: str = "Photo Uploads",
        subfolder_name: str = "Photos",
    ):
        try:
            creds = service_account.Credentials.from_service_account_info(
                credentials_info, scopes=SCOPES
            )
            self.service = build("drive", "v3", credentials=creds, cache_discovery=False)
            self.service_account_email = credentials_info.get("client_email", "")
            self.folder_id = folder_id
            self.folder_path = f"{parent_folder_name}/{subfolder_name}"
            logging.info("Google Drive client initialized successfully.")
        except Exception as e:
            logging.error(f"Failed to initialize Google Drive client. Error: {e}")
            raise

    def describe_target(self) -> str:
        if self.folder_id:
            return f"Google Drive folder ID {self.folder_id}"
        return f"Google Drive folder '{self.folder_path}'"

    def _grant_public_read(self, file_id: str):
        """Makes a file or folder readable by anyone with the link."""
        self.service.permissions().create(
            fileId=file_id,
            body={"role": "reader", "type": "anyone"},
            supportsAllDrives=True,
        ).execute()

    def _get_folder_id_by_name(self, name: str, parent_id: Optional[str] = None) -> Optional[str]:
        """
        Retrieves the ID of a non-trashed folder by its name, optionally
        restricted to a parent folder.
        """
        query = (
            f"name='{_escape_query_value(name)}' and mimeType='{FOLDER_MIME_TYPE}' "
            f"and trashed=false"
        )
        if parent_id:
            query += f" and '{_escape_query_value(parent_id)}' in parents"
        response = (
            self.service.files()
            .list(
                q=query,
                fields="files(id, name)",
                spaces="drive",
                supportsAllDrives=True,
                includeItemsFromAllDrives=True,
            )
            .execute()
        )
        files = response.get("files", [])
        return files[0]["id"] if files else None

    def _create_folder(self, name: str, parent_id: Optional[str] = None) -> str:
        folder_metadata = {
            "name": name,
            "mimeType": FOLDER_MIME_TYPE,
            "parents": [parent_id] if parent_id else [],
        }
        folder = (
            self.service.files()
            .create(body=folder_metadata, fields="id", supportsAllDrives=True)
            .execute()
        )
        folder_id = folder.get("id")
        logging.info(f"Created folder '{name}' with ID: {folder_id}")
        self._grant_public_read(folder_id)
        return folder_id

    def ensure_folder_path_exists(self, folder_path: str) -> str:
        """
        Finds or creates each folder of a path and returns the final folder's ID.

        The lookup and the creation are separate calls, so two concurrent
        uploads may both create the same folder.
        """
        current_parent_id = None
        for part in folder_path.strip("/").split("/"):
            folder_id = self._get_folder_id_by_name(part, current_parent_id)
            if folder_id:
                logging.info(f"Found existing folder: {part}")
            else:
                logging.info(f"Creating folder: {part}")
                folder_id = self._create_folder(part, current_parent_id)
            current_parent_id = folder_id
        return current_parent_id

    def verify_folder_writable(self, folder_id: str) -> str:
        """
        Verifies that the service account may add files to the given folder.

        Raises:
            StoragePermissionError: If the folder is missing or read-only for
                the service account.
        """
        try:
            folder = (
                self.service.files()
                .get(
                    fileId=folder_id,
                    fields="id, name, mimeType, capabilities(canAddChildren)",
                    supportsAllDrives=True,
                )
                .execute()
            )
        except HttpError as e:
            if e.resp.status == 404:
                raise StoragePermissionError(
                    f"Google Drive folder '{folder_id}' was not found or is not shared. "
                    f"Share it with {self.service_account_email} as Editor."
                ) from e
            raise

        if not folder.get("capabilities", {}).get("canAddChildren"):
            raise StoragePermissionError(
                f"Service account {self.service_account_email} cannot write to folder "
                f"'{folder.get('name', folder_id)}'. Share the folder with it as Editor."
            )
        return folder_id

    def resolve_folder(self) -> str:
        """Returns the ID of the folder uploads should go to."""
        if self.folder_id:
            return self.verify_folder_writable(self.folder_id)
        return self.ensure_folder_path_exists(self.folder_path)

    def store(self, blob: StagedBlob) -> StorageReference:
        """
        Uploads a staged file into the target folder and shares it publicly.
        """
        try:
            folder_id = self.resolve_folder()

            file_metadata = {"name": blob.original_name, "parents": [folder_id]}
            media = MediaFileUpload(str(blob.path), mimetype=blob.mime_type, resumable=True)

            logging.info(
                f"Uploading {blob.path} to folder ID {folder_id} with name {blob.original_name}..."
            )
            created = (
                self.service.files()
                .create(
                    body=file_metadata,
                    media_body=media,
                    fields="id",
                    supportsAllDrives=True,
                )
                .execute()
            )
            file_id = created["id"]

            # A failure here leaves the file in place without public access.
            self._grant_public_read(file_id)
        except StoragePermissionError as e:
            logging.error(f"Permission denied for Google Drive upload: {e}")
            raise
        except (HttpError, GoogleAuthError, OSError) as e:
            logging.error(f"Failed to upload '{blob.original_name}' to Google Drive: {e}")
            raise BackendError(_error_message(e)) from e

        url = PUBLIC_URL_TEMPLATE.format(file_id=file_id)
        logging.info(f"Successfully uploaded {blob.original_name}: {url}")
        return StorageReference(file_id=file_id, url=url)

    def remove(self, file_id: str):
        """
        Deletes a file from Google Drive by its file ID.
        """
        try:
            logging.info(f"Deleting file with ID '{file_id}'...")
            self.service.files().delete(fileId=file_id, supportsAllDrives=True).execute()
        except (HttpError, GoogleAuthError, OSError) as e:
            logging.error(f"Failed to delete file with ID '{file_id}': {e}")
            raise BackendError(_error_message(e)) from e
