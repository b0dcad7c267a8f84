# storage/base.py
from abc import ABC, abstractmethod
from .dto import StagedBlob, StorageReference


class StorageClient(ABC):
    """
    Abstract base class for a photo storage backend.
    Defines the common interface that all specific storage clients
    (e.g., Google Drive, Cloudinary) must implement.
    """

    @abstractmethod
    def store(self, blob: StagedBlob) -> StorageReference:
        """
        Uploads a staged file and makes it publicly readable.

        :param blob: The staged local file with its original name and mime type.
        :return: The backend file id and the public URL of the stored file.
        :raises BackendError: If any provider call fails.
        """
        pass

    @abstractmethod
    def remove(self, file_id: str):
        """
        Deletes a previously stored file.

        :param file_id: The id returned by `store`.
        :raises BackendError: If the provider call fails, including "not found".
        """
        pass

    def describe_target(self) -> str:
        """Human-readable description of where uploads go, used in startup logs."""
        return self.__class__.__name__
