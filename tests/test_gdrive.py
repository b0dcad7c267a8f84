# tests/test_gdrive.py
import pytest
from unittest.mock import patch, MagicMock, ANY

from googleapiclient.errors import HttpError

from photo_gateway.exceptions import BackendError, StoragePermissionError
from photo_gateway.gdrive import GoogleDriveClient, SCOPES
from photo_gateway.storage.dto import StagedBlob


def _http_error(status, message):
    return HttpError(
        resp=MagicMock(status=status),
        content=f'{{"error": {{"message": "{message}"}}}}'.encode(),
    )


@patch("photo_gateway.gdrive.build")
@patch("photo_gateway.gdrive.service_account")
def test_gdrive_client_init_success(MockServiceAccount, MockBuild, service_account_info):
    """Test successful initialization of GoogleDriveClient."""
    mock_service = MockBuild.return_value

    client = GoogleDriveClient(credentials_info=service_account_info)

    MockServiceAccount.Credentials.from_service_account_info.assert_called_once_with(
        service_account_info, scopes=SCOPES
    )
    MockBuild.assert_called_once_with("drive", "v3", credentials=ANY, cache_discovery=False)
    assert client.service == mock_service
    assert client.service_account_email == service_account_info["client_email"]


@patch("photo_gateway.gdrive.build")
@patch("photo_gateway.gdrive.service_account")
def test_gdrive_client_init_failure(MockServiceAccount, MockBuild, service_account_info):
    """Test failed initialization of GoogleDriveClient."""
    MockServiceAccount.Credentials.from_service_account_info.side_effect = ValueError(
        "No key could be detected."
    )

    with pytest.raises(ValueError, match="No key could be detected"):
        GoogleDriveClient(credentials_info=service_account_info)
    MockBuild.assert_not_called()


@pytest.fixture
def make_client(service_account_info):
    """Builds GoogleDriveClient instances backed by a fresh mock Drive service."""
    with patch("photo_gateway.gdrive.build") as MockBuild, patch(
        "photo_gateway.gdrive.service_account"
    ):
        def _make(**kwargs):
            MockBuild.return_value = MagicMock()
            return GoogleDriveClient(credentials_info=service_account_info, **kwargs)

        yield _make


@pytest.fixture
def client(make_client):
    return make_client(parent_folder_name="Parent", subfolder_name="Child")


@pytest.fixture
def blob(tmp_path):
    path = tmp_path / "staged"
    path.write_bytes(b"\xff\xd8\xff fake jpeg")
    return StagedBlob(path=path, original_name="cat.jpg", mime_type="image/jpeg")


def test_ensure_folder_path_exists_creates_missing_folders(client):
    """Both levels are created and made publicly readable when nothing exists."""
    files = client.service.files.return_value
    files.list.return_value.execute.side_effect = [
        {"files": []},  # No "Parent" folder
        {"files": []},  # No "Child" folder
    ]
    files.create.return_value.execute.side_effect = [
        {"id": "parent_id"},
        {"id": "child_id"},
    ]

    folder_id = client.ensure_folder_path_exists("Parent/Child")

    assert folder_id == "child_id"
    assert files.create.call_count == 2
    child_body = files.create.call_args_list[1].kwargs["body"]
    assert child_body["parents"] == ["parent_id"]
    permissions = client.service.permissions.return_value
    granted = [c.kwargs["fileId"] for c in permissions.create.call_args_list]
    assert granted == ["parent_id", "child_id"]
    for c in permissions.create.call_args_list:
        assert c.kwargs["body"] == {"role": "reader", "type": "anyone"}


def test_ensure_folder_path_exists_reuses_existing_folders(client):
    """Existing folders are found by name and parent, nothing is created."""
    files = client.service.files.return_value
    files.list.return_value.execute.side_effect = [
        {"files": [{"id": "parent_id", "name": "Parent"}]},
        {"files": [{"id": "child_id", "name": "Child"}]},
    ]

    folder_id = client.ensure_folder_path_exists("Parent/Child")

    assert folder_id == "child_id"
    files.create.assert_not_called()
    queries = [c.kwargs["q"] for c in files.list.call_args_list]
    assert "trashed=false" in queries[0]
    assert "in parents" not in queries[0]
    assert "'parent_id' in parents" in queries[1]


def test_folder_query_escapes_quotes(client):
    files = client.service.files.return_value
    files.list.return_value.execute.return_value = {"files": []}

    client._get_folder_id_by_name("Bob's photos")

    assert "name='Bob\\'s photos'" in files.list.call_args.kwargs["q"]


@patch("photo_gateway.gdrive.MediaFileUpload")
def test_store_uploads_into_resolved_folder(MockMediaFileUpload, client, blob):
    """The file is created under the resolved folder and shared publicly."""
    files = client.service.files.return_value
    files.list.return_value.execute.side_effect = [
        {"files": [{"id": "parent_id"}]},
        {"files": [{"id": "child_id"}]},
    ]
    files.create.return_value.execute.return_value = {"id": "file_123"}

    reference = client.store(blob)

    assert reference.file_id == "file_123"
    assert reference.url == "https://drive.google.com/uc?id=file_123"
    MockMediaFileUpload.assert_called_once_with(str(blob.path), mimetype="image/jpeg", resumable=True)
    files.create.assert_called_once_with(
        body={"name": "cat.jpg", "parents": ["child_id"]},
        media_body=MockMediaFileUpload.return_value,
        fields="id",
        supportsAllDrives=True,
    )
    client.service.permissions.return_value.create.assert_called_once_with(
        fileId="file_123",
        body={"role": "reader", "type": "anyone"},
        supportsAllDrives=True,
    )


@patch("photo_gateway.gdrive.MediaFileUpload")
def test_store_with_configured_folder_skips_lookup(MockMediaFileUpload, make_client, blob):
    client = make_client(folder_id="configured_id")
    files = client.service.files.return_value
    files.get.return_value.execute.return_value = {
        "id": "configured_id",
        "name": "Shared Photos",
        "capabilities": {"canAddChildren": True},
    }
    files.create.return_value.execute.return_value = {"id": "file_123"}

    reference = client.store(blob)

    assert reference.file_id == "file_123"
    files.list.assert_not_called()
    assert files.create.call_args.kwargs["body"]["parents"] == ["configured_id"]


@patch("photo_gateway.gdrive.MediaFileUpload")
def test_store_read_only_folder_raises_permission_error(MockMediaFileUpload, make_client, blob):
    """A folder the service account cannot write to is rejected before any upload."""
    client = make_client(folder_id="configured_id")
    files = client.service.files.return_value
    files.get.return_value.execute.return_value = {
        "id": "configured_id",
        "name": "Shared Photos",
        "capabilities": {"canAddChildren": False},
    }

    with pytest.raises(StoragePermissionError, match="Editor") as exc_info:
        client.store(blob)

    assert "uploader@test-project.iam.gserviceaccount.com" in str(exc_info.value)
    files.create.assert_not_called()
    MockMediaFileUpload.assert_not_called()


def test_verify_folder_writable_missing_folder_raises_permission_error(make_client):
    client = make_client(folder_id="missing_id")
    client.service.files.return_value.get.return_value.execute.side_effect = _http_error(
        404, "File not found: missing_id."
    )

    with pytest.raises(StoragePermissionError, match="Editor"):
        client.verify_folder_writable("missing_id")


@patch("photo_gateway.gdrive.MediaFileUpload")
def test_store_create_failure_raises_backend_error(MockMediaFileUpload, client, blob):
    """The provider's own message is carried by the BackendError."""
    files = client.service.files.return_value
    files.list.return_value.execute.side_effect = [
        {"files": [{"id": "parent_id"}]},
        {"files": [{"id": "child_id"}]},
    ]
    files.create.return_value.execute.side_effect = _http_error(
        403, "The user's Drive storage quota has been exceeded."
    )

    with pytest.raises(BackendError, match="storage quota has been exceeded"):
        client.store(blob)
    client.service.permissions.return_value.create.assert_not_called()


@patch("photo_gateway.gdrive.MediaFileUpload")
def test_store_share_failure_keeps_file(MockMediaFileUpload, client, blob):
    """A failed permission grant is reported and the created file is left in place."""
    files = client.service.files.return_value
    files.list.return_value.execute.side_effect = [
        {"files": [{"id": "parent_id"}]},
        {"files": [{"id": "child_id"}]},
    ]
    files.create.return_value.execute.return_value = {"id": "file_123"}
    client.service.permissions.return_value.create.return_value.execute.side_effect = (
        _http_error(500, "Internal Error")
    )

    with pytest.raises(BackendError, match="Internal Error"):
        client.store(blob)
    files.delete.assert_not_called()


def test_remove_success(client):
    """Test deleting a file successfully."""
    client.remove("file_123")

    client.service.files.return_value.delete.assert_called_once_with(
        fileId="file_123", supportsAllDrives=True
    )


def test_remove_unknown_file_raises_backend_error(client):
    """A 404 from Drive is passed through as a failure, not swallowed."""
    client.service.files.return_value.delete.return_value.execute.side_effect = _http_error(
        404, "File not found: nope."
    )

    with pytest.raises(BackendError, match="File not found: nope."):
        client.remove("nope")
