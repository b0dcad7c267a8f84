# main.py
import argparse
import logging
import sys
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .cloudinary_client import CloudinaryClient
from .config import Settings, get_settings
from .errors import (
    handle_broad_exceptions,
    handle_gateway_errors,
    handle_http_exceptions,
    handle_request_validation_errors,
)
from .exceptions import GatewayError
from .gdrive import GoogleDriveClient
from .routes import router
from .storage.base import StorageClient


def setup_logging(settings: Settings):
    """Configures logging to file and console explicitly."""
    log_level_name = settings.LOG_LEVEL.upper()

    # Get the root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level_name)

    # Clear any existing handlers to prevent duplicate logs on re-runs or implicit configs
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    try:
        file_handler = logging.FileHandler(settings.LOG_FILE)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
    except OSError as e:
        # Log to console if file logging fails (e.g., permissions)
        root_logger.error(f"Failed to set up file logging to {settings.LOG_FILE}: {e}")

    # Reducing "noise" from third-party libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("googleapiclient").setLevel(logging.WARNING)
    logging.getLogger("cloudinary").setLevel(logging.WARNING)


def _init_gdrive_client(settings: Settings) -> Optional[GoogleDriveClient]:
    """Initializes and returns a GoogleDriveClient."""
    try:
        return GoogleDriveClient(
            credentials_info=settings.GOOGLE_CREDENTIALS_INFO,
            folder_id=settings.GDRIVE_FOLDER_ID,
            parent_folder_name=settings.GDRIVE_PARENT_FOLDER_NAME,
            subfolder_name=settings.GDRIVE_SUBFOLDER_NAME,
        )
    except Exception as e:
        logging.error(
            f"Failed to initialize Google Drive client. Error: {e}", exc_info=True
        )
        return None


def _init_cloudinary_client(settings: Settings) -> Optional[CloudinaryClient]:
    """Initializes and returns a CloudinaryClient."""
    try:
        return CloudinaryClient(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
            folder=settings.CLOUDINARY_FOLDER,
        )
    except Exception as e:
        logging.error(
            f"Failed to initialize Cloudinary client. Error: {e}", exc_info=True
        )
        return None


def initialize_storage_client(settings: Settings) -> Optional[StorageClient]:
    """
    Initializes and returns the storage client selected by STORAGE_PROVIDER,
    or None if it could not be created.
    """
    if settings.STORAGE_PROVIDER == "gdrive":
        logging.info("Using Google Drive storage provider.")
        return _init_gdrive_client(settings)

    if settings.STORAGE_PROVIDER == "cloudinary":
        logging.info("Using Cloudinary storage provider.")
        return _init_cloudinary_client(settings)

    logging.critical(f"Unknown STORAGE_PROVIDER: {settings.STORAGE_PROVIDER}")
    return None


def create_app(settings: Settings, storage_client: StorageClient) -> FastAPI:
    """Create the FastAPI application around an already-built storage client."""
    app = FastAPI(
        title="Photo Upload API",
        summary="Forward uploaded photos to cloud storage",
        version="v1",
    )

    # CORS configuration - allow all origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.storage_client = storage_client

    app.include_router(router)

    app.add_exception_handler(GatewayError, handle_gateway_errors)
    app.add_exception_handler(RequestValidationError, handle_request_validation_errors)
    app.add_exception_handler(StarletteHTTPException, handle_http_exceptions)
    app.middleware("http")(handle_broad_exceptions)

    return app


def main():
    import uvicorn

    parser = argparse.ArgumentParser(
        description="Accept photo uploads and forward them to cloud storage."
    )
    parser.add_argument("--host", help="Interface to bind (overrides HOST).")
    parser.add_argument("--port", type=int, help="Port to listen on (overrides PORT).")
    args = parser.parse_args()

    try:
        settings = get_settings()
    except ValueError as e:
        # pydantic's ValidationError is a ValueError
        logging.critical(f"Invalid configuration, refusing to start: {e}")
        sys.exit(1)

    setup_logging(settings)

    storage_client = initialize_storage_client(settings)
    if storage_client is None:
        logging.critical(
            f"Could not establish a connection to {settings.STORAGE_PROVIDER}."
        )
        sys.exit(1)

    host = args.host or settings.HOST
    port = args.port or settings.PORT

    app = create_app(settings, storage_client)
    logging.info(f"Photo upload server running on port {port}")
    logging.info(f"Uploading to: {storage_client.describe_target()}")
    uvicorn.run(app, host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
