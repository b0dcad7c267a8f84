import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Centralized application configuration with type validation.
    Automatically reads variables from the environment.
    """

    # --- General Settings ---
    STORAGE_PROVIDER: str = "gdrive"  # "gdrive" or "cloudinary"
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    UPLOAD_DIR: Path = Path("uploads")
    LOG_FILE: Path = Path("app.log")

    # --- Google Drive Settings (optional) ---
    GOOGLE_CREDENTIALS: Optional[str] = None
    GDRIVE_FOLDER_ID: Optional[str] = None
    GDRIVE_PARENT_FOLDER_NAME: str = "Photo Uploads"
    GDRIVE_SUBFOLDER_NAME: str = "Photos"

    # --- Cloudinary Settings (optional) ---
    CLOUDINARY_CLOUD_NAME: Optional[str] = None
    CLOUDINARY_API_KEY: Optional[str] = None
    CLOUDINARY_API_SECRET: Optional[str] = None
    CLOUDINARY_FOLDER: str = "photos"

    @model_validator(mode="before")
    @classmethod
    def clean_and_validate_storage_provider_settings(cls, values):
        provider = values.get("STORAGE_PROVIDER")
        if not provider:
            # Let BaseSettings fall back to the default provider.
            provider = "gdrive"

        gdrive_keys = ["GOOGLE_CREDENTIALS", "GDRIVE_FOLDER_ID"]
        cloudinary_keys = [
            "CLOUDINARY_CLOUD_NAME",
            "CLOUDINARY_API_KEY",
            "CLOUDINARY_API_SECRET",
        ]

        if provider == "gdrive":
            raw_credentials = values.get("GOOGLE_CREDENTIALS")
            if not raw_credentials or not str(raw_credentials).strip():
                raise ValueError(
                    "GOOGLE_CREDENTIALS is required when STORAGE_PROVIDER is 'gdrive'"
                )
            try:
                parsed = json.loads(raw_credentials)
            except (TypeError, json.JSONDecodeError) as e:
                raise ValueError(f"GOOGLE_CREDENTIALS is not valid JSON: {e}")
            if not isinstance(parsed, dict):
                raise ValueError("GOOGLE_CREDENTIALS must be a JSON object")

            if not values.get("GDRIVE_FOLDER_ID"):
                # An empty string in the environment means "not configured".
                values.pop("GDRIVE_FOLDER_ID", None)

            for key in cloudinary_keys:
                if key in values:
                    del values[key]

        elif provider == "cloudinary":
            for key in cloudinary_keys:
                if not values.get(key) or not str(values.get(key)).strip():
                    raise ValueError(
                        f"{key} is required and cannot be empty when STORAGE_PROVIDER is 'cloudinary'"
                    )

            for key in gdrive_keys:
                if key in values:
                    del values[key]

        else:
            raise ValueError(
                "Invalid STORAGE_PROVIDER. Must be 'gdrive' or 'cloudinary'."
            )

        return values

    @property
    def GOOGLE_CREDENTIALS_INFO(self) -> dict:
        """The parsed service account credentials."""
        return json.loads(self.GOOGLE_CREDENTIALS)


@lru_cache()
def get_settings() -> Settings:
    """
    Returns a cached instance of the application settings.
    The first call to this function will initialize the settings.
    """
    settings = Settings()
    settings.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    logging.debug(f"Staging uploads in {settings.UPLOAD_DIR.resolve()}")
    return settings
