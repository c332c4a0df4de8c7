"""
    Controller to handle uploads of user images (avatar, cover image) to the asset host
"""
import os

import cloudinary.utils
import logfire

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from dotenv import load_dotenv
from httpx import AsyncBaseTransport, AsyncClient, HTTPError, ConnectTimeout, NetworkError, Limits

from fastapi import status, UploadFile

from typing import Optional

from schema.file_upload import CloudinaryImageUploadResponse


@dataclass(frozen=True)
class AssetFile:
    """A file received from a client, ready to be uploaded."""

    filename: str
    content: bytes
    content_type: Optional[str] = None


async def read_upload(upload: Optional[UploadFile]) -> Optional[AssetFile]:
    """Read an uploaded form file into an `AssetFile`; None when no file was sent."""
    if upload is None or not upload.filename:
        return None
    content = await upload.read()
    return AssetFile(filename=upload.filename, content=content, content_type=upload.content_type)


class AssetHost(ABC):
    """External host that stores media and hands back a public URL."""

    @abstractmethod
    async def upload(self, file: AssetFile) -> Optional[str]:
        """Upload `file` and return its URL, or None if the upload failed."""


class CloudinaryAssetHost(AssetHost):
    """Signed uploads to the Cloudinary REST API."""

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        timeout: float = 30,
        transport: Optional[AsyncBaseTransport] = None,
    ):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_env(cls) -> "CloudinaryAssetHost":
        load_dotenv()
        return cls(
            cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME", ""),
            api_key=os.getenv("CLOUDINARY_API_KEY", ""),
            api_secret=os.getenv("CLOUDINARY_API_SECRET", ""),
        )

    @property
    def upload_url(self) -> str:
        return f"https://api.cloudinary.com/v1_1/{self.cloud_name}/image/upload"

    async def upload(self, file: AssetFile) -> Optional[str]:
        """Uploads an image to Cloudinary.

        Args:
            file (AssetFile): The image to upload.

        Returns:
            Optional[str]: The secure URL of the stored image, or None if the upload failed.
        """
        timestamp = str(int(datetime.now().timestamp()))

        payload = {
            "timestamp": timestamp,
            "api_key": self.api_key,
            "signature": cloudinary.utils.api_sign_request({"timestamp": timestamp}, self.api_secret),
        }
        files = {"file": (file.filename, file.content, file.content_type or "application/octet-stream")}

        logfire.info(f"Uploading {file.filename} to Cloudinary")

        try:
            connection_limits = Limits(max_keepalive_connections=20, max_connections=20)

            async with AsyncClient(timeout=self.timeout, limits=connection_limits, transport=self.transport) as client:
                response = await client.post(self.upload_url, data=payload, files=files)
        except NetworkError as e:
            logfire.error(f"Network error occurred while uploading image to Cloudinary: {e}")
            return None
        except ConnectTimeout as e:
            logfire.error(f"Connection timed out while uploading image to Cloudinary: {e}")
            return None
        except HTTPError as e:
            logfire.error(f"HTTP error occurred while uploading image to Cloudinary: {e}")
            return None

        if response.status_code != status.HTTP_200_OK:
            logfire.error(f"Failed to upload image to Cloudinary: {response.status_code} {response.text}")
            return None

        try:
            uploaded = CloudinaryImageUploadResponse(**response.json())
        except (ValueError, TypeError) as e:
            logfire.error(f"Unexpected Cloudinary upload response: {e}")
            return None

        logfire.info(f"Image uploaded successfully to Cloudinary: {uploaded.public_id}")
        return uploaded.secure_url
