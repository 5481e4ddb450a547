"""Shared configuration classes for lodgebox.

This module defines configuration used by the submission client,
the image uploader, and the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_CREATE_PATH = "/api/lodges/create"
CLOUDINARY_API_URL = "https://api.cloudinary.com/v1_1"


@dataclass
class EndpointConfig:
    """Configuration for the remote submission endpoint.

    Attributes:
        base_url: Base URL of the application (e.g., "https://zik.example.com").
        create_path: Path of the lodge creation route.
        timeout: Request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    base_url: str
    create_path: str = DEFAULT_CREATE_PATH
    timeout: float = 30.0
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize base URL and path."""
        self.base_url = self.base_url.rstrip("/")
        if not self.create_path.startswith("/"):
            self.create_path = "/" + self.create_path

    @property
    def create_url(self) -> str:
        """Full URL of the creation endpoint."""
        return f"{self.base_url}{self.create_path}"

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS."""
        return self.base_url.startswith("https://")


@dataclass
class UploadConfig:
    """Configuration for unsigned image uploads.

    Attributes:
        cloud_name: Image host account name.
        upload_preset: Unsigned upload preset.
        timeout: Upload timeout in seconds.
    """

    cloud_name: str
    upload_preset: str
    timeout: float = 60.0

    @property
    def upload_url(self) -> str:
        """URL that accepts image uploads."""
        return f"{CLOUDINARY_API_URL}/{self.cloud_name}/image/upload"
