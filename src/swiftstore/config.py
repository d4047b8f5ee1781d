"""Swift client configuration from environment variables."""

import os
from dataclasses import dataclass
from urllib.parse import urlsplit

from swiftstore import __version__


@dataclass
class SwiftConfig:
    """Connection and behavior configuration for the Swift client.

    Load from environment using SwiftConfig.from_env().
    The storage URL and token are obtained by the caller (e.g. from Keystone);
    acquiring them is outside the scope of this library.
    """

    # Connection
    storage_url: str
    auth_token: str
    timeout_seconds: float = 60.0
    max_connections: int = 20
    user_agent: str = f"swiftstore/{__version__}"

    # Payload handling
    upload_chunk_size: int = 65536
    max_error_body_bytes: int = 4096

    def __post_init__(self) -> None:
        self.storage_url = self.storage_url.rstrip("/")
        if urlsplit(self.storage_url).scheme not in ("http", "https"):
            raise ValueError(
                f"storage_url must be an http(s) URL, got {self.storage_url!r}"
            )
        if self.upload_chunk_size <= 0:
            raise ValueError("upload_chunk_size must be positive")

    @classmethod
    def from_env(cls) -> "SwiftConfig":
        """Load configuration from environment variables.

        Required environment variables:
            SWIFT_STORAGE_URL: Account storage URL (https://host/v1/AUTH_xyz)
            SWIFT_AUTH_TOKEN: Token sent as X-Auth-Token

        Optional environment variables (with defaults):
            SWIFT_TIMEOUT_SECONDS: 60 (default)
            SWIFT_MAX_CONNECTIONS: 20 (default)
            SWIFT_USER_AGENT: swiftstore/<version> (default)
            SWIFT_UPLOAD_CHUNK_SIZE: 65536 (default)
            SWIFT_MAX_ERROR_BODY_BYTES: 4096 (default)

        Raises:
            ValueError: If required environment variables are missing
        """
        storage_url = os.getenv("SWIFT_STORAGE_URL")
        if not storage_url:
            raise ValueError("SWIFT_STORAGE_URL environment variable is required")

        auth_token = os.getenv("SWIFT_AUTH_TOKEN")
        if not auth_token:
            raise ValueError("SWIFT_AUTH_TOKEN environment variable is required")

        return cls(
            storage_url=storage_url,
            auth_token=auth_token,
            timeout_seconds=float(os.getenv("SWIFT_TIMEOUT_SECONDS", "60")),
            max_connections=int(os.getenv("SWIFT_MAX_CONNECTIONS", "20")),
            user_agent=os.getenv("SWIFT_USER_AGENT", f"swiftstore/{__version__}"),
            upload_chunk_size=int(os.getenv("SWIFT_UPLOAD_CHUNK_SIZE", "65536")),
            max_error_body_bytes=int(
                os.getenv("SWIFT_MAX_ERROR_BODY_BYTES", "4096")
            ),
        )

    @property
    def cluster_url(self) -> str:
        """Storage URL with the /v1/<account> suffix removed."""
        idx = self.storage_url.find("/v1/")
        if idx < 0:
            return self.storage_url
        return self.storage_url[:idx]
