"""Client for Azure file shares, built on the Azure Storage SDK."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import datetime
from typing import Any, Callable, TypeVar
from urllib.parse import urlsplit

from azure.core.exceptions import (
    AzureError,
    ClientAuthenticationError,
    DecodeError,
    ResourceExistsError,
    ResourceNotFoundError,
    ServiceRequestError,
    ServiceResponseError,
)
from azure.storage import fileshare

from .exceptions import (
    AfsAPIError,
    AfsAuthenticationError,
    AfsConfigError,
    AfsConflictError,
    AfsInvalidResponseError,
    AfsNetworkError,
    AfsNotFoundError,
    AfsPermissionError,
)
from .models import DirectoryEntry, FileProperties

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Only the read permission is ever granted for copy sources
READ_PERMISSION = "r"


def _error_code(error: AzureError) -> str:
    """Return the storage error code of an SDK error as a plain string."""
    code = getattr(error, "error_code", None) or ""
    return str(getattr(code, "value", code))


class ShareClient:
    """Client for a single file share.

    Wraps an SDK ``ShareClient`` and translates its exceptions into the
    afssync exception hierarchy. All paths are relative to the share root
    and use forward slashes. The empty string addresses the root directory.
    """

    def __init__(self, share: fileshare.ShareClient):
        """Initialize the share client.

        Args:
            share: SDK client of the file share
        """
        self._share = share

    @classmethod
    def from_connection_string(
        cls, conn_str: str, share_name: str, **kwargs: Any
    ) -> ShareClient:
        """Create a client from a storage connection string.

        Args:
            conn_str: Connection string with AccountName and either AccountKey
                or SharedAccessSignature
            share_name: Name of the file share
            **kwargs: Extra arguments passed to the SDK client

        Returns:
            ShareClient instance

        Raises:
            AfsConfigError: If the connection string is malformed or incomplete
        """
        if not share_name:
            raise AfsConfigError("Share name is required")
        try:
            share = fileshare.ShareClient.from_connection_string(
                conn_str, share_name, **kwargs
            )
        except ValueError as e:
            raise AfsConfigError(f"Invalid connection string: {e}") from e

        client = cls(share)
        if not client.account_key and not client.sas_token:
            raise AfsConfigError(
                "Connection string needs AccountKey or SharedAccessSignature"
            )
        return client

    def close(self) -> None:
        """Close the client and release connections."""
        self._share.close()

    def __enter__(self) -> ShareClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"ShareClient({self.share_url!r})"

    # =========================================================================
    # Identity and credentials
    # =========================================================================

    @property
    def share_name(self) -> str:
        return self._share.share_name

    @property
    def account_name(self) -> str:
        return self._share.account_name

    @property
    def account_key(self) -> str | None:
        """Account key of a shared-key credential, if the client has one."""
        return getattr(self._share.credential, "account_key", None)

    @property
    def sas_token(self) -> str | None:
        """SAS the client authenticates with, if it was created from one."""
        return urlsplit(self._share.url).query or None

    @property
    def share_url(self) -> str:
        """URL of the share itself (without credentials)."""
        return self._strip_query(self._share.url)

    def file_url(self, path: str) -> str:
        """URL of a file in the share (without credentials)."""
        path = path.strip("/")
        if not path:
            return self.share_url
        return self._strip_query(self._share.get_file_client(path).url)

    @staticmethod
    def _strip_query(url: str) -> str:
        return urlsplit(url)._replace(query="").geturl()

    @property
    def can_generate_sas(self) -> bool:
        """Whether this client holds an account key that can sign tokens."""
        return bool(self.account_key)

    def generate_file_sas(
        self,
        path: str,
        expiry: datetime,
        permission: str = READ_PERMISSION,
    ) -> str:
        """Issue a SAS token for one file in this share.

        Args:
            path: File path relative to the share root
            expiry: Expiry time of the token (UTC)
            permission: Permission letters (default: read-only)

        Returns:
            SAS query string without leading "?"

        Raises:
            AfsConfigError: If the client has no account key
        """
        account_key = self.account_key
        if not account_key:
            raise AfsConfigError(
                f"Cannot sign tokens for share {self.share_name}: no account key"
            )
        # Plain-http endpoints (the storage emulator) cannot use https-only tokens
        protocol = "https" if self.share_url.startswith("https:") else "https,http"
        return fileshare.generate_file_sas(
            account_name=self.account_name,
            share_name=self.share_name,
            file_path=path.strip("/").split("/"),
            account_key=account_key,
            permission=fileshare.FileSasPermissions.from_string(permission),
            expiry=expiry,
            protocol=protocol,
        )

    # =========================================================================
    # Error handling
    # =========================================================================

    def _translate_error(self, error: AzureError, action: str) -> AfsAPIError:
        """Map an SDK exception onto the afssync exception hierarchy."""
        status_code = getattr(error, "status_code", None) or 0
        error_code = _error_code(error)
        message = f"{action} failed"
        if status_code:
            message += f" with status {status_code}"
        if error_code:
            message += f" ({error_code})"

        if isinstance(error, (ServiceRequestError, ServiceResponseError)):
            return AfsNetworkError(f"Network error during {action}: {error}")
        if isinstance(error, DecodeError):
            return AfsInvalidResponseError(message, status_code, error_code)
        if status_code == 401:
            return AfsAuthenticationError(message, status_code, error_code)
        elif status_code == 403:
            if error_code == "AuthenticationFailed":
                return AfsAuthenticationError(message, status_code, error_code)
            return AfsPermissionError(message, status_code, error_code)
        elif status_code == 404 or isinstance(error, ResourceNotFoundError):
            return AfsNotFoundError(message, status_code, error_code)
        elif status_code == 409 or isinstance(error, ResourceExistsError):
            return AfsConflictError(message, status_code, error_code)
        elif isinstance(error, ClientAuthenticationError):
            return AfsAuthenticationError(message, status_code, error_code)
        return AfsAPIError(message, status_code, error_code)

    def _call(
        self, action: str, func: Callable[..., T], *args: Any, **kwargs: Any
    ) -> T:
        """Invoke an SDK method, translating its exceptions.

        Raises:
            AfsAPIError: If the SDK call fails
        """
        logger.debug("%s on share %s", action, self.share_name)
        try:
            return func(*args, **kwargs)
        except AzureError as e:
            raise self._translate_error(e, action) from e

    # =========================================================================
    # Share operations
    # =========================================================================

    def exists(self) -> bool:
        """Check whether the share exists."""
        return self._call("Check share", self._share.exists)

    def create_if_not_exists(self) -> bool:
        """Create the share unless it already exists.

        Returns:
            True if the share was created, False if it already existed
        """
        try:
            self._call("Create share", self._share.create_share)
        except AfsConflictError as e:
            if e.error_code == "ShareAlreadyExists":
                return False
            raise
        logger.debug("Created share %s", self.share_name)
        return True

    # =========================================================================
    # Directory operations
    # =========================================================================

    def create_directory_if_not_exists(self, path: str) -> bool:
        """Create a directory unless it already exists.

        The parent directory must exist.

        Args:
            path: Directory path relative to the share root

        Returns:
            True if the directory was created, False if it already existed
        """
        path = path.strip("/")
        if not path:
            return False
        directory = self._share.get_directory_client(path)
        try:
            self._call(f"Create directory {path}", directory.create_directory)
        except AfsConflictError as e:
            if e.error_code == "ResourceAlreadyExists":
                return False
            raise
        return True

    def list_entries(self, path: str = "") -> Iterator[DirectoryEntry]:
        """Lazily list the immediate children of a directory.

        Pages are fetched on demand as the iterator advances, so it can
        only be consumed once.

        Args:
            path: Directory path relative to the share root

        Yields:
            DirectoryEntry for every file and subdirectory

        Raises:
            AfsNotFoundError: If the directory does not exist
        """
        path = path.strip("/")
        action = f"List directory {path or '/'}"
        directory = self._share.get_directory_client(path)
        items = self._call(action, directory.list_directories_and_files)
        try:
            for item in items:
                if item.is_directory:
                    yield DirectoryEntry(name=item.name, is_directory=True)
                else:
                    yield DirectoryEntry(
                        name=item.name, is_directory=False, size=item.size
                    )
        except AzureError as e:
            raise self._translate_error(e, action) from e

    def delete_directory_if_exists(self, path: str) -> bool:
        """Delete an empty directory.

        Args:
            path: Directory path relative to the share root

        Returns:
            True if deleted, False if it did not exist

        Raises:
            ValueError: If path addresses the share root
        """
        path = path.strip("/")
        if not path:
            raise ValueError("Refusing to delete the root directory of a share")
        directory = self._share.get_directory_client(path)
        try:
            self._call(f"Delete directory {path}", directory.delete_directory)
        except AfsNotFoundError:
            return False
        return True

    # =========================================================================
    # File operations
    # =========================================================================

    def get_file_properties(self, path: str) -> FileProperties | None:
        """Fetch the properties of a file.

        Args:
            path: File path relative to the share root

        Returns:
            FileProperties, or None if no file exists at that path (including
            when the path names a directory)
        """
        path = path.strip("/")
        file_client = self._share.get_file_client(path)
        try:
            properties = self._call(
                f"Get properties of {path}", file_client.get_file_properties
            )
        except AfsNotFoundError:
            return None

        if properties.size is None:
            raise AfsInvalidResponseError(f"No content length for file {path}")
        return FileProperties(
            size=properties.size,
            etag=properties.etag,
            last_modified=properties.last_modified,
            copy_status=getattr(properties.copy, "status", None),
        )

    def delete_file_if_exists(self, path: str) -> bool:
        """Delete a file.

        Returns:
            True if deleted, False if it did not exist
        """
        path = path.strip("/")
        file_client = self._share.get_file_client(path)
        try:
            self._call(f"Delete file {path}", file_client.delete_file)
        except AfsNotFoundError:
            return False
        return True

    def start_copy(self, path: str, source_url: str) -> str:
        """Start a server-side copy into a file.

        The call returns as soon as the service has accepted the copy; it
        does not wait for the copy to finish.

        Args:
            path: Destination file path relative to the share root
            source_url: URL the service reads from (typically with a SAS)

        Returns:
            Copy ID assigned by the service (may be empty)
        """
        path = path.strip("/")
        file_client = self._share.get_file_client(path)
        result = self._call(
            f"Start copy into {path}", file_client.start_copy_from_url, source_url
        )
        copy_id = result.get("copy_id") or ""
        logger.debug(
            "Copy into %s started (id=%s, status=%s)",
            path,
            copy_id,
            result.get("copy_status"),
        )
        return copy_id
