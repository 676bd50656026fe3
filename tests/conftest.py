"""Shared fixtures: an in-memory file share with the ShareClient interface."""

import threading
from collections.abc import Iterator
from datetime import datetime
from typing import Optional
from unittest.mock import Mock
from urllib.parse import urlsplit

import pytest

from afssync.exceptions import AfsConflictError, AfsNotFoundError
from afssync.models import DirectoryEntry, FileProperties
from afssync.output import OutputFormatter


def _key(path: str) -> str:
    return path.strip("/").upper()


def _parent(path: str) -> str:
    path = path.strip("/")
    return path.rsplit("/", 1)[0] if "/" in path else ""


class FakeShare:
    """Thread-safe in-memory share.

    Names are case-insensitive and case-preserving. Copies complete
    immediately by reading from the source share found in the registry.
    """

    def __init__(
        self,
        share_name: str,
        registry: dict,
        exists: bool = True,
        can_sign: bool = True,
    ):
        self.share_name = share_name
        self.account_name = "fakeaccount"
        self.sas_token: Optional[str] = None
        self.registry = registry
        self.registry[share_name] = self
        self._exists = exists
        self._can_sign = can_sign
        self._lock = threading.RLock()
        self.dirs: dict[str, str] = {}
        self.files: dict[str, tuple[str, bytes]] = {}
        self.calls: list[tuple[str, str]] = []
        self.copy_sources: dict[str, str] = {}
        self.sas_requests: list[tuple[str, datetime, str]] = []
        self.failures: dict[tuple[str, str], Exception] = {}

    # helpers used by tests ------------------------------------------------

    def put_file(self, path: str, content: bytes) -> None:
        """Create a file, creating missing parent directories."""
        path = path.strip("/")
        parent = _parent(path)
        while parent:
            self.dirs.setdefault(_key(parent), parent)
            parent = _parent(parent)
        self.files[_key(path)] = (path, content)

    def put_dir(self, path: str) -> None:
        path = path.strip("/")
        while path:
            self.dirs.setdefault(_key(path), path)
            path = _parent(path)

    def paths(self) -> set[str]:
        """All file and directory paths, upper-cased for comparison."""
        return set(self.dirs) | set(self.files)

    def read(self, path: str) -> bytes:
        return self.files[_key(path)][1]

    def mutations(self) -> list[tuple[str, str]]:
        mutating = {
            "create_directory_if_not_exists",
            "delete_file_if_exists",
            "delete_directory_if_exists",
            "start_copy",
        }
        return [call for call in self.calls if call[0] in mutating]

    def _record(self, method: str, path: str) -> None:
        with self._lock:
            self.calls.append((method, path))
            error = self.failures.get((method, _key(path)))
        if error is not None:
            raise error

    def _is_dir(self, path: str) -> bool:
        return not _key(path) or _key(path) in self.dirs

    # ShareClient interface -----------------------------------------------

    def exists(self) -> bool:
        return self._exists

    def create_if_not_exists(self) -> bool:
        self._record("create_if_not_exists", "")
        created = not self._exists
        self._exists = True
        return created

    @property
    def can_generate_sas(self) -> bool:
        return self._can_sign

    def generate_file_sas(
        self, path: str, expiry: datetime, permission: str = "r"
    ) -> str:
        with self._lock:
            self.sas_requests.append((path, expiry, permission))
        return f"sp={permission}&sig=fake"

    def file_url(self, path: str) -> str:
        return f"fake://{self.share_name}/{path.strip('/')}"

    def create_directory_if_not_exists(self, path: str) -> bool:
        self._record("create_directory_if_not_exists", path)
        with self._lock:
            if not self._is_dir(_parent(path)):
                raise AfsNotFoundError(f"Parent of {path} not found", 404)
            if _key(path) in self.files:
                raise AfsConflictError(
                    f"{path} is a file", 409, "ResourceTypeMismatch"
                )
            if _key(path) in self.dirs:
                return False
            self.dirs[_key(path)] = path.strip("/")
            return True

    def list_entries(self, path: str = "") -> Iterator[DirectoryEntry]:
        self._record("list_entries", path)
        with self._lock:
            if not self._is_dir(path):
                raise AfsNotFoundError(f"Directory {path} not found", 404)
            parent = _key(path)
            entries = [
                DirectoryEntry(name=original.rsplit("/", 1)[-1], is_directory=True)
                for key, original in self.dirs.items()
                if _key(_parent(original)) == parent
            ]
            entries.extend(
                DirectoryEntry(
                    name=original.rsplit("/", 1)[-1],
                    is_directory=False,
                    size=len(content),
                )
                for key, (original, content) in self.files.items()
                if _key(_parent(original)) == parent
            )
        yield from sorted(entries, key=lambda entry: entry.name.upper())

    def get_file_properties(self, path: str) -> Optional[FileProperties]:
        self._record("get_file_properties", path)
        with self._lock:
            item = self.files.get(_key(path))
        if item is None:
            return None
        return FileProperties(size=len(item[1]))

    def delete_file_if_exists(self, path: str) -> bool:
        self._record("delete_file_if_exists", path)
        with self._lock:
            return self.files.pop(_key(path), None) is not None

    def delete_directory_if_exists(self, path: str) -> bool:
        if not _key(path):
            raise ValueError("Refusing to delete the root directory of a share")
        self._record("delete_directory_if_exists", path)
        with self._lock:
            if _key(path) not in self.dirs:
                return False
            prefix = _key(path) + "/"
            if any(k.startswith(prefix) for k in list(self.dirs) + list(self.files)):
                raise AfsConflictError(
                    f"Directory {path} not empty", 409, "DirectoryNotEmpty"
                )
            del self.dirs[_key(path)]
            return True

    def start_copy(self, path: str, source_url: str) -> str:
        self._record("start_copy", path)
        parts = urlsplit(source_url)
        source = self.registry[parts.netloc]
        content = source.read(parts.path)
        with self._lock:
            if not self._is_dir(_parent(path)):
                raise AfsNotFoundError(f"Parent of {path} not found", 404)
            existing = self.files.get(_key(path))
            name = existing[0] if existing else path.strip("/")
            self.files[_key(path)] = (name, content)
            self.copy_sources[path] = source_url
        return "copy-id"


@pytest.fixture
def registry():
    """Shares addressable by copy-source URLs."""
    return {}


@pytest.fixture
def source(registry):
    """Source share."""
    return FakeShare("src", registry)


@pytest.fixture
def destination(registry):
    """Destination share."""
    return FakeShare("dst", registry)


@pytest.fixture
def mock_output():
    """Create a mock output formatter that records progress lines."""
    output = Mock(spec=OutputFormatter)
    output.quiet = False
    return output


@pytest.fixture
def progress_lines(mock_output):
    """Return a callable listing messages passed to output.info, in call order."""

    def lines() -> list[str]:
        return [call.args[0] for call in mock_output.info.call_args_list]

    return lines


@pytest.fixture
def make_share(registry):
    """Factory for extra shares registered alongside source and destination."""

    def factory(share_name: str, **kwargs) -> FakeShare:
        return FakeShare(share_name, registry, **kwargs)

    return factory
