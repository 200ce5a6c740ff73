import io
from abc import ABC, abstractmethod
from enum import Enum, Flag, auto
from typing import Iterable, NamedTuple, Optional

from .errors import ObjectNotExistError, StorageError


class ObjectMode(Flag):
    DIR = auto()
    READ = auto()


class ListMode(Enum):
    DIR = "dir"
    PREFIX = "prefix"
    PART = "part"


class FileItem(NamedTuple):
    name: str
    is_dir: bool
    size: Optional[int] = None
    path: str = ""  # Path relative to the provider's working directory
    id: str = ""  # Backend node id

    @property
    def mode(self) -> ObjectMode:
        return ObjectMode.DIR if self.is_dir else ObjectMode.READ


class StorageMeta(NamedTuple):
    name: str
    work_dir: str


class StorageProvider(ABC):
    @abstractmethod
    def list_files(self, path: str, list_mode: ListMode = ListMode.DIR, ctx=None) -> Iterable[FileItem]:
        """List the direct children of a directory."""
        pass

    @abstractmethod
    def read(self, path: str, writer, ctx=None, io_callback=None) -> int:
        """Copy the content of a file into writer, returning the bytes copied."""
        pass

    @abstractmethod
    def write(self, path: str, reader, size: int, ctx=None, io_callback=None) -> int:
        """Write exactly size bytes from reader to a file, creating it if needed."""
        pass

    @abstractmethod
    def delete_file(self, path: str, ctx=None) -> None:
        """Delete a file or directory. Missing paths are not an error."""
        pass

    @abstractmethod
    def stat(self, path: str, ctx=None) -> FileItem:
        """Describe an existing file or directory."""
        pass

    @abstractmethod
    def mkdir(self, path: str, ctx=None) -> FileItem:
        """Create directory and its parents if not exists."""
        pass

    @abstractmethod
    def metadata(self) -> StorageMeta:
        pass

    def exists(self, path: str, ctx=None) -> bool:
        """Check if file or directory exists."""
        try:
            self.stat(path, ctx=ctx)
        except StorageError as e:
            if isinstance(e.err, ObjectNotExistError):
                return False
            raise
        return True

    def read_file(self, path: str, ctx=None) -> bytes:
        """Read content of a file."""
        buffer = io.BytesIO()
        self.read(path, buffer, ctx=ctx)
        return buffer.getvalue()

    def write_file(self, path: str, data: bytes, ctx=None) -> int:
        """Write content to a file."""
        return self.write(path, io.BytesIO(data), len(data), ctx=ctx)
