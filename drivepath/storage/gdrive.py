import logging
from typing import Callable, List, Optional

from .auth import build_session
from .base import FileItem, ListMode, StorageMeta, StorageProvider
from .cache import NodeCache
from .client import DriveClient
from .errors import (
    InitError,
    InvalidArgumentError,
    ListModeInvalidError,
    ObjectNotExistError,
    StorageError,
    format_error,
    is_not_found,
)
from .iowrap import CallbackReader, LimitedReader
from .listing import DEFAULT_PAGE_SIZE, ObjectIterator, ObjectPageStatus, child_path
from .resolver import ROOT_ID, DirectoryMaterializer, PathResolver, split_path

logger = logging.getLogger(__name__)


class GoogleDriveStorageProvider(StorageProvider):
    """
    Path based storage on top of Google Drive.

    Paths are relative to `work_dir`. Each operation resolves its path to a
    node id first; see resolver.py for how the walk and the cache interact.
    """

    def __init__(self, client: DriveClient, name: str = "", work_dir: str = "/",
                 cache: Optional[NodeCache] = None, page_size: int = DEFAULT_PAGE_SIZE):
        self.client = client
        self.name = name
        self.work_dir = work_dir or "/"
        self.cache = cache if cache is not None else NodeCache()
        self.page_size = page_size
        self.resolver = PathResolver(client, self.cache, self.work_dir)
        self.materializer = DirectoryMaterializer(self.resolver)

    def __str__(self):
        return f"Storager gdrive {{Name: {self.name}, WorkDir: {self.work_dir}}}"

    def _format_error(self, op: str, err: Exception, *path: str) -> StorageError:
        if isinstance(err, StorageError):
            return err
        return StorageError(op, format_error(err), self, path)

    def metadata(self) -> StorageMeta:
        return StorageMeta(name=self.name, work_dir=self.work_dir)

    def stat(self, path: str, ctx=None) -> FileItem:
        try:
            return self._stat(path, ctx)
        except Exception as e:
            raise self._format_error("stat", e, path) from e

    def _stat(self, path: str, ctx=None) -> FileItem:
        node_id = self.resolver.resolve(path, ctx)
        if node_id is None:
            raise ObjectNotExistError(f"{path} does not exist")
        if node_id == ROOT_ID:
            return FileItem(name="", is_dir=True, path=path, id=ROOT_ID)

        try:
            node = self.client.get_node(node_id, ctx=ctx)
        except Exception as e:
            if is_not_found(e):
                # Removed behind our back; drop the stale ids.
                self.cache.delete(self.resolver.abs_path(path), recursive=True)
                raise ObjectNotExistError(f"{path} does not exist") from e
            raise

        return FileItem(
            name=node.name,
            is_dir=node.is_dir,
            size=None if node.is_dir else node.size,
            path=path,
            id=node.id,
        )

    def mkdir(self, path: str, ctx=None) -> FileItem:
        try:
            node_id = self.materializer.ensure_dirs(path, ctx)
        except Exception as e:
            raise self._format_error("create_dir", e, path) from e

        segments = split_path(path)
        return FileItem(name=segments[-1] if segments else "", is_dir=True, path=path, id=node_id)

    def delete_file(self, path: str, ctx=None) -> None:
        try:
            self._delete(path, ctx)
        except Exception as e:
            raise self._format_error("delete", e, path) from e

    def _delete(self, path: str, ctx=None):
        node_id = self.resolver.resolve(path, ctx)
        if node_id is None:
            logger.debug(f"Delete of missing path {path} ignored")
            return
        if node_id == ROOT_ID:
            raise InvalidArgumentError("refusing to delete the drive root")

        try:
            self.client.delete_node(node_id, ctx=ctx)
        except Exception as e:
            if not is_not_found(e):
                raise
            logger.debug(f"{path} ({node_id}) was already deleted")

        self.cache.delete(self.resolver.abs_path(path), recursive=True)
        logger.info(f"Deleted {path} ({node_id})")

    def list_files(self, path: str, list_mode: ListMode = ListMode.DIR, ctx=None) -> ObjectIterator:
        if list_mode is not ListMode.DIR:
            raise self._format_error("list", ListModeInvalidError(list_mode), path)

        def next_page(status: ObjectPageStatus) -> List[FileItem]:
            try:
                return self._next_object_page(status, ctx)
            except Exception as e:
                raise self._format_error("list", e, path) from e

        return ObjectIterator(next_page, path, limit=self.page_size)

    def _next_object_page(self, status: ObjectPageStatus, ctx=None) -> List[FileItem]:
        if status.dir_id is None:
            status.dir_id = self.resolver.resolve(status.path, ctx)
            if status.dir_id is None:
                status.done = True
                return []

        files, next_token = self.client.list_children(
            status.dir_id, page_token=status.page_token or None, page_size=status.limit, ctx=ctx
        )

        page = [
            FileItem(
                name=f.name,
                is_dir=f.is_dir,
                size=None if f.is_dir else f.size,
                path=child_path(status.path, f.name),
                id=f.id,
            )
            for f in files
        ]

        status.page_token = next_token or ""
        status.done = not next_token
        return page

    def read(self, path: str, writer, ctx=None, io_callback: Optional[Callable[[int], None]] = None) -> int:
        try:
            return self._read(path, writer, ctx, io_callback)
        except Exception as e:
            raise self._format_error("read", e, path) from e

    def _read(self, path: str, writer, ctx=None, io_callback=None) -> int:
        node_id = self.resolver.resolve(path, ctx)
        if node_id is None:
            raise ObjectNotExistError(f"{path} does not exist")

        n = 0
        for chunk in self.client.download_content(node_id, ctx=ctx):
            writer.write(chunk)
            n += len(chunk)
            if io_callback is not None:
                io_callback(len(chunk))
        return n

    def write(self, path: str, reader, size: int, ctx=None,
              io_callback: Optional[Callable[[int], None]] = None) -> int:
        try:
            return self._write(path, reader, size, ctx, io_callback)
        except Exception as e:
            raise self._format_error("write", e, path) from e

    def _write(self, path: str, reader, size: int, ctx=None, io_callback=None) -> int:
        segments = split_path(path)
        if not segments:
            raise InvalidArgumentError("cannot write to the working directory itself")
        if size < 0:
            raise InvalidArgumentError(f"invalid size {size}")

        body = LimitedReader(reader, size)
        if io_callback is not None:
            body = CallbackReader(body, io_callback)

        node_id = self.resolver.resolve(path, ctx)
        if node_id is not None:
            try:
                return self._update(path, node_id, body, size, ctx)
            except Exception as e:
                # A cached id can outlive its node; retry as a create only if no byte was sent.
                if not is_not_found(e) or len(body) != size:
                    raise
                abs_path = self.resolver.abs_path(path)
                logger.warning(f"{abs_path} ({node_id}) no longer exists, creating it again")
                self.cache.delete(abs_path, recursive=True)
                node_id = self.resolver.resolve(path, ctx)
                if node_id is not None:
                    return self._update(path, node_id, body, size, ctx)

        parent_id = self.materializer.ensure_dirs("/".join(segments[:-1]), ctx)
        node_id = self.client.upload_content(body, size, name=segments[-1], parent_id=parent_id, ctx=ctx)
        self.cache.set(self.resolver.abs_path(path), node_id, is_dir=False)
        logger.info(f"Created {path} ({node_id}), {size} bytes")
        return size

    def _update(self, path: str, node_id: str, body, size: int, ctx=None) -> int:
        self.client.upload_content(body, size, node_id=node_id, ctx=ctx)
        logger.info(f"Updated {path} ({node_id}), {size} bytes")
        return size


def new_storager(config, session=None) -> GoogleDriveStorageProvider:
    """
    Builds a provider from a StorageConfig.
    Any failure, including a cache that cannot be built, raises InitError.
    """
    try:
        cache = NodeCache(
            num_counters=config.cache_num_counters,
            max_cost=config.cache_max_cost,
            ttl=config.cache_ttl,
        )
        if session is None:
            session = build_session(config.credential)
        client = DriveClient(session, timeout=config.timeout)
        return GoogleDriveStorageProvider(
            client,
            name=config.name,
            work_dir=config.work_dir,
            cache=cache,
            page_size=config.page_size,
        )
    except Exception as e:
        raise InitError("new_storager", format_error(e), config) from e
