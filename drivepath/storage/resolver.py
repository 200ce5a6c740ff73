"""
Path resolution over the Drive node graph.

Drive has no notion of paths: a node only knows its name and its parents, and
nothing stops two siblings from sharing a name. A path is therefore resolved
one segment at a time, searching each parent for a child with the segment's
name and taking the first match. Resolved prefixes are memoized in the
NodeCache so later walks can start from the deepest cached ancestor.
"""
import logging
from typing import List, Optional, Tuple

from .cache import NodeCache
from .client import DriveFile, NodeKind
from .errors import InvalidArgumentError

logger = logging.getLogger(__name__)

ROOT_ID = "root"


def split_path(path: str) -> List[str]:
    return [segment for segment in (path or "").split("/") if segment]


def join_segments(segments: List[str]) -> str:
    return "/" + "/".join(segments)


class PathResolver:
    def __init__(self, client, cache: NodeCache, work_dir: str = "/"):
        self.client = client
        self.cache = cache
        self.work_dir = work_dir

    def abs_segments(self, path: str) -> List[str]:
        return split_path(self.work_dir) + split_path(path)

    def abs_path(self, path: str) -> str:
        return join_segments(self.abs_segments(path))

    def resolve(self, path: str, ctx=None) -> Optional[str]:
        """
        Returns the node id of path, or None if some segment does not exist.
        Backend errors propagate unchanged.
        """
        segments = self.abs_segments(path)
        if not segments:
            return ROOT_ID

        abs_path = join_segments(segments)
        node_id = self.cache.get(abs_path)
        if node_id is not None:
            logger.debug(f"Cache hit for {abs_path}: {node_id}")
            return node_id
        depth, node_id = self._deepest_cached_ancestor(segments)
        for i in range(depth, len(segments)):
            node = self.search(node_id, segments[i], ctx)
            if node is None:
                logger.debug(f"{join_segments(segments[:i + 1])} not found while resolving {abs_path}")
                return None
            node_id = node.id
            self.cache.set(join_segments(segments[:i + 1]), node_id, is_dir=node.is_dir)

        return node_id

    def search(self, parent_id: str, name: str, ctx=None) -> Optional[DriveFile]:
        """First child of parent_id named `name`, in backend order."""
        page_token = None
        while True:
            files, page_token = self.client.search_children(parent_id, name, ctx=ctx, page_token=page_token)
            if files:
                if len(files) > 1:
                    logger.warning(f"{len(files)} nodes named {name!r} under {parent_id}, using {files[0].id}")
                return files[0]
            if not page_token:
                return None

    def _deepest_cached_ancestor(self, segments: List[str]) -> Tuple[int, str]:
        for depth in range(len(segments) - 1, 0, -1):
            node_id = self.cache.get(join_segments(segments[:depth]))
            if node_id is not None:
                return depth, node_id
        return 0, ROOT_ID


class DirectoryMaterializer:
    """Creates missing directories along a path, like `mkdir -p`."""

    def __init__(self, resolver: PathResolver):
        self.resolver = resolver

    def ensure_dirs(self, path: str, ctx=None) -> str:
        """
        Returns the node id of the deepest directory of path, creating every
        missing segment. Directories created before a failure are left in place.
        A segment that names an existing file raises InvalidArgumentError.
        """
        client = self.resolver.client
        cache = self.resolver.cache
        node_id = ROOT_ID
        segments = self.resolver.abs_segments(path)

        for i, name in enumerate(segments):
            prefix = join_segments(segments[:i + 1])
            cached = cache.get_entry(prefix)
            if cached is not None:
                node_id, is_dir = cached
                if is_dir is False:
                    raise InvalidArgumentError(f"{prefix} is not a directory")
                continue

            child = self.resolver.search(node_id, name, ctx)
            if child is None:
                child_id = client.create_node(name, node_id, NodeKind.DIRECTORY, ctx=ctx)
                logger.info(f"Created directory {prefix}")
            elif not child.is_dir:
                raise InvalidArgumentError(f"{prefix} is not a directory")
            else:
                child_id = child.id
            cache.set(prefix, child_id, is_dir=True)
            node_id = child_id

        return node_id
