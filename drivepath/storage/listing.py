from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional

from .base import FileItem

DEFAULT_PAGE_SIZE = 200


@dataclass
class ObjectPageStatus:
    path: str
    limit: int = DEFAULT_PAGE_SIZE
    page_token: str = ""
    dir_id: Optional[str] = None
    done: bool = False


class ObjectIterator:
    """
    Lazy iterator over a paginated directory listing.

    Pages are fetched only as items are consumed, so a caller can stop at any
    time. Every call to iter() starts over from the first page.
    """

    def __init__(self, next_page: Callable[[ObjectPageStatus], List[FileItem]],
                 path: str, limit: int = DEFAULT_PAGE_SIZE):
        self._next_page = next_page
        self.path = path
        self.limit = limit

    def pages(self) -> Iterator[List[FileItem]]:
        status = ObjectPageStatus(path=self.path, limit=self.limit)
        while not status.done:
            page = self._next_page(status)
            if page:
                yield page

    def __iter__(self) -> Iterator[FileItem]:
        for page in self.pages():
            yield from page


def child_path(dir_path: str, name: str) -> str:
    # Drive only knows parent/child links, so child paths are rebuilt from the listed directory.
    dir_path = dir_path.rstrip("/")
    if not dir_path:
        return name
    return f"{dir_path}/{name}"
