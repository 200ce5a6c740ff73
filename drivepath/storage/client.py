import logging
from enum import Enum
from typing import Iterator, List, NamedTuple, Optional, Tuple

import requests

from .errors import DriveAPIError
from .iowrap import LimitedReader

logger = logging.getLogger(__name__)

DIRECTORY_MIME_TYPE = "application/vnd.google-apps.folder"
DEFAULT_TIMEOUT = 60.0
DOWNLOAD_CHUNK_SIZE = 256 * 1024
LIST_FIELDS = "nextPageToken, files(id, name, mimeType, size)"
FILE_FIELDS = "id, name, mimeType, size"


class NodeKind(Enum):
    DIRECTORY = "directory"
    FILE = "file"


class DriveFile(NamedTuple):
    id: str
    name: str
    mime_type: str = ""
    size: Optional[int] = None

    @property
    def is_dir(self) -> bool:
        return self.mime_type == DIRECTORY_MIME_TYPE

    @classmethod
    def from_json(cls, data: dict) -> "DriveFile":
        size = data.get("size")
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            mime_type=data.get("mimeType", ""),
            size=int(size) if size is not None else None,
        )


def escape_query_value(value: str) -> str:
    """Escapes a string literal for the Drive `q` search syntax."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class _UploadBody(LimitedReader):
    """
    Upload body that checks the context between chunks.
    requests sends it by calling read() and sets Content-Length from len().
    """

    def __init__(self, stream, size: int, ctx=None):
        super().__init__(stream, size)
        self._ctx = ctx

    def read(self, n: int = -1) -> bytes:
        if self._ctx is not None:
            self._ctx.check()
        return super().read(n)


class DriveClient:
    """
    Minimal Google Drive v3 REST client.

    Every call takes an optional cancellation context (see drivepath.context)
    and raises DriveAPIError for non-2xx responses. Transport failures from
    requests propagate unchanged.
    """

    API_URL = "https://www.googleapis.com/drive/v3"
    UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3"

    def __init__(self, session: requests.Session, timeout: float = DEFAULT_TIMEOUT):
        self.session = session
        self.timeout = timeout

    def _request(self, method: str, url: str, ctx=None, **kwargs) -> requests.Response:
        if ctx is not None:
            ctx.check()
            kwargs.setdefault("timeout", ctx.timeout(self.timeout))
        else:
            kwargs.setdefault("timeout", self.timeout)

        response = self.session.request(method, url, **kwargs)
        if not response.ok:
            error = DriveAPIError.from_response(response)
            response.close()
            raise error
        return response

    def _list(self, query: str, ctx=None, page_token: Optional[str] = None,
              page_size: Optional[int] = None) -> Tuple[List[DriveFile], Optional[str]]:
        params = {"q": query, "fields": LIST_FIELDS}
        if page_token:
            params["pageToken"] = page_token
        if page_size:
            params["pageSize"] = page_size

        data = self._request("GET", f"{self.API_URL}/files", ctx, params=params).json()
        files = [DriveFile.from_json(item) for item in data.get("files", [])]
        return files, data.get("nextPageToken") or None

    def search_children(self, parent_id: str, name: str, ctx=None,
                        page_token: Optional[str] = None) -> Tuple[List[DriveFile], Optional[str]]:
        """Children of parent_id named exactly `name`, in backend order."""
        query = (
            f"name = '{escape_query_value(name)}' and "
            f"'{escape_query_value(parent_id)}' in parents and trashed = false"
        )
        return self._list(query, ctx, page_token=page_token)

    def list_children(self, parent_id: str, page_token: Optional[str] = None,
                      page_size: int = 200, ctx=None) -> Tuple[List[DriveFile], Optional[str]]:
        query = f"'{escape_query_value(parent_id)}' in parents and trashed = false"
        return self._list(query, ctx, page_token=page_token, page_size=page_size)

    def get_node(self, node_id: str, ctx=None) -> DriveFile:
        response = self._request("GET", f"{self.API_URL}/files/{node_id}", ctx,
                                 params={"fields": FILE_FIELDS})
        return DriveFile.from_json(response.json())

    def create_node(self, name: str, parent_id: str, kind: NodeKind = NodeKind.DIRECTORY, ctx=None) -> str:
        body = {"name": name, "parents": [parent_id]}
        if kind is NodeKind.DIRECTORY:
            body["mimeType"] = DIRECTORY_MIME_TYPE

        response = self._request("POST", f"{self.API_URL}/files", ctx,
                                 params={"fields": "id"}, json=body)
        node_id = response.json()["id"]
        logger.debug(f"Created {kind.value} {name} ({node_id}) under {parent_id}")
        return node_id

    def delete_node(self, node_id: str, ctx=None) -> None:
        self._request("DELETE", f"{self.API_URL}/files/{node_id}", ctx)

    def download_content(self, node_id: str, ctx=None, chunk_size: int = DOWNLOAD_CHUNK_SIZE) -> Iterator[bytes]:
        response = self._request("GET", f"{self.API_URL}/files/{node_id}", ctx,
                                 params={"alt": "media"}, stream=True)
        return self._iter_content(response, ctx, chunk_size)

    @staticmethod
    def _iter_content(response: requests.Response, ctx, chunk_size: int) -> Iterator[bytes]:
        try:
            for chunk in response.iter_content(chunk_size=chunk_size):
                if ctx is not None:
                    ctx.check()
                if chunk:
                    yield chunk
        finally:
            response.close()

    def upload_content(self, stream, size: int, node_id: Optional[str] = None,
                       name: Optional[str] = None, parent_id: Optional[str] = None, ctx=None) -> str:
        """
        Streams exactly `size` bytes from `stream` through a resumable upload.

        Creates a new file named `name` under `parent_id` when node_id is None,
        otherwise replaces the content of node_id in place. Returns the node id.
        """
        if node_id is None:
            if name is None or parent_id is None:
                raise ValueError("name and parent_id are required to create a file")
            method, url = "POST", f"{self.UPLOAD_URL}/files"
            metadata = {"name": name, "parents": [parent_id]}
        else:
            method, url = "PATCH", f"{self.UPLOAD_URL}/files/{node_id}"
            metadata = {}

        session = self._request(
            method, url, ctx,
            params={"uploadType": "resumable", "fields": "id"},
            json=metadata,
            headers={"X-Upload-Content-Length": str(size)},
        )
        location = session.headers["Location"]

        response = self._request("PUT", location, ctx, data=_UploadBody(stream, size, ctx))
        uploaded_id = response.json().get("id", node_id)
        logger.debug(f"Uploaded {size} bytes to {uploaded_id}")
        return uploaded_id
