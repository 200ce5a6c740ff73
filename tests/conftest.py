import itertools
from collections import Counter

import pytest

from drivepath.storage import GoogleDriveStorageProvider, NodeCache
from drivepath.storage.client import DIRECTORY_MIME_TYPE, DriveFile, NodeKind
from drivepath.storage.errors import DriveAPIError


def not_found(node_id):
    return DriveAPIError(404, "notFound", f"File not found: {node_id}.")


class FakeDriveClient:
    """
    In-memory stand-in for DriveClient.

    Nodes live in a flat dict keyed by id and only know their parent, like
    Drive itself. Every call is counted in `calls`; `fail(method, error, after)`
    makes a method raise once it has been called `after` times. Setting
    `empty_search_pages` makes every search return that many empty pages,
    each with a continuation token, before the page holding the matches.
    """

    def __init__(self):
        self.nodes = {}
        self.calls = Counter()
        self.uploads = []
        self.empty_search_pages = 0
        self._failures = {}
        self._ids = itertools.count(1)

    def add(self, name, parent="root", is_dir=False, content=b""):
        node_id = f"id{next(self._ids)}"
        self.nodes[node_id] = {
            "name": name,
            "parent": parent,
            "mime_type": DIRECTORY_MIME_TYPE if is_dir else "text/plain",
            "content": content,
        }
        return node_id

    def fail(self, method, error, after=0):
        self._failures[method] = (error, after)

    def reset_failures(self):
        self._failures.clear()

    def _call(self, method, ctx):
        self.calls[method] += 1
        if ctx is not None:
            ctx.check()
        failure = self._failures.get(method)
        if failure and self.calls[method] > failure[1]:
            raise failure[0]

    def _file(self, node_id):
        node = self.nodes[node_id]
        size = None if node["mime_type"] == DIRECTORY_MIME_TYPE else len(node["content"])
        return DriveFile(node_id, node["name"], node["mime_type"], size)

    def _children(self, parent_id):
        return [node_id for node_id, node in self.nodes.items() if node["parent"] == parent_id]

    def search_children(self, parent_id, name, ctx=None, page_token=None):
        self._call("search_children", ctx)
        page = int(page_token or 0)
        if page < self.empty_search_pages:
            return [], str(page + 1)
        files = [self._file(i) for i in self._children(parent_id) if self.nodes[i]["name"] == name]
        return files, None

    def list_children(self, parent_id, page_token=None, page_size=200, ctx=None):
        self._call("list_children", ctx)
        children = self._children(parent_id)
        start = int(page_token or 0)
        end = start + page_size
        next_token = str(end) if end < len(children) else None
        return [self._file(i) for i in children[start:end]], next_token

    def get_node(self, node_id, ctx=None):
        self._call("get_node", ctx)
        if node_id not in self.nodes:
            raise not_found(node_id)
        return self._file(node_id)

    def create_node(self, name, parent_id, kind=NodeKind.DIRECTORY, ctx=None):
        self._call("create_node", ctx)
        return self.add(name, parent_id, is_dir=kind is NodeKind.DIRECTORY)

    def delete_node(self, node_id, ctx=None):
        self._call("delete_node", ctx)
        if node_id not in self.nodes:
            raise not_found(node_id)
        pending = [node_id]
        while pending:
            current = pending.pop()
            pending.extend(self._children(current))
            del self.nodes[current]

    def download_content(self, node_id, ctx=None, chunk_size=4):
        self._call("download_content", ctx)
        if node_id not in self.nodes:
            raise not_found(node_id)
        content = self.nodes[node_id]["content"]
        return iter([content[i:i + chunk_size] for i in range(0, len(content), chunk_size)])

    def upload_content(self, stream, size, node_id=None, name=None, parent_id=None, ctx=None):
        self._call("upload_content", ctx)
        if node_id is not None and node_id not in self.nodes:
            raise not_found(node_id)
        chunks = []
        while True:
            chunk = stream.read(3)
            if not chunk:
                break
            chunks.append(chunk)
        data = b"".join(chunks)
        self.uploads.append(data)

        if node_id is None:
            node_id = self.add(name, parent_id, content=data)
        else:
            self.nodes[node_id]["content"] = data
        return node_id

    def find(self, name, parent="root"):
        matches = [i for i in self._children(parent) if self.nodes[i]["name"] == name]
        return matches[0] if matches else None


@pytest.fixture
def client():
    return FakeDriveClient()


@pytest.fixture
def cache():
    return NodeCache(num_counters=1000, max_cost=1000, ttl=100)


@pytest.fixture
def storage(client, cache):
    return GoogleDriveStorageProvider(client, name="test", work_dir="/", cache=cache)
