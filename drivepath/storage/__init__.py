from .base import StorageProvider, FileItem, ObjectMode, ListMode, StorageMeta
from .cache import NodeCache
from .client import DriveClient, DriveFile, NodeKind
from .gdrive import GoogleDriveStorageProvider, new_storager
from .listing import ObjectIterator
from .resolver import PathResolver, DirectoryMaterializer, ROOT_ID

__all__ = [
    "StorageProvider",
    "FileItem",
    "ObjectMode",
    "ListMode",
    "StorageMeta",
    "NodeCache",
    "DriveClient",
    "DriveFile",
    "NodeKind",
    "GoogleDriveStorageProvider",
    "new_storager",
    "ObjectIterator",
    "PathResolver",
    "DirectoryMaterializer",
    "ROOT_ID",
]
