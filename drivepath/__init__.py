from .storage import GoogleDriveStorageProvider, NodeCache, new_storager
from .context import Context, Deadline

__all__ = ["GoogleDriveStorageProvider", "NodeCache", "new_storager", "Context", "Deadline"]
