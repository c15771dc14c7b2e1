# Services module
from shiprepair_erp.services.blob_storage import LocalBlobStorage, get_blob_storage

__all__ = [
    "LocalBlobStorage",
    "get_blob_storage",
]
