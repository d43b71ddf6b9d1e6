"""Object stores: local filesystem, Firebase Storage and S3-compatible backends.

Implementations are loaded lazily inside StorageFactory.create_object_store()
so the local backend never imports boto3 or google-auth. Every backend
implements IObjectStore (storage_path_for, write_resumable, delete, stat,
list_namespace, generate_download_url).
"""

from cloud_backup.infrastructure.external.storage.factory import StorageFactory

__all__ = ["StorageFactory"]
