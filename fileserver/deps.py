from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from .config import Settings
from .services.directories import DirectoryCreator
from .services.downloads import DownloadDispatcher
from .services.listing import DirectoryLister
from .services.paths import PathResolver
from .services.storage import LocalStorage, Storage
from .services.uploads import UploadReceiver


@dataclass(frozen=True)
class FileServices:
    resolver: PathResolver
    lister: DirectoryLister
    uploads: UploadReceiver
    directories: DirectoryCreator
    downloads: DownloadDispatcher


def build_services(settings: Settings, storage: Storage | None = None) -> FileServices:
    storage = storage or LocalStorage()
    resolver = PathResolver(settings.storage_root, storage, reject_symlink_escape=settings.reject_symlink_escape)
    return FileServices(
        resolver=resolver,
        lister=DirectoryLister(storage),
        uploads=UploadReceiver(resolver, storage, settings.max_upload_bytes, settings.upload_chunk_bytes),
        directories=DirectoryCreator(resolver, storage),
        downloads=DownloadDispatcher(storage),
    )


def get_services(request: Request) -> FileServices:
    return request.app.state.services
