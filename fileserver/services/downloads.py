from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote

from ..errors import NotFoundError
from .paths import ResolvedPath
from .storage import Storage


@dataclass(frozen=True)
class FileDownload:
    fs_path: Path
    filename: str
    media_type: str
    size: int


@dataclass(frozen=True)
class DirectoryRedirect:
    location: str


def browse_url(logical: str) -> str:
    return '/?path=' + quote(logical, safe='/')


class DownloadDispatcher:
    """Decide what a download request for ``resolved`` serves.

    Files stream back under their own name, directories other than the root
    redirect to the browsing page, everything else is not found.
    """

    def __init__(self, storage: Storage):
        self.storage = storage

    def dispatch(self, resolved: ResolvedPath) -> FileDownload | DirectoryRedirect:
        try:
            info = self.storage.stat(resolved.fs_path)
        except OSError as exc:
            raise NotFoundError() from exc
        if info is None:
            raise NotFoundError()

        if info.is_dir:
            # the whole tree is never offered as a download
            if resolved.is_root:
                raise NotFoundError()
            return DirectoryRedirect(location=browse_url(resolved.logical))

        media_type, _ = mimetypes.guess_type(resolved.name)
        return FileDownload(
            fs_path=resolved.fs_path,
            filename=resolved.name,
            media_type=media_type or 'application/octet-stream',
            size=info.size,
        )
