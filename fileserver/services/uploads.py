from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Protocol

from starlette.concurrency import run_in_threadpool

from ..errors import MalformedRequestError, PayloadTooLargeError, StorageFailureError
from .paths import PathResolver, ResolvedPath, join_logical
from .storage import Storage

logger = logging.getLogger(__name__)


class UploadSource(Protocol):
    async def read(self, size: int = -1) -> bytes:
        ...


@asynccontextmanager
async def _open_atomic_in_threadpool(storage: Storage, target: Path):
    """Run ``storage.open_atomic`` in worker threads, keeping fsync and rename off the event loop."""
    writer = storage.open_atomic(target)
    handle = await run_in_threadpool(writer.__enter__)
    try:
        yield handle
    except BaseException as exc:
        if not await run_in_threadpool(writer.__exit__, type(exc), exc, exc.__traceback__):
            raise
    else:
        await run_in_threadpool(writer.__exit__, None, None, None)


class UploadReceiver:
    def __init__(self, resolver: PathResolver, storage: Storage, max_upload_bytes: int, chunk_bytes: int = 1 << 20):
        self.resolver = resolver
        self.storage = storage
        self.max_upload_bytes = max_upload_bytes
        self.chunk_bytes = chunk_bytes

    def check_size(self, size: int | None) -> None:
        if size is not None and size > self.max_upload_bytes:
            logger.warning('Rejected upload of %d bytes (limit %d)', size, self.max_upload_bytes)
            raise PayloadTooLargeError()

    async def receive(
        self,
        target_dir: ResolvedPath,
        filename: str | None,
        source: UploadSource,
        declared_size: int | None = None,
    ) -> ResolvedPath:
        """Stream ``source`` into ``target_dir/filename``, replacing any existing file.

        The destination only changes once every byte has been written; a
        failed or oversized upload leaves it untouched.
        """
        if not filename:
            raise MalformedRequestError('Failed to get file from form')
        self.check_size(declared_size)

        target = self.resolver.resolve(join_logical(target_dir.logical, filename))
        if target.is_root or target.logical == target_dir.logical:
            raise MalformedRequestError('Invalid file name')

        try:
            await run_in_threadpool(self.storage.makedirs, target_dir.fs_path)
            if target.fs_path.parent != target_dir.fs_path:
                await run_in_threadpool(self.storage.makedirs, target.fs_path.parent)
        except OSError as exc:
            logger.error('Failed to create directory for %s', target.fs_path, exc_info=True)
            raise StorageFailureError('Failed to create directory') from exc

        written = 0
        try:
            async with _open_atomic_in_threadpool(self.storage, target.fs_path) as handle:
                while chunk := await source.read(self.chunk_bytes):
                    written += len(chunk)
                    self.check_size(written)
                    await run_in_threadpool(handle.write, chunk)
        except OSError as exc:
            logger.error('Failed to save upload to %s', target.fs_path, exc_info=True)
            raise StorageFailureError('Failed to save file') from exc

        logger.info('Stored upload %s (%d bytes)', target.logical, written)
        return target
