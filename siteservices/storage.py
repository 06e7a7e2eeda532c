"""Disk-backed blob store for uploaded files."""

from __future__ import annotations

import logging
import os
import secrets
import time
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from siteservices.core.errors import InvalidInput, PayloadTooLarge

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True, slots=True)
class StoredBlob:
    file_name: str
    original_name: str
    mime: str
    size: int


class BlobStore:
    """Store uploads under generated names, never the client supplied one."""

    def __init__(self, root: str | os.PathLike[str], *, max_bytes: int) -> None:
        self.root = Path(root)
        self.max_bytes = max_bytes

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def generate_name(original_name: str | None) -> str:
        ext = Path(original_name or "").suffix.lower()
        if not ext[1:].isalnum():
            ext = ""
        return f"{int(time.time() * 1000)}-{secrets.token_hex(8)}{ext}"

    def path_for(self, file_name: str) -> Path:
        return self.root / Path(file_name).name

    async def save(self, upload: UploadFile | None) -> StoredBlob:
        if upload is None or not upload.filename:
            raise InvalidInput("NO_FILE")

        self.ensure_root()
        file_name = self.generate_name(upload.filename)
        target = self.path_for(file_name)
        try:
            size = await self._copy(upload, target)
        except PayloadTooLarge:
            await run_in_threadpool(target.unlink, True)
            logger.info("Rejected upload %r larger than %d bytes", upload.filename, self.max_bytes)
            raise

        return StoredBlob(
            file_name=file_name,
            original_name=upload.filename,
            mime=upload.content_type or "application/octet-stream",
            size=size,
        )

    async def _copy(self, upload: UploadFile, target: Path) -> int:
        size = 0
        handle = await run_in_threadpool(target.open, "wb")
        try:
            while chunk := await upload.read(_CHUNK_SIZE):
                size += len(chunk)
                if size > self.max_bytes:
                    raise PayloadTooLarge()
                await run_in_threadpool(handle.write, chunk)
        finally:
            await run_in_threadpool(handle.close)
        return size

    async def remove(self, file_name: str) -> None:
        await run_in_threadpool(self.path_for(file_name).unlink, True)
