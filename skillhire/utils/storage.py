"""
Object storage for uploaded files, backed by MongoDB GridFS buckets.

Each stored object is reachable at ``{PUBLIC_BASE_URL}/files/{bucket}/{file_id}``.
"""
import io
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from fastapi import Request
from gridfs.errors import NoFile
from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorGridFSBucket

from skillhire.database import parse_object_id
from skillhire.utils.errors import NotFoundException

LOGOS = "logos"
RESUMES = "resumes"
BUCKETS = (LOGOS, RESUMES)


class ObjectStorage:
    def __init__(self, db: AsyncIOMotorDatabase, public_base_url: str):
        self.public_base_url = public_base_url.rstrip("/")
        self._buckets = {name: AsyncIOMotorGridFSBucket(db, bucket_name=name) for name in BUCKETS}

    def _bucket(self, name: str) -> AsyncIOMotorGridFSBucket:
        bucket = self._buckets.get(name)
        if bucket is None:
            raise NotFoundException("File not found")
        return bucket

    def url_for(self, bucket: str, file_id: Any) -> str:
        return f"{self.public_base_url}/files/{bucket}/{file_id}"

    async def put_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Store ``data`` under ``key`` and return its public URL."""
        file_id = await self._bucket(bucket).upload_from_stream(
            key,
            io.BytesIO(data),
            metadata={
                **(metadata or {}),
                "content_type": content_type,
                "uploaded_at": datetime.now(timezone.utc),
            },
        )
        return self.url_for(bucket, file_id)

    async def open_object(self, bucket: str, file_id: str) -> Tuple[bytes, str, str]:
        """``(contents, content_type, filename)`` for a stored object."""
        object_id = parse_object_id(file_id)
        if object_id is None:
            raise NotFoundException("File not found")

        try:
            grid_out = await self._bucket(bucket).open_download_stream(object_id)
        except NoFile:
            raise NotFoundException("File not found")

        contents = await grid_out.read()
        metadata = grid_out.metadata or {}
        return contents, metadata.get("content_type", "application/octet-stream"), grid_out.filename


def get_storage(request: Request) -> ObjectStorage:
    return request.app.state.storage
