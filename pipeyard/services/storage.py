from __future__ import annotations

import asyncio
import uuid
from datetime import datetime
from typing import Optional

import boto3
from botocore.client import Config
from botocore.exceptions import ClientError

from pipeyard.core.config import Settings, get_settings

CONTENT_TYPES = {
    "pdf": "application/pdf",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "csv": "text/csv",
    "txt": "text/plain",
}


class DocumentStore:
    """Manifest and delivery paperwork kept in Cloudflare R2 (S3 compatible)."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self._client = None
        self._bucket_name = self.settings.r2_bucket_name

    @property
    def client(self):
        """Lazy initialization of R2 client."""
        if self._client is None:
            settings = self.settings
            if not all([
                settings.r2_access_key_id,
                settings.r2_secret_access_key,
                settings.r2_bucket_name,
                settings.r2_endpoint_url,
            ]):
                raise ValueError(
                    "R2 configuration incomplete. Please set R2_ACCESS_KEY_ID, "
                    "R2_SECRET_ACCESS_KEY, R2_BUCKET_NAME, and R2_ENDPOINT_URL"
                )

            self._client = boto3.client(
                "s3",
                endpoint_url=settings.r2_endpoint_url,
                aws_access_key_id=settings.r2_access_key_id,
                aws_secret_access_key=settings.r2_secret_access_key,
                region_name="auto",
                config=Config(signature_version="s3v4"),
            )
        return self._client

    def _generate_key(self, prefix: str, filename: str) -> str:
        unique_id = str(uuid.uuid4())[:8]
        timestamp = datetime.utcnow().strftime("%Y%m%d")
        stem, _, extension = filename.rpartition(".") if "." in filename else (filename, "", "")
        safe_stem = "".join(c for c in stem if c.isalnum() or c in ("-", "_")) or "document"
        if extension:
            return f"{prefix}/{safe_stem}_{timestamp}_{unique_id}.{extension}"
        return f"{prefix}/{safe_stem}_{timestamp}_{unique_id}"

    async def upload_file(
        self,
        file_content: bytes,
        filename: str,
        prefix: str = "trucking",
        content_type: Optional[str] = None,
    ) -> str:
        """
        Upload a file and return its storage key.

        Args:
            file_content: The file content as bytes
            filename: Original filename, used for the key and content type
            prefix: Key prefix, e.g. ``trucking/<request_id>/load-<n>``
        """
        key = self._generate_key(prefix, filename)
        content_type = content_type or self._infer_content_type(filename)
        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self._bucket_name,
                Key=key,
                Body=file_content,
                ContentType=content_type,
            )
        except ClientError as e:
            raise ValueError(f"Failed to upload file to R2: {str(e)}")
        return key

    async def delete_file(self, key: str) -> bool:
        try:
            await asyncio.to_thread(self.client.delete_object, Bucket=self._bucket_name, Key=key)
            return True
        except ClientError:
            return False

    def get_file_url(self, key: str, expires_in: int = 3600) -> str:
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self._bucket_name, "Key": key},
                ExpiresIn=expires_in,
            )
        except ClientError as e:
            raise ValueError(f"Failed to generate presigned URL: {str(e)}")

    def _infer_content_type(self, filename: str) -> str:
        extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
        return CONTENT_TYPES.get(extension, "application/octet-stream")
