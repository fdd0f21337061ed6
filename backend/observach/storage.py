"""Photo artifact storage: local upload dir or an S3-compatible bucket.

The content store only ever sees the reference string returned by ``save``.
"""
import logging
from functools import lru_cache
from pathlib import Path, PurePath
from typing import Protocol
from uuid import uuid4

import boto3
from botocore.exceptions import ClientError

from observach.config import Settings, get_settings

logger = logging.getLogger(__name__)

UPLOADS_URL_PREFIX = "/uploads"


def photo_key(original_filename: str | None) -> str:
    ext = PurePath(original_filename or "").suffix.lower() or ".jpg"
    return f"{uuid4()}{ext}"


class PhotoStorage(Protocol):
    def ensure_ready(self) -> None: ...

    def save(self, payload: bytes, original_filename: str | None, content_type: str) -> str: ...

    def delete(self, photo_ref: str) -> None: ...


class LocalPhotoStorage:
    """Writes photos under ``upload_dir``; served back at ``/uploads/<name>``."""

    def __init__(self, upload_dir: Path):
        self.upload_dir = Path(upload_dir)

    def ensure_ready(self) -> None:
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def save(self, payload: bytes, original_filename: str | None, content_type: str) -> str:
        self.ensure_ready()
        name = photo_key(original_filename)
        (self.upload_dir / name).write_bytes(payload)
        return f"{UPLOADS_URL_PREFIX}/{name}"

    def delete(self, photo_ref: str) -> None:
        (self.upload_dir / PurePath(photo_ref).name).unlink(missing_ok=True)


class S3PhotoStorage:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.client = boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint or None,
            region_name=settings.s3_region,
            aws_access_key_id=settings.s3_access_key_id,
            aws_secret_access_key=settings.s3_secret_access_key,
        )

    def ensure_ready(self) -> None:
        bucket = self.settings.s3_bucket
        try:
            self.client.head_bucket(Bucket=bucket)
            return
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code not in {"404", "NoSuchBucket", "NotFound"}:
                raise

        create_args = {"Bucket": bucket}
        if self.settings.s3_region != "us-east-1":
            create_args["CreateBucketConfiguration"] = {
                "LocationConstraint": self.settings.s3_region
            }
        self.client.create_bucket(**create_args)
        logger.info("Created photo bucket %s", bucket)

    def save(self, payload: bytes, original_filename: str | None, content_type: str) -> str:
        key = f"photos/{photo_key(original_filename)}"
        self.client.put_object(
            Bucket=self.settings.s3_bucket,
            Key=key,
            Body=payload,
            ContentType=content_type,
        )
        base = self.settings.s3_public_base_url
        if base:
            return f"{base.rstrip('/')}/{key}"
        return f"s3://{self.settings.s3_bucket}/{key}"

    def delete(self, photo_ref: str) -> None:
        key = f"photos/{photo_ref.rsplit('/', 1)[-1]}"
        self.client.delete_object(Bucket=self.settings.s3_bucket, Key=key)


@lru_cache(maxsize=1)
def get_photo_storage() -> PhotoStorage:
    settings = get_settings()
    if settings.storage_backend == "s3":
        return S3PhotoStorage(settings)
    return LocalPhotoStorage(settings.upload_dir)
