"""
R2 Storage Implementation

Remote object storage on Cloudflare R2 (any S3-compatible endpoint works)
through boto3. Every call is wrapped in with_retry(), and every failure
leaves this module as a classified RemoteStorageError.
"""

import io
import logging
from typing import BinaryIO, Dict, List, Optional, Union

import boto3
from botocore.client import Config

from config.settings import (
    PRESIGNED_URL_EXPIRY_SECONDS,
    R2_ACCESS_KEY_ID,
    R2_BUCKET_NAME,
    R2_ENDPOINT_URL,
    R2_SECRET_ACCESS_KEY,
    REMOTE_CONNECT_TIMEOUT,
    REMOTE_MAX_RETRIES,
    REMOTE_READ_TIMEOUT,
)
from storage.interfaces.object_storage_interface import (
    ObjectStorageInterface,
    RemoteObject,
)
from storage.utils.remote_errors import (
    RemoteErrorKind,
    RemoteStorageError,
    classify_error,
    with_retry,
)


class R2Storage(ObjectStorageInterface):
    """
    S3-compatible remote storage.

    Usage:
        remote = R2Storage.from_settings()
        remote.put("videos/abc/video.mp4", open(path, "rb"), tags={"client": "acme"})
        obj = remote.get("videos/abc/video.mp4")
    """

    def __init__(
        self,
        bucket: str,
        endpoint_url: str,
        access_key_id: str,
        secret_access_key: str,
        max_retries: int = REMOTE_MAX_RETRIES,
        client=None,
    ):
        """
        Initialize R2 storage.

        Args:
            bucket: Bucket name
            endpoint_url: S3 endpoint (https://<account>.r2.cloudflarestorage.com)
            access_key_id: Access key
            secret_access_key: Secret key
            max_retries: Retries for transient failures
            client: Pre-built boto3 client (testing)

        Raises:
            ValueError: If bucket or credentials are missing
        """
        self.logger = logging.getLogger(__name__)

        if not bucket:
            raise ValueError("R2 bucket name is not configured")

        self.bucket = bucket
        self.endpoint_url = endpoint_url
        self.max_retries = max_retries

        if client is None:
            if not (endpoint_url and access_key_id and secret_access_key):
                raise ValueError(
                    "R2 credentials incomplete. Add to .env file: "
                    "R2_ACCOUNT_ID (or R2_ENDPOINT_URL), R2_ACCESS_KEY_ID, "
                    "R2_SECRET_ACCESS_KEY, R2_BUCKET_NAME"
                )
            client = boto3.client(
                service_name="s3",
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key_id,
                aws_secret_access_key=secret_access_key,
                region_name="auto",
                config=Config(
                    signature_version="s3v4",
                    connect_timeout=REMOTE_CONNECT_TIMEOUT,
                    read_timeout=REMOTE_READ_TIMEOUT,
                    # Retries are handled by with_retry()
                    retries={"max_attempts": 1, "mode": "standard"},
                ),
            )

        self.client = client
        self.logger.info(f"R2 storage initialized (bucket: {bucket})")

    @classmethod
    def from_settings(cls) -> "R2Storage":
        """Build from environment (.env) settings"""
        return cls(
            bucket=R2_BUCKET_NAME,
            endpoint_url=R2_ENDPOINT_URL,
            access_key_id=R2_ACCESS_KEY_ID,
            secret_access_key=R2_SECRET_ACCESS_KEY,
        )

    @staticmethod
    def is_configured() -> bool:
        return bool(R2_BUCKET_NAME and R2_ENDPOINT_URL and R2_ACCESS_KEY_ID and R2_SECRET_ACCESS_KEY)

    def _call(self, operation):
        return with_retry(operation, max_retries=self.max_retries)

    # =========================================================================
    # OBJECT OPERATIONS
    # =========================================================================

    def put(
        self,
        key: str,
        body: Union[bytes, BinaryIO],
        tags: Optional[Dict[str, str]] = None,
        content_type: Optional[str] = None,
    ) -> None:
        extra_args: Dict[str, object] = {"Metadata": _clean_tags(tags)}
        if content_type:
            extra_args["ContentType"] = content_type

        def upload():
            fileobj = io.BytesIO(body) if isinstance(body, (bytes, bytearray)) else body
            if hasattr(fileobj, "seek"):
                fileobj.seek(0)
            self.client.upload_fileobj(
                Fileobj=fileobj,
                Bucket=self.bucket,
                Key=key,
                ExtraArgs=extra_args,
            )

        self._call(upload)
        self.logger.info(f"Uploaded to R2: {key}")

    def get(self, key: str) -> RemoteObject:
        response = self._call(
            lambda: self.client.get_object(Bucket=self.bucket, Key=key)
        )
        return RemoteObject(
            key=key,
            body=response["Body"],
            size=response.get("ContentLength", 0),
            content_type=response.get("ContentType", "application/octet-stream"),
            metadata=response.get("Metadata", {}),
        )

    def delete(self, key: str) -> None:
        self._call(lambda: self.client.delete_object(Bucket=self.bucket, Key=key))
        self.logger.info(f"Deleted from R2: {key}")

    def exists(self, key: str) -> bool:
        try:
            self._call(lambda: self.client.head_object(Bucket=self.bucket, Key=key))
            return True
        except RemoteStorageError as e:
            if e.kind == RemoteErrorKind.NOT_FOUND:
                return False
            raise

    def list_keys(self, prefix: str = "") -> List[str]:
        keys: List[str] = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                keys.extend(obj["Key"] for obj in page.get("Contents", []))
        except Exception as e:
            raise classify_error(e) from e
        return keys

    def generate_presigned_url(
        self,
        key: str,
        expires_in: int = PRESIGNED_URL_EXPIRY_SECONDS,
        filename: Optional[str] = None,
    ) -> str:
        """
        Time-limited GET URL for a key.

        Args:
            key: Object key
            expires_in: Lifetime in seconds
            filename: Suggested download filename
        """
        params = {"Bucket": self.bucket, "Key": key}
        if filename:
            params["ResponseContentDisposition"] = f'attachment; filename="{filename}"'
        try:
            return self.client.generate_presigned_url(
                ClientMethod="get_object",
                Params=params,
                ExpiresIn=expires_in,
            )
        except Exception as e:
            raise classify_error(e) from e

    # =========================================================================
    # DIAGNOSTICS
    # =========================================================================

    def test_connection(self) -> bool:
        try:
            self._call(lambda: self.client.head_bucket(Bucket=self.bucket))
            self.logger.info("R2 connection test passed")
            return True
        except RemoteStorageError as e:
            self.logger.error(f"R2 connection test failed ({e.kind.value}): {e}")
            return False

    def get_stats(self) -> dict:
        count = 0
        total = 0
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket):
                for obj in page.get("Contents", []):
                    count += 1
                    total += obj.get("Size", 0)
        except Exception as e:
            error = classify_error(e)
            self.logger.warning(f"Cannot list R2 bucket ({error.kind.value}): {error}")
            return {"bucket": self.bucket, "error": error.user_message}

        return {"bucket": self.bucket, "object_count": count, "total_bytes": total}


def _clean_tags(tags: Optional[Dict[str, str]]) -> Dict[str, str]:
    """S3 user metadata must be ASCII strings"""
    cleaned = {}
    for name, value in (tags or {}).items():
        if value is None:
            continue
        cleaned[name] = str(value).encode("ascii", "replace").decode("ascii")
    return cleaned
