"""
Image blob storage adapters.

Blobs are addressed by (public_key, image_identifier). Adapters raise
StorageError carrying 404 for missing images and 500 otherwise.
"""

import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import boto3
import botocore.config
from botocore.exceptions import BotoCoreError, ClientError

from ..core.exceptions import ConfigurationError, StorageError

logger = logging.getLogger("image_server.storage")

_NOT_FOUND_CODES = frozenset({"NoSuchKey", "NotFound", "404"})


def image_path_parts(public_key: str, image_identifier: str) -> List[str]:
    """
    Sharded location of an image: u/s/e/user/a/b/c/abc...
    """
    user_path = public_key.rjust(3, "0")
    identifier = image_identifier.rjust(3, "0")
    return [
        user_path[0],
        user_path[1],
        user_path[2],
        public_key,
        identifier[0],
        identifier[1],
        identifier[2],
        image_identifier,
    ]


class StorageAdapter(ABC):
    @abstractmethod
    def store(self, public_key: str, image_identifier: str, blob: bytes) -> None:
        pass

    @abstractmethod
    def fetch(self, public_key: str, image_identifier: str) -> bytes:
        pass

    @abstractmethod
    def delete(self, public_key: str, image_identifier: str) -> None:
        pass

    @abstractmethod
    def exists(self, public_key: str, image_identifier: str) -> bool:
        pass

    def get_status(self) -> bool:
        return True


class InMemoryStorage(StorageAdapter):
    def __init__(self):
        self._blobs: Dict[Tuple[str, str], bytes] = {}
        self._lock = threading.Lock()

    def store(self, public_key: str, image_identifier: str, blob: bytes) -> None:
        with self._lock:
            self._blobs[(public_key, image_identifier)] = bytes(blob)

    def fetch(self, public_key: str, image_identifier: str) -> bytes:
        with self._lock:
            blob = self._blobs.get((public_key, image_identifier))
        if blob is None:
            raise StorageError("File not found", status_code=404)
        return blob

    def delete(self, public_key: str, image_identifier: str) -> None:
        with self._lock:
            if self._blobs.pop((public_key, image_identifier), None) is None:
                raise StorageError("File not found", status_code=404)

    def exists(self, public_key: str, image_identifier: str) -> bool:
        with self._lock:
            return (public_key, image_identifier) in self._blobs


class FilesystemStorage(StorageAdapter):
    def __init__(self, root_path: str):
        if not root_path:
            raise ConfigurationError("Missing required configuration parameter: root_path")
        self.root_path = Path(root_path)

    def _path(self, public_key: str, image_identifier: str) -> Path:
        return self.root_path.joinpath(*image_path_parts(public_key, image_identifier))

    def store(self, public_key: str, image_identifier: str, blob: bytes) -> None:
        path = self._path(public_key, image_identifier)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".tmp")
            tmp_path.write_bytes(blob)
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"Could not store image at {path}: {e}")
            raise StorageError(f"Could not store image: {e}", status_code=500) from e

    def fetch(self, public_key: str, image_identifier: str) -> bytes:
        path = self._path(public_key, image_identifier)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise StorageError("File not found", status_code=404) from e
        except OSError as e:
            raise StorageError(f"Could not read image: {e}", status_code=500) from e

    def delete(self, public_key: str, image_identifier: str) -> None:
        path = self._path(public_key, image_identifier)
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise StorageError("File not found", status_code=404) from e
        except OSError as e:
            raise StorageError(f"Could not delete image: {e}", status_code=500) from e

    def exists(self, public_key: str, image_identifier: str) -> bool:
        return self._path(public_key, image_identifier).is_file()

    def get_status(self) -> bool:
        return self.root_path.is_dir() and os.access(self.root_path, os.W_OK)


class S3Storage(StorageAdapter):
    """
    S3 (or S3 compatible) storage.

    Args:
        bucket: bucket holding the blobs
        access_key / secret_key / region: credentials, required unless a client is given
        endpoint: S3 compatible endpoint, required with path-style addressing
        use_path_style: use path-style addressing
        client: preconfigured boto3 S3 client
    """

    def __init__(
        self,
        bucket: str,
        access_key: str = "",
        secret_key: str = "",
        region: str = "",
        endpoint: str = "",
        use_path_style: bool = False,
        client: Optional[Any] = None,
    ):
        self.bucket = bucket
        self.access_key = access_key
        self.secret_key = secret_key
        self.region = region
        self.endpoint = endpoint
        self.use_path_style = use_path_style
        self._client = client

        if client is None:
            required = {
                "key": access_key,
                "secret": secret_key,
                "bucket": bucket,
                "region": region,
            }
            missing = [name for name, value in required.items() if not value]
            if missing:
                raise ConfigurationError(
                    "Missing required configuration parameters in S3Storage: " + ", ".join(missing)
                )
            if use_path_style and not endpoint:
                raise ConfigurationError(
                    "Missing required configuration parameters in S3Storage: "
                    "use_path_style is enabled but endpoint is empty"
                )
        elif not bucket:
            raise ConfigurationError(
                "Missing required configuration parameters in S3Storage: bucket"
            )

    @classmethod
    def from_config(cls, config) -> "S3Storage":
        return cls(
            bucket=config.S3_BUCKET,
            access_key=config.S3_ACCESS_KEY,
            secret_key=config.S3_SECRET_KEY,
            region=config.S3_REGION,
            endpoint=config.S3_ENDPOINT,
            use_path_style=config.S3_USE_PATH_STYLE,
        )

    @property
    def client(self):
        if self._client is None:
            s3_options = {"addressing_style": "path"} if self.use_path_style else {}
            self._client = boto3.client(
                "s3",
                endpoint_url=self.endpoint or None,
                aws_access_key_id=self.access_key,
                aws_secret_access_key=self.secret_key,
                region_name=self.region,
                config=botocore.config.Config(signature_version="s3v4", s3=s3_options),
            )
            logger.info(f"S3 client initialized for bucket {self.bucket}")
        return self._client

    def _key(self, public_key: str, image_identifier: str) -> str:
        return "/".join(image_path_parts(public_key, image_identifier))

    def store(self, public_key: str, image_identifier: str, blob: bytes) -> None:
        try:
            self.client.put_object(
                Bucket=self.bucket, Key=self._key(public_key, image_identifier), Body=blob
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Could not store image in S3: {e}")
            raise StorageError(f"Could not store image: {e}", status_code=500) from e

    def fetch(self, public_key: str, image_identifier: str) -> bytes:
        try:
            response = self.client.get_object(
                Bucket=self.bucket, Key=self._key(public_key, image_identifier)
            )
        except ClientError as e:
            if _is_not_found(e):
                raise StorageError("File not found", status_code=404) from e
            logger.error(f"Could not read image from S3: {e}")
            raise StorageError(f"Could not read image: {e}", status_code=500) from e
        except BotoCoreError as e:
            raise StorageError(f"Could not read image: {e}", status_code=500) from e
        return response["Body"].read()

    def delete(self, public_key: str, image_identifier: str) -> None:
        if not self.exists(public_key, image_identifier):
            raise StorageError("File not found", status_code=404)
        try:
            self.client.delete_object(
                Bucket=self.bucket, Key=self._key(public_key, image_identifier)
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Could not delete image: {e}", status_code=500) from e

    def exists(self, public_key: str, image_identifier: str) -> bool:
        """
        Raises:
            StorageError: S3 failed for a reason other than a missing key
        """
        try:
            self.client.head_object(Bucket=self.bucket, Key=self._key(public_key, image_identifier))
        except ClientError as e:
            if _is_not_found(e):
                return False
            logger.error(f"Could not check image in S3: {e}")
            raise StorageError(f"Could not check image: {e}", status_code=500) from e
        except BotoCoreError as e:
            raise StorageError(f"Could not check image: {e}", status_code=500) from e
        return True

    def get_status(self) -> bool:
        try:
            self.client.head_bucket(Bucket=self.bucket)
        except (ClientError, BotoCoreError):
            return False
        return True


def _is_not_found(error: ClientError) -> bool:
    return str(error.response.get("Error", {}).get("Code", "")) in _NOT_FOUND_CODES

def build_storage(config) -> StorageAdapter:
    """
    Build the storage adapter selected by STORAGE_BACKEND.
    """
    backend = config.STORAGE_BACKEND
    if backend == "memory":
        return InMemoryStorage()
    if backend == "filesystem":
        return FilesystemStorage(config.STORAGE_ROOT_PATH)
    if backend == "s3":
        return S3Storage.from_config(config)
    raise ConfigurationError(f"Unknown storage backend: {backend}")
