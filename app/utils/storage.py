import boto3
import os
from pathlib import Path
from typing import Optional
from botocore.exceptions import BotoCoreError, ClientError
from app.config import settings
from app.core.exceptions import NotFoundError
import logging

logger = logging.getLogger(__name__)

class StorageManager:
    """
    Opaque byte storage for uploaded files.
    Uses an S3 compatible Space when credentials are configured, a local directory otherwise.
    """

    def __init__(self, base_dir: Optional[str] = None):
        self.enabled = bool(settings.DO_SPACES_KEY and settings.DO_SPACES_SECRET)
        self.base_dir = Path(base_dir or settings.UPLOAD_DIR)
        if self.enabled:
            self.client = boto3.client(
                's3',
                region_name=settings.DO_SPACES_REGION,
                endpoint_url=settings.DO_SPACES_ENDPOINT,
                aws_access_key_id=settings.DO_SPACES_KEY,
                aws_secret_access_key=settings.DO_SPACES_SECRET
            )
            self.bucket = settings.DO_SPACES_BUCKET
        else:
            logger.warning(f"Cloud storage disabled: Missing credentials, using {self.base_dir}")

    def _local_path(self, path: str) -> Path:
        target = (self.base_dir / path).resolve()
        if self.base_dir.resolve() not in target.parents:
            raise NotFoundError(f"Invalid storage path: {path}")
        return target

    def put(self, path: str, data: bytes) -> str:
        """Store bytes under path and return the path"""
        if self.enabled:
            # Private object; downloads go through the API
            self.client.put_object(Bucket=self.bucket, Key=path, Body=data)
        else:
            target = self._local_path(path)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        logger.debug(f"Stored {len(data)} bytes at {path}")
        return path

    def get(self, path: str) -> bytes:
        if self.enabled:
            try:
                response = self.client.get_object(Bucket=self.bucket, Key=path)
            except self.client.exceptions.NoSuchKey:
                raise NotFoundError(f"Stored object missing: {path}")
            return response["Body"].read()

        target = self._local_path(path)
        if not target.exists():
            raise NotFoundError(f"Stored object missing: {path}")
        return target.read_bytes()

    def delete(self, path: str) -> bool:
        """Remove stored bytes. A missing object is not an error."""
        if self.enabled:
            try:
                self.client.delete_object(Bucket=self.bucket, Key=path)
                return True
            except (BotoCoreError, ClientError) as e:
                logger.error(f"Failed to delete {path} from cloud storage: {e}")
                return False

        try:
            os.remove(self._local_path(path))
        except FileNotFoundError:
            pass
        return True

storage_manager = StorageManager()
