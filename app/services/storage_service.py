"""
Сервис для работы с хранилищами файлов.

Поддерживает локальное хранилище и S3-совместимые сервисы (AWS S3, MinIO, R2).
Обеспечивает единый интерфейс для работы с медиафайлами товаров
независимо от типа хранилища.
"""

import logging
import posixpath
from abc import ABC, abstractmethod
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Ошибка хранилища или недопустимый путь к файлу."""


def normalize_media_path(file_path: str) -> str:
    """
    Нормализация относительного пути к файлу.

    Raises:
        StorageError: Пустой путь или попытка выйти за пределы хранилища
    """
    value = (file_path or "").strip().replace("\\", "/")
    if not value:
        raise StorageError("File path is required")

    for prefix in ("/static/", "static/"):
        if value.startswith(prefix):
            value = value[len(prefix):]
    if value.startswith("/"):
        raise StorageError("Invalid file path")

    parts = value.split("/")
    if any(part in ("", ".", "..") for part in parts):
        raise StorageError("Invalid file path")
    return posixpath.join(*parts)


class StorageProvider(ABC):
    """
    Абстрактный базовый класс для провайдеров хранилища.
    """

    @abstractmethod
    def save_file(
        self, file_path: str, file_data: BinaryIO, content_type: Optional[str] = None
    ) -> None:
        pass

    @abstractmethod
    def get_file_url(self, file_path: str) -> str:
        pass

    @abstractmethod
    def delete_file(self, file_path: str) -> bool:
        pass

    @abstractmethod
    def file_exists(self, file_path: str) -> bool:
        pass


class LocalStorageProvider(StorageProvider):
    """
    Локальное хранилище файлов. Файлы раздаются приложением по /static.
    """

    def __init__(self, base_path: Optional[str] = None):
        self.base_path = Path(base_path or settings.STORAGE_PATH).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _full_path(self, file_path: str) -> Path:
        full_path = (self.base_path / normalize_media_path(file_path)).resolve()
        if self.base_path not in full_path.parents:
            raise StorageError("Invalid file path")
        return full_path

    def save_file(
        self, file_path: str, file_data: BinaryIO, content_type: Optional[str] = None
    ) -> None:
        full_path = self._full_path(file_path)
        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            with open(full_path, "wb") as f:
                f.write(file_data.read())
        except OSError as e:
            raise StorageError(f"Error saving file: {e}") from e
        logger.info(f"Saved {full_path}")

    def get_file_url(self, file_path: str) -> str:
        path = normalize_media_path(file_path)
        if settings.CDN_BASE_URL:
            return f"{settings.CDN_BASE_URL.rstrip('/')}/{path}"
        return f"/static/{path}"

    def delete_file(self, file_path: str) -> bool:
        full_path = self._full_path(file_path)
        if not full_path.exists():
            return False
        try:
            full_path.unlink()
        except OSError as e:
            raise StorageError(f"Error deleting file: {e}") from e
        logger.info(f"Deleted {full_path}")
        return True

    def file_exists(self, file_path: str) -> bool:
        return self._full_path(file_path).exists()


class S3StorageProvider(StorageProvider):
    """
    Amazon S3 хранилище (или совместимые сервисы).
    """

    def __init__(
        self,
        bucket_name: str,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        client=None,
    ):
        self.bucket_name = bucket_name
        self.region = region or "us-east-1"

        if client is None:
            config = Config(
                retries={"max_attempts": 3, "mode": "adaptive"},
                connect_timeout=10,
                read_timeout=30,
                signature_version="s3v4",
                s3={"addressing_style": "path"},
            )
            client = boto3.client(
                "s3",
                region_name=self.region,
                endpoint_url=endpoint_url or None,
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
                config=config,
            )
        self.s3_client = client

    def save_file(
        self, file_path: str, file_data: BinaryIO, content_type: Optional[str] = None
    ) -> None:
        key = normalize_media_path(file_path)
        content = file_data.read()
        extra_args = {"ContentLength": len(content)}
        if content_type:
            extra_args["ContentType"] = content_type
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name, Key=key, Body=BytesIO(content), **extra_args
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Error saving file to S3: {e}") from e
        logger.info(f"Uploaded s3://{self.bucket_name}/{key}")

    def get_file_url(self, file_path: str) -> str:
        key = normalize_media_path(file_path)
        if settings.CDN_BASE_URL:
            return f"{settings.CDN_BASE_URL.rstrip('/')}/{key}"
        try:
            return self.s3_client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": key},
                ExpiresIn=3600,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Error generating S3 URL: {e}") from e

    def delete_file(self, file_path: str) -> bool:
        key = normalize_media_path(file_path)
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Error deleting file from S3: {e}") from e
        logger.info(f"Deleted s3://{self.bucket_name}/{key}")
        return True

    def file_exists(self, file_path: str) -> bool:
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=normalize_media_path(file_path))
            return True
        except ClientError:
            return False


def create_storage() -> StorageProvider:
    """Создание провайдера по STORAGE_TYPE."""
    if settings.STORAGE_TYPE == "s3":
        logger.info(
            f"Using S3 storage: bucket={settings.S3_BUCKET_NAME} "
            f"endpoint={settings.S3_ENDPOINT_URL or 'aws'}"
        )
        return S3StorageProvider(
            bucket_name=settings.S3_BUCKET_NAME,
            region=settings.AWS_REGION,
            endpoint_url=settings.S3_ENDPOINT_URL,
        )
    logger.info(f"Using local storage: {settings.STORAGE_PATH}")
    return LocalStorageProvider()


_storage: Optional[StorageProvider] = None


def get_storage() -> StorageProvider:
    """Dependency: провайдер хранилища (создается при первом обращении)."""
    global _storage
    if _storage is None:
        _storage = create_storage()
    return _storage
