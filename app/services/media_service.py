"""
Сервис для работы с медиафайлами товаров.

Обеспечивает валидацию загружаемых изображений и видео
и генерацию ключей для хранилища.
"""

import logging
import time
import uuid
from io import BytesIO
from typing import Any, Dict, Optional

from PIL import Image, UnidentifiedImageError

from app.core.config import settings

logger = logging.getLogger(__name__)


class MediaValidationError(Exception):
    """Файл не прошел проверку."""


class MediaService:
    """
    Сервис для работы с медиафайлами.

    Обеспечивает:
    - Проверку типа и размера загружаемых файлов
    - Проверку, что изображение действительно декодируется
    - Генерацию ключей для хранилища
    """

    IMAGE_TYPES = {
        "image/jpeg": "jpg",
        "image/png": "png",
        "image/webp": "webp",
        "image/gif": "gif",
    }
    VIDEO_TYPES = {
        "video/mp4": "mp4",
        "video/webm": "webm",
        "video/quicktime": "mov",
    }

    # Максимальные размеры изображения в пикселях
    MAX_DIMENSIONS = (8000, 8000)

    @property
    def allowed_types(self):
        return sorted({**self.IMAGE_TYPES, **self.VIDEO_TYPES})

    def is_video(self, content_type: str) -> bool:
        return content_type in self.VIDEO_TYPES

    def max_size(self, content_type: str) -> int:
        return settings.MAX_VIDEO_SIZE if self.is_video(content_type) else settings.MAX_IMAGE_SIZE

    def validate(self, content_type: Optional[str], data: bytes) -> Dict[str, Any]:
        """
        Проверка загруженного файла.

        Args:
            content_type: MIME тип из запроса
            data: Содержимое файла

        Returns:
            Dict[str, Any]: Метаданные (type, size, width, height)

        Raises:
            MediaValidationError: Недопустимый тип, размер или поврежденное изображение
        """
        content_type = (content_type or "").lower()
        if content_type not in self.IMAGE_TYPES and content_type not in self.VIDEO_TYPES:
            raise MediaValidationError(
                f"Invalid file type: {content_type or 'unknown'}. "
                f"Allowed: {', '.join(self.allowed_types)}"
            )

        size = len(data)
        if size == 0:
            raise MediaValidationError("File is empty")
        limit = self.max_size(content_type)
        if size > limit:
            raise MediaValidationError(f"File too large: {size} bytes (max {limit})")

        metadata: Dict[str, Any] = {"type": content_type, "size": size}
        if self.is_video(content_type):
            return metadata

        metadata.update(self.inspect_image(data))
        return metadata

    def inspect_image(self, data: bytes) -> Dict[str, Any]:
        """Размеры изображения. Поврежденные файлы отклоняются."""
        try:
            with Image.open(BytesIO(data)) as img:
                img.verify()
            with Image.open(BytesIO(data)) as img:
                width, height = img.size
                format_name = img.format
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            logger.warning(f"Rejected invalid image upload: {e}")
            raise MediaValidationError("File is not a valid image")

        if width > self.MAX_DIMENSIONS[0] or height > self.MAX_DIMENSIONS[1]:
            raise MediaValidationError(
                f"Image is too large: {width}x{height} "
                f"(max {self.MAX_DIMENSIONS[0]}x{self.MAX_DIMENSIONS[1]})"
            )
        return {"width": width, "height": height, "format": format_name}

    def generate_key(self, content_type: str, prefix: str = "product-media") -> str:
        """
        Ключ для сохранения: {prefix}/{timestamp_ms}-{uuid}.{ext}
        """
        ext = self.IMAGE_TYPES.get(content_type) or self.VIDEO_TYPES.get(content_type, "bin")
        return f"{prefix}/{int(time.time() * 1000)}-{uuid.uuid4()}.{ext}"


# Глобальный экземпляр сервиса
media_service = MediaService()
