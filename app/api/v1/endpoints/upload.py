"""
Загрузка медиафайлов товаров (только админка).
"""

import logging
from io import BytesIO

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status

from app.core.auth import SessionUser, require_admin
from app.services.media_service import MediaValidationError, media_service
from app.services.storage_service import StorageError, StorageProvider, get_storage

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def upload_media(
    file: UploadFile = File(...),
    admin: SessionUser = Depends(require_admin),
    storage: StorageProvider = Depends(get_storage),
):
    """
    Загрузить изображение или видео.

    Изображения: jpeg/png/webp/gif до MAX_IMAGE_SIZE,
    видео: mp4/webm/quicktime до MAX_VIDEO_SIZE.

    Returns:
        dict: url, path, size, type (и размеры для изображений)
    """
    content = await file.read()
    try:
        metadata = media_service.validate(file.content_type, content)
    except MediaValidationError as e:
        raise HTTPException(400, detail=str(e))

    key = media_service.generate_key(metadata["type"])
    try:
        storage.save_file(key, BytesIO(content), metadata["type"])
        url = storage.get_file_url(key)
    except StorageError as e:
        logger.error(f"Upload of {file.filename} failed: {e}")
        raise HTTPException(500, detail="Failed to upload file")

    logger.info(f"{admin.kind}:{admin.id} uploaded {key} ({metadata['size']} bytes)")
    return {"url": url, "path": key, **metadata}


@router.delete("")
def delete_media(
    path: str = Query(..., description="Путь к файлу в хранилище"),
    admin: SessionUser = Depends(require_admin),
    storage: StorageProvider = Depends(get_storage),
):
    """
    Удалить медиафайл.

    Raises:
        HTTPException: 400 при недопустимом пути, 404 если файла нет
    """
    try:
        deleted = storage.delete_file(path)
    except StorageError as e:
        raise HTTPException(400, detail=str(e))
    if not deleted:
        raise HTTPException(404, detail="File not found")

    logger.info(f"{admin.kind}:{admin.id} deleted {path}")
    return {"success": True}
