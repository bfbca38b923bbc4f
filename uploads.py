"""
Image uploads.

Files arrive as multipart ``UploadFile`` objects, are handed to Cloudinary through
its SDK and only the returned public URL is stored on our documents.
"""

import logging
from pathlib import Path
from typing import List, Optional

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
from fastapi import HTTPException, UploadFile

from config import (
    ALLOWED_IMAGE_EXTENSIONS,
    CLOUDINARY_API_KEY,
    CLOUDINARY_API_SECRET,
    CLOUDINARY_CLOUD_NAME,
    CLOUDINARY_FOLDER,
    UPLOAD_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)


def check_image_extension(filename: Optional[str]) -> None:
    ext = Path(filename or "").suffix.lower().lstrip(".")
    if ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"File type not allowed. Allowed types: {', '.join(sorted(ALLOWED_IMAGE_EXTENSIONS))}",
        )


class CloudinaryUploader:
    def __init__(self, cloud_name: str, api_key: str, api_secret: str,
                 folder: str = CLOUDINARY_FOLDER, timeout: float = UPLOAD_TIMEOUT_SECONDS):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = folder
        self.timeout = timeout
        if self.configured:
            cloudinary.config(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret, secure=True)

    @property
    def configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    def upload(self, file: UploadFile) -> str:
        check_image_extension(file.filename)
        if not self.configured:
            logger.error("Image upload attempted without Cloudinary credentials")
            raise HTTPException(status_code=500, detail="Image hosting is not configured")

        try:
            result = cloudinary.uploader.upload(
                file.file,
                folder=self.folder,
                allowed_formats=sorted(ALLOWED_IMAGE_EXTENSIONS),
                resource_type="image",
                timeout=self.timeout,
            )
            url = result["secure_url"]
        except (cloudinary.exceptions.Error, KeyError) as e:
            logger.error("Image upload of %s failed: %s", file.filename, e)
            raise HTTPException(status_code=502, detail="Image upload failed")
        logger.info("Uploaded %s to %s", file.filename, url)
        return url

    def upload_many(self, files: List[UploadFile]) -> List[str]:
        return [self.upload(f) for f in files]


_uploader = CloudinaryUploader(CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY, CLOUDINARY_API_SECRET)


def get_uploader() -> CloudinaryUploader:
    return _uploader
