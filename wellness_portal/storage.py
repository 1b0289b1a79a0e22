"""
Object storage for profile photos (Cloudflare R2 through the S3 API).

The database stores object keys, never URLs; callers get a short-lived
presigned URL for display.
"""

import logging
from datetime import datetime
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import HTTPException, UploadFile

from .config import R2_ACCESS_KEY_ID, R2_ACCOUNT_ID, R2_BUCKET_NAME, R2_SECRET_ACCESS_KEY

logger = logging.getLogger(__name__)

# Presigned URL expiration time (1 hour)
PRESIGNED_URL_EXPIRATION = 3600

MAX_PHOTO_SIZE = 5 * 1024 * 1024  # 5MB

# Extensions accepted for photos, keyed by content type
PHOTO_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/heic": "heic",
    "image/heif": "heif",
    "image/avif": "avif",
}


class StorageError(Exception):
    """The object store rejected or failed a request"""


def get_r2_client():
    """Create and return an R2 client."""
    return boto3.client(
        "s3",
        endpoint_url=f"https://{R2_ACCOUNT_ID}.r2.cloudflarestorage.com",
        aws_access_key_id=R2_ACCESS_KEY_ID,
        aws_secret_access_key=R2_SECRET_ACCESS_KEY,
        config=Config(signature_version="s3v4"),
    )


def validate_photo(content_type: Optional[str], filename: Optional[str], size: int) -> str:
    """
    Check an uploaded photo and return the file extension to store it under.

    Raises:
        HTTPException: 400 for a non-image type, a bad filename or a file over 5MB
    """
    if not content_type or not content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Please select an image file")

    if filename and len(filename) > 255:
        logger.warning(f"❌ Filename too long: '{filename}' ({len(filename)} chars)")
        raise HTTPException(status_code=400, detail="Filename too long - maximum 255 characters")

    if size > MAX_PHOTO_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"File size exceeds 5MB limit. Your file is {size / (1024 * 1024):.2f}MB.",
        )

    if content_type in PHOTO_EXTENSIONS:
        return PHOTO_EXTENSIONS[content_type]
    if filename and "." in filename:
        return filename.rsplit(".", 1)[-1].lower()
    return "jpg"


def build_photo_key(owner: str, record_id: str, ext: str, now: datetime) -> str:
    """Key layout: {owner}/{id}/photo_{millis}.{ext}"""
    return f"{owner}/{record_id}/photo_{int(now.timestamp() * 1000)}.{ext}"


def generate_presigned_url(key: str, expiration: int = PRESIGNED_URL_EXPIRATION) -> Optional[str]:
    """Generate a presigned URL for accessing a private object in R2."""
    if not key:
        return None

    r2 = get_r2_client()
    params = {"Bucket": R2_BUCKET_NAME, "Key": key, "ResponseContentDisposition": "inline"}

    try:
        url = r2.generate_presigned_url("get_object", Params=params, ExpiresIn=expiration)
        logger.info(f"✅ Generated presigned URL for key: {key}")
        return url
    except (BotoCoreError, ClientError) as e:
        logger.error(f"❌ Failed to generate presigned URL for key {key}: {e}")
        return None


def put_photo(key: str, contents: bytes, content_type: str) -> None:
    """Write photo bytes to the bucket."""
    try:
        get_r2_client().put_object(
            Bucket=R2_BUCKET_NAME,
            Key=key,
            Body=contents,
            ContentType=content_type,
        )
    except (BotoCoreError, ClientError) as e:
        logger.error(f"❌ Upload failed for key {key}: {str(e)}")
        raise StorageError(str(e)) from e


async def upload_photo(file: UploadFile, owner: str, record_id: str, now: datetime) -> str:
    """
    Validate and store an uploaded photo, returning its object key.

    Raises:
        HTTPException: 400 for invalid files, 502 when the store fails
    """
    contents = await file.read()
    ext = validate_photo(file.content_type, file.filename, len(contents))
    key = build_photo_key(owner, record_id, ext, now)

    try:
        put_photo(key, contents, file.content_type)
    except StorageError:
        raise HTTPException(status_code=502, detail="Photo upload failed. Please try again")

    logger.info(f"✅ Photo uploaded: {key}")
    return key
