"""
Image pipeline: validate an uploaded image, re-encode it and keep it on disk.
"""
import logging
import uuid
from enum import Enum
from io import BytesIO
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os
from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool
from PIL import Image, ImageOps, UnidentifiedImageError

from photoshare.config import ContentPolicy, get_policy, settings
from photoshare.errors import InternalFailure, ValidationFailed

logger = logging.getLogger(__name__)


class ImageVariant(str, Enum):
    POST = "post"
    PROFILE = "profile"


class ImageStore:
    def __init__(
        self,
        upload_dir: str = settings.UPLOAD_DIR,
        url_prefix: str = settings.UPLOAD_URL_PREFIX,
        policy: Optional[ContentPolicy] = None,
    ):
        self.upload_dir = Path(upload_dir)
        self.url_prefix = url_prefix.rstrip("/")
        self.policy = policy or get_policy()

    def _render(self, data: bytes, variant: ImageVariant) -> bytes:
        """Resize and convert to WebP; runs in a worker thread"""
        with Image.open(BytesIO(data)) as image:
            image = ImageOps.exif_transpose(image)
            if image.mode not in ("RGB", "RGBA"):
                image = image.convert("RGBA" if "transparency" in image.info else "RGB")

            if variant is ImageVariant.PROFILE:
                side = self.policy.profile_image_side
                image = ImageOps.fit(image, (side, side))
            else:
                side = self.policy.post_image_max_side
                # thumbnail() only ever shrinks
                image.thumbnail((side, side))

            buffer = BytesIO()
            image.save(buffer, format="WEBP", quality=self.policy.image_quality)
            return buffer.getvalue()

    async def store(self, data: bytes, variant: ImageVariant) -> str:
        """Encode the image and save it, returning its public URL"""
        try:
            rendered = await run_in_threadpool(self._render, data, variant)
        except (UnidentifiedImageError, OSError) as e:
            logger.warning(f"Rejected unreadable image: {e}")
            raise ValidationFailed.for_field("image", "File is not a valid image")

        prefix = "profile-" if variant is ImageVariant.PROFILE else ""
        filename = f"{prefix}{uuid.uuid4()}.webp"

        try:
            self.upload_dir.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(self.upload_dir / filename, "wb") as out_file:
                await out_file.write(rendered)
        except OSError as e:
            logger.error(f"Error saving image {filename}: {e}")
            raise InternalFailure("Error processing image")

        return f"{self.url_prefix}/{filename}"

    async def delete(self, url: Optional[str]) -> None:
        """Remove a stored image; failures are logged, never raised"""
        if not url:
            return

        path = self.upload_dir / Path(url).name
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            logger.warning(f"Image already gone: {path}")
        except OSError as e:
            logger.error(f"Error deleting image {path}: {e}")

    async def release_all(self, urls) -> None:
        for url in urls:
            await self.delete(url)


async def read_image_upload(upload: Optional[UploadFile], policy: ContentPolicy, required: bool = True) -> Optional[bytes]:
    """Check type and size of an uploaded image and return its bytes"""
    if upload is None or not upload.filename:
        if required:
            raise ValidationFailed.for_field("image", "Image is required")
        return None

    if upload.content_type not in policy.allowed_image_types:
        raise ValidationFailed.for_field(
            "image", f"Invalid file type. Allowed: {', '.join(policy.allowed_image_types)}"
        )

    data = await upload.read()
    if len(data) > policy.max_image_bytes:
        raise ValidationFailed.for_field(
            "image", f"Image cannot exceed {policy.max_image_bytes // (1024 * 1024)}MB"
        )
    if not data:
        raise ValidationFailed.for_field("image", "Image is empty")

    return data


def get_image_store() -> ImageStore:
    """Dependency returning the configured image store"""
    return ImageStore()
