"""
Image pipeline for wardrobe items.

photo bytes -> Pillow normalises to PNG -> PhotoRoom removes the background
(falls back to the original on any failure) -> Cloudinary hosts the result.
"""

import io
import logging

import cloudinary
import cloudinary.uploader
import requests
from fastapi import Request
from PIL import Image, UnidentifiedImageError

from .config import Settings
from .errors import UpstreamError, ValidationFailed

logger = logging.getLogger(__name__)


class ImageService:
    def __init__(self, settings: Settings, http=None):
        self.settings = settings
        # requests.get/post build a fresh Session per call
        self.http = http or requests
        if not (settings.cloudinary_cloud_name and settings.cloudinary_api_key and settings.cloudinary_api_secret):
            logger.error("Missing Cloudinary credentials")
        cloudinary.config(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            secure=True,
        )

    def to_png(self, data: bytes) -> bytes:
        try:
            img = Image.open(io.BytesIO(data))
            img.load()
        except (UnidentifiedImageError, OSError) as e:
            raise ValidationFailed("Uploaded file is not a readable image", details=str(e))

        if img.mode not in ("RGB", "RGBA"):
            img = img.convert("RGBA")
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()

    def remove_background(self, data: bytes) -> bytes:
        """Cut the garment out with PhotoRoom; the input comes back unchanged on failure."""
        if not self.settings.photoroom_api_key:
            logger.warning("PhotoRoom API key is not configured")
            return data

        try:
            r = self.http.post(
                self.settings.photoroom_url,
                headers={"x-api-key": self.settings.photoroom_api_key},
                files={"image_file": ("image.png", data, "image/png")},
                timeout=self.settings.http_timeout_seconds,
            )
            if r.status_code == 402:
                logger.warning("PhotoRoom API limit reached, using original image")
                return data
            if r.status_code == 429:
                logger.warning("PhotoRoom API rate limit reached, using original image")
                return data
            r.raise_for_status()
            return r.content
        except requests.RequestException as e:
            logger.warning("Background removal failed, using original image: %s", e)
            return data

    def upload(self, data: bytes) -> str:
        try:
            result = cloudinary.uploader.upload(
                io.BytesIO(data),
                folder=self.settings.cloudinary_folder,
                resource_type="image",
            )
        except Exception as e:
            logger.error("Cloudinary upload error: %s", e)
            raise UpstreamError("Failed to upload image to Cloudinary", details=str(e))

        if not result or "secure_url" not in result:
            raise UpstreamError("Invalid upload result from Cloudinary")
        return result["secure_url"]

    def fetch_remote(self, url: str) -> bytes:
        try:
            r = self.http.get(url, timeout=self.settings.http_timeout_seconds)
            r.raise_for_status()
        except requests.RequestException as e:
            raise UpstreamError(f"Failed to fetch image from URL: {url}", details=str(e))
        return r.content

    def process(self, data: bytes) -> str:
        """Normalise, cut out and host an image. Returns the hosted URL."""
        png = self.to_png(data)
        return self.upload(self.remove_background(png))


def get_image_service(request: Request) -> ImageService:
    return request.app.state.images
