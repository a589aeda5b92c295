from dataclasses import dataclass
from typing import Tuple

import cloudinary
import cloudinary.uploader
from app.core.config import settings
from app.core.errors import MediaProcessingError
from app.core.logger import logger

cloudinary.config(
    cloud_name=settings.CLOUDINARY_CLOUD_NAME,
    api_key=settings.CLOUDINARY_API_KEY,
    api_secret=settings.CLOUDINARY_API_SECRET
)


@dataclass(frozen=True)
class StoredMedia:
    url: str
    public_id: str



class MediaProcessor:
    """Resizes an uploaded image and stores it, returning the stored reference.

    Cloudinary applies the resize as an incoming transformation, so only the
    derived image is kept remotely.
    """

    def __init__(self, folder: str = settings.CLOUDINARY_FOLDER):
        self.folder = folder

    def process(self, raw: bytes, size: Tuple[int, int], fmt: str) -> StoredMedia:
        width, height = size
        try:
            result = cloudinary.uploader.upload(
                raw,
                folder=self.folder,
                resource_type="image",
                format=fmt,
                transformation=[{"width": width, "height": height, "crop": "limit"}],
            )
        except Exception as e:
            logger.warning(f"Cloudinary upload error: {e}")
            raise MediaProcessingError("Failed to upload attachment") from e

        url = result.get('secure_url')
        public_id = result.get('public_id')
        if not url or not public_id:
            raise MediaProcessingError("Failed to upload attachment")
        return StoredMedia(url=url, public_id=public_id)

    def remove(self, public_id: str) -> bool:
        try:
            result = cloudinary.uploader.destroy(public_id)
            return result.get('result') == 'ok'
        except Exception as e:
            logger.warning(f"Cloudinary delete error: {e}")
            return False



def get_media_processor() -> MediaProcessor:
    return MediaProcessor()
