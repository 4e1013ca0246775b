# backend/asset_insight/encoder.py
import io
import base64
from dataclasses import dataclass
from typing import Optional, Protocol

from PIL import Image, UnidentifiedImageError

from .errors import EncodingError
from .models import EncodedAsset

FALLBACK_MIME = "image/jpeg"


class Upload(Protocol):
    filename: Optional[str]
    content_type: Optional[str]

    async def read(self) -> bytes: ...


@dataclass
class InMemoryUpload:
    """Upload whose bytes were already pulled off the request."""

    filename: Optional[str]
    content_type: Optional[str]
    content: bytes

    async def read(self) -> bytes:
        return self.content


def _sniff_mime(img_bytes: bytes) -> Optional[str]:
    """
    Ask Pillow what the bytes are. Returns None when it is not an image
    or too large for Pillow to open.
    """
    try:
        with Image.open(io.BytesIO(img_bytes)) as img:
            fmt = img.format
            img.verify()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError):
        return None
    return Image.MIME.get(fmt or "", FALLBACK_MIME)


async def encode(upload: Upload) -> EncodedAsset:
    """
    Read an uploaded file and turn it into a base64 payload Gemini accepts
    inline. Raises EncodingError for unreadable, empty or non-image files.
    """
    name = upload.filename or "unnamed"
    try:
        img_bytes = await upload.read()
    except Exception as e:
        raise EncodingError(f"Could not read {name}: {e}") from e

    if not img_bytes:
        raise EncodingError(f"{name} is empty")

    sniffed = _sniff_mime(img_bytes)
    if sniffed is None:
        raise EncodingError(f"{name} is not a readable image")

    declared = (upload.content_type or "").lower()
    mime_type = declared if declared.startswith("image/") else sniffed

    return EncodedAsset(
        filename=name,
        mime_type=mime_type,
        data=base64.b64encode(img_bytes).decode("utf-8"),
    )
