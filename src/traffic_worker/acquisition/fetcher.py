"""Concurrent camera image fetcher."""

import asyncio
import io
from dataclasses import dataclass
from typing import Optional, Sequence

import httpx
from PIL import Image, UnidentifiedImageError

from ..cycle.job import WorkItem
from ..utils.logger import logger as LOGGER

# Separates the camera identifier from the image number in image names.
ID_INDEX_SEPARATOR = "__"


@dataclass
class CameraImage:
    """A fetched camera image ready for upload."""

    identifier: str
    name: str
    data: bytes
    content_type: str


def image_name(identifier: str, number: int, extension: str) -> str:
    return f"{identifier}{ID_INDEX_SEPARATOR}{number}.{extension}"


def identifier_from_image_name(name: str) -> str:
    """Recover the camera identifier from an image name."""
    return name.rsplit(ID_INDEX_SEPARATOR, 1)[0]


def sniff_format(data: bytes) -> Optional[str]:
    """Return the lowercase image format, or None if Pillow cannot decode the payload."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            return (img.format or "").lower() or None
    except (UnidentifiedImageError, OSError, SyntaxError):
        return None


def _extension(content_type: Optional[str], data: bytes) -> Optional[str]:
    fmt = sniff_format(data)
    if fmt is None:
        return None

    if content_type and content_type.startswith("image/"):
        return content_type.split("/", 1)[1].split(";", 1)[0].strip() or fmt
    return fmt


class ImageFetcher:
    """Downloads all images for a set of cameras. Failed downloads are skipped."""

    def __init__(self, client: httpx.AsyncClient, timeout: float = 10.0):
        self.client = client
        self.timeout = timeout

    async def _fetch_one(self, url: str) -> Optional[httpx.Response]:
        try:
            response = await self.client.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            LOGGER.debug(f"Image fetch failed for {url}: {e}")
            return None

    async def fetch_item(self, item: WorkItem) -> list[CameraImage]:
        """Fetch every URL of a camera concurrently and name the images that decode."""
        responses = await asyncio.gather(*(self._fetch_one(url) for url in item.image_urls))

        images = []
        for response in responses:
            if response is None:
                continue

            content_type = response.headers.get("content-type")
            extension = _extension(content_type, response.content)
            if extension is None:
                LOGGER.debug(f"Discarding non-image payload from {response.request.url}")
                continue

            images.append(
                CameraImage(
                    identifier=item.identifier,
                    name=image_name(item.identifier, len(images) + 1, extension),
                    data=response.content,
                    content_type=content_type or f"image/{extension}",
                )
            )

        if not images:
            LOGGER.warning(f"Fetched no images for {item.identifier} ({len(item.image_urls)} URLs)")
        return images

    async def fetch_chunk(self, items: Sequence[WorkItem]) -> dict[str, list[CameraImage]]:
        """Fetch images for all cameras in a chunk, keyed by camera identifier."""
        results = await asyncio.gather(*(self.fetch_item(item) for item in items))
        return {item.identifier: images for item, images in zip(items, results)}
