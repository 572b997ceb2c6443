"""Image sources: local directories of TIFF files and a caching HTTP proxy."""

from __future__ import annotations

import base64
import binascii
import hashlib
import io
import os
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import BinaryIO

import httpx
from PIL import Image

from iiirs.request import ImageFormat, ImageRequest

USER_AGENT = "iiirs v0.1.0"
ON_DISK_EXTENSION = ".tif"

_BASE64URL = re.compile(r"[A-Za-z0-9_-]*")


class ImageLoader(ABC):
    """Something that can produce an image for a request under a prefix."""

    @abstractmethod
    async def get_image(self, prefix: str, request: ImageRequest) -> Image.Image:
        """Return the requested image.

        Raises OSError when the image cannot be found and ValueError when the
        identifier is malformed.
        """


def _decode(source: BinaryIO, image_format: ImageFormat | None, what: str) -> Image.Image:
    formats = None
    if image_format is not None and image_format.pillow_format is not None:
        formats = [image_format.pillow_format]
    try:
        image = Image.open(source, formats=formats)
        image.load()
    except Exception as exc:
        raise RuntimeError(f"failed to decode image {what}") from exc
    return image


class LocalLoader(ImageLoader):
    """Loads TIFF files from a directory chosen by the request prefix."""

    def __init__(
        self,
        dirs: Mapping[str, str | os.PathLike[str]]
        | Iterable[tuple[str, str | os.PathLike[str]]]
        | None = None,
    ) -> None:
        items = dirs.items() if isinstance(dirs, Mapping) else (dirs or ())
        self._dirs: dict[str, Path] = {prefix: Path(path) for prefix, path in items}

    def insert_dir(self, prefix: str, directory: str | os.PathLike[str]) -> None:
        self._dirs[prefix] = Path(directory)

    async def get_image(self, prefix: str, request: ImageRequest) -> Image.Image:
        directory = self._dirs.get(prefix)
        if directory is None:
            raise FileNotFoundError(f"no image directory for prefix {prefix!r}")
        path = (directory / request.identifier).with_suffix(ON_DISK_EXTENSION)
        with open(path, "rb") as handle:
            return _decode(handle, None, str(path))


class ProxyLoader(ImageLoader):
    """Fetches images by URL (base64url-encoded in the identifier) and caches them."""

    def __init__(
        self,
        prefix: str,
        cache_dir: str | os.PathLike[str],
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.prefix = prefix
        self.cache_dir = Path(cache_dir)
        self._client = client or httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT},
            timeout=httpx.Timeout(None, connect=2.0, read=1.0),
        )
        self._uri_to_key: dict[str, tuple[bytes, ImageFormat]] = {}

    def _get_from_cache(self, key: bytes, image_format: ImageFormat) -> Image.Image | None:
        path = cached_img_path(self.cache_dir, key)
        try:
            handle = open(path, "rb")
        except OSError:
            return None
        with handle:
            return _decode(handle, image_format, f"{path} found in cache")

    async def _get_from_uri(self, uri: str) -> tuple[Image.Image, ImageFormat] | None:
        response = await self._client.get(uri)
        if response.status_code != httpx.codes.OK:
            return None
        mime = response.headers.get("content-type")
        if mime is not None:
            image_format = ImageFormat.from_mime_type(mime)
        else:
            filename = response.url.path.rsplit("/", 1)[-1]
            image_format = ImageFormat.from_extension(filename.rsplit(".", 1)[-1])
        if image_format is None:
            raise RuntimeError(f"cannot tell the image format of {uri}")
        image = _decode(io.BytesIO(response.content), image_format, f"from {uri}")
        return image, image_format

    def _write_in_cache(self, image: Image.Image, uri: str, image_format: ImageFormat) -> None:
        content_hash = hashlib.sha256(image.tobytes()).digest()
        path = cached_img_path(self.cache_dir, content_hash)
        if path.exists():
            raise FileExistsError(f"cache file already exists: {path}")
        if image_format.pillow_format is None:
            raise RuntimeError(f"cannot store images as {image_format.value}")
        path.parent.mkdir(parents=True, exist_ok=True)
        image.save(path, format=image_format.pillow_format)
        self._uri_to_key[uri] = (content_hash, image_format)

    async def get_image(self, prefix: str, request: ImageRequest) -> Image.Image:
        uri = _decode_identifier(request.identifier)
        cached = self._uri_to_key.get(uri)
        if cached is not None:
            image = self._get_from_cache(*cached)
        else:
            fetched = await self._get_from_uri(uri)
            image = None
            if fetched is not None:
                image, image_format = fetched
                self._write_in_cache(image, uri, image_format)
        if image is None:
            raise FileNotFoundError(f"image not available: {uri}")
        return image


def _decode_identifier(identifier: str) -> str:
    encoded = identifier.rstrip("=")
    if not _BASE64URL.fullmatch(encoded):
        raise ValueError(f"identifier is not base64url: {identifier!r}")
    try:
        raw = base64.urlsafe_b64decode(encoded + "=" * (-len(encoded) % 4))
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"identifier is not base64url: {identifier!r}") from exc
    if base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii") != encoded:
        raise ValueError(f"identifier is not canonical base64url: {identifier!r}")
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ValueError(f"identifier is not UTF-8: {identifier!r}") from exc


def get_leaf_dirs(path: str | os.PathLike[str]) -> Iterator[Path]:
    """Yield the directories found exactly two levels below `path`."""
    try:
        top = list(os.scandir(path))
    except OSError:
        return
    for entry in top:
        try:
            if not entry.is_dir(follow_symlinks=False):
                continue
            children = list(os.scandir(entry.path))
        except OSError:
            continue
        for child in children:
            try:
                if child.is_dir(follow_symlinks=False):
                    yield Path(child.path)
            except OSError:
                continue


def cached_img_path(cache: str | os.PathLike[str], key: bytes) -> Path:
    """Return cache/ab/cd/abcd... for a content hash."""
    hex_key = key.hex()
    return Path(cache, hex_key[0:2], hex_key[2:4], hex_key)