"""Parsing of image request paths of the form identifier/region/size/rotation/quality.format."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

_U32_MAX = 2**32 - 1
_FLOAT = r"(?:[0-9]*\.[0-9]+|[0-9]+)"

_PERCENT_REGION = re.compile(rf"pct:({_FLOAT}),({_FLOAT}),({_FLOAT}),({_FLOAT})")
_ABSOLUTE_REGION = re.compile(r"([0-9]+),([0-9]+),([0-9]+),([0-9]+)")
_SIZE_PREFIX = re.compile(r"(\^?)(!?)")
_WIDTH_HEIGHT = re.compile(r"([0-9]+),([0-9]+)")
_TRAILING_COMMA = re.compile(r"([0-9]+),")
_LEADING_COMMA = re.compile(r",([0-9]+)")
_PERCENT_SIZE = re.compile(rf"pct:({_FLOAT})")
_ROTATION = re.compile(r"(!?)(0|360|90|180|270)")
_FORMAT = re.compile(r"[A-Za-z0-9]+")


class RequestParseError(ValueError):
    """Raised when a request path or one of its parts is malformed."""


class ImageFormat(Enum):
    """Image encodings that a request may ask for."""

    PNG = "png"
    JPEG = "jpeg"
    GIF = "gif"
    WEBP = "webp"
    PNM = "pnm"
    TIFF = "tiff"
    TGA = "tga"
    DDS = "dds"
    BMP = "bmp"
    ICO = "ico"
    HDR = "hdr"
    OPENEXR = "openexr"
    FARBFELD = "farbfeld"
    AVIF = "avif"
    QOI = "qoi"
    PCX = "pcx"

    @classmethod
    def from_extension(cls, ext: str) -> ImageFormat | None:
        """Return the format for a file extension, or None if unknown."""
        return _EXTENSIONS.get(ext.lower())

    @classmethod
    def from_mime_type(cls, mime: str) -> ImageFormat | None:
        """Return the format for a MIME type, or None if unknown."""
        return _MIME_LOOKUP.get(mime)

    @property
    def mime_type(self) -> str:
        return _MIME_TYPES[self]

    @property
    def pillow_format(self) -> str | None:
        """Name of the matching Pillow plugin, None where Pillow has none."""
        return _PILLOW_FORMATS.get(self)


_EXTENSIONS = {
    "avif": ImageFormat.AVIF,
    "jpg": ImageFormat.JPEG,
    "jpeg": ImageFormat.JPEG,
    "jfif": ImageFormat.JPEG,
    "png": ImageFormat.PNG,
    "apng": ImageFormat.PNG,
    "gif": ImageFormat.GIF,
    "webp": ImageFormat.WEBP,
    "tif": ImageFormat.TIFF,
    "tiff": ImageFormat.TIFF,
    "tga": ImageFormat.TGA,
    "dds": ImageFormat.DDS,
    "bmp": ImageFormat.BMP,
    "ico": ImageFormat.ICO,
    "hdr": ImageFormat.HDR,
    "exr": ImageFormat.OPENEXR,
    "pbm": ImageFormat.PNM,
    "pam": ImageFormat.PNM,
    "ppm": ImageFormat.PNM,
    "pgm": ImageFormat.PNM,
    "pnm": ImageFormat.PNM,
    "ff": ImageFormat.FARBFELD,
    "qoi": ImageFormat.QOI,
    "pcx": ImageFormat.PCX,
}

_MIME_TYPES = {
    ImageFormat.AVIF: "image/avif",
    ImageFormat.JPEG: "image/jpeg",
    ImageFormat.PNG: "image/png",
    ImageFormat.GIF: "image/gif",
    ImageFormat.WEBP: "image/webp",
    ImageFormat.TIFF: "image/tiff",
    ImageFormat.TGA: "image/x-targa",
    ImageFormat.DDS: "image/vnd-ms.dds",
    ImageFormat.BMP: "image/bmp",
    ImageFormat.ICO: "image/x-icon",
    ImageFormat.HDR: "image/vnd.radiance",
    ImageFormat.OPENEXR: "image/x-exr",
    ImageFormat.PNM: "image/x-portable-anymap",
    ImageFormat.QOI: "image/x-qoi",
    ImageFormat.FARBFELD: "application/octet-stream",
    ImageFormat.PCX: "image/vnd.zbrush.pcx",
}

_MIME_LOOKUP = {
    "image/avif": ImageFormat.AVIF,
    "image/jpeg": ImageFormat.JPEG,
    "image/png": ImageFormat.PNG,
    "image/gif": ImageFormat.GIF,
    "image/webp": ImageFormat.WEBP,
    "image/tiff": ImageFormat.TIFF,
    "image/x-targa": ImageFormat.TGA,
    "image/x-tga": ImageFormat.TGA,
    "image/vnd-ms.dds": ImageFormat.DDS,
    "image/bmp": ImageFormat.BMP,
    "image/x-icon": ImageFormat.ICO,
    "image/vnd.microsoft.icon": ImageFormat.ICO,
    "image/vnd.radiance": ImageFormat.HDR,
    "image/x-exr": ImageFormat.OPENEXR,
    "image/x-portable-bitmap": ImageFormat.PNM,
    "image/x-portable-graymap": ImageFormat.PNM,
    "image/x-portable-pixmap": ImageFormat.PNM,
    "image/x-portable-anymap": ImageFormat.PNM,
    "image/x-qoi": ImageFormat.QOI,
    "image/vnd.zbrush.pcx": ImageFormat.PCX,
    "image/x-pcx": ImageFormat.PCX,
}

_PILLOW_FORMATS = {
    ImageFormat.PNG: "PNG",
    ImageFormat.JPEG: "JPEG",
    ImageFormat.GIF: "GIF",
    ImageFormat.WEBP: "WEBP",
    ImageFormat.PNM: "PPM",
    ImageFormat.TIFF: "TIFF",
    ImageFormat.TGA: "TGA",
    ImageFormat.DDS: "DDS",
    ImageFormat.BMP: "BMP",
    ImageFormat.ICO: "ICO",
    ImageFormat.AVIF: "AVIF",
    ImageFormat.QOI: "QOI",
    ImageFormat.PCX: "PCX",
}


@dataclass(frozen=True)
class FullRegion:
    """The whole image."""


@dataclass(frozen=True)
class SquareRegion:
    """A square taken from the image."""


@dataclass(frozen=True)
class AbsoluteRegion:
    """A rectangle in pixels; width and height are never zero."""

    x: int
    y: int
    w: int
    h: int


@dataclass(frozen=True)
class PercentRegion:
    """A rectangle given as percentages of the image dimensions."""

    x: float
    y: float
    w: float
    h: float


Region = FullRegion | SquareRegion | AbsoluteRegion | PercentRegion


@dataclass(frozen=True)
class MaxSize:
    """Keep the image at its current size."""


@dataclass(frozen=True)
class WidthSize:
    w: int


@dataclass(frozen=True)
class HeightSize:
    h: int


@dataclass(frozen=True)
class PercentSize:
    pct: float


@dataclass(frozen=True)
class WidthHeightSize:
    w: int
    h: int


SizeKind = MaxSize | WidthSize | HeightSize | PercentSize | WidthHeightSize


@dataclass(frozen=True)
class Size:
    allow_upscale: bool = False
    maintain_ratio: bool = False
    kind: SizeKind = field(default_factory=MaxSize)


class Quality(Enum):
    COLOR = "color"
    GRAY = "gray"
    BITONAL = "bitonal"
    DEFAULT = "default"


class RotationDeg(Enum):
    DEG0 = 0
    DEG90 = 90
    DEG180 = 180
    DEG270 = 270


@dataclass(frozen=True)
class Rotation:
    deg: RotationDeg = RotationDeg.DEG0
    mirror: bool = False


@dataclass(frozen=True)
class ImageRequest:
    identifier: str
    region: Region
    size: Size
    rotation: Rotation
    quality: Quality
    format: ImageFormat

    @classmethod
    def parse(cls, text: str) -> ImageRequest:
        return parse_image_request(text)


def _u32(digits: str) -> int:
    value = int(digits)
    if value > _U32_MAX:
        raise RequestParseError(f"integer out of range: {digits}")
    return value


def _nonzero(digits: str) -> int:
    value = _u32(digits)
    if value == 0:
        raise RequestParseError("expected a non-zero integer")
    return value


def parse_region(text: str) -> Region:
    """Parse a region: full, square, pct:x,y,w,h or x,y,w,h."""
    if text == "full":
        return FullRegion()
    if text == "square":
        return SquareRegion()
    if match := _PERCENT_REGION.fullmatch(text):
        x, y, w, h = (float(part) for part in match.groups())
        return PercentRegion(x, y, w, h)
    if match := _ABSOLUTE_REGION.fullmatch(text):
        x, y, w, h = match.groups()
        return AbsoluteRegion(_u32(x), _u32(y), _nonzero(w), _nonzero(h))
    raise RequestParseError(f"invalid region: {text!r}")


def _parse_size_kind(text: str) -> SizeKind:
    if text == "max":
        return MaxSize()
    if match := _WIDTH_HEIGHT.fullmatch(text):
        return WidthHeightSize(_nonzero(match[1]), _nonzero(match[2]))
    # "n," selects the height and ",n" the width.
    if match := _TRAILING_COMMA.fullmatch(text):
        return HeightSize(_nonzero(match[1]))
    if match := _LEADING_COMMA.fullmatch(text):
        return WidthSize(_nonzero(match[1]))
    if match := _PERCENT_SIZE.fullmatch(text):
        return PercentSize(float(match[1]))
    raise RequestParseError(f"invalid size: {text!r}")


def parse_size(text: str) -> Size:
    """Parse a size with optional leading '^' (upscale) then '!' (keep ratio)."""
    prefix = _SIZE_PREFIX.match(text)
    return Size(
        allow_upscale=bool(prefix[1]),
        maintain_ratio=bool(prefix[2]),
        kind=_parse_size_kind(text[prefix.end():]),
    )


def parse_quality(text: str) -> Quality:
    try:
        return Quality(text)
    except ValueError:
        raise RequestParseError(f"invalid quality: {text!r}") from None


def parse_rotation(text: str) -> Rotation:
    """Parse a rotation: an optional '!' for mirroring and 0, 90, 180, 270 or 360."""
    match = _ROTATION.fullmatch(text)
    if not match:
        raise RequestParseError(f"invalid rotation: {text!r}")
    degrees = int(match[2]) % 360
    return Rotation(deg=RotationDeg(degrees), mirror=bool(match[1]))


def parse_format(text: str) -> ImageFormat:
    if not _FORMAT.fullmatch(text):
        raise RequestParseError(f"invalid format: {text!r}")
    image_format = ImageFormat.from_extension(text)
    if image_format is None:
        raise RequestParseError(f"unknown format: {text!r}")
    return image_format


def parse_image_request(text: str) -> ImageRequest:
    """Parse a whole request path such as 'id/full/max/0/default.png'."""
    identifier, slash, rest = text.partition("/")
    if not identifier or not slash:
        raise RequestParseError(f"missing identifier: {text!r}")
    parts = rest.split("/", 3)
    if len(parts) != 4:
        raise RequestParseError(f"incomplete request: {text!r}")
    region_text, size_text, rotation_text, tail = parts
    quality_text, dot, format_text = tail.partition(".")
    if not dot:
        raise RequestParseError(f"missing format: {text!r}")
    return ImageRequest(
        identifier=identifier,
        region=parse_region(region_text),
        size=parse_size(size_text),
        rotation=parse_rotation(rotation_text),
        quality=parse_quality(quality_text),
        format=parse_format(format_text),
    )