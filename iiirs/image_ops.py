"""Crop, resize and rotate operations applied to Pillow images."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal

from PIL import Image

from iiirs.request import (
    AbsoluteRegion,
    FullRegion,
    HeightSize,
    MaxSize,
    PercentRegion,
    PercentSize,
    Region,
    Rotation,
    RotationDeg,
    Size,
    SquareRegion,
    WidthHeightSize,
    WidthSize,
)

_U32_MAX = 2**32 - 1


class UpscaleError(ValueError):
    """Raised when a resize would enlarge an image where that is not allowed."""


def _round_to_u32(value: float) -> int:
    """Round half away from zero and saturate into the u32 range."""
    if math.isnan(value):
        return 0
    if math.isinf(value):
        return _U32_MAX if value > 0 else 0
    rounded = int(Decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    return max(0, min(rounded, _U32_MAX))


def scale_by_pct(value: int, pct: float) -> int:
    """Return `pct` percent of `value`, rounded to the nearest integer."""
    return _round_to_u32(value * pct / 100.0)


def _crop(image: Image.Image, x: int, y: int, w: int, h: int) -> Image.Image:
    width, height = image.size
    # A negative offset stands for an unsigned underflow and lies past the edge.
    x = width if x < 0 else min(x, width)
    y = height if y < 0 else min(y, height)
    w = min(w, width - x)
    h = min(h, height - y)
    return image.crop((x, y, x + w, y + h))


def crop_image(image: Image.Image, region: Region) -> Image.Image:
    """Cut the requested region out of the image, clamped to its bounds."""
    match region:
        case FullRegion():
            return image
        case SquareRegion():
            side = min(image.width, image.height)
            x = side - image.width // 2
            y = side - image.height // 2
            w = h = side
        case AbsoluteRegion(x, y, w, h):
            pass
        case PercentRegion(px, py, pw, ph):
            x = scale_by_pct(image.width, px)
            y = scale_by_pct(image.height, py)
            w = scale_by_pct(image.width, pw)
            h = scale_by_pct(image.height, ph)
        case _:
            raise TypeError(f"unsupported region: {region!r}")
    return _crop(image, x, y, w, h)


def _fit_within(width: int, height: int, max_w: int, max_h: int) -> tuple[int, int]:
    if width == 0 or height == 0:
        return max_w, max_h
    ratio = min(max_w / width, max_h / height)
    return (
        max(_round_to_u32(width * ratio), 1),
        max(_round_to_u32(height * ratio), 1),
    )


def _resize_exact(image: Image.Image, width: int, height: int) -> Image.Image:
    if width == 0 or height == 0:
        return Image.new(image.mode, (width, height))
    return image.resize((width, height), Image.Resampling.BILINEAR)


def resize_image(image: Image.Image, size: Size) -> Image.Image:
    """Resize the image as the size request asks.

    Raises UpscaleError when the new width exceeds the current one without
    permission, or whenever the new height exceeds the current one.
    """
    match size.kind:
        case MaxSize():
            return image
        case WidthSize(w):
            new_w, new_h = w, image.height
        case HeightSize(h):
            new_w, new_h = image.width, h
        case PercentSize(pct):
            new_w = scale_by_pct(image.width, pct)
            new_h = scale_by_pct(image.height, pct)
        case WidthHeightSize(w, h):
            new_w, new_h = w, h
        case _:
            raise TypeError(f"unsupported size: {size.kind!r}")

    if (not size.allow_upscale and new_w > image.width) or new_h > image.height:
        raise UpscaleError(
            f"cannot resize {image.width}x{image.height} to {new_w}x{new_h}"
        )
    if size.maintain_ratio:
        if (new_w, new_h) == image.size:
            return image.copy()
        new_w, new_h = _fit_within(image.width, image.height, new_w, new_h)
    return _resize_exact(image, new_w, new_h)


_CLOCKWISE_TURNS = {
    RotationDeg.DEG90: Image.Transpose.ROTATE_270,
    RotationDeg.DEG270: Image.Transpose.ROTATE_90,
}


def rotate_image(image: Image.Image, rotation: Rotation) -> Image.Image:
    """Mirror and then rotate the image clockwise; return the result."""
    if rotation.deg is RotationDeg.DEG180:
        if rotation.mirror:
            return image.transpose(Image.Transpose.FLIP_TOP_BOTTOM)
        return image.transpose(Image.Transpose.ROTATE_180)
    if rotation.mirror:
        image = image.transpose(Image.Transpose.FLIP_LEFT_RIGHT)
    turn = _CLOCKWISE_TURNS.get(rotation.deg)
    return image if turn is None else image.transpose(turn)