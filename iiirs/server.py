"""HTTP server answering image requests under /iiif/{prefix}/{request}."""

from __future__ import annotations

import argparse
import asyncio
import io
from collections.abc import Mapping, Sequence

import uvicorn
from PIL import Image
from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Route

from iiirs.image_ops import UpscaleError, crop_image, resize_image, rotate_image
from iiirs.loaders import ImageLoader, LocalLoader, ProxyLoader
from iiirs.request import (
    FullRegion,
    ImageRequest,
    RequestParseError,
    Rotation,
    Size,
    parse_image_request,
)


class _EncodeError(RuntimeError):
    """Raised when an image cannot be written in the requested format."""


def render_image(image: Image.Image, request: ImageRequest) -> tuple[bytes, str]:
    """Apply the request's region, size and rotation and encode the result.

    Returns the encoded bytes and their MIME type. Raises UpscaleError when the
    requested size is not allowed.
    """
    if request.region != FullRegion():
        image = crop_image(image, request.region)
    if request.size != Size():
        image = resize_image(image, request.size)
    if request.rotation != Rotation():
        image = rotate_image(image, request.rotation)

    pillow_format = request.format.pillow_format
    if pillow_format is None:
        raise _EncodeError(f"cannot encode {request.format.value}")
    buffer = io.BytesIO()
    try:
        image.save(buffer, format=pillow_format)
    except Exception as exc:
        raise _EncodeError(f"cannot encode image as {request.format.value}") from exc
    return buffer.getvalue(), request.format.mime_type


def create_app(loaders: Mapping[str, ImageLoader]) -> Starlette:
    """Build the application serving images from the given loaders by prefix."""
    entries = {prefix: (loader, asyncio.Lock()) for prefix, loader in loaders.items()}

    async def get_image(request: Request) -> Response:
        prefix = request.path_params["prefix"]
        try:
            image_request = parse_image_request(request.path_params["image_request"])
        except RequestParseError:
            return Response(status_code=400)

        entry = entries.get(prefix)
        if entry is None:
            return Response(status_code=404)
        loader, lock = entry
        async with lock:
            try:
                image = await loader.get_image(prefix, image_request)
            except (OSError, ValueError):
                return Response(status_code=404)

        try:
            content, mime = await run_in_threadpool(render_image, image, image_request)
        except UpscaleError:
            return Response(status_code=400)
        except _EncodeError:
            return Response(status_code=500)
        return Response(content, media_type=mime)

    routes = [
        Route("/iiif/{prefix}/{image_request:path}", get_image, methods=["GET"]),
    ]
    return Starlette(routes=routes)


def main(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Serve images over HTTP.")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=3000)
    args = parser.parse_args(argv)

    loaders: dict[str, ImageLoader] = {
        "test": LocalLoader({"test": "./"}),
        "proxy": ProxyLoader("proxy", "./proxy_cache"),
    }
    uvicorn.run(create_app(loaders), host=args.host, port=args.port)


if __name__ == "__main__":
    main()