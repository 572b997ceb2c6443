# iiirs

A small server for the IIIF Image API. It answers requests of the form

    /iiif/{prefix}/{identifier}/{region}/{size}/{rotation}/{quality}.{format}

and returns the image after cropping, resizing and rotating it as the request asks.

## Installing

    pip install .

## Running

    iiirs

By default the server listens on `0.0.0.0:3000`. Use `--host` and `--port` to
change this:

    iiirs --host 127.0.0.1 --port 8000

It serves two prefixes:

- `test`: images stored as `<identifier>.tif` in the current directory.
- `proxy`: the identifier is a URL encoded as unpadded URL-safe base64. The
  image is fetched over HTTP and written to `./proxy_cache/ab/cd/abcd…`, where
  the name is the SHA-256 of its pixel data. While the server keeps running,
  later requests for the same URL are answered from that file.

For example, with `photo.tif` in the working directory:

    curl -o out.png http://localhost:3000/iiif/test/photo/full/max/0/default.png

## Request parameters

- region: `full`, `square`, `x,y,w,h` (pixels, `w` and `h` non-zero) or
  `pct:x,y,w,h`. The region is clamped to the image bounds.
- size: `max`, `n,` (sets the height), `,n` (sets the width), `w,h` or
  `pct:n`. It may be prefixed by `^` to allow a larger width and then by `!` to
  fit within the given box while keeping the aspect ratio. A height larger than
  the image's is always refused.
- rotation: `0`, `90`, `180`, `270` or `360` degrees clockwise, optionally
  prefixed by `!` to mirror the image first.
- quality: `color`, `gray`, `bitonal` or `default`.
- format: a file extension such as `png`, `jpg`, `gif`, `webp`, `bmp` or `tif`.

Responses:

- `400 Bad Request` when the request cannot be parsed or the size is refused.
- `404 Not Found` for an unknown prefix, a missing image or a malformed proxy
  identifier.
- `500 Internal Server Error` when the image cannot be encoded in the requested
  format (for example `hdr`, `exr` or `ff`).

## Using it as a library

```python
from iiirs.loaders import LocalLoader, ProxyLoader
from iiirs.request import ImageRequest
from iiirs.server import create_app, render_image

request = ImageRequest.parse("photo/full/max/90/default.png")
app = create_app({
    "images": LocalLoader({"images": "/srv/images"}),
    "remote": ProxyLoader("remote", "/var/cache/iiirs"),
})
```

- `iiirs.request` parses request paths (`parse_image_request`, `parse_region`,
  `parse_size`, `parse_rotation`, `parse_quality`, `parse_format`) and raises
  `RequestParseError` on bad input.
- `iiirs.image_ops` holds `crop_image`, `resize_image` (raising `UpscaleError`)
  and `rotate_image`, working on Pillow images.
- `iiirs.loaders` holds the `ImageLoader` base class and the `LocalLoader` and
  `ProxyLoader` implementations.
- `iiirs.server.render_image` applies a request to an image and returns the
  encoded bytes and MIME type; `create_app` returns an ASGI application that any
  ASGI server can run.

## What it does not do

- The quality parameter is parsed but not applied: `gray` and `bitonal` return
  the image in its own colours.
- The proxy remembers which URL maps to which cached file only in memory; after
  a restart each URL is fetched again.
- There is no `info.json` endpoint and no configuration file; the prefixes
  served by the `iiirs` command are fixed.

## Tests

    pip install ".[test]"
    pytest