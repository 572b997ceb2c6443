import pytest

from iiirs.request import (
    AbsoluteRegion,
    FullRegion,
    HeightSize,
    ImageFormat,
    ImageRequest,
    MaxSize,
    PercentRegion,
    PercentSize,
    Quality,
    RequestParseError,
    Rotation,
    RotationDeg,
    Size,
    SquareRegion,
    WidthHeightSize,
    WidthSize,
    parse_format,
    parse_image_request,
    parse_quality,
    parse_region,
    parse_rotation,
    parse_size,
)


def test_parse_rotation_zero():
    assert parse_rotation("0") == Rotation(deg=RotationDeg.DEG0, mirror=False)


def test_parse_rotation_mirrored_ninety():
    assert parse_rotation("!90") == Rotation(deg=RotationDeg.DEG90, mirror=True)


@pytest.mark.parametrize("text", ["flip", "-180", "45", "!25", "", "!"])
def test_parse_rotation_rejects(text):
    with pytest.raises(RequestParseError):
        parse_rotation(text)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("360", Rotation(RotationDeg.DEG0, False)),
        ("180", Rotation(RotationDeg.DEG180, False)),
        ("!270", Rotation(RotationDeg.DEG270, True)),
        ("!0", Rotation(RotationDeg.DEG0, True)),
    ],
)
def test_parse_rotation_values(text, expected):
    assert parse_rotation(text) == expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("full", FullRegion()),
        ("square", SquareRegion()),
        ("1,2,3,4", AbsoluteRegion(1, 2, 3, 4)),
        ("0,0,10,20", AbsoluteRegion(0, 0, 10, 20)),
        ("pct:10,20.5,.5,100", PercentRegion(10.0, 20.5, 0.5, 100.0)),
    ],
)
def test_parse_region(text, expected):
    assert parse_region(text) == expected


@pytest.mark.parametrize(
    "text",
    ["1,2,0,4", "1,2,3,0", "1,2,3", "pct:1.,2,3,4", "pct:-1,2,3,4", "4294967296,0,1,1", "fulls", "pct:1e3,1,1,1"],
)
def test_parse_region_rejects(text):
    with pytest.raises(RequestParseError):
        parse_region(text)


def test_parse_region_accepts_u32_max():
    assert parse_region("4294967295,0,1,1") == AbsoluteRegion(4294967295, 0, 1, 1)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("max", Size(False, False, MaxSize())),
        ("^max", Size(True, False, MaxSize())),
        ("!max", Size(False, True, MaxSize())),
        ("^!max", Size(True, True, MaxSize())),
        ("100,200", Size(False, False, WidthHeightSize(100, 200))),
        ("100,", Size(False, False, HeightSize(100))),
        (",50", Size(False, False, WidthSize(50))),
        ("pct:50", Size(False, False, PercentSize(50.0))),
        ("^pct:12.5", Size(True, False, PercentSize(12.5))),
    ],
)
def test_parse_size(text, expected):
    assert parse_size(text) == expected


@pytest.mark.parametrize("text", ["!^max", "0,", ",0", "100,0", "0,100", "pct:", "", "maxx"])
def test_parse_size_rejects(text):
    with pytest.raises(RequestParseError):
        parse_size(text)


def test_default_parts():
    assert Size() == Size(False, False, MaxSize())
    assert Rotation() == Rotation(RotationDeg.DEG0, False)


@pytest.mark.parametrize(
    "text, expected",
    [("color", Quality.COLOR), ("gray", Quality.GRAY), ("bitonal", Quality.BITONAL), ("default", Quality.DEFAULT)],
)
def test_parse_quality(text, expected):
    assert parse_quality(text) == expected


def test_parse_quality_rejects():
    with pytest.raises(RequestParseError):
        parse_quality("grey")


@pytest.mark.parametrize(
    "text, expected",
    [("png", ImageFormat.PNG), ("JPG", ImageFormat.JPEG), ("tif", ImageFormat.TIFF), ("webp", ImageFormat.WEBP)],
)
def test_parse_format(text, expected):
    assert parse_format(text) == expected


@pytest.mark.parametrize("text", ["xyz", "p-g", "", "png.x"])
def test_parse_format_rejects(text):
    with pytest.raises(RequestParseError):
        parse_format(text)


def test_mime_type_lookup():
    assert ImageFormat.from_mime_type("image/png") is ImageFormat.PNG
    assert ImageFormat.from_mime_type("image/x-tga") is ImageFormat.TGA
    assert ImageFormat.from_mime_type("text/html") is None


@pytest.mark.parametrize("image_format", [ImageFormat.PNG, ImageFormat.JPEG, ImageFormat.TIFF, ImageFormat.GIF])
def test_mime_type_round_trip(image_format):
    assert ImageFormat.from_mime_type(image_format.mime_type) is image_format


def test_parse_full_request():
    request = parse_image_request("abc/1,2,3,4/^!100,200/!90/gray.png")
    assert request == ImageRequest(
        identifier="abc",
        region=AbsoluteRegion(1, 2, 3, 4),
        size=Size(True, True, WidthHeightSize(100, 200)),
        rotation=Rotation(RotationDeg.DEG90, True),
        quality=Quality.GRAY,
        format=ImageFormat.PNG,
    )


def test_image_request_parse_classmethod():
    request = ImageRequest.parse("img/full/max/0/default.jpg")
    assert request.identifier == "img"
    assert request.region == FullRegion()
    assert request.size == Size()
    assert request.rotation == Rotation()
    assert request.quality is Quality.DEFAULT
    assert request.format is ImageFormat.JPEG


@pytest.mark.parametrize(
    "text",
    [
        "/full/max/0/default.png",
        "img",
        "img/full/max/0/default",
        "img/full/max/0/default.png.x",
        "img/full/max/0/default.png/x",
        "img/full/max/default.png",
        "img/full/max/45/default.png",
        "img/full/max/0/colour.png",
    ],
)
def test_parse_request_rejects(text):
    with pytest.raises(RequestParseError):
        parse_image_request(text)