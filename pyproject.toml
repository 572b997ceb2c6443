[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "iiirs"
version = "0.1.0"
description = "A small IIIF Image API server with local and proxying image loaders"
requires-python = ">=3.10"
keywords = ["iiif", "image", "server", "asgi", "proxy"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Multimedia :: Graphics",
]
dependencies = [
    "pillow",
    "httpx",
    "starlette",
    "uvicorn",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
iiirs = "iiirs.server:main"

[tool.hatch.build.targets.wheel]
packages = ["iiirs"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"
