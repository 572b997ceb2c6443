"""A small IIIF Image API server: request parsing, image operations, local and proxying loaders."""

__version__ = "0.1.0"