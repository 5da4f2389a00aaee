"""Design-file processing: fetch, parse, resolve images, analyze components, generate CSS."""

__version__ = "0.1.0"
