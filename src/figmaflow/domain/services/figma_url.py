"""Parsing of design-file share URLs into file keys and node ids."""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import parse_qs, quote, unquote, urlparse

FIGMA_HOSTS = frozenset({"figma.com", "www.figma.com"})
URL_KINDS = frozenset({"file", "design", "proto"})
_FILE_KEY = re.compile(r"^[A-Za-z0-9]+$")


@dataclass(frozen=True)
class ParsedFigmaUrl:
    file_key: str
    node_id: str | None = None
    file_name: str | None = None


def parse_figma_url(url: str) -> ParsedFigmaUrl | None:
    """
    Extract the file key, node id and file name from a share URL.

    Accepts ``https://[www.]figma.com/{file|design|proto}/<key>/<name>?node-id=...``.
    The URL form of node ids (``1-2``) is normalized to the API form (``1:2``).

    Returns:
        ParsedFigmaUrl, or None when ``url`` is not a design-file URL
    """
    parsed = urlparse(url.strip())
    if parsed.scheme != "https" or parsed.netloc.lower() not in FIGMA_HOSTS:
        return None

    segments = [s for s in parsed.path.split("/") if s]
    if len(segments) < 2 or segments[0] not in URL_KINDS or not _FILE_KEY.match(segments[1]):
        return None

    file_name = unquote(segments[2]).replace("-", " ") if len(segments) > 2 else None
    node_ids = parse_qs(parsed.query).get("node-id")
    node_id = node_ids[0].replace("-", ":") if node_ids else None
    return ParsedFigmaUrl(file_key=segments[1], node_id=node_id, file_name=file_name)


def resolve_file_key(value: str) -> str:
    """
    Accept either a bare file key or a share URL and return the file key.

    Raises:
        ValueError: If ``value`` is neither
    """
    value = value.strip()
    if _FILE_KEY.match(value):
        return value
    parsed = parse_figma_url(value)
    if parsed is None:
        raise ValueError(f"Not a design file key or URL: {value!r}")
    return parsed.file_key


def generate_file_url(file_key: str, file_name: str | None = None) -> str:
    name = quote(re.sub(r"\s+", "-", file_name)) if file_name else "Untitled"
    return f"https://www.figma.com/file/{file_key}/{name}"
