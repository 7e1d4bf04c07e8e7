# src/modelstore/url_policy.py — v1
"""Pure validation of model download URLs and model filenames.

A download URL must point straight at a ``.gguf`` file. Anything carrying
a query string or fragment is rejected rather than rewritten, because the
server-side name such URLs produce leaks into the saved filename.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from urllib.parse import unquote, urlsplit

from jobpilot.core.errors import InvalidUrl

ALLOWED_SCHEMES = frozenset({"https", "http"})
MODEL_EXTENSION = ".gguf"

# Characters and percent-encodings left behind by query strings.
_QUERY_ARTIFACT = re.compile(r"[?&=]|%3[fF]|%26|%3[dD]")


def has_query_artifacts(name: str) -> bool:
    """True if ``name`` contains ``?``, ``&``, ``=`` or their encodings."""
    return bool(_QUERY_ARTIFACT.search(name))


def is_valid_model_filename(name: str, extension: str = MODEL_EXTENSION) -> bool:
    """Check a bare filename (no directories) for use as a model file."""
    if not name or name in {".", ".."} or "/" in name or "\\" in name:
        return False
    if has_query_artifacts(name):
        return False
    return name.lower().endswith(extension) and len(name) > len(extension)


def validate_download_url(url: str, extension: str = MODEL_EXTENSION) -> str:
    """Validate a model download URL and return the filename it will save as.

    Raises:
        InvalidUrl: If the scheme is not http(s), the URL has a query string
            or fragment, or the last path segment is not a model file.
    """
    url = url.strip()
    parts = urlsplit(url)

    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        raise InvalidUrl(
            f"Unsupported URL scheme {parts.scheme!r}; use https", url=url,
        )
    if not parts.netloc:
        raise InvalidUrl("URL has no host", url=url)
    if parts.query or "?" in url:
        raise InvalidUrl(
            "URL contains a query string; use the direct file link "
            "(e.g. .../resolve/main/model.gguf)",
            url=url,
        )
    if parts.fragment or "#" in url:
        raise InvalidUrl("URL contains a fragment", url=url)

    filename = unquote(PurePosixPath(parts.path).name)
    if not filename:
        raise InvalidUrl("URL does not name a file", url=url)
    if not is_valid_model_filename(filename, extension):
        raise InvalidUrl(
            f"URL does not point to a {extension} model file: {filename!r}",
            url=url,
        )
    return filename
