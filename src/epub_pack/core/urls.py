"""Conversion between relative URLs and archive paths."""

import re
from urllib.parse import quote

from epub_pack.core.errors import FatalError

ABSOLUTE_URL_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")
PERCENT_ESCAPE_PATTERN = re.compile(r"%([0-9A-Fa-f]{2})")


def is_absolute_url(url: str) -> bool:
    """Check whether the URL starts with a scheme."""
    return ABSOLUTE_URL_PATTERN.match(url) is not None


def chop_hash(path: str | None) -> str | None:
    """Drop the fragment from a path."""
    if path is None:
        return None
    return path.split("#", 1)[0]


def _decode_percent_escapes(url: str, original: str) -> str:
    def decode(match: re.Match) -> str:
        code_point = int(match.group(1), 16)
        if code_point == 0x2F:
            raise FatalError(f"Percent escape decodes to a slash in URL {original}.")
        if code_point > 0x7F:
            raise FatalError(
                f"URL {original} contains a non-Basic Latin percent escape. "
                "Non-Basic Latin file names are not supported."
            )
        return chr(code_point)

    return PERCENT_ESCAPE_PATTERN.sub(decode, url)


def url_to_path(url: str | None, base_path: str) -> str | None:
    """Resolve a path-relative URL found in `base_path` to an archive path.

    The fragment, if any, is kept. Raises FatalError for URLs that are not
    path-relative or that point outside the publication root.
    """
    if url is None:
        return None
    if url.startswith("//"):
        raise FatalError(
            f"URL {url} is a scheme-relative URL where path-relative URL was expected."
        )
    if url.startswith("/"):
        raise FatalError(
            f"URL {url} is an absolute-path-relative URL where path-relative URL was expected."
        )
    if is_absolute_url(url):
        raise FatalError(
            f"URL {url} is an absolute URL where path-relative URL was expected."
        )
    if not url or url.startswith("#"):
        return base_path + url

    path_part, sep, fragment = url.partition("#")
    decoded = _decode_percent_escapes(path_part, url)

    base_dir = base_path.split("/")[:-1]
    resolved: list[str] = []
    for segment in base_dir + decoded.split("/"):
        if segment == ".":
            continue
        if segment == "..":
            if not resolved:
                raise FatalError(
                    f"URL {url} points to outside the root directory of the publication."
                )
            resolved.pop()
            continue
        resolved.append(segment)
    return "/".join(resolved) + sep + fragment


def path_to_url(path: str, base_path: str) -> str:
    """Shortest relative URL from the file `base_path` to the archive `path`."""
    target, sep, fragment = path.partition("#")
    slash = base_path.rfind("/")
    prefix = base_path[: slash + 1]
    level = 0
    while not target.startswith(prefix):
        prefix = prefix[: prefix.rstrip("/").rfind("/") + 1]
        level += 1
    relative = "../" * level + target[len(prefix) :]
    return quote(relative, safe="/") + sep + fragment
