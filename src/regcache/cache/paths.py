"""
Key to path mapping for cache entries.

Two layouts are supported:
- Hashed (default): MD5 of the normalized key, bucketed by its first three
  hex characters, e.g. ``f/a/7/fa7bf9eb.tgz``.
- Friendly names: the module name from the key's last path segment, bucketed
  by the first three characters of the name with the version suffix and
  extension removed, e.g. ``t/e/s/test-1.2.3.tgz``.

Everything here is pure; no function touches the filesystem.
"""

from __future__ import annotations

import hashlib
import os
import posixpath
import re
from pathlib import Path
from urllib.parse import urlsplit

from regcache.types import PathInfo

BUCKET_DEPTH = 3
HASH_PREFIX_LENGTH = 8
PLACEHOLDER = "-"

# "-MAJOR.MINOR.PATCH" and anything after it (prerelease, build, extension)
_VERSION_SUFFIX = re.compile(r"-\d+\.\d+\.\d+.*$")


def normalize_key(key: str) -> str:
    """Resolve ``.``/``..`` segments and repeated slashes in a key."""
    return posixpath.normpath(key)


def key_hash(key: str) -> str:
    """Hex digest identifying the normalized key.

    The digest covers the key after normalization, so traversal variants
    such as ``/foo/bar/-/../baz.tgz`` and ``/foo/bar/baz.tgz`` share an entry
    (``03e80b5c.tgz``). Directories written by npm-proxy-cache hashed the raw
    key (``fa7bf9eb.tgz`` for the first form) and are not read back as the
    same entries when the key contains ``.`` or ``..`` segments.
    """
    return hashlib.md5(
        normalize_key(key).encode("utf-8"), usedforsecurity=False
    ).hexdigest()


def extension_of(name: str) -> str:
    """Return the extension of a path segment including the dot, or ''."""
    return posixpath.splitext(name)[1]


def module_base_name(name: str) -> str:
    """Strip a trailing semver suffix and the file extension from a segment.

    ``test-1.2.3.tgz`` -> ``test``, ``te.st`` -> ``te``, ``q`` -> ``q``.
    """
    base = _VERSION_SUFFIX.sub("", name)
    return posixpath.splitext(base)[0]


def _bucket_char(char: str) -> str:
    return char if char.isascii() and char.isalnum() else PLACEHOLDER


def hashed_location(key: str) -> tuple[tuple[str, ...], str]:
    """Bucket segments and filename for a key in hashed mode."""
    digest = key_hash(key)
    last_segment = posixpath.basename(normalize_key(key))
    bucket = tuple(digest[:BUCKET_DEPTH])
    return bucket, digest[:HASH_PREFIX_LENGTH] + extension_of(last_segment)


def friendly_location(key: str) -> tuple[tuple[str, ...], str]:
    """Bucket segments and filename for a key in friendly-name mode."""
    url_path = normalize_key(urlsplit(key).path or PLACEHOLDER)
    name = posixpath.basename(url_path)
    if name in ("", ".", ".."):
        name = PLACEHOLDER

    base = module_base_name(name)
    chars = [_bucket_char(c) for c in base[:BUCKET_DEPTH]]
    chars.extend([PLACEHOLDER] * (BUCKET_DEPTH - len(chars)))
    return tuple(chars), name


class PathMapper:
    """Maps cache keys to ``PathInfo`` under a fixed root."""

    def __init__(self, root: str | Path, friendly_names: bool = False) -> None:
        """Initialize the mapper.

        Args:
            root: Cache root directory. Made absolute, not resolved.
            friendly_names: Use the friendly-name layout instead of hashes.
        """
        self.root = Path(os.path.abspath(root))
        self.friendly_names = friendly_names

    def get_path(self, key: str) -> PathInfo:
        """Map a key to its on-disk location.

        Args:
            key: Request key, typically a registry URL or URL path.

        Returns:
            PathInfo for the key. Same key, same result.
        """
        if self.friendly_names:
            bucket, filename = friendly_location(key)
        else:
            bucket, filename = hashed_location(key)

        rel = posixpath.join(*bucket, filename)
        return PathInfo(
            dir=bucket,
            file=filename,
            full=self.root.joinpath(*bucket, filename),
            rel=rel,
        )
