"""
Identity and fingerprint helpers for chunks and files.

Chunk ids depend only on (path, kind, qualified name) so they survive edits
elsewhere in a file. Chunk hashes cover the text and its position so they
change whenever either does.
"""

import hashlib
import posixpath
from pathlib import Path

HASH_LENGTH = 16


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:HASH_LENGTH]


def normalize_path(file_path: str | Path) -> str:
    """Normalize a path to forward slashes without redundant segments."""
    text = str(file_path).replace("\\", "/")
    if not text:
        return text
    return posixpath.normpath(text)


def generate_chunk_id(file_path: str | Path, qualified_name: str, chunk_type: str) -> str:
    """Return the 16 hex digit identity of a declaration."""
    return _sha256(f"{normalize_path(file_path)}:{chunk_type}:{qualified_name}")


def generate_chunk_hash(content: str, file_path: str | Path, start_line: int, end_line: int) -> str:
    """Return the content fingerprint of a chunk at a given position."""
    return _sha256(f"{file_path}:{start_line}:{end_line}:{content}")


def generate_content_hash(content: str) -> str:
    """Return the fingerprint of a whole source text, used as the parsed-tree cache key."""
    return _sha256(content)


def file_stat_hash(path: str | Path) -> str:
    """
    Return a cheap change marker for a file based on mtime and size.

    Raises:
        OSError: If the file cannot be stat'ed
    """
    stat = Path(path).stat()
    return f"{int(stat.st_mtime * 1000)}-{stat.st_size}"
