"""
Module specifier resolution.

Turns import specifiers into file paths in the same form the chunks carry
(relative to the project root, forward slashes), by probing a fixed
extension list and then index files inside directories. tsconfig.json
`paths` aliases map bare specifiers like '@/utils' onto project paths.
"""

import json
import logging
import posixpath
import re
from pathlib import Path
from typing import Callable, Optional

from depchunk.core.hashing import normalize_path

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".vue", ".py", "")

# Directory entry points tried after the bare path
_PACKAGE_INDEX_FILES = ("__init__.py",)

FileExists = Callable[[str], bool]


def is_relative_specifier(source: str) -> bool:
    return source.startswith(".")


def disk_exists(root_dir: Path | str) -> FileExists:
    """Existence check against files under a root directory."""
    root = Path(root_dir)

    def exists(path: str) -> bool:
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = root / candidate
        return candidate.is_file()

    return exists


def probe_module_path(
    base_path: str,
    exists: FileExists,
    extensions: tuple[str, ...] | list[str] = DEFAULT_EXTENSIONS,
) -> Optional[str]:
    """Return the first existing file for a module path without extension."""
    for ext in extensions:
        candidate = base_path + ext
        if exists(candidate):
            return candidate
    for ext in extensions:
        if ext:
            candidate = posixpath.join(base_path, f"index{ext}")
            if exists(candidate):
                return candidate
    for name in _PACKAGE_INDEX_FILES:
        candidate = posixpath.join(base_path, name)
        if exists(candidate):
            return candidate
    return None


def resolve_module_path(
    from_file: str,
    source: str,
    exists: FileExists,
    extensions: tuple[str, ...] | list[str] = DEFAULT_EXTENSIONS,
) -> Optional[str]:
    """
    Resolve a relative specifier against the importing file's directory.

    Args:
        from_file: Path of the importing file, as carried by its chunks
        source: Relative specifier ('./utils', '../lib/index.js', '.')
        exists: Existence check for candidate paths
        extensions: Extensions to probe, '' meaning the bare path

    Returns:
        Normalized path of the resolved file, or None
    """
    if not is_relative_specifier(source):
        return None
    directory = posixpath.dirname(normalize_path(from_file))
    base_path = normalize_path(posixpath.join(directory, source)) if directory else normalize_path(source)
    return probe_module_path(base_path, exists, extensions)


class PathAliasResolver:
    """
    Resolves tsconfig.json `compilerOptions.paths` aliases.

    Example:
        {"compilerOptions": {"baseUrl": ".", "paths": {"@/*": ["src/*"]}}}
        maps '@/utils/format' to 'src/utils/format'.
    """

    def __init__(self, paths: dict[str, list[str]], base_url: str = "."):
        self._base_url = normalize_path(base_url) if base_url else "."
        self._patterns: list[tuple[re.Pattern, list[str]]] = []
        for alias, targets in paths.items():
            pattern = re.compile("^" + re.escape(alias).replace(r"\*", "(.*)") + "$")
            self._patterns.append((pattern, list(targets)))

    @classmethod
    def from_tsconfig(cls, root_dir: Path | str) -> Optional["PathAliasResolver"]:
        """Load aliases from <root_dir>/tsconfig.json, None if absent or unusable."""
        tsconfig = Path(root_dir) / "tsconfig.json"
        if not tsconfig.is_file():
            return None
        try:
            text = tsconfig.read_text(encoding="utf-8")
            # tsconfig allows line comments and trailing commas
            text = re.sub(r"^\s*//.*$", "", text, flags=re.MULTILINE)
            text = re.sub(r",(\s*[}\]])", r"\1", text)
            data = json.loads(text)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable {tsconfig}: {e}")
            return None
        options = data.get("compilerOptions") or {}
        paths = options.get("paths") or {}
        if not paths:
            return None
        return cls(paths, base_url=options.get("baseUrl", "."))

    def candidates(self, source: str) -> list[str]:
        """Project paths (without extension) an aliased specifier may refer to."""
        result = []
        for pattern, targets in self._patterns:
            match = pattern.match(source)
            if match is None:
                continue
            wildcard = match.group(1) if pattern.groups else ""
            for target in targets:
                result.append(normalize_path(posixpath.join(self._base_url, target.replace("*", wildcard))))
        return result

    def resolve(
        self,
        source: str,
        exists: FileExists,
        extensions: tuple[str, ...] | list[str] = DEFAULT_EXTENSIONS,
    ) -> Optional[str]:
        for candidate in self.candidates(source):
            resolved = probe_module_path(candidate, exists, extensions)
            if resolved is not None:
                return resolved
        return None
