"""
Dependency graph construction.

Maps every chunk id to the ids of the chunks it depends on. Import
dependencies are resolved with three strategies, first match wins per
dependency entry:

1. module path: relative (or aliased) specifier resolved to a file, then
   looked up in that file's exports
2. same file: exported chunks of the owning file with the imported name
3. global: any exported chunk with the imported name

Reference dependencies (identifiers used inside a chunk) only resolve
against declarations of the same file. A nested chunk always depends on its
parent.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from depchunk.core.hashing import normalize_path
from depchunk.core.models import (
    Chunk,
    ChunkingStats,
    Dependency,
    ExportedSymbol,
    ImportExportMap,
)
from depchunk.core.resolver import (
    DEFAULT_EXTENSIONS,
    FileExists,
    PathAliasResolver,
    disk_exists,
    is_relative_specifier,
    resolve_module_path,
)

logger = logging.getLogger(__name__)


def export_key(chunk: Chunk) -> str:
    return chunk.export_name or chunk.name


@dataclass
class ChunkIndex:
    """Lookup tables over a chunk set."""

    by_id: dict[str, Chunk] = field(default_factory=dict)
    by_file: dict[str, list[Chunk]] = field(default_factory=lambda: defaultdict(list))
    # normalized path -> export name -> exported chunks
    exports: dict[str, dict[str, list[Chunk]]] = field(
        default_factory=lambda: defaultdict(lambda: defaultdict(list))
    )
    exported: list[Chunk] = field(default_factory=list)

    @classmethod
    def from_chunks(cls, chunks: list[Chunk]) -> "ChunkIndex":
        index = cls()
        for chunk in chunks:
            index.by_id[chunk.id] = chunk
            path = normalize_path(chunk.file_path)
            index.by_file[path].append(chunk)
            if chunk.exported:
                index.exports[path][export_key(chunk)].append(chunk)
                index.exported.append(chunk)
        return index

    def file_exports(self, path: str) -> list[Chunk]:
        return [chunk for entries in self.exports.get(path, {}).values() for chunk in entries]


class DependencyGraphBuilder:
    """Builds chunk dependency graphs over one or more files."""

    def __init__(
        self,
        root_dir: Optional[Path | str] = None,
        extensions: tuple[str, ...] | list[str] = DEFAULT_EXTENSIONS,
        path_aliases: Optional[PathAliasResolver] = None,
        exists: Optional[FileExists] = None,
    ):
        """
        Args:
            root_dir: Directory relative chunk paths are resolved against
            extensions: Extensions probed when resolving module paths
            path_aliases: tsconfig `paths` aliases for bare specifiers
            exists: File existence check (disk under root_dir if None)
        """
        self._extensions = tuple(extensions)
        self._aliases = path_aliases
        self._exists = exists or disk_exists(root_dir or ".")

    def resolve_module(self, from_file: str, source: str) -> Optional[str]:
        """Resolve an import specifier to a normalized file path, or None."""
        if not source:
            return None
        if is_relative_specifier(source):
            return resolve_module_path(from_file, source, self._exists, self._extensions)
        if self._aliases is not None:
            return self._aliases.resolve(source, self._exists, self._extensions)
        return None

    def build(self, chunks: list[Chunk]) -> dict[str, list[str]]:
        """
        Build the dependency graph of a chunk set.

        Returns:
            Chunk id to an ordered, duplicate-free list of dependency ids.
        """
        index = ChunkIndex.from_chunks(chunks)
        graph: dict[str, list[str]] = {}
        for chunk in chunks:
            targets: list[str] = []
            for dep in chunk.dependencies:
                for match in self.resolve_dependency(dep, chunk, index):
                    if match.id != chunk.id and match.id not in targets:
                        targets.append(match.id)
            if chunk.parent_id and chunk.parent_id in index.by_id and chunk.parent_id not in targets:
                targets.append(chunk.parent_id)
            graph[chunk.id] = targets
        return graph

    def resolve_dependency(self, dep: Dependency, chunk: Chunk, index: ChunkIndex) -> list[Chunk]:
        """Return the chunks a single dependency entry points at."""
        if dep.kind == "reference":
            return self._resolve_reference(dep, chunk, index)

        resolved = self.resolve_module(chunk.file_path, dep.source)
        if resolved is not None:
            matches = self._match_module_exports(dep, resolved, index)
            if matches:
                return matches

        same_file = [
            candidate
            for candidate in index.by_file.get(normalize_path(chunk.file_path), [])
            if candidate.exported and dep.name in (candidate.export_name, candidate.name)
        ]
        if same_file:
            return same_file

        return [
            candidate
            for candidate in index.exported
            if dep.name in (candidate.export_name, candidate.name)
        ]

    def _match_module_exports(self, dep: Dependency, path: str, index: ChunkIndex) -> list[Chunk]:
        file_exports = index.exports.get(path, {})
        if dep.is_namespace or (dep.kind == "require" and dep.name != "*"):
            return index.file_exports(path)
        if dep.is_default:
            return list(file_exports.get("default") or file_exports.get(dep.name, []))
        return list(file_exports.get(dep.name, []))

    def _resolve_reference(self, dep: Dependency, chunk: Chunk, index: ChunkIndex) -> list[Chunk]:
        # Methods are reached through `this`/receivers, never by bare name
        return [
            candidate
            for candidate in index.by_file.get(normalize_path(chunk.file_path), [])
            if candidate.id != chunk.id
            and candidate.type != "method"
            and candidate.name == dep.name
        ]


def build_import_export_map(chunks: list[Chunk]) -> ImportExportMap:
    """Fold chunks into per-file export and import tables."""
    result = ImportExportMap()
    for chunk in chunks:
        if chunk.exported:
            name = export_key(chunk)
            result.exports.setdefault(chunk.file_path, {})[(name, chunk.type)] = ExportedSymbol(
                name=name, type=chunk.type, chunk_id=chunk.id
            )
        imports = result.imports.setdefault(chunk.file_path, {})
        for dep in chunk.dependencies:
            if dep.kind != "reference" and dep.source:
                imports.setdefault((dep.source, dep.name), dep)
    return result


def compute_stats(chunks: list[Chunk], total_files: Optional[int] = None) -> ChunkingStats:
    """Aggregate counts over a chunk set."""
    by_type: dict[str, int] = {}
    total_tokens = 0
    for chunk in chunks:
        by_type[chunk.type] = by_type.get(chunk.type, 0) + 1
        total_tokens += chunk.token_count or 0
    if total_files is None:
        total_files = len({chunk.file_path for chunk in chunks})
    return ChunkingStats(
        total_files=total_files,
        total_chunks=len(chunks),
        chunks_by_type=by_type,
        average_chunk_size=total_tokens / len(chunks) if chunks else 0.0,
        total_tokens=total_tokens,
    )
