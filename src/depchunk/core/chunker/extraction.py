"""
Extract-with-dependencies.

Given line ranges in one or more files, selects the chunks overlapping them,
follows the dependency graph (chunking newly discovered files along the way)
and assembles one code block per file from everything collected.
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from depchunk.core.hashing import normalize_path
from depchunk.core.models import Chunk, CodeExtractionResult, FileRangeRequest, LineRange
from depchunk.core.resolver import DEFAULT_EXTENSIONS, PathAliasResolver, disk_exists

from .chunker import Chunker
from .dependency_graph import DependencyGraphBuilder

logger = logging.getLogger(__name__)

DEFAULT_MAX_GAP_LINES = 20


def overlaps(chunk: Chunk, line_range: LineRange) -> bool:
    """Inclusive overlap test; ranges with start > end never overlap."""
    if line_range.start > line_range.end:
        return False
    return not (chunk.end_line < line_range.start or chunk.start_line > line_range.end)


def dependency_closure(roots: list[str], graph: dict[str, list[str]]) -> list[str]:
    """Ids reachable from `roots` (roots excluded unless reached again), in DFS order."""
    visited: set[str] = set()
    reached: list[str] = []
    for root in roots:
        stack = [root]
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            for dep_id in reversed(graph.get(current, [])):
                if dep_id not in reached:
                    reached.append(dep_id)
                stack.append(dep_id)
    return reached


def assemble_code_block(
    chunks: list[Chunk], source: str, max_gap_lines: int = DEFAULT_MAX_GAP_LINES
) -> str:
    """
    Join the chunks of one file into a single excerpt.

    Chunks are taken in start-line order. Non-blank gaps of at most
    `max_gap_lines` lines (imports, short glue code) are kept; larger gaps
    are dropped. Chunks lying inside text already emitted are skipped.
    """
    lines = source.splitlines()
    parts: list[str] = []
    last_end = 0
    for chunk in sorted(chunks, key=lambda c: (c.start_line, -c.end_line)):
        if chunk.end_line <= last_end:
            continue
        gap = chunk.start_line - last_end - 1
        if 0 < gap <= max_gap_lines:
            gap_text = "\n".join(lines[last_end : chunk.start_line - 1])
            if gap_text.strip():
                parts.append(gap_text)
        if chunk.content is not None:
            parts.append(chunk.content)
        else:
            parts.append("\n".join(lines[chunk.start_line - 1 : chunk.end_line]))
        last_end = max(last_end, chunk.end_line)
    return "\n\n".join(parts)


class DependencyExtractor:
    """
    Runs extract-with-dependencies over a Chunker.

    Requested files that cannot be read raise; dependency files that are
    missing or unreadable are skipped.
    """

    def __init__(
        self,
        chunker: Chunker,
        root_dir: Optional[Path | str] = None,
        max_gap_lines: int = DEFAULT_MAX_GAP_LINES,
        max_dependency_files: int = 500,
        max_discovery_rounds: int = 50,
        extensions: tuple[str, ...] | list[str] = DEFAULT_EXTENSIONS,
        path_aliases: Optional[PathAliasResolver] = None,
        read_file: Optional[Callable[[str], str]] = None,
        exists: Optional[Callable[[str], bool]] = None,
    ):
        """
        Args:
            chunker: Chunker used for every file
            root_dir: Directory relative paths are resolved against
            max_gap_lines: Largest gap between chunks copied into code blocks
            max_dependency_files: Limit on files chunked in total
            max_discovery_rounds: Limit on dependency discovery rounds
            extensions: Extensions probed when resolving module paths
            path_aliases: tsconfig `paths` aliases (loaded from root_dir if None)
            read_file: Reads a file by chunk path (disk under root_dir if None)
            exists: File existence check by chunk path (disk under root_dir if None)
        """
        self._chunker = chunker
        self._root = Path(root_dir) if root_dir is not None else Path(".")
        self._max_gap_lines = max_gap_lines
        self._max_files = max_dependency_files
        self._max_rounds = max_discovery_rounds
        self._read_file = read_file or self._read_from_disk
        self._exists = exists or disk_exists(self._root)
        if path_aliases is None:
            path_aliases = PathAliasResolver.from_tsconfig(self._root)
        self._graph_builder = DependencyGraphBuilder(
            extensions=extensions, path_aliases=path_aliases, exists=self._exists
        )

    @property
    def graph_builder(self) -> DependencyGraphBuilder:
        return self._graph_builder

    def _read_from_disk(self, file_path: str) -> str:
        path = Path(file_path)
        if not path.is_absolute():
            path = self._root / path
        return path.read_text(encoding="utf-8", errors="replace")

    def extract(self, requests: list[FileRangeRequest]) -> CodeExtractionResult:
        """
        Extract the requested ranges plus everything they depend on.

        Raises:
            OSError: If a requested file cannot be read
        """
        sources: dict[str, str] = {}
        chunks_by_file: dict[str, list[Chunk]] = {}
        for request in requests:
            key = normalize_path(request.file_path)
            if key in chunks_by_file:
                continue
            source = self._read_file(request.file_path)
            sources[key] = source
            chunks_by_file[key] = self._chunker.chunk_code(source, request.file_path)

        selected = self._select(requests, chunks_by_file)
        selected_ids = [chunk.id for chunk in selected]

        universe = [chunk for chunks in chunks_by_file.values() for chunk in chunks]
        graph = self._graph_builder.build(universe)
        reached = dependency_closure(selected_ids, graph)

        failed: set[str] = set()
        for _ in range(self._max_rounds):
            by_id = {chunk.id: chunk for chunk in universe}
            new_files = self._discover(
                [by_id[chunk_id] for chunk_id in selected_ids + reached if chunk_id in by_id],
                chunks_by_file,
                failed,
            )
            if not new_files:
                break
            for file_path in new_files:
                if len(chunks_by_file) >= self._max_files:
                    logger.warning(
                        f"Dependency file limit ({self._max_files}) reached, skipping {file_path}"
                    )
                    failed.add(file_path)
                    continue
                try:
                    source = self._read_file(file_path)
                except OSError as e:
                    logger.debug(f"Skipping dependency file {file_path}: {e}")
                    failed.add(file_path)
                    continue
                sources[file_path] = source
                chunks_by_file[file_path] = self._chunker.chunk_code(source, file_path)
                universe.extend(chunks_by_file[file_path])
            graph = self._graph_builder.build(universe)
            reached = dependency_closure(selected_ids, graph)
        else:
            logger.warning(f"Dependency discovery stopped after {self._max_rounds} rounds")

        by_id = {chunk.id: chunk for chunk in universe}
        selected_set = set(selected_ids)
        dependent = [by_id[i] for i in reached if i not in selected_set and i in by_id]
        dependent_ids = {chunk.id for chunk in dependent}

        same_file: list[Chunk] = []
        for chunk in selected:
            for dep_id in graph.get(chunk.id, []):
                dep_chunk = by_id.get(dep_id)
                if (
                    dep_chunk is not None
                    and dep_chunk.file_path == chunk.file_path
                    and dep_id not in selected_set
                    and dep_id not in dependent_ids
                ):
                    dependent_ids.add(dep_id)
                    same_file.append(dep_chunk)
        dependent.extend(same_file)

        all_chunks = selected + dependent
        return CodeExtractionResult(
            selected_chunks=selected,
            dependent_chunks=dependent,
            all_chunks=all_chunks,
            code_blocks=self._assemble(all_chunks, sources),
            dependency_graph=graph,
        )

    def _select(
        self, requests: list[FileRangeRequest], chunks_by_file: dict[str, list[Chunk]]
    ) -> list[Chunk]:
        selected: list[Chunk] = []
        seen: set[str] = set()
        for request in requests:
            for line_range in request.ranges:
                for chunk in chunks_by_file.get(normalize_path(request.file_path), []):
                    if chunk.id not in seen and overlaps(chunk, line_range):
                        seen.add(chunk.id)
                        selected.append(chunk)
        return selected

    def _discover(
        self,
        chunks: list[Chunk],
        chunks_by_file: dict[str, list[Chunk]],
        failed: set[str],
    ) -> list[str]:
        """Files imported by `chunks` that have not been chunked or tried yet."""
        known = set(chunks_by_file) | failed
        found: list[str] = []
        for chunk in chunks:
            for dep in chunk.dependencies:
                if dep.kind == "reference":
                    continue
                resolved = self._graph_builder.resolve_module(chunk.file_path, dep.source)
                if resolved is not None and resolved not in known:
                    known.add(resolved)
                    found.append(resolved)
        return found

    def _assemble(self, chunks: list[Chunk], sources: dict[str, str]) -> dict[str, str]:
        """One code block per file, keyed by the first spelling of its path seen."""
        by_file: dict[str, list[Chunk]] = {}
        display: dict[str, str] = {}
        for chunk in chunks:
            key = normalize_path(chunk.file_path)
            display.setdefault(key, chunk.file_path)
            by_file.setdefault(key, []).append(chunk)
        return {
            display[key]: assemble_code_block(file_chunks, sources.get(key, ""), self._max_gap_lines)
            for key, file_chunks in by_file.items()
        }
