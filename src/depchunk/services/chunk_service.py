"""
Chunk Service for depchunk.

Coordinates file-level chunking, directory scanning, dependency analysis and
extract-with-dependencies on top of a single Chunker, and keeps a
file-level result cache keyed by modification time and size.
"""

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

import pathspec

from depchunk.core.chunker import (
    Chunker,
    ChunkOptions,
    DependencyExtractor,
    DependencyGraphBuilder,
    build_import_export_map,
    compute_stats,
    create_chunker,
)
from depchunk.core.config import DepchunkConfig
from depchunk.core.hashing import file_stat_hash
from depchunk.core.models import Chunk, ChunkingResult, CodeExtractionResult, FileRangeRequest
from depchunk.core.resolver import PathAliasResolver

logger = logging.getLogger(__name__)


@dataclass
class _CachedFile:
    stat_hash: str
    chunks: list[Chunk]


class ChunkService:
    """
    Service for chunking files and extracting code with dependencies.

    Chunks returned by any operation are remembered by id so they can be
    looked up later with `find_chunk`. Remembered chunks and cached file
    results are bounded; the oldest entries are dropped first.
    """

    def __init__(
        self,
        config: Optional[DepchunkConfig] = None,
        chunker: Optional[Chunker] = None,
        root_dir: Optional[Path | str] = None,
        max_known_chunks: int = 10_000,
    ):
        """
        Initialize the chunk service.

        Args:
            config: Configuration (defaults if None)
            chunker: Chunker to use (built from config if None)
            root_dir: Directory relative paths are resolved against (cwd if None)
            max_known_chunks: Chunks kept for `find_chunk`
        """
        self._config = config or DepchunkConfig()
        self._options = ChunkOptions.from_config(self._config)
        self._chunker = chunker or create_chunker(self._options)
        self._root = Path(root_dir) if root_dir is not None else Path(".")
        self._file_cache: dict[str, _CachedFile] = {}
        self._known_chunks: dict[str, Chunk] = {}
        self._max_known_chunks = max_known_chunks

    @property
    def config(self) -> DepchunkConfig:
        return self._config

    @property
    def chunker(self) -> Chunker:
        return self._chunker

    @property
    def root_dir(self) -> Path:
        return self._root

    def _remember(self, chunks: list[Chunk]) -> None:
        for chunk in chunks:
            self._known_chunks.pop(chunk.id, None)
            self._known_chunks[chunk.id] = chunk
        while len(self._known_chunks) > self._max_known_chunks:
            self._known_chunks.pop(next(iter(self._known_chunks)))

    def _cache_file(self, file_path: str, entry: _CachedFile) -> None:
        self._file_cache.pop(file_path, None)
        self._file_cache[file_path] = entry
        while len(self._file_cache) > self._config.cache.ast_cache_max_size:
            self._file_cache.pop(next(iter(self._file_cache)))

    def _disk_path(self, file_path: str) -> Path:
        path = Path(file_path)
        return path if path.is_absolute() else self._root / path

    def _graph_builder(self) -> DependencyGraphBuilder:
        return DependencyGraphBuilder(
            root_dir=self._root,
            extensions=self._config.extraction.module_extensions,
            path_aliases=PathAliasResolver.from_tsconfig(self._root),
        )

    def chunk_code(
        self, code: str, file_path: str, options: Optional[ChunkOptions] = None
    ) -> list[Chunk]:
        """Chunk source text that is not read from disk."""
        chunks = self._chunker.chunk_code(code, file_path, options)
        self._remember(chunks)
        return chunks

    def chunk_file(self, file_path: str, options: Optional[ChunkOptions] = None) -> list[Chunk]:
        """
        Chunk one file, reusing the previous result while the file is unchanged.

        Raises:
            FileNotFoundError: If the file does not exist
            OSError: If the file cannot be read
        """
        file_path = str(file_path)
        disk_path = self._disk_path(file_path)
        stat_hash = file_stat_hash(disk_path)

        cached = self._file_cache.get(file_path)
        if options is None and cached is not None and cached.stat_hash == stat_hash:
            logger.debug(f"File cache hit for {file_path}")
            return cached.chunks

        code = disk_path.read_text(encoding="utf-8", errors="replace")
        chunks = self._chunker.chunk_code(code, file_path, options)
        if options is None:
            self._cache_file(file_path, _CachedFile(stat_hash=stat_hash, chunks=chunks))
        self._remember(chunks)
        return chunks

    def chunk_files(
        self, file_paths: list[str], options: Optional[ChunkOptions] = None
    ) -> ChunkingResult:
        """
        Chunk several files and link them into one dependency graph.

        Raises:
            OSError: If any of the files cannot be read
        """
        chunks: list[Chunk] = []
        for file_path in file_paths:
            chunks.extend(self.chunk_file(file_path, options))
        return self._result(chunks, total_files=len(file_paths))

    def chunk_directory(
        self,
        directory: str,
        include: Optional[list[str]] = None,
        exclude: Optional[list[str]] = None,
        options: Optional[ChunkOptions] = None,
    ) -> ChunkingResult:
        """
        Chunk every file under a directory matching the include globs.

        Args:
            directory: Directory to scan
            include: Gitignore-style globs to include (config default if None)
            exclude: Gitignore-style globs to skip (config default if None)
            options: Chunk options for this call

        Raises:
            NotADirectoryError: If `directory` is not a directory
        """
        root = self._disk_path(directory)
        if not root.is_dir():
            raise NotADirectoryError(f"Not a directory: {directory}")

        include_spec = pathspec.PathSpec.from_lines(
            pathspec.patterns.GitWildMatchPattern,
            include if include is not None else self._config.chunking.include,
        )
        exclude_spec = pathspec.PathSpec.from_lines(
            pathspec.patterns.GitWildMatchPattern,
            exclude if exclude is not None else self._config.chunking.exclude,
        )

        chunks: list[Chunk] = []
        total_files = 0
        for path in sorted(root.rglob("*")):
            if not path.is_file():
                continue
            rel_path = path.relative_to(root).as_posix()
            if not include_spec.match_file(rel_path) or exclude_spec.match_file(rel_path):
                continue
            file_path = (Path(directory) / rel_path).as_posix()
            try:
                chunks.extend(self.chunk_file(file_path, options))
            except OSError as e:
                logger.warning(f"Skipping unreadable file {file_path}: {e}")
                continue
            total_files += 1

        logger.info(f"Chunked {total_files} files under {directory} into {len(chunks)} chunks")
        return self._result(chunks, total_files=total_files)

    def _result(self, chunks: list[Chunk], total_files: int) -> ChunkingResult:
        return ChunkingResult(
            chunks=chunks,
            dependency_graph=self._graph_builder().build(chunks),
            import_export_map=build_import_export_map(chunks),
            stats=compute_stats(chunks, total_files=total_files),
        )

    def extract_with_dependencies(self, requests: list[FileRangeRequest]) -> CodeExtractionResult:
        """
        Extract requested line ranges plus every chunk they depend on.

        Raises:
            OSError: If a requested file cannot be read
        """
        extraction = self._config.extraction
        extractor = DependencyExtractor(
            self._chunker,
            root_dir=self._root,
            max_gap_lines=extraction.max_gap_lines,
            max_dependency_files=extraction.max_dependency_files,
            max_discovery_rounds=extraction.max_discovery_rounds,
            extensions=extraction.module_extensions,
        )
        result = extractor.extract(requests)
        self._remember(result.all_chunks)
        return result

    def get_chunk_content(self, chunk: Chunk) -> str:
        """
        Return a chunk's source text, read back from its file if not retained.

        Raises:
            OSError: If the file cannot be read
        """
        if chunk.content is not None:
            return chunk.content
        lines = self._disk_path(chunk.file_path).read_text(
            encoding="utf-8", errors="replace"
        ).splitlines()
        return "\n".join(lines[chunk.start_line - 1 : chunk.end_line])

    def find_chunk(self, chunk_id: str) -> Optional[Chunk]:
        """Look up a chunk returned earlier by this service."""
        return self._known_chunks.get(chunk_id)

    def get_cache_stats(self) -> dict:
        return {
            "ast_cache": asdict(self._chunker.get_cache_stats()),
            "parser_pool": asdict(self._chunker.get_pool_stats()),
            "file_cache": {"size": len(self._file_cache)},
        }

    def invalidate_ast_cache(self, file_path: Optional[str] = None) -> None:
        """Forget cached parses and results for one file, or for all files."""
        if file_path is None:
            self._chunker.ast_cache.clear()
            self._file_cache.clear()
            return
        self._chunker.invalidate(file_path)
        self._file_cache.pop(file_path, None)

    def clear_caches(self) -> None:
        """Drop parsed trees, pooled adapters, file results and remembered chunks."""
        self._chunker.clear_caches()
        self._file_cache.clear()
        self._known_chunks.clear()
