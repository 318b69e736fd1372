"""
Main Chunker implementation.

Parses a file with the front-end chosen by its language, walks the top-level
declarations through the extractor chain and post-processes the result.
Parsed trees and adapters are reused through the chunker's own ASTCache and
ParserPool.
"""

import logging
from pathlib import Path
from typing import Any, Optional

from depchunk.core.ast_cache import ASTCache, CacheStats
from depchunk.core.hashing import generate_content_hash
from depchunk.core.language_registry import (
    LanguageRegistry,
    front_end_for,
    get_default_registry,
)
from depchunk.core.models import Chunk
from depchunk.core.parser_pool import ParserPool, PoolStats
from depchunk.core.parsers import ParsedTree, ParserAdapter
from depchunk.core.tokenizer import TokenizerInterface, get_tokenizer

from .extractors import ExtractionContext, ExtractorRegistry, create_extractor_registry
from .interfaces import ChunkerInterface, ChunkOptions
from .post_processor import merge_small_chunks

logger = logging.getLogger(__name__)


class Chunker(ChunkerInterface):
    """
    Concrete implementation of ChunkerInterface.

    Provides:
    - Front-end selection by detected language
    - Parsed-tree caching gated by a content hash
    - Adapter reuse through a parser pool
    - Priority-ordered extractor dispatch with nested containers
    - Merging of small adjacent non-structural chunks

    Chunking never raises for malformed input: a file that fails to parse
    yields an empty list.
    """

    def __init__(
        self,
        options: Optional[ChunkOptions] = None,
        ast_cache: Optional[ASTCache] = None,
        parser_pool: Optional[ParserPool] = None,
        language_registry: Optional[LanguageRegistry] = None,
        tokenizer: Optional[TokenizerInterface] = None,
        extractors: Optional[ExtractorRegistry] = None,
    ):
        """
        Initialize the Chunker.

        Args:
            options: Default options for every call
            ast_cache: Parsed-tree cache (sized from options if None)
            parser_pool: Adapter pool (sized from options if None)
            language_registry: Extension map (default registry if None)
            tokenizer: Token counter (built from options.tokenizer if None)
            extractors: Extractor registry (all built-in extractors if None)
        """
        self._options = options or ChunkOptions()
        self._ast_cache = ast_cache or ASTCache(
            max_size=self._options.ast_cache_max_size, ttl=self._options.ast_cache_ttl
        )
        self._parser_pool = parser_pool or ParserPool(max_size=self._options.parser_pool_size)
        self._registry = language_registry or get_default_registry()
        self._tokenizer = tokenizer or get_tokenizer(self._options.tokenizer)
        self._extractors = extractors or create_extractor_registry()

    @property
    def options(self) -> ChunkOptions:
        return self._options

    @property
    def ast_cache(self) -> ASTCache:
        return self._ast_cache

    @property
    def parser_pool(self) -> ParserPool:
        return self._parser_pool

    def chunk_code(
        self, code: str, file_path: str, options: Optional[ChunkOptions] = None
    ) -> list[Chunk]:
        options = options or self._options
        kind = front_end_for(self._registry.detect_from_path(file_path))

        adapter = self._parser_pool.get_adapter(kind, file_path)
        try:
            tree = self._parse(adapter, code, file_path)
            chunks = self._extract(adapter, tree, file_path, options)
        except Exception as e:
            logger.warning(f"Failed to chunk {file_path}: {e}")
            return []
        finally:
            self._parser_pool.release_adapter(kind, adapter, file_path)

        if options.merge_small_chunks:
            chunks = merge_small_chunks(chunks, options, code)
        logger.debug(f"Extracted {len(chunks)} chunks from {file_path}")
        return chunks

    def chunk_file(self, path: str, options: Optional[ChunkOptions] = None) -> list[Chunk]:
        code = Path(path).read_text(encoding="utf-8", errors="replace")
        return self.chunk_code(code, str(path), options)

    def analyze_imports_exports(self, code: str, file_path: str) -> dict[str, Any]:
        """
        Return the file-level imports and exports of a source text.

        Returns:
            {"imports": [Dependency], "exports": [ExportInfo]}, empty lists if
            the file cannot be parsed.
        """
        kind = front_end_for(self._registry.detect_from_path(file_path))
        adapter = self._parser_pool.get_adapter(kind, file_path)
        try:
            root = adapter.get_root(self._parse(adapter, code, file_path))
            if root.ts_node is None:
                return {"imports": [], "exports": []}
            return {"imports": adapter.get_imports(root), "exports": adapter.get_exports(root)}
        except Exception as e:
            logger.warning(f"Failed to analyze {file_path}: {e}")
            return {"imports": [], "exports": []}
        finally:
            self._parser_pool.release_adapter(kind, adapter, file_path)

    def _parse(self, adapter: ParserAdapter, code: str, file_path: str) -> ParsedTree:
        content_hash = generate_content_hash(code)
        tree = self._ast_cache.get(file_path, content_hash)
        if tree is None:
            tree = adapter.parse(code, file_path)
            self._ast_cache.set(file_path, content_hash, tree)
        return tree

    def _extract(
        self,
        adapter: ParserAdapter,
        tree: ParsedTree,
        file_path: str,
        options: ChunkOptions,
    ) -> list[Chunk]:
        root = adapter.get_root(tree)
        if root.ts_node is None:
            return []

        tokenizer = self._tokenizer
        if options.tokenizer != self._options.tokenizer:
            tokenizer = get_tokenizer(options.tokenizer)

        context = ExtractionContext(
            adapter=adapter,
            file_path=file_path,
            options=options,
            tokenizer=tokenizer,
            registry=self._extractors,
            file_imports=adapter.get_imports(root),
        )
        chunks: list[Chunk] = []
        for declaration in adapter.get_top_level_declarations(root):
            chunks.extend(context.dispatch(declaration))
        return chunks

    def estimate_tokens(self, text: str) -> int:
        return self._tokenizer.count_tokens(text)

    def get_cache_stats(self) -> CacheStats:
        return self._ast_cache.get_stats()

    def get_pool_stats(self) -> PoolStats:
        return self._parser_pool.get_stats()

    def invalidate(self, file_path: str) -> None:
        """Drop the cached parse of one file."""
        self._ast_cache.invalidate(file_path)

    def clear_caches(self) -> None:
        self._ast_cache.clear()
        self._parser_pool.clear()


def create_chunker(
    options: Optional[ChunkOptions] = None,
    tokenizer: Optional[TokenizerInterface] = None,
    language_registry: Optional[LanguageRegistry] = None,
) -> Chunker:
    """
    Factory function to create a Chunker instance.

    Args:
        options: Chunking options (defaults if None)
        tokenizer: Tokenizer instance (built from options if None)
        language_registry: Extension map (default registry if None)

    Returns:
        Configured Chunker instance
    """
    return Chunker(options=options, tokenizer=tokenizer, language_registry=language_registry)
