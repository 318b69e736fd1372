"""
Abstract interfaces and options for the chunker module.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from depchunk.core.models import Chunk

if TYPE_CHECKING:
    from depchunk.core.config import DepchunkConfig


@dataclass
class ChunkOptions:
    """
    Options for a chunking run.

    Attributes:
        chunk_size: Maximum size (tokens) of a merged chunk
        include_nested: Extract members of classes, namespaces and option blocks
        merge_small_chunks: Merge adjacent small non-structural chunks
        min_chunk_size: Chunks below this size are merge candidates
        include_content: Keep chunk source text on the chunk
        parser_pool_size: Adapters kept per pool key
        ast_cache_ttl: Seconds a parsed tree stays valid
        ast_cache_max_size: Maximum cached parsed trees
        tokenizer: 'estimate' or 'tiktoken'
    """

    chunk_size: int = 512
    include_nested: bool = True
    merge_small_chunks: bool = True
    min_chunk_size: int = 50
    include_content: bool = False
    parser_pool_size: int = 5
    ast_cache_ttl: float = 300.0
    ast_cache_max_size: int = 1000
    tokenizer: str = "estimate"

    @classmethod
    def from_config(cls, config: "DepchunkConfig") -> "ChunkOptions":
        chunking = config.chunking
        return cls(
            chunk_size=chunking.chunk_size,
            include_nested=chunking.include_nested,
            merge_small_chunks=chunking.merge_small_chunks,
            min_chunk_size=chunking.min_chunk_size,
            include_content=chunking.include_content,
            parser_pool_size=config.cache.parser_pool_size,
            ast_cache_ttl=config.cache.ast_cache_ttl,
            ast_cache_max_size=config.cache.ast_cache_max_size,
            tokenizer=chunking.tokenizer,
        )


class ChunkerInterface(ABC):
    """Abstract interface for code chunkers."""

    @abstractmethod
    def chunk_code(
        self, code: str, file_path: str, options: Optional[ChunkOptions] = None
    ) -> list[Chunk]:
        """
        Split source text into semantic chunks.

        Args:
            code: Source text
            file_path: Path used for language detection and chunk identity
            options: Overrides for this call

        Returns:
            Chunks in source order, empty if the file cannot be parsed.
        """
        pass

    @abstractmethod
    def chunk_file(self, path: str, options: Optional[ChunkOptions] = None) -> list[Chunk]:
        """
        Read and chunk a file.

        Raises:
            OSError: If the file cannot be read
        """
        pass
