"""
Core Layer - Front-ends, chunking, dependency graphs, caching and configuration.
"""

from depchunk.core.ast_cache import ASTCache, CacheStats
from depchunk.core.chunker import (
    EXTRACTOR_PRIORITY,
    Chunker,
    ChunkerInterface,
    ChunkOptions,
    DependencyExtractor,
    DependencyGraphBuilder,
    build_import_export_map,
    compute_stats,
    create_chunker,
)
from depchunk.core.config import (
    CacheConfig,
    ChunkingConfig,
    DepchunkConfig,
    ExtractionConfig,
    LoggingConfig,
    ServerConfig,
    load_config,
    setup_logging,
)
from depchunk.core.errors import ConfigError, DepchunkError, ParseError
from depchunk.core.hashing import (
    file_stat_hash,
    generate_chunk_hash,
    generate_chunk_id,
    generate_content_hash,
    normalize_path,
)
from depchunk.core.language_registry import (
    LanguageRegistry,
    detect_language,
    front_end_for,
    get_default_registry,
)
from depchunk.core.models import (
    Chunk,
    ChunkingResult,
    ChunkingStats,
    CodeExtractionResult,
    Dependency,
    FileRangeRequest,
    ImportExportMap,
    LineRange,
    Parameter,
    Position,
    Range,
)
from depchunk.core.parser_pool import ParserPool, PoolStats
from depchunk.core.tokenizer import (
    EstimateTokenizer,
    TiktokenTokenizer,
    TokenizerInterface,
    get_default_tokenizer,
    get_tokenizer,
)

__all__ = [
    # Config
    "DepchunkConfig",
    "ChunkingConfig",
    "CacheConfig",
    "ExtractionConfig",
    "ServerConfig",
    "LoggingConfig",
    "load_config",
    "setup_logging",
    # Errors
    "DepchunkError",
    "ParseError",
    "ConfigError",
    # Models
    "Chunk",
    "Dependency",
    "Parameter",
    "Position",
    "Range",
    "ChunkingResult",
    "ChunkingStats",
    "CodeExtractionResult",
    "FileRangeRequest",
    "ImportExportMap",
    "LineRange",
    # Identity
    "generate_chunk_id",
    "generate_chunk_hash",
    "generate_content_hash",
    "file_stat_hash",
    "normalize_path",
    # Languages
    "LanguageRegistry",
    "detect_language",
    "front_end_for",
    "get_default_registry",
    # Caching
    "ASTCache",
    "CacheStats",
    "ParserPool",
    "PoolStats",
    # Tokenizer
    "TokenizerInterface",
    "EstimateTokenizer",
    "TiktokenTokenizer",
    "get_default_tokenizer",
    "get_tokenizer",
    # Chunker
    "Chunker",
    "ChunkerInterface",
    "ChunkOptions",
    "EXTRACTOR_PRIORITY",
    "DependencyGraphBuilder",
    "DependencyExtractor",
    "build_import_export_map",
    "compute_stats",
    "create_chunker",
]
