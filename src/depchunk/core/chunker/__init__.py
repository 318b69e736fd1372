"""
Chunker module for depchunk.

Provides declaration-level chunking, dependency graph construction and
extract-with-dependencies over the front-end adapters.
"""

from .chunker import Chunker, create_chunker
from .dependency_graph import (
    ChunkIndex,
    DependencyGraphBuilder,
    build_import_export_map,
    compute_stats,
)
from .extraction import DependencyExtractor, assemble_code_block, dependency_closure, overlaps
from .extractors import (
    CLASS_MEMBER_EXTRACTORS,
    EXTRACTOR_PRIORITY,
    NAMESPACE_MEMBER_EXTRACTORS,
    BaseExtractor,
    ClassExtractor,
    EnumExtractor,
    ExtractionContext,
    ExtractorRegistry,
    FunctionExtractor,
    InterfaceExtractor,
    MethodExtractor,
    NamespaceExtractor,
    TypeAliasExtractor,
    VariableExtractor,
    VueOptionsExtractor,
    create_extractor_registry,
    detect_function_markers,
)
from .interfaces import ChunkerInterface, ChunkOptions
from .post_processor import estimate_chunk_size, merge_small_chunks

__all__ = [
    # Main classes
    "Chunker",
    "ChunkerInterface",
    "ChunkOptions",
    # Extractors
    "BaseExtractor",
    "ClassExtractor",
    "EnumExtractor",
    "ExtractionContext",
    "ExtractorRegistry",
    "FunctionExtractor",
    "InterfaceExtractor",
    "MethodExtractor",
    "NamespaceExtractor",
    "TypeAliasExtractor",
    "VariableExtractor",
    "VueOptionsExtractor",
    "EXTRACTOR_PRIORITY",
    "CLASS_MEMBER_EXTRACTORS",
    "NAMESPACE_MEMBER_EXTRACTORS",
    "create_extractor_registry",
    "detect_function_markers",
    # Dependency graph
    "ChunkIndex",
    "DependencyGraphBuilder",
    "build_import_export_map",
    "compute_stats",
    # Extraction
    "DependencyExtractor",
    "assemble_code_block",
    "dependency_closure",
    "overlaps",
    # Post-processing
    "estimate_chunk_size",
    "merge_small_chunks",
    # Factory
    "create_chunker",
]
