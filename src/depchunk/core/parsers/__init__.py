"""
Front-end adapters.

Each adapter turns source text into a ParsedTree and answers the structural
queries the extractors need. `create_parser` builds the adapter for a
front-end kind and file.
"""

from typing import Optional

from depchunk.core.language_registry import (
    TREESITTER_FRONT_END,
    TYPESCRIPT_FRONT_END,
    VUE_FRONT_END,
    detect_language,
)
from depchunk.core.parsers.base import ASTNode, ParsedTree, ParserAdapter
from depchunk.core.parsers.treesitter_parser import SUPPORTED_LANGUAGES, TreeSitterAdapter
from depchunk.core.parsers.typescript_parser import TypeScriptAdapter
from depchunk.core.parsers.vue_parser import VueAdapter, find_script_block


def create_parser(kind: str, file_path: Optional[str] = None) -> ParserAdapter:
    """
    Build a front-end adapter.

    Args:
        kind: 'typescript', 'vue' or 'treesitter'
        file_path: File the adapter will parse; selects the tree-sitter grammar

    Raises:
        ValueError: If the kind is unknown
    """
    if kind == TYPESCRIPT_FRONT_END:
        return TypeScriptAdapter()
    if kind == VUE_FRONT_END:
        return VueAdapter()
    if kind == TREESITTER_FRONT_END:
        language = detect_language(file_path) if file_path else "unknown"
        return TreeSitterAdapter(language)
    raise ValueError(f"Unknown front-end kind: {kind}")


__all__ = [
    "ASTNode",
    "ParsedTree",
    "ParserAdapter",
    "TypeScriptAdapter",
    "VueAdapter",
    "TreeSitterAdapter",
    "SUPPORTED_LANGUAGES",
    "create_parser",
    "find_script_block",
]
