"""
Declaration extractors.

Each extractor produces one chunk kind. For every declaration the chunker
tries the extractors named in EXTRACTOR_PRIORITY, in order, and the first
whose `can_handle` matches consumes the node. Container extractors (classes,
namespaces, component option blocks) recurse into their members with a
restricted list of extractors.

Extractors hold no per-file state: the active adapter, file and options
travel in the ExtractionContext passed to every call.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from depchunk.core.chunker.interfaces import ChunkOptions
from depchunk.core.hashing import generate_chunk_hash, generate_chunk_id
from depchunk.core.models import Chunk, Dependency
from depchunk.core.parsers.base import ASTNode, ParserAdapter
from depchunk.core.parsers.typescript_parser import VUE_LIFECYCLE_HOOKS
from depchunk.core.tokenizer import TokenizerInterface

logger = logging.getLogger(__name__)

# Component option objects must be claimed before their properties can be
# mistaken for plain functions; variables come before functions so that
# `const f = () => {}` keeps its declaration span.
EXTRACTOR_PRIORITY: tuple[str, ...] = (
    "vue-options",
    "class",
    "interface",
    "enum",
    "type-alias",
    "namespace",
    "variable",
    "function",
)

CLASS_MEMBER_EXTRACTORS: tuple[str, ...] = ("method", "function")

NAMESPACE_MEMBER_EXTRACTORS: tuple[str, ...] = (
    "class",
    "interface",
    "enum",
    "type-alias",
    "namespace",
    "variable",
    "function",
)

# Option block name -> (entry chunk type, option tag)
OPTION_BLOCKS = {
    "methods": ("method", "method"),
    "computed": ("method", "computed"),
    "watch": ("method", "watcher"),
    "props": ("top-level-declaration", "prop"),
    "emits": ("top-level-declaration", "emit"),
}

FUNCTION_OPTIONS = {"data": "data", "setup": "setup"} | {
    hook: "lifecycle-hook" for hook in VUE_LIFECYCLE_HOOKS
}

_ASYNC_MARKER = re.compile(r"\basync\b")
_YIELD_MARKER = re.compile(r"\byield\b")


def detect_function_markers(text: str, language: str = "typescript") -> tuple[bool, bool]:
    """
    Return (is_async, is_generator) from the declaration text.

    Only the signature head (before the first '(') is inspected, after
    dropping decorator lines. Python generators are recognised by `yield`.
    """
    lines = text.lstrip().splitlines()
    while lines and lines[0].lstrip().startswith("@"):
        lines.pop(0)
    header = "\n".join(lines).split("(", 1)[0]
    is_async = bool(_ASYNC_MARKER.search(header))
    if language == "python":
        return is_async, bool(_YIELD_MARKER.search(text))
    return is_async, "*" in header


def merge_dependencies(own: list[Dependency], file_imports: list[Dependency]) -> list[Dependency]:
    """
    Combine a node's own dependencies with the file's imports.

    File imports from a source the node already depends on are left out.
    """
    merged: list[Dependency] = []
    seen: set[tuple[str, str, str]] = set()
    for dep in own:
        key = (dep.kind, dep.source, dep.name)
        if key not in seen:
            seen.add(key)
            merged.append(dep)
    own_sources = {dep.source for dep in own if dep.source}
    for dep in file_imports:
        key = (dep.kind, dep.source, dep.name)
        if dep.source not in own_sources and key not in seen:
            seen.add(key)
            merged.append(dep)
    return merged


@dataclass
class ExtractionContext:
    """Everything extractors need about the file being chunked."""

    adapter: ParserAdapter
    file_path: str
    options: ChunkOptions
    tokenizer: TokenizerInterface
    registry: "ExtractorRegistry"
    file_imports: list[Dependency] = field(default_factory=list)

    @property
    def imported_names(self) -> set[str]:
        return {dep.name for dep in self.file_imports}

    def dispatch(
        self,
        node: ASTNode,
        names: tuple[str, ...] = EXTRACTOR_PRIORITY,
        parent: Optional[Chunk] = None,
    ) -> list[Chunk]:
        """Run the first extractor in `names` that can handle the node."""
        for name in names:
            extractor = self.registry.get(name)
            if extractor is not None and extractor.can_handle(node, self.adapter):
                return extractor.extract(node, self, parent)
        return []


class BaseExtractor(ABC):
    """Base class for extractors of one chunk kind."""

    name: str = ""
    chunk_type: str = ""

    @abstractmethod
    def can_handle(self, node: ASTNode, adapter: ParserAdapter) -> bool:
        pass

    @abstractmethod
    def extract(
        self, node: ASTNode, context: ExtractionContext, parent: Optional[Chunk] = None
    ) -> list[Chunk]:
        pass

    def create_chunk(
        self,
        node: ASTNode,
        context: ExtractionContext,
        parent: Optional[Chunk] = None,
        chunk_type: Optional[str] = None,
        name: Optional[str] = None,
        **facets: Any,
    ) -> Optional[Chunk]:
        """
        Build the chunk for a node.

        Returns None for anonymous nodes and nodes without a source range.
        """
        adapter = context.adapter
        name = name or adapter.get_node_name(node)
        if not name:
            return None
        node_range = adapter.get_node_range(node)
        if node_range is None:
            logger.debug(f"Skipping '{name}' in {context.file_path}: no source range")
            return None

        chunk_type = chunk_type or self.chunk_type
        qualified_name = f"{parent.qualified_name}.{name}" if parent else name
        text = adapter.extract_code(node)
        start_line = node_range.start.line
        end_line = node_range.end.line

        imported = context.imported_names
        own = adapter.get_imports(node) + [
            ref for ref in adapter.get_references(node) if ref.name not in imported
        ]
        exported = adapter.is_exported(node)

        return Chunk(
            id=generate_chunk_id(context.file_path, qualified_name, chunk_type),
            type=chunk_type,
            name=name,
            qualified_name=qualified_name,
            file_path=context.file_path,
            range=node_range,
            start_line=start_line,
            end_line=end_line,
            hash=generate_chunk_hash(text, context.file_path, start_line, end_line),
            dependencies=merge_dependencies(own, context.file_imports),
            parent_id=parent.id if parent else None,
            exported=exported,
            export_name=adapter.get_export_name(node) if exported else None,
            decorators=adapter.get_decorators(node),
            type_parameters=adapter.get_type_parameters(node),
            jsdoc=adapter.get_jsdoc(node),
            token_count=context.tokenizer.count_tokens(text),
            content=text if context.options.include_content else None,
            **facets,
        )

    def function_facets(self, node: ASTNode, context: ExtractionContext) -> dict[str, Any]:
        """Parameters, return type and async/generator flags of a function-like node."""
        adapter = context.adapter
        is_async, is_generator = detect_function_markers(
            adapter.extract_code(node), node.tree.language
        )
        return {
            "parameters": adapter.get_parameters(node),
            "return_type": adapter.get_return_type(node),
            "is_async": is_async,
            "is_generator": is_generator,
        }

    def extract_members(
        self,
        container: Chunk,
        node: ASTNode,
        context: ExtractionContext,
        names: tuple[str, ...],
    ) -> list[Chunk]:
        """Dispatch a container's children and link them to the container."""
        if not context.options.include_nested:
            return []
        members: list[Chunk] = []
        for child in context.adapter.get_children(node):
            for chunk in context.dispatch(child, names, parent=container):
                members.append(chunk)
                if chunk.parent_id == container.id:
                    container.children_ids.append(chunk.id)
        return members


class FunctionExtractor(BaseExtractor):
    name = "function"
    chunk_type = "function"

    def can_handle(self, node: ASTNode, adapter: ParserAdapter) -> bool:
        return adapter.is_function(node)

    def extract(self, node, context, parent=None):
        chunk = self.create_chunk(node, context, parent, **self.function_facets(node, context))
        return [chunk] if chunk else []


class MethodExtractor(BaseExtractor):
    name = "method"
    chunk_type = "method"

    def can_handle(self, node: ASTNode, adapter: ParserAdapter) -> bool:
        return adapter.is_method(node)

    def extract(self, node, context, parent=None):
        chunk = self.create_chunk(
            node,
            context,
            parent,
            visibility=context.adapter.get_visibility(node) or "public",
            **self.function_facets(node, context),
        )
        return [chunk] if chunk else []


class ClassExtractor(BaseExtractor):
    name = "class"
    chunk_type = "class"

    def can_handle(self, node: ASTNode, adapter: ParserAdapter) -> bool:
        return adapter.is_class(node)

    def extract(self, node, context, parent=None):
        chunk = self.create_chunk(node, context, parent)
        if chunk is None:
            return []
        return [chunk] + self.extract_members(chunk, node, context, CLASS_MEMBER_EXTRACTORS)


class InterfaceExtractor(BaseExtractor):
    name = "interface"
    chunk_type = "interface"

    def can_handle(self, node: ASTNode, adapter: ParserAdapter) -> bool:
        return adapter.is_interface(node)

    def extract(self, node, context, parent=None):
        chunk = self.create_chunk(node, context, parent)
        return [chunk] if chunk else []


class EnumExtractor(BaseExtractor):
    name = "enum"
    chunk_type = "enum"

    def can_handle(self, node: ASTNode, adapter: ParserAdapter) -> bool:
        return adapter.is_enum(node)

    def extract(self, node, context, parent=None):
        chunk = self.create_chunk(node, context, parent)
        return [chunk] if chunk else []


class TypeAliasExtractor(BaseExtractor):
    name = "type-alias"
    chunk_type = "type-alias"

    def can_handle(self, node: ASTNode, adapter: ParserAdapter) -> bool:
        return adapter.is_type_alias(node)

    def extract(self, node, context, parent=None):
        chunk = self.create_chunk(node, context, parent)
        return [chunk] if chunk else []


class NamespaceExtractor(BaseExtractor):
    name = "namespace"
    chunk_type = "namespace"

    def can_handle(self, node: ASTNode, adapter: ParserAdapter) -> bool:
        return adapter.is_namespace(node)

    def extract(self, node, context, parent=None):
        chunk = self.create_chunk(node, context, parent)
        if chunk is None:
            return []
        return [chunk] + self.extract_members(chunk, node, context, NAMESPACE_MEMBER_EXTRACTORS)


class VariableExtractor(BaseExtractor):
    """
    Variable statements.

    Declarators initialised with a function become function chunks, other
    exported declarators become export chunks, the rest yield nothing.
    """

    name = "variable"
    chunk_type = "export"

    def can_handle(self, node: ASTNode, adapter: ParserAdapter) -> bool:
        return adapter.is_variable_statement(node)

    def extract(self, node, context, parent=None):
        adapter = context.adapter
        chunks: list[Chunk] = []
        for declarator in adapter.get_variable_declarators(node):
            initializer = adapter.get_initializer(declarator)
            if initializer is not None and adapter.is_function(initializer):
                chunk = self.create_chunk(
                    declarator,
                    context,
                    parent,
                    chunk_type="function",
                    **self.function_facets(declarator, context),
                )
            elif adapter.is_exported(declarator):
                chunk = self.create_chunk(declarator, context, parent)
            else:
                chunk = None
            if chunk is not None:
                chunks.append(chunk)
        return chunks


class VueOptionsExtractor(BaseExtractor):
    """
    Options-API component objects.

    Handles either the whole `export default {...}` object or one of its
    option properties (the Vue front-end hands out properties directly).
    """

    name = "vue-options"
    chunk_type = "top-level-declaration"

    def can_handle(self, node: ASTNode, adapter: ParserAdapter) -> bool:
        return adapter.is_component_options(node) or adapter.is_component_option(node)

    def extract(self, node, context, parent=None):
        adapter = context.adapter
        if not adapter.is_component_options(node):
            return self._extract_option(node, context, parent)
        chunks: list[Chunk] = []
        for prop in adapter.get_component_options(node):
            if adapter.is_component_option(prop):
                chunks.extend(self._extract_option(prop, context, parent))
        return chunks

    def _extract_option(
        self, prop: ASTNode, context: ExtractionContext, parent: Optional[Chunk]
    ) -> list[Chunk]:
        adapter = context.adapter
        option = adapter.get_node_name(prop)

        if option in FUNCTION_OPTIONS:
            chunk = self.create_chunk(
                prop,
                context,
                parent,
                chunk_type="function",
                option_type=FUNCTION_OPTIONS[option],
                **self.function_facets(prop, context),
            )
            return [chunk] if chunk else []

        if option not in OPTION_BLOCKS:
            return []

        entry_type, tag = OPTION_BLOCKS[option]
        block = self.create_chunk(prop, context, parent, option_type=tag)
        if block is None:
            return []
        chunks = [block]
        if not context.options.include_nested:
            return chunks

        for entry in adapter.get_option_entries(prop):
            facets = self.function_facets(entry, context) if entry_type == "method" else {}
            chunk = self.create_chunk(
                entry, context, block, chunk_type=entry_type, option_type=tag, **facets
            )
            if chunk is not None:
                block.children_ids.append(chunk.id)
                chunks.append(chunk)
        return chunks


class ExtractorRegistry:
    """
    Registry of extractors by name.

    Example:
        >>> registry = ExtractorRegistry()
        >>> registry.register(FunctionExtractor()).register(ClassExtractor())
        >>> registry.get("class")
    """

    def __init__(self):
        self._extractors: dict[str, BaseExtractor] = {}

    def register(self, extractor: BaseExtractor) -> "ExtractorRegistry":
        """Register an extractor under its name. Returns self for chaining."""
        self._extractors[extractor.name] = extractor
        return self

    def get(self, name: str) -> Optional[BaseExtractor]:
        return self._extractors.get(name)

    def names(self) -> list[str]:
        return list(self._extractors)


def create_extractor_registry() -> ExtractorRegistry:
    """Build a registry holding every built-in extractor."""
    registry = ExtractorRegistry()
    for extractor in (
        VueOptionsExtractor(),
        ClassExtractor(),
        InterfaceExtractor(),
        EnumExtractor(),
        TypeAliasExtractor(),
        NamespaceExtractor(),
        VariableExtractor(),
        FunctionExtractor(),
        MethodExtractor(),
    ):
        registry.register(extractor)
    return registry
