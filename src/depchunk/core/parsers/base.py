"""
Base classes for front-end adapters.

An adapter turns source text into a ParsedTree and answers structural
queries about its nodes. Parsed trees carry their own source bytes and line
offset, so a tree served from the cache can be queried by any adapter
instance of the same kind.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from depchunk.core.models import Dependency, ExportInfo, Parameter, Position, Range

logger = logging.getLogger(__name__)

_languages: dict[str, Any] = {}


def load_language(name: str, loader: Callable[[], Any]) -> Any:
    """
    Load a tree-sitter grammar once per process.

    Raises:
        ImportError: If the grammar package is not installed
    """
    if name not in _languages:
        import tree_sitter

        lang_obj = loader()
        if not isinstance(lang_obj, tree_sitter.Language):
            lang_obj = tree_sitter.Language(lang_obj)
        _languages[name] = lang_obj
        logger.debug(f"Loaded tree-sitter grammar '{name}'")
    return _languages[name]


@dataclass(eq=False)
class ParsedTree:
    """
    A parsed source text.

    Attributes:
        language: Language the text was parsed as
        source: The exact bytes that were parsed
        tree: tree-sitter Tree, None for placeholder trees
        line_offset: Lines to add to tree rows to get file lines
        options_api: Script is an options-API component (Vue)
        memo: Per-tree memoized lookups of adapters
    """

    language: str
    source: bytes
    tree: Any = None
    line_offset: int = 0
    options_api: bool = False
    memo: dict[str, Any] = field(default_factory=dict)

    @property
    def root_node(self) -> Any:
        return self.tree.root_node if self.tree is not None else None

    def text(self, ts_node: Any) -> str:
        return self.source[ts_node.start_byte:ts_node.end_byte].decode("utf-8", errors="replace")


@dataclass(eq=False)
class ASTNode:
    """
    A declaration node handed to extractors.

    `ts_node` is the declaration itself. `outer` is the statement wrapping it
    (export statement, decorated definition, single-declarator variable
    statement); when set, the chunk covers the outer span.
    """

    ts_node: Any
    tree: ParsedTree
    outer: Any = None

    @property
    def kind(self) -> str:
        return self.ts_node.type if self.ts_node is not None else "placeholder"

    @property
    def span_node(self) -> Any:
        return self.outer if self.outer is not None else self.ts_node

    def field(self, name: str) -> Any:
        if self.ts_node is None:
            return None
        return self.ts_node.child_by_field_name(name)

    def text(self) -> str:
        span = self.span_node
        return self.tree.text(span) if span is not None else ""


class ParserAdapter(ABC):
    """
    Abstract base class for front-end adapters.

    Kind predicates, naming and export queries are abstract. Metadata queries
    default to "nothing found" so backends only implement what their grammars
    can answer.
    """

    kind: str = ""

    @abstractmethod
    def parse(self, code: str, file_path: str) -> ParsedTree:
        """Parse source text. Never raises for malformed code."""
        pass

    def get_root(self, tree: ParsedTree) -> ASTNode:
        return ASTNode(tree.root_node, tree)

    @abstractmethod
    def get_top_level_declarations(self, root: ASTNode) -> list[ASTNode]:
        pass

    # Kind predicates

    @abstractmethod
    def is_function(self, node: ASTNode) -> bool:
        pass

    @abstractmethod
    def is_method(self, node: ASTNode) -> bool:
        pass

    @abstractmethod
    def is_class(self, node: ASTNode) -> bool:
        pass

    def is_interface(self, node: ASTNode) -> bool:
        return False

    def is_enum(self, node: ASTNode) -> bool:
        return False

    def is_type_alias(self, node: ASTNode) -> bool:
        return False

    def is_namespace(self, node: ASTNode) -> bool:
        return False

    def is_variable_statement(self, node: ASTNode) -> bool:
        return False

    def is_component_options(self, node: ASTNode) -> bool:
        """True for an options-API component object (export default {...})."""
        return False

    def is_component_option(self, node: ASTNode) -> bool:
        """True for a single option property of a component object."""
        return False

    # Structure

    @abstractmethod
    def get_node_name(self, node: ASTNode) -> Optional[str]:
        pass

    def get_node_range(self, node: ASTNode) -> Optional[Range]:
        """Return the 1-based line range of a node, or None if it has no span."""
        span = node.span_node
        if span is None:
            return None
        offset = node.tree.line_offset
        start_row, start_col = span.start_point
        end_row, end_col = span.end_point
        return Range(
            start=Position(line=start_row + 1 + offset, column=start_col),
            end=Position(line=end_row + 1 + offset, column=end_col),
        )

    @abstractmethod
    def get_children(self, node: ASTNode) -> list[ASTNode]:
        pass

    def get_variable_declarators(self, node: ASTNode) -> list[ASTNode]:
        return []

    def get_initializer(self, node: ASTNode) -> Optional[ASTNode]:
        return None

    def get_component_options(self, node: ASTNode) -> list[ASTNode]:
        """Properties of a component options object."""
        return []

    def get_option_entries(self, node: ASTNode) -> list[ASTNode]:
        """Entries of an option block (object members or array strings)."""
        return []

    # Exports and imports

    @abstractmethod
    def is_exported(self, node: ASTNode) -> bool:
        pass

    def get_export_name(self, node: ASTNode) -> Optional[str]:
        return self.get_node_name(node) if self.is_exported(node) else None

    @abstractmethod
    def get_imports(self, node: ASTNode) -> list[Dependency]:
        """File imports for the root node, require/dynamic imports inside any other node."""
        pass

    def get_exports(self, root: ASTNode) -> list[ExportInfo]:
        return []

    def get_references(self, node: ASTNode) -> list[Dependency]:
        """Identifiers a node calls, instantiates or names as a type."""
        return []

    # Metadata

    def get_decorators(self, node: ASTNode) -> list[str]:
        return []

    def get_type_parameters(self, node: ASTNode) -> list[str]:
        return []

    def get_parameters(self, node: ASTNode) -> list[Parameter]:
        return []

    def get_return_type(self, node: ASTNode) -> Optional[str]:
        return None

    def get_jsdoc(self, node: ASTNode) -> Optional[str]:
        return None

    def get_visibility(self, node: ASTNode) -> Optional[str]:
        return None

    def extract_code(self, node: ASTNode) -> str:
        """Return the source text a node spans, taken from its parsed tree."""
        return node.text()


def walk(ts_node: Any, stop: Callable[[Any], bool] | None = None):
    """Yield a node and its descendants depth-first, not descending past `stop` nodes."""
    stack = [ts_node]
    while stack:
        current = stack.pop()
        yield current
        if stop is not None and current is not ts_node and stop(current):
            continue
        stack.extend(reversed(current.children))


def unquote(text: str) -> str:
    """Strip matching quotes from a string literal."""
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "'\"`":
        return text[1:-1]
    return text
