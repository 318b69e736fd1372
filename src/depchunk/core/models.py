"""
Data models shared by the front-ends, the chunker and the service layer.

Contains Chunk and its value types, the import/export map and the result
types of chunking and extract-with-dependencies.
"""

from dataclasses import asdict, dataclass, field
from typing import Literal, Optional

ChunkType = Literal[
    "function",
    "class",
    "method",
    "interface",
    "type-alias",
    "enum",
    "namespace",
    "module",
    "export",
    "top-level-declaration",
]

DependencyKind = Literal["import", "require", "dynamic-import", "reference"]

Visibility = Literal["public", "private", "protected"]

OptionType = Literal[
    "method", "computed", "watcher", "data", "lifecycle-hook", "prop", "emit", "setup"
]

# Chunk kinds that always stand on their own, never merged by the post-processor
STRUCTURAL_CHUNK_TYPES = frozenset(
    {
        "method",
        "function",
        "class",
        "interface",
        "enum",
        "type-alias",
        "namespace",
        "top-level-declaration",
    }
)


@dataclass(frozen=True)
class Position:
    """A source position. Lines are 1-based, columns 0-based."""

    line: int
    column: int = 0


@dataclass(frozen=True)
class Range:
    """An inclusive source span."""

    start: Position
    end: Position


@dataclass
class Dependency:
    """
    One thing a chunk depends on.

    Attributes:
        name: Imported or referenced name ('*' for side-effect imports)
        source: Module specifier ('./utils', 'react'); empty for references
        kind: 'import', 'require', 'dynamic-import' or 'reference'
        is_default: Default import
        is_namespace: Namespace import (import * as x)
    """

    name: str
    source: str
    kind: DependencyKind = "import"
    is_default: bool = False
    is_namespace: bool = False


@dataclass
class Parameter:
    """A function or method parameter."""

    name: str
    type: Optional[str] = None
    optional: bool = False
    default_value: Optional[str] = None


@dataclass
class ExportInfo:
    """An export statement entry of a file."""

    name: str
    local_name: Optional[str] = None
    source: Optional[str] = None  # Set for re-exports
    is_default: bool = False


@dataclass
class Chunk:
    """
    A semantically meaningful unit of source code.

    Attributes:
        id: Stable identity over (normalized path, type, qualified name)
        type: Chunk kind ('function', 'class', 'method', ...)
        name: Declared name
        qualified_name: Dot-joined name from the outermost container
        file_path: Path of the source file as given by the caller
        range: Source span (1-based lines)
        start_line: Convenience copy of range.start.line
        end_line: Convenience copy of range.end.line
        hash: Fingerprint over path, position and text
        dependencies: Imports and references this chunk relies on
        parent_id: Owning container chunk, if nested
        children_ids: Nested chunks, if a container
        exported: Whether the declaration is exported
        export_name: External name ('default' for default exports)
        visibility: Method visibility
        is_async: Async marker found in the declaration
        is_generator: Generator marker found in the declaration
        decorators: Decorator texts without the '@'
        type_parameters: Generic parameter texts
        parameters: Function parameters
        return_type: Return type annotation text
        jsdoc: Preceding documentation comment
        token_count: Approximate token count of the text
        content: Source text, None when content retention is off
        option_type: Component-option tag for options-API chunks
    """

    id: str
    type: ChunkType
    name: str
    qualified_name: str
    file_path: str
    range: Range
    start_line: int
    end_line: int
    hash: str
    dependencies: list[Dependency] = field(default_factory=list)
    parent_id: Optional[str] = None
    children_ids: list[str] = field(default_factory=list)
    exported: bool = False
    export_name: Optional[str] = None
    visibility: Optional[Visibility] = None
    is_async: bool = False
    is_generator: bool = False
    decorators: list[str] = field(default_factory=list)
    type_parameters: list[str] = field(default_factory=list)
    parameters: list[Parameter] = field(default_factory=list)
    return_type: Optional[str] = None
    jsdoc: Optional[str] = None
    token_count: Optional[int] = None
    content: Optional[str] = None
    option_type: Optional[OptionType] = None

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1

    def to_dict(self) -> dict:
        """Convert the chunk to a JSON-friendly dictionary."""
        return asdict(self)


@dataclass
class ExportedSymbol:
    """An exported chunk as seen by the import/export map."""

    name: str
    type: str
    chunk_id: str


@dataclass
class ImportExportMap:
    """
    Per-file view of exports and imports.

    Exports are keyed by (name, type), imports by (source, name), so repeated
    entries collapse.
    """

    exports: dict[str, dict[tuple[str, str], ExportedSymbol]] = field(default_factory=dict)
    imports: dict[str, dict[tuple[str, str], Dependency]] = field(default_factory=dict)

    def exports_of(self, file_path: str) -> list[ExportedSymbol]:
        return list(self.exports.get(file_path, {}).values())

    def imports_of(self, file_path: str) -> list[Dependency]:
        return list(self.imports.get(file_path, {}).values())

    def to_dict(self) -> dict:
        return {
            "exports": {
                path: [asdict(symbol) for symbol in entries.values()]
                for path, entries in self.exports.items()
            },
            "imports": {
                path: [asdict(dep) for dep in entries.values()]
                for path, entries in self.imports.items()
            },
        }


@dataclass
class ChunkingStats:
    """Aggregate numbers over a chunking run."""

    total_files: int = 0
    total_chunks: int = 0
    chunks_by_type: dict[str, int] = field(default_factory=dict)
    average_chunk_size: float = 0.0
    total_tokens: int = 0


@dataclass
class ChunkingResult:
    """
    Result of chunking a set of files.

    Attributes:
        chunks: All chunks, in file order
        dependency_graph: Chunk id to the ids it depends on
        import_export_map: Per-file exports and imports
        stats: Aggregate numbers
    """

    chunks: list[Chunk] = field(default_factory=list)
    dependency_graph: dict[str, list[str]] = field(default_factory=dict)
    import_export_map: ImportExportMap = field(default_factory=ImportExportMap)
    stats: ChunkingStats = field(default_factory=ChunkingStats)


@dataclass
class LineRange:
    """A 1-based inclusive line range. start > end selects nothing."""

    start: int
    end: int


@dataclass
class FileRangeRequest:
    """Line ranges requested from one file."""

    file_path: str
    ranges: list[LineRange] = field(default_factory=list)


@dataclass
class CodeExtractionResult:
    """
    Result of extract-with-dependencies.

    Attributes:
        selected_chunks: Chunks overlapping a requested range
        dependent_chunks: Chunks pulled in through dependencies, not selected
        all_chunks: Selected, dependent and same-file chunks
        code_blocks: Assembled code per file
        dependency_graph: Graph used for the closure
    """

    selected_chunks: list[Chunk] = field(default_factory=list)
    dependent_chunks: list[Chunk] = field(default_factory=list)
    all_chunks: list[Chunk] = field(default_factory=list)
    code_blocks: dict[str, str] = field(default_factory=dict)
    dependency_graph: dict[str, list[str]] = field(default_factory=dict)
