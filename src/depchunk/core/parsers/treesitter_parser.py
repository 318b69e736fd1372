"""
Generic tree-sitter backend for secondary languages.

Covers Python, Go, Java, C and C++ with per-language node-type tables.
Languages without an installed grammar get a placeholder tree, which yields
no chunks rather than an error.
"""

import logging
import re
from typing import Any, Optional

from depchunk.core.comment_extractor import extract_doc_comment
from depchunk.core.models import Dependency, ExportInfo, Parameter
from depchunk.core.parsers.base import ASTNode, ParsedTree, ParserAdapter, load_language, unquote, walk

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES = {
    "python": "tree_sitter_python",
    "go": "tree_sitter_go",
    "java": "tree_sitter_java",
    "c": "tree_sitter_c",
    "cpp": "tree_sitter_cpp",
}

_GRAMMAR_LOADERS = {
    "tree_sitter_python": lambda: __import__("tree_sitter_python").language(),
    "tree_sitter_go": lambda: __import__("tree_sitter_go").language(),
    "tree_sitter_java": lambda: __import__("tree_sitter_java").language(),
    "tree_sitter_c": lambda: __import__("tree_sitter_c").language(),
    "tree_sitter_cpp": lambda: __import__("tree_sitter_cpp").language(),
}

FUNCTION_TYPES = {
    "python": {"function_definition"},
    "go": {"function_declaration", "method_declaration"},
    "java": {"method_declaration", "constructor_declaration"},
    "c": {"function_definition"},
    "cpp": {"function_definition"},
}

CLASS_TYPES = {
    "python": {"class_definition"},
    "go": set(),
    "java": {"class_declaration", "record_declaration"},
    "c": {"struct_specifier"},
    "cpp": {"class_specifier", "struct_specifier"},
}

INTERFACE_TYPES = {"java": {"interface_declaration"}}
ENUM_TYPES = {"java": {"enum_declaration"}, "c": {"enum_specifier"}, "cpp": {"enum_specifier"}}
NAMESPACE_TYPES = {"cpp": {"namespace_definition"}}

# Wrappers whose span belongs to the definition they wrap
WRAPPER_TYPES = {"decorated_definition", "template_declaration"}

_NAME_TYPES = ("identifier", "field_identifier", "type_identifier", "destructor_name", "operator_name")


def _python_module_to_path(module: str) -> str:
    """Map '.utils' to './utils' and '..pkg.mod' to '../pkg/mod'."""
    dots = len(module) - len(module.lstrip("."))
    rest = module[dots:].replace(".", "/")
    prefix = "./" if dots == 1 else "../" * (dots - 1)
    return (prefix + rest).rstrip("/") or "."


class TreeSitterAdapter(ParserAdapter):
    """Generic adapter bound to one language grammar."""

    kind = "treesitter"

    def __init__(self, language: str):
        self.language = language
        self._parser: Any = None
        self._loaded = False

    def _ensure_language_loaded(self) -> bool:
        """Lazily load the grammar when first needed."""
        if self._loaded:
            return self._parser is not None
        self._loaded = True

        module_name = SUPPORTED_LANGUAGES.get(self.language)
        if module_name is None:
            logger.warning(f"Language '{self.language}' is not supported by the tree-sitter backend")
            return False

        try:
            import tree_sitter

            grammar = load_language(module_name, _GRAMMAR_LOADERS[module_name])
            self._parser = tree_sitter.Parser(grammar)
            return True
        except ImportError as e:
            logger.error(f"Failed to import Tree-sitter for '{self.language}': {e}")
            return False

    def parse(self, code: str, file_path: str) -> ParsedTree:
        source = code.encode("utf-8")
        if not self._ensure_language_loaded():
            return ParsedTree(language=self.language, source=source)
        return ParsedTree(language=self.language, source=source, tree=self._parser.parse(source))

    def _types(self, table: dict[str, set[str]]) -> set[str]:
        return table.get(self.language, set())

    def _container_types(self) -> set[str]:
        return (
            self._types(CLASS_TYPES)
            | self._types(INTERFACE_TYPES)
            | self._types(ENUM_TYPES)
            | self._types(NAMESPACE_TYPES)
        )

    def _is_declaration(self, ts_node: Any) -> bool:
        node_type = ts_node.type
        if node_type in self._types(FUNCTION_TYPES):
            return True
        if node_type == "type_declaration" and self.language == "go":
            return True
        if node_type in self._container_types():
            # `struct Point p;` is a use, not a definition
            return ts_node.child_by_field_name("body") is not None
        return False

    def _wrap(self, ts_node: Any, tree: ParsedTree) -> ASTNode:
        parent = ts_node.parent
        if parent is not None and parent.type in WRAPPER_TYPES:
            return ASTNode(ts_node, tree, outer=parent)
        return ASTNode(ts_node, tree)

    def _collect(self, ts_node: Any, tree: ParsedTree) -> list[ASTNode]:
        """Declarations below a node, not descending into declarations."""
        found = []
        for child in ts_node.named_children:
            if self._is_declaration(child):
                found.append(self._wrap(child, tree))
            elif child.type not in ("compound_statement", "block") or ts_node.type in WRAPPER_TYPES:
                found.extend(self._collect(child, tree))
        return found

    def get_top_level_declarations(self, root: ASTNode) -> list[ASTNode]:
        if root.ts_node is None:
            return []
        return self._collect(root.ts_node, root.tree)

    def get_children(self, node: ASTNode) -> list[ASTNode]:
        body = node.field("body")
        if body is None or not (self.is_class(node) or self.is_namespace(node)):
            return []
        return self._collect(body, node.tree)

    # Kind predicates

    def _enclosing_class(self, ts_node: Any) -> Any:
        current = ts_node.parent
        while current is not None:
            if current.type in self._types(CLASS_TYPES) | self._types(INTERFACE_TYPES) | self._types(ENUM_TYPES):
                return current
            if current.type in self._types(FUNCTION_TYPES):
                return None
            current = current.parent
        return None

    def is_function(self, node: ASTNode) -> bool:
        return node.kind in self._types(FUNCTION_TYPES) and not self.is_method(node)

    def is_method(self, node: ASTNode) -> bool:
        if node.ts_node is None or node.kind not in self._types(FUNCTION_TYPES):
            return False
        return self._enclosing_class(node.ts_node) is not None

    def _go_type_kind(self, node: ASTNode) -> Optional[str]:
        if self.language != "go" or node.kind != "type_declaration":
            return None
        spec = next((c for c in node.ts_node.named_children if c.type in ("type_spec", "type_alias")), None)
        if spec is None:
            return None
        type_node = spec.child_by_field_name("type")
        if type_node is not None and type_node.type == "struct_type":
            return "class"
        if type_node is not None and type_node.type == "interface_type":
            return "interface"
        return "type-alias"

    def is_class(self, node: ASTNode) -> bool:
        return node.kind in self._types(CLASS_TYPES) or self._go_type_kind(node) == "class"

    def is_interface(self, node: ASTNode) -> bool:
        return node.kind in self._types(INTERFACE_TYPES) or self._go_type_kind(node) == "interface"

    def is_enum(self, node: ASTNode) -> bool:
        return node.kind in self._types(ENUM_TYPES)

    def is_type_alias(self, node: ASTNode) -> bool:
        return self._go_type_kind(node) == "type-alias"

    def is_namespace(self, node: ASTNode) -> bool:
        return node.kind in self._types(NAMESPACE_TYPES)

    # Naming

    def _declarator_name(self, ts_node: Any, tree: ParsedTree) -> Optional[str]:
        """Follow C/C++ declarator chains down to the declared identifier."""
        current = ts_node
        while current is not None:
            if current.type in _NAME_TYPES:
                return tree.text(current)
            if current.type in ("qualified_identifier", "scoped_identifier"):
                name = current.child_by_field_name("name")
                return tree.text(name) if name is not None else tree.text(current)
            current = current.child_by_field_name("declarator")
        return None

    def get_node_name(self, node: ASTNode) -> Optional[str]:
        if node.ts_node is None:
            return None
        tree = node.tree
        if node.kind == "type_declaration":
            spec = next((c for c in node.ts_node.named_children if c.type in ("type_spec", "type_alias")), None)
            name = spec.child_by_field_name("name") if spec is not None else None
            return tree.text(name) if name is not None else None
        name = node.field("name")
        if name is not None:
            return tree.text(name) or None
        declarator = node.field("declarator")
        if declarator is not None:
            return self._declarator_name(declarator, tree)
        return None

    # Exports and imports

    def is_exported(self, node: ASTNode) -> bool:
        name = self.get_node_name(node)
        if not name:
            return False
        if self.language == "python":
            return not name.startswith("_")
        if self.language == "go":
            return name[:1].isupper()
        if self.language == "java":
            modifiers = next((c for c in node.ts_node.children if c.type == "modifiers"), None)
            return modifiers is not None and "public" in node.tree.text(modifiers).split()
        # C/C++: file-local only when declared static
        return not any(
            c.type == "storage_class_specifier" and node.tree.text(c) == "static"
            for c in node.ts_node.children
        )

    def get_imports(self, node: ASTNode) -> list[Dependency]:
        if node.ts_node is None or node.ts_node.parent is not None:
            return []
        tree = node.tree
        imports: list[Dependency] = []
        for statement in node.ts_node.named_children:
            imports.extend(self._parse_import(statement, tree))
        return imports

    def _parse_import(self, statement: Any, tree: ParsedTree) -> list[Dependency]:
        node_type = statement.type
        if node_type == "import_statement" and self.language == "python":
            result = []
            for child in statement.named_children:
                module = child.child_by_field_name("name") if child.type == "aliased_import" else child
                if module is not None:
                    text = tree.text(module)
                    result.append(Dependency(name=text.split(".")[-1], source=text, is_namespace=True))
            return result
        if node_type == "import_from_statement":
            module = statement.child_by_field_name("module_name")
            if module is None:
                return []
            module_text = tree.text(module)
            source = _python_module_to_path(module_text) if module_text.startswith(".") else module_text
            names = []
            for child in statement.children_by_field_name("name"):
                target = child.child_by_field_name("name") if child.type == "aliased_import" else child
                if target is not None:
                    names.append(tree.text(target))
            if not names:
                return [Dependency(name="*", source=source, is_namespace=True)]
            return [Dependency(name=name, source=source) for name in names]
        if node_type == "import_declaration" and self.language == "go":
            result = []
            for spec in walk(statement):
                if spec.type != "import_spec":
                    continue
                path = spec.child_by_field_name("path")
                if path is None:
                    continue
                source = unquote(tree.text(path))
                alias = spec.child_by_field_name("name")
                name = tree.text(alias) if alias is not None else source.rsplit("/", 1)[-1]
                result.append(Dependency(name=name, source=source, is_namespace=True))
            return result
        if node_type == "import_declaration" and self.language == "java":
            text = tree.text(statement).removeprefix("import").removesuffix(";").strip()
            text = re.sub(r"^static\s+", "", text)
            return [Dependency(name=text.rsplit(".", 1)[-1], source=text)]
        if node_type == "preproc_include":
            path = statement.child_by_field_name("path")
            if path is None:
                return []
            raw = tree.text(path)
            if path.type == "string_literal":
                return [Dependency(name="*", source="./" + unquote(raw), is_namespace=True)]
            return [Dependency(name="*", source=raw.strip("<>"), is_namespace=True)]
        return []

    def get_exports(self, root: ASTNode) -> list[ExportInfo]:
        return [
            ExportInfo(name=name, local_name=name)
            for node in self.get_top_level_declarations(root)
            if self.is_exported(node) and (name := self.get_node_name(node))
        ]

    def get_references(self, node: ASTNode) -> list[Dependency]:
        if node.ts_node is None:
            return []
        tree = node.tree
        own_name = self.get_node_name(node)
        names: list[str] = []
        for current in walk(node.ts_node):
            if current.type not in ("call", "call_expression", "method_invocation", "object_creation_expression"):
                continue
            target = (
                current.child_by_field_name("function")
                or current.child_by_field_name("type")
                or current.child_by_field_name("name")
            )
            if current.type == "method_invocation" and current.child_by_field_name("object") is not None:
                continue
            if target is None or target.type not in ("identifier", "type_identifier"):
                continue
            name = tree.text(target)
            if name and name != own_name and name not in names:
                names.append(name)
        return [Dependency(name=name, source="", kind="reference") for name in names]

    # Metadata

    def get_decorators(self, node: ASTNode) -> list[str]:
        if node.outer is None or node.outer.type != "decorated_definition":
            return []
        return [
            node.tree.text(c).lstrip("@").strip()
            for c in node.outer.named_children
            if c.type == "decorator"
        ]

    def get_type_parameters(self, node: ASTNode) -> list[str]:
        params = node.field("type_parameters")
        if params is None:
            return []
        return [node.tree.text(p) for p in params.named_children]

    def get_parameters(self, node: ASTNode) -> list[Parameter]:
        if node.ts_node is None:
            return []
        tree = node.tree
        params = node.field("parameters")
        if params is None:
            declarator = node.field("declarator")
            while declarator is not None and params is None:
                params = declarator.child_by_field_name("parameters")
                declarator = declarator.child_by_field_name("declarator")
        if params is None:
            return []

        result: list[Parameter] = []
        for param in params.named_children:
            if param.type == "comment":
                continue
            if param.type == "identifier":
                result.append(Parameter(name=tree.text(param)))
                continue
            name_node = param.child_by_field_name("name")
            if name_node is None:
                name_node = param.child_by_field_name("declarator")
            type_node = param.child_by_field_name("type")
            value = param.child_by_field_name("value")
            name = self._declarator_name(name_node, tree) if name_node is not None else None
            if name is None:
                identifiers = [c for c in param.named_children if c.type == "identifier"]
                name = tree.text(identifiers[0]) if identifiers else tree.text(param)
            result.append(
                Parameter(
                    name=name,
                    type=tree.text(type_node) if type_node is not None else None,
                    optional=value is not None,
                    default_value=tree.text(value) if value is not None else None,
                )
            )
        return result

    def get_return_type(self, node: ASTNode) -> Optional[str]:
        if node.kind not in self._types(FUNCTION_TYPES):
            return None
        # Python/C++ trailing annotations, Go results, Java/C leading types
        for field_name in ("return_type", "result", "type"):
            target = node.field(field_name)
            if target is not None:
                return node.tree.text(target)
        return None

    def get_jsdoc(self, node: ASTNode) -> Optional[str]:
        if node.ts_node is None:
            return None
        target = node.ts_node if self.language == "python" else node.span_node
        return extract_doc_comment(
            target, node.tree.source, self.language, node_name=self.get_node_name(node)
        )

    def get_visibility(self, node: ASTNode) -> Optional[str]:
        name = self.get_node_name(node) or ""
        if self.language == "python":
            if name.startswith("__") and not name.endswith("__"):
                return "private"
            return "protected" if name.startswith("_") else "public"
        if self.language == "java":
            modifiers = next((c for c in node.ts_node.children if c.type == "modifiers"), None)
            words = node.tree.text(modifiers).split() if modifiers is not None else []
            for visibility in ("private", "protected", "public"):
                if visibility in words:
                    return visibility
            return "public"
        return "public"
