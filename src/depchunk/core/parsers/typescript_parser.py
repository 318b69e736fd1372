"""
TypeScript/JavaScript front-end.

Parses `.ts` with the TypeScript grammar, `.tsx` with the TSX grammar and
`.js/.jsx/.mjs/.cjs` with the JavaScript grammar, and answers every adapter
query: export status (including export clauses and default exports),
imports, require and dynamic import calls, references, decorators, generics,
parameters, return types and JSDoc.
"""

import logging
from pathlib import Path
from typing import Any, Optional

from depchunk.core.comment_extractor import extract_doc_comment
from depchunk.core.errors import ParseError
from depchunk.core.models import Dependency, ExportInfo, Parameter
from depchunk.core.parsers.base import ASTNode, ParsedTree, ParserAdapter, load_language, unquote, walk

logger = logging.getLogger(__name__)

_GRAMMAR_LOADERS = {
    "typescript": lambda: __import__("tree_sitter_typescript").language_typescript(),
    "tsx": lambda: __import__("tree_sitter_typescript").language_tsx(),
    "javascript": lambda: __import__("tree_sitter_javascript").language(),
}

_GRAMMAR_BY_EXTENSION = {
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
}

DECLARATION_TYPES = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "class_declaration",
        "abstract_class_declaration",
        "interface_declaration",
        "enum_declaration",
        "type_alias_declaration",
        "lexical_declaration",
        "variable_declaration",
        "internal_module",
        "module",
    }
)

FUNCTION_TYPES = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "function_expression",
        "function",
        "generator_function",
        "arrow_function",
    }
)

CLASS_TYPES = frozenset({"class_declaration", "abstract_class_declaration"})
NAMESPACE_TYPES = frozenset({"internal_module", "module"})
VARIABLE_TYPES = frozenset({"lexical_declaration", "variable_declaration"})
FIELD_TYPES = frozenset({"public_field_definition", "field_definition"})
METHOD_TYPES = frozenset({"method_definition", "abstract_method_signature"})

# Function-like nodes whose scope ends reference collection for top-level walks
_SCOPE_TYPES = FUNCTION_TYPES | METHOD_TYPES | CLASS_TYPES

VUE_LIFECYCLE_HOOKS = frozenset(
    {
        "beforeCreate",
        "created",
        "beforeMount",
        "mounted",
        "beforeUpdate",
        "updated",
        "beforeUnmount",
        "unmounted",
        "beforeDestroy",
        "destroyed",
        "activated",
        "deactivated",
        "errorCaptured",
        "renderTracked",
        "renderTriggered",
    }
)

VUE_OPTION_NAMES = (
    frozenset({"data", "methods", "computed", "watch", "props", "emits", "setup"})
    | VUE_LIFECYCLE_HOOKS
)

_BUILTIN_CALLS = frozenset({"require", "import", "super"})


def grammar_for_path(file_path: str) -> str:
    return _GRAMMAR_BY_EXTENSION.get(Path(file_path).suffix.lower(), "typescript")


def _strip_annotation(text: str) -> str:
    """Turn ': string' into 'string'."""
    return text.lstrip().removeprefix(":").strip()


class TypeScriptAdapter(ParserAdapter):
    """Front-end for TypeScript and JavaScript built on tree-sitter."""

    kind = "typescript"

    def __init__(self):
        self._parsers: dict[str, Any] = {}

    def _get_parser(self, grammar: str) -> Any:
        if grammar not in self._parsers:
            import tree_sitter

            try:
                language = load_language(grammar, _GRAMMAR_LOADERS[grammar])
            except ImportError as e:
                raise ParseError(f"Tree-sitter grammar '{grammar}' is not installed: {e}") from e
            self._parsers[grammar] = tree_sitter.Parser(language)
        return self._parsers[grammar]

    def parse(self, code: str, file_path: str) -> ParsedTree:
        return self.parse_script(code, grammar_for_path(file_path))

    def parse_script(self, code: str, grammar: str, line_offset: int = 0) -> ParsedTree:
        """Parse a script with an explicit grammar ('typescript', 'tsx' or 'javascript')."""
        source = code.encode("utf-8")
        tree = self._get_parser(grammar).parse(source)
        language = "javascript" if grammar == "javascript" else "typescript"
        return ParsedTree(language=language, source=source, tree=tree, line_offset=line_offset)

    # Declarations

    def get_top_level_declarations(self, root: ASTNode) -> list[ASTNode]:
        if root.ts_node is None:
            return []
        return self._declarations_in(root.ts_node, root.tree)

    def _declarations_in(self, container: Any, tree: ParsedTree) -> list[ASTNode]:
        declarations = []
        for child in container.named_children:
            node = self._unwrap_statement(child, tree)
            if node is not None:
                declarations.append(node)
        return declarations

    def _unwrap_statement(self, ts_node: Any, tree: ParsedTree) -> Optional[ASTNode]:
        node_type = ts_node.type
        if node_type == "export_statement":
            declaration = ts_node.child_by_field_name("declaration")
            if declaration is not None:
                inner = self._unwrap_statement(declaration, tree)
                return ASTNode(inner.ts_node, tree, outer=ts_node) if inner else None
            if ts_node.child_by_field_name("value") is not None:
                return ASTNode(ts_node, tree)
            return None
        if node_type == "ambient_declaration":
            for child in ts_node.named_children:
                if child.type in DECLARATION_TYPES:
                    return ASTNode(child, tree, outer=ts_node)
            return None
        if node_type == "expression_statement":
            # Older grammars wrap `namespace X {}` in an expression statement
            inner = ts_node.named_children[0] if ts_node.named_children else None
            if inner is not None and inner.type in NAMESPACE_TYPES:
                return ASTNode(inner, tree, outer=ts_node)
            return None
        if node_type in DECLARATION_TYPES:
            return ASTNode(ts_node, tree)
        return None

    def get_children(self, node: ASTNode) -> list[ASTNode]:
        if node.kind in CLASS_TYPES:
            body = node.field("body")
            if body is None:
                return []
            return [
                ASTNode(member, node.tree)
                for member in body.named_children
                if member.type not in ("comment", "decorator")
            ]
        if node.kind in NAMESPACE_TYPES:
            body = node.field("body")
            return self._declarations_in(body, node.tree) if body is not None else []
        return []

    def get_variable_declarators(self, node: ASTNode) -> list[ASTNode]:
        declarators = [c for c in node.ts_node.named_children if c.type == "variable_declarator"]
        if len(declarators) == 1:
            return [ASTNode(declarators[0], node.tree, outer=node.span_node)]
        return [ASTNode(d, node.tree) for d in declarators]

    def get_initializer(self, node: ASTNode) -> Optional[ASTNode]:
        value = node.field("value")
        return ASTNode(value, node.tree) if value is not None else None

    # Kind predicates

    def is_function(self, node: ASTNode) -> bool:
        return node.kind in FUNCTION_TYPES

    def is_method(self, node: ASTNode) -> bool:
        if node.kind in METHOD_TYPES:
            return True
        if node.kind in FIELD_TYPES:
            value = node.field("value")
            return value is not None and value.type in FUNCTION_TYPES
        return False

    def is_class(self, node: ASTNode) -> bool:
        return node.kind in CLASS_TYPES

    def is_interface(self, node: ASTNode) -> bool:
        return node.kind == "interface_declaration"

    def is_enum(self, node: ASTNode) -> bool:
        return node.kind == "enum_declaration"

    def is_type_alias(self, node: ASTNode) -> bool:
        return node.kind == "type_alias_declaration"

    def is_namespace(self, node: ASTNode) -> bool:
        return node.kind in NAMESPACE_TYPES

    def is_variable_statement(self, node: ASTNode) -> bool:
        return node.kind in VARIABLE_TYPES

    # Component options (Vue options API)

    def _options_object(self, ts_node: Any) -> Any:
        if ts_node is None or ts_node.type != "export_statement":
            return None
        value = ts_node.child_by_field_name("value")
        if value is not None and value.type == "call_expression":
            # export default defineComponent({...})
            arguments = value.child_by_field_name("arguments")
            objects = [a for a in arguments.named_children if a.type == "object"] if arguments else []
            value = objects[0] if objects else None
        if value is None or value.type != "object":
            return None
        return value

    def _option_properties(self, obj: Any, tree: ParsedTree) -> list[ASTNode]:
        return [
            ASTNode(member, tree)
            for member in obj.named_children
            if member.type in ("pair", "method_definition")
        ]

    def is_component_options(self, node: ASTNode) -> bool:
        obj = self._options_object(node.ts_node)
        if obj is None:
            return False
        return any(
            self.get_node_name(prop) in VUE_OPTION_NAMES
            for prop in self._option_properties(obj, node.tree)
        )

    def is_component_option(self, node: ASTNode) -> bool:
        if node.kind not in ("pair", "method_definition"):
            return False
        parent = node.ts_node.parent
        if parent is None or parent.type != "object":
            return False
        holder = parent.parent
        if holder is not None and holder.type == "arguments":
            holder = holder.parent.parent if holder.parent is not None else None
        if holder is None or holder.type != "export_statement":
            return False
        return self.get_node_name(node) in VUE_OPTION_NAMES

    def get_component_options(self, node: ASTNode) -> list[ASTNode]:
        obj = self._options_object(node.ts_node)
        return self._option_properties(obj, node.tree) if obj is not None else []

    def get_option_entries(self, node: ASTNode) -> list[ASTNode]:
        value = node.field("value") if node.kind == "pair" else None
        if value is None:
            return []
        if value.type == "object":
            return self._option_properties(value, node.tree)
        if value.type == "array":
            return [ASTNode(item, node.tree) for item in value.named_children if item.type == "string"]
        return []

    def get_property_value(self, node: ASTNode) -> Optional[ASTNode]:
        value = node.field("value") if node.kind == "pair" else None
        return ASTNode(value, node.tree) if value is not None else None

    # Naming

    def get_node_name(self, node: ASTNode) -> Optional[str]:
        if node.ts_node is None:
            return None
        if node.kind == "string":
            return unquote(node.tree.text(node.ts_node)) or None
        if node.kind == "pair":
            key = node.field("key")
            return unquote(node.tree.text(key)) if key is not None else None
        if node.kind == "variable_declarator":
            name = node.field("name")
            # Destructuring patterns have no single name
            if name is None or name.type != "identifier":
                return None
            return node.tree.text(name)
        name = node.field("name")
        if name is None:
            return None
        text = unquote(node.tree.text(name))
        return text or None

    # Exports

    def _export_statement(self, node: ASTNode) -> Any:
        parent = node.ts_node.parent if node.ts_node is not None else None
        if node.kind == "variable_declarator" and parent is not None:
            parent = parent.parent
        if parent is not None and parent.type == "ambient_declaration":
            parent = parent.parent
        if parent is not None and parent.type == "export_statement":
            return parent
        return None

    def _is_top_level(self, node: ASTNode) -> bool:
        statement = node.span_node
        while statement is not None and statement.parent is not None:
            if statement.parent.type == "program":
                return True
            if statement.parent.type in ("lexical_declaration", "variable_declaration", "export_statement"):
                statement = statement.parent
                continue
            return False
        return False

    def _local_exports(self, tree: ParsedTree) -> dict[str, str]:
        """Local name to exported name for `export { a as b }` and `export default a`."""
        if "local_exports" in tree.memo:
            return tree.memo["local_exports"]
        exports: dict[str, str] = {}
        root = tree.root_node
        for statement in root.named_children if root is not None else []:
            if statement.type != "export_statement" or statement.child_by_field_name("source"):
                continue
            value = statement.child_by_field_name("value")
            if value is not None and value.type == "identifier":
                exports[tree.text(value)] = "default"
                continue
            for clause in statement.named_children:
                if clause.type != "export_clause":
                    continue
                for specifier in clause.named_children:
                    name = specifier.child_by_field_name("name")
                    alias = specifier.child_by_field_name("alias")
                    if name is None:
                        continue
                    local = tree.text(name)
                    exports[local] = tree.text(alias) if alias is not None else local
        tree.memo["local_exports"] = exports
        return exports

    def is_exported(self, node: ASTNode) -> bool:
        if self._export_statement(node) is not None:
            return True
        name = self.get_node_name(node)
        return bool(name) and name in self._local_exports(node.tree) and self._is_top_level(node)

    def get_export_name(self, node: ASTNode) -> Optional[str]:
        statement = self._export_statement(node)
        if statement is not None:
            if any(child.type == "default" for child in statement.children):
                return "default"
            return self.get_node_name(node)
        name = self.get_node_name(node)
        if name and self._is_top_level(node):
            return self._local_exports(node.tree).get(name)
        return None

    def get_exports(self, root: ASTNode) -> list[ExportInfo]:
        tree = root.tree
        exports: list[ExportInfo] = []
        if root.ts_node is None:
            return exports
        for statement in root.ts_node.named_children:
            if statement.type != "export_statement":
                continue
            source_node = statement.child_by_field_name("source")
            source = unquote(tree.text(source_node)) if source_node is not None else None
            is_default = any(child.type == "default" for child in statement.children)
            declaration = statement.child_by_field_name("declaration")
            if declaration is not None:
                inner = self._unwrap_statement(declaration, tree)
                if inner is not None and inner.kind in VARIABLE_TYPES:
                    for declarator in self.get_variable_declarators(inner):
                        name = self.get_node_name(declarator)
                        if name:
                            exports.append(ExportInfo(name=name, local_name=name))
                elif inner is not None:
                    name = self.get_node_name(inner)
                    if name:
                        exports.append(
                            ExportInfo(
                                name="default" if is_default else name,
                                local_name=name,
                                is_default=is_default,
                            )
                        )
                continue
            value = statement.child_by_field_name("value")
            if value is not None:
                local = tree.text(value) if value.type == "identifier" else None
                exports.append(ExportInfo(name="default", local_name=local, is_default=True))
                continue
            clauses = [c for c in statement.named_children if c.type == "export_clause"]
            if not clauses:
                # export * from './x' / export * as ns from './x'
                namespace = [c for c in statement.named_children if c.type == "namespace_export"]
                name = tree.text(namespace[0].named_children[-1]) if namespace else "*"
                exports.append(ExportInfo(name=name, source=source))
                continue
            for specifier in clauses[0].named_children:
                name_node = specifier.child_by_field_name("name")
                alias_node = specifier.child_by_field_name("alias")
                if name_node is None:
                    continue
                local = tree.text(name_node)
                exported = tree.text(alias_node) if alias_node is not None else local
                exports.append(
                    ExportInfo(
                        name=exported,
                        local_name=local,
                        source=source,
                        is_default=exported == "default",
                    )
                )
        return exports

    # Imports and references

    def get_imports(self, node: ASTNode) -> list[Dependency]:
        if node.ts_node is None:
            return []
        if node.kind == "program":
            imports: list[Dependency] = []
            for statement in node.ts_node.named_children:
                if statement.type == "import_statement":
                    imports.extend(self._parse_import_statement(statement, node.tree))
                elif statement.type == "export_statement":
                    imports.extend(self._parse_reexport(statement, node.tree))
                elif statement.type in VARIABLE_TYPES:
                    imports.extend(self._find_calls(statement, node.tree))
            return imports
        return self._find_calls(node.span_node, node.tree)

    def _parse_import_statement(self, statement: Any, tree: ParsedTree) -> list[Dependency]:
        source_node = statement.child_by_field_name("source")
        if source_node is None:
            return []
        source = unquote(tree.text(source_node))
        clause = next((c for c in statement.named_children if c.type == "import_clause"), None)
        if clause is None:
            # Side-effect import
            return [Dependency(name="*", source=source)]

        dependencies: list[Dependency] = []
        for part in clause.named_children:
            if part.type == "identifier":
                dependencies.append(
                    Dependency(name=tree.text(part), source=source, is_default=True)
                )
            elif part.type == "namespace_import":
                identifiers = [c for c in part.named_children if c.type == "identifier"]
                if identifiers:
                    dependencies.append(
                        Dependency(name=tree.text(identifiers[0]), source=source, is_namespace=True)
                    )
            elif part.type == "named_imports":
                for specifier in part.named_children:
                    if specifier.type != "import_specifier":
                        continue
                    name = specifier.child_by_field_name("name")
                    if name is not None:
                        dependencies.append(
                            Dependency(name=unquote(tree.text(name)), source=source)
                        )
        return dependencies

    def _parse_reexport(self, statement: Any, tree: ParsedTree) -> list[Dependency]:
        """`export { a } from './x'` and `export * from './x'` as imports of the file."""
        source_node = statement.child_by_field_name("source")
        if source_node is None:
            return []
        source = unquote(tree.text(source_node))
        clause = next((c for c in statement.named_children if c.type == "export_clause"), None)
        if clause is None:
            return [Dependency(name="*", source=source, is_namespace=True)]
        dependencies = []
        for specifier in clause.named_children:
            name = specifier.child_by_field_name("name")
            if name is not None:
                dependencies.append(Dependency(name=tree.text(name), source=source))
        return dependencies

    def _find_calls(self, ts_node: Any, tree: ParsedTree) -> list[Dependency]:
        """require('x') and import('x') calls with a literal specifier."""
        dependencies: list[Dependency] = []
        for current in walk(ts_node):
            if current.type != "call_expression":
                continue
            function = current.child_by_field_name("function")
            arguments = current.child_by_field_name("arguments")
            if function is None or arguments is None:
                continue
            literal = next((a for a in arguments.named_children if a.type == "string"), None)
            if literal is None:
                continue
            source = unquote(tree.text(literal))
            if function.type == "import":
                dependencies.append(Dependency(name="*", source=source, kind="dynamic-import", is_namespace=True))
            elif function.type == "identifier" and tree.text(function) == "require":
                dependencies.append(
                    Dependency(name=self._require_binding(current, tree), source=source, kind="require")
                )
        return dependencies

    def _require_binding(self, call: Any, tree: ParsedTree) -> str:
        """Name bound by `const x = require(...)`, '*' otherwise."""
        parent = call.parent
        if parent is not None and parent.type == "variable_declarator":
            name = parent.child_by_field_name("name")
            if name is not None and name.type == "identifier":
                return tree.text(name)
        return "*"

    def get_references(self, node: ASTNode) -> list[Dependency]:
        if node.ts_node is None:
            return []
        tree = node.tree
        own_name = self.get_node_name(node)
        names: list[str] = []

        # Generic parameters and mapped-type keys declared inside the node
        type_variables: set[str] = set()
        for current in walk(node.span_node):
            if current.type in ("type_parameter", "mapped_type_clause"):
                declared = current.child_by_field_name("name")
                if declared is not None:
                    type_variables.add(tree.text(declared))

        for current in walk(node.span_node):
            target = None
            if current.type == "call_expression":
                function = current.child_by_field_name("function")
                if function is not None and function.type == "identifier":
                    target = function
            elif current.type == "new_expression":
                constructor = current.child_by_field_name("constructor")
                if constructor is not None and constructor.type == "identifier":
                    target = constructor
            elif current.type == "type_identifier" and tree.text(current) not in type_variables:
                target = current
            elif current.type in ("extends_clause", "class_heritage"):
                target = next((c for c in current.named_children if c.type == "identifier"), None)
            elif current.type in ("jsx_opening_element", "jsx_self_closing_element"):
                name = current.child_by_field_name("name")
                if name is not None and name.type == "identifier":
                    target = name
            if target is None:
                continue
            name = tree.text(target)
            if name and name != own_name and name not in _BUILTIN_CALLS and name not in names:
                names.append(name)

        return [Dependency(name=name, source="", kind="reference") for name in names]

    # Metadata

    def _callable(self, node: ASTNode) -> Any:
        """The function node behind a declaration (declarator or field values included)."""
        ts_node = node.ts_node
        if ts_node is None:
            return None
        if ts_node.type in ("variable_declarator", "pair") or ts_node.type in FIELD_TYPES:
            value = ts_node.child_by_field_name("value")
            if value is not None and value.type in FUNCTION_TYPES:
                return value
            return None
        return ts_node

    def get_decorators(self, node: ASTNode) -> list[str]:
        if node.ts_node is None:
            return []
        tree = node.tree
        found = [c for c in node.ts_node.children if c.type == "decorator"]
        if node.outer is not None:
            found = [c for c in node.outer.children if c.type == "decorator"] + found
        # Class member decorators are siblings preceding the member
        preceding = []
        parent = node.ts_node.parent
        if parent is not None and parent.type == "class_body":
            sibling = node.ts_node.prev_named_sibling
            while sibling is not None and sibling.type == "decorator":
                preceding.insert(0, sibling)
                sibling = sibling.prev_named_sibling
        return [tree.text(d).lstrip("@").strip() for d in preceding + found]

    def get_type_parameters(self, node: ASTNode) -> list[str]:
        target = self._callable(node) or node.ts_node
        if target is None:
            return []
        params = target.child_by_field_name("type_parameters")
        if params is None:
            return []
        return [node.tree.text(p) for p in params.named_children if p.type == "type_parameter"]

    def get_parameters(self, node: ASTNode) -> list[Parameter]:
        target = self._callable(node)
        if target is None:
            return []
        tree = node.tree
        params = target.child_by_field_name("parameters")
        if params is None:
            # Single unparenthesized arrow parameter
            single = target.child_by_field_name("parameter")
            return [Parameter(name=tree.text(single))] if single is not None else []

        result: list[Parameter] = []
        for param in params.named_children:
            if param.type in ("required_parameter", "optional_parameter"):
                pattern = param.child_by_field_name("pattern")
                type_node = param.child_by_field_name("type")
                value = param.child_by_field_name("value")
                if pattern is None:
                    continue
                result.append(
                    Parameter(
                        name=tree.text(pattern),
                        type=_strip_annotation(tree.text(type_node)) if type_node is not None else None,
                        optional=param.type == "optional_parameter" or value is not None,
                        default_value=tree.text(value) if value is not None else None,
                    )
                )
            elif param.type == "assignment_pattern":
                left = param.child_by_field_name("left")
                right = param.child_by_field_name("right")
                result.append(
                    Parameter(
                        name=tree.text(left) if left is not None else tree.text(param),
                        optional=True,
                        default_value=tree.text(right) if right is not None else None,
                    )
                )
            elif param.type != "comment":
                result.append(Parameter(name=tree.text(param)))
        return result

    def get_return_type(self, node: ASTNode) -> Optional[str]:
        target = self._callable(node)
        if target is None:
            return None
        return_type = target.child_by_field_name("return_type")
        if return_type is None:
            return None
        return _strip_annotation(node.tree.text(return_type))

    def get_jsdoc(self, node: ASTNode) -> Optional[str]:
        span = node.span_node
        if span is None:
            return None
        return extract_doc_comment(
            span, node.tree.source, node.tree.language, node_name=self.get_node_name(node)
        )

    def get_visibility(self, node: ASTNode) -> Optional[str]:
        if node.ts_node is None:
            return None
        for child in node.ts_node.children:
            if child.type == "accessibility_modifier":
                return node.tree.text(child).strip()
        name = node.field("name")
        if name is not None and name.type == "private_property_identifier":
            return "private"
        return "public"
