"""
Vue single-file component front-end.

Isolates the `<script setup>` block (or the last plain `<script>` block),
parses it with the TypeScript front-end and maps line numbers back onto the
`.vue` file. For options-API components the properties of the exported
component object become the top-level declarations.
"""

import logging
import re
from typing import Optional

from depchunk.core.parsers.base import ASTNode, ParsedTree
from depchunk.core.parsers.typescript_parser import TypeScriptAdapter

logger = logging.getLogger(__name__)

SCRIPT_PATTERN = re.compile(r"<script\b([^>]*)>([\s\S]*?)</script>", re.IGNORECASE)
_SETUP_ATTR = re.compile(r"\bsetup\b")
_LANG_ATTR = re.compile(r"""\blang\s*=\s*["']([a-z]+)["']""", re.IGNORECASE)


def find_script_block(code: str) -> Optional[tuple[str, int, str]]:
    """
    Locate the script block of a component.

    Returns:
        (script text, line offset of the text in the file, grammar) or None
    """
    matches = list(SCRIPT_PATTERN.finditer(code))
    if not matches:
        return None

    selected = next((m for m in matches if _SETUP_ATTR.search(m.group(1))), matches[-1])
    lang = _LANG_ATTR.search(selected.group(1))
    grammar = "typescript"
    if lang is not None and lang.group(1).lower() in ("tsx", "jsx"):
        grammar = "tsx"

    line_offset = code[: selected.start(2)].count("\n")
    return selected.group(2), line_offset, grammar


class VueAdapter(TypeScriptAdapter):
    """Front-end for `.vue` files, delegating script parsing to the TypeScript front-end."""

    kind = "vue"

    def parse(self, code: str, file_path: str) -> ParsedTree:
        block = find_script_block(code)
        if block is None or not block[0].strip():
            logger.debug(f"No script block in {file_path}")
            return ParsedTree(language="vue", source=b"")

        script, line_offset, grammar = block
        tree = self.parse_script(script, grammar, line_offset=line_offset)
        tree.language = "vue"
        root = tree.root_node
        tree.options_api = root is not None and any(
            self.is_component_options(ASTNode(statement, tree))
            for statement in root.named_children
        )
        return tree

    def get_top_level_declarations(self, root: ASTNode) -> list[ASTNode]:
        if root.ts_node is None:
            return []
        declarations = super().get_top_level_declarations(root)
        if not root.tree.options_api:
            return declarations

        # Options API: the component's properties stand in for declarations
        flattened: list[ASTNode] = []
        for node in declarations:
            if self.is_component_options(node):
                flattened.extend(self.get_component_options(node))
            else:
                flattened.append(node)
        return flattened
