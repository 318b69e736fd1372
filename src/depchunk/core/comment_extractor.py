"""
Doc comment extraction for chunk metadata.

Finds the documentation comment that belongs to a declaration: JSDoc blocks
for TypeScript/JavaScript/Java, `//` runs for Go, Doxygen for C/C++ and the
leading string of the body for Python.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Any

logger = logging.getLogger(__name__)

# Max lines between the end of a comment and the declaration it documents
MAX_LINE_DISTANCE = 2


class CommentStrategy(ABC):
    """Language-specific doc comment lookup."""

    @abstractmethod
    def extract(self, node: Any, source: bytes, node_name: str | None = None) -> str | None:
        """Return the doc comment of a tree-sitter node, if any."""
        pass

    def _preceding_text(self, node: Any, source: bytes) -> str:
        return source[: node.start_byte].decode("utf-8", errors="replace")


def _score(comment: str, line_distance: int, node_name: str | None, has_blank: bool) -> float:
    """
    Score how likely a comment documents the declaration below it.

    Anything at or past MAX_LINE_DISTANCE, after the node or separated by a
    blank line scores 0. Closeness, mentioning the name and doc-comment
    markers raise the score.
    """
    if line_distance < 0 or line_distance > MAX_LINE_DISTANCE or has_blank:
        return 0.0
    score = 0.5 + 0.2 * (1.0 - max(line_distance - 1, 0) / MAX_LINE_DISTANCE)
    if node_name and node_name.lower() in comment.lower():
        score += 0.2
    if comment.lstrip().startswith(("/**", "///")):
        score += 0.1
    return min(score, 1.0)


class JSDocStrategy(CommentStrategy):
    """`/** ... */` blocks, allowing modifier keywords between comment and node."""

    JSDOC_PATTERN = re.compile(r"/\*\*[\s\S]*?\*/")

    ALLOWED_KEYWORDS = {
        "export", "default", "async", "static", "public", "private", "protected",
        "abstract", "readonly", "override", "declare", "const", "let", "var",
        "function", "class", "interface", "type", "enum", "namespace",
    }

    def extract(self, node: Any, source: bytes, node_name: str | None = None) -> str | None:
        preceding = self._preceding_text(node, source)
        matches = list(self.JSDOC_PATTERN.finditer(preceding))
        if not matches:
            return None

        last = matches[-1]
        between = preceding[last.end():]
        tokens = between.split()
        if tokens and not all(token in self.ALLOWED_KEYWORDS for token in tokens):
            return None

        comment_end_line = preceding[: last.end()].count("\n")
        line_distance = node.start_point[0] - comment_end_line
        has_blank = "\n\n" in between or "\n\r\n" in between
        # A comment on the declaration's own line counts as adjacent
        if _score(last.group(), max(line_distance, 1), node_name, has_blank) < 0.5:
            return None
        return last.group()


class GoDocStrategy(CommentStrategy):
    """Contiguous `//` lines directly above the declaration."""

    def extract(self, node: Any, source: bytes, node_name: str | None = None) -> str | None:
        lines = self._preceding_text(node, source).split("\n")
        # Drop the partial line the node starts on
        lines.pop()

        comment_lines: list[str] = []
        while lines and lines[-1].strip().startswith("//"):
            comment_lines.insert(0, lines.pop().strip())

        if not comment_lines:
            return None
        if node_name:
            first = comment_lines[0].lstrip("/").strip().lstrip("*(")
            if not first.lower().startswith(node_name.lower()):
                return None
        return "\n".join(comment_lines)


class DoxygenStrategy(CommentStrategy):
    """`///` runs or a trailing `/** */` block for C/C++."""

    BLOCK_PATTERN = re.compile(r"/\*\*[\s\S]*?\*/")

    def extract(self, node: Any, source: bytes, node_name: str | None = None) -> str | None:
        preceding = self._preceding_text(node, source)
        lines = preceding.split("\n")
        lines.pop()

        comment_lines: list[str] = []
        while lines and lines[-1].strip().startswith(("///", "//!")):
            comment_lines.insert(0, lines.pop().strip())
        if comment_lines:
            return "\n".join(comment_lines)

        matches = list(self.BLOCK_PATTERN.finditer(preceding))
        if matches and not preceding[matches[-1].end():].strip():
            return matches[-1].group()
        return None


class PythonDocstringStrategy(CommentStrategy):
    """First statement string of a function or class body."""

    def extract(self, node: Any, source: bytes, node_name: str | None = None) -> str | None:
        body = node.child_by_field_name("body")
        if body is None or not body.named_children:
            return None
        first = body.named_children[0]
        if first.type != "expression_statement" or not first.named_children:
            return None
        string = first.named_children[0]
        if string.type != "string":
            return None
        text = source[string.start_byte:string.end_byte].decode("utf-8", errors="replace")
        for quote in ('"""', "'''", '"', "'"):
            if text.startswith(quote) and text.endswith(quote) and len(text) >= 2 * len(quote):
                return text[len(quote):-len(quote)].strip()
        return text


class CommentExtractor:
    """Dispatches doc comment lookup to the strategy of a language."""

    def __init__(self):
        jsdoc = JSDocStrategy()
        doxygen = DoxygenStrategy()
        self._strategies: dict[str, CommentStrategy] = {
            "typescript": jsdoc,
            "javascript": jsdoc,
            "vue": jsdoc,
            "java": jsdoc,
            "go": GoDocStrategy(),
            "c": doxygen,
            "cpp": doxygen,
            "python": PythonDocstringStrategy(),
        }

    def extract(
        self, node: Any, source: bytes, language: str, node_name: str | None = None
    ) -> str | None:
        strategy = self._strategies.get(language)
        if strategy is None:
            return None
        return strategy.extract(node, source, node_name=node_name)


_extractor = CommentExtractor()


def extract_doc_comment(
    node: Any, source: bytes, language: str, node_name: str | None = None
) -> str | None:
    """Return the doc comment of a tree-sitter node in the given language."""
    return _extractor.extract(node, source, language, node_name=node_name)
