"""
Direct tests for the doc comment heuristics.
"""

from types import SimpleNamespace

from depchunk.core.chunker import Chunker, ChunkOptions
from depchunk.core.comment_extractor import (
    DoxygenStrategy,
    JSDocStrategy,
    extract_doc_comment,
)


def docs(code: str, file_path: str) -> dict:
    chunker = Chunker(ChunkOptions(merge_small_chunks=False))
    return {c.name: c.jsdoc for c in chunker.chunk_code(code, file_path)}


def node_at(source: str, marker: str) -> SimpleNamespace:
    """Stand-in for a tree-sitter node starting at `marker`."""
    start = source.index(marker)
    return SimpleNamespace(start_byte=start, start_point=(source[:start].count("\n"), 0))


def test_jsdoc_allows_export_prefix():
    """JSDoc survives export modifiers between comment and declaration."""
    code = "/** Adds numbers */\nexport function add(a, b) {\n  return a + b;\n}\n"
    assert "Adds numbers" in docs(code, "math.ts")["add"]


def test_jsdoc_rejects_distant_comment():
    code = "/** Not a doc */\n\n\nfunction real() {\n  return 1;\n}\n"
    assert docs(code, "a.js")["real"] is None


def test_jsdoc_rejects_code_in_between():
    source = "/** Doc for a */\nconst a = 1;\nfunction b() {}\n"
    node = node_at(source, "function b")
    assert JSDocStrategy().extract(node, source.encode(), "b") is None


def test_plain_block_comment_is_not_jsdoc():
    code = "/* ordinary */\nfunction f() {}\n"
    assert docs(code, "a.ts")["f"] is None


def test_go_doc_requires_name_prefix():
    code = "package main\n// does something unrelated\nfunc Add(a, b int) int {\n    return a + b\n}\n"
    assert docs(code, "main.go")["Add"] is None


def test_go_doc_attached():
    code = "package main\n\n// Add sums two numbers.\nfunc Add(a, b int) int {\n    return a + b\n}\n"
    assert docs(code, "main.go")["Add"] == "// Add sums two numbers."


def test_python_docstring():
    code = 'def area(r):\n    """Area of a circle."""\n    return 3.14 * r * r\n'
    assert docs(code, "geometry.py")["area"] == "Area of a circle."


def test_python_without_docstring():
    assert docs("def f():\n    return 1\n", "a.py")["f"] is None


class TestDoxygen:
    def test_triple_slash_run(self):
        source = "/// Adds two ints.\n/// Overflow wraps.\nint add(int a, int b);\n"
        node = node_at(source, "int add")
        assert DoxygenStrategy().extract(node, source.encode(), "add") == (
            "/// Adds two ints.\n/// Overflow wraps."
        )

    def test_block_comment(self):
        source = "/** Adds two ints. */\nint add(int a, int b);\n"
        node = node_at(source, "int add")
        assert DoxygenStrategy().extract(node, source.encode()) == "/** Adds two ints. */"

    def test_unknown_language(self):
        source = "# comment\nx = 1\n"
        assert extract_doc_comment(node_at(source, "x"), source.encode(), "cobol") is None
