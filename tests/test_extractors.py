"""
Tests for extractor dispatch and shared extractor helpers.
"""

from hypothesis import given
from hypothesis import strategies as st

from depchunk.core.chunker import (
    CLASS_MEMBER_EXTRACTORS,
    EXTRACTOR_PRIORITY,
    NAMESPACE_MEMBER_EXTRACTORS,
    Chunker,
    ChunkOptions,
    ExtractorRegistry,
    FunctionExtractor,
    create_extractor_registry,
)
from depchunk.core.chunker.extractors import detect_function_markers, merge_dependencies
from depchunk.core.models import Dependency


class TestPriority:
    """Dispatch order is a fixed, tested constant."""

    def test_priority_order(self):
        assert EXTRACTOR_PRIORITY == (
            "vue-options",
            "class",
            "interface",
            "enum",
            "type-alias",
            "namespace",
            "variable",
            "function",
        )

    def test_member_subsets(self):
        assert CLASS_MEMBER_EXTRACTORS == ("method", "function")
        assert set(NAMESPACE_MEMBER_EXTRACTORS) <= set(EXTRACTOR_PRIORITY)
        assert "vue-options" not in NAMESPACE_MEMBER_EXTRACTORS

    def test_every_name_is_registered(self):
        registry = create_extractor_registry()
        for name in EXTRACTOR_PRIORITY + CLASS_MEMBER_EXTRACTORS:
            assert registry.get(name) is not None, name

    def test_variable_before_function(self):
        """An arrow function in a const keeps the declaration span."""
        chunker = Chunker(ChunkOptions(merge_small_chunks=False))
        (chunk,) = chunker.chunk_code("const run = async () => {\n  await go();\n};\n", "a.ts")

        assert chunk.name == "run"
        assert (chunk.start_line, chunk.end_line) == (1, 3)
        assert chunk.is_async


class TestRegistry:
    def test_register_chains_and_replaces(self):
        registry = ExtractorRegistry()
        first = FunctionExtractor()
        second = FunctionExtractor()
        assert registry.register(first).register(second) is registry
        assert registry.get("function") is second
        assert registry.names() == ["function"]
        assert registry.get("class") is None

    def test_restricted_registry_limits_chunk_kinds(self):
        """Kinds without a registered extractor are skipped."""
        registry = ExtractorRegistry().register(FunctionExtractor())
        chunker = Chunker(ChunkOptions(merge_small_chunks=False), extractors=registry)
        code = "function a() {}\nclass B {}\ninterface C {}\n"

        assert [c.name for c in chunker.chunk_code(code, "a.ts")] == ["a"]


class TestAnonymousDeclarations:
    def test_anonymous_default_exports_are_skipped(self):
        chunker = Chunker(ChunkOptions(merge_small_chunks=False))
        code = "export default function () {\n  return 1;\n}\nfunction named() {}\n"
        assert [c.name for c in chunker.chunk_code(code, "a.ts")] == ["named"]

    def test_destructuring_has_no_name(self):
        chunker = Chunker(ChunkOptions(merge_small_chunks=False))
        assert chunker.chunk_code("export const { a, b } = obj;\n", "a.ts") == []


class TestFunctionMarkers:
    def test_async_and_generator_in_header(self):
        assert detect_function_markers("async function f() {}") == (True, False)
        assert detect_function_markers("function* g() {}") == (False, True)
        assert detect_function_markers("async *stream() {}") == (True, True)

    def test_body_text_is_ignored(self):
        """Markers inside the body or parameters do not count."""
        text = "function f(x = a * b) {\n  const async = 1;\n  return x * 2;\n}"
        assert detect_function_markers(text) == (False, False)

    def test_decorator_lines_skipped(self):
        assert detect_function_markers("@wrap(x => x * 2)\nasync handle() {}") == (True, False)

    def test_python_generators(self):
        assert detect_function_markers("def g():\n    yield 1", "python") == (False, True)
        assert detect_function_markers("async def f():\n    return 1", "python") == (True, False)


class TestMergeDependencies:
    def test_file_imports_from_own_source_are_skipped(self):
        own = [Dependency(name="*", source="./lazy", kind="dynamic-import", is_namespace=True)]
        file_imports = [
            Dependency(name="load", source="./lazy"),
            Dependency(name="format", source="./utils"),
        ]

        merged = merge_dependencies(own, file_imports)

        assert [(d.name, d.source) for d in merged] == [("*", "./lazy"), ("format", "./utils")]

    def test_duplicates_collapse(self):
        dep = Dependency(name="x", source="", kind="reference")
        assert merge_dependencies([dep, dep], []) == [dep]

    @given(
        names=st.lists(st.sampled_from(["a", "b", "c"]), max_size=6),
        sources=st.lists(st.sampled_from(["./x", "./y", "z"]), max_size=6),
    )
    def test_never_duplicates(self, names, sources):
        own = [Dependency(name=n, source="", kind="reference") for n in names]
        file_imports = [Dependency(name="i", source=s) for s in sources]
        merged = merge_dependencies(own, file_imports)
        keys = [(d.kind, d.source, d.name) for d in merged]
        assert len(keys) == len(set(keys))
