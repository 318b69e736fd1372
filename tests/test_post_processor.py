"""
Tests for merging small adjacent chunks.
"""

from depchunk.core.chunker import Chunker, ChunkOptions, estimate_chunk_size, merge_small_chunks
from depchunk.core.models import Dependency

OPTIONS = ChunkOptions(min_chunk_size=50, chunk_size=100)


class TestEstimateChunkSize:
    def test_prefers_token_count(self, chunk_factory):
        assert estimate_chunk_size(chunk_factory("a", token_count=7, content="x" * 100)) == 7

    def test_falls_back_to_content_then_lines(self, chunk_factory):
        assert estimate_chunk_size(chunk_factory("a", content="x" * 9)) == 3
        assert estimate_chunk_size(chunk_factory("a", start_line=1, end_line=5)) == 20


class TestMergeSmallChunks:
    def test_structural_chunks_never_merge(self, chunk_factory):
        """Two adjacent one-line interfaces stay separate whatever the thresholds."""
        chunks = [
            chunk_factory("A", chunk_type="interface", start_line=1, end_line=1, token_count=1),
            chunk_factory("B", chunk_type="interface", start_line=2, end_line=2, token_count=1),
        ]
        options = ChunkOptions(min_chunk_size=10_000, chunk_size=10_000)
        assert [c.name for c in merge_small_chunks(chunks, options)] == ["A", "B"]

    def test_adjacent_exports_merge(self, chunk_factory):
        first = chunk_factory(
            "A", chunk_type="export", start_line=1, end_line=1, token_count=5,
            dependencies=[Dependency(name="x", source="./x")],
        )
        second = chunk_factory(
            "B", chunk_type="export", start_line=2, end_line=2, token_count=6,
            dependencies=[Dependency(name="y", source="./y")],
        )
        source = "export const A = 1;\nexport const B = 2;\n"

        (merged,) = merge_small_chunks([first, second], OPTIONS, source)

        assert merged.name == "A"
        assert (merged.start_line, merged.end_line) == (1, 2)
        assert merged.range.end.line == 2
        assert merged.token_count == 11
        assert [d.name for d in merged.dependencies] == ["x", "y"]
        assert merged.hash != first.hash

    def test_inputs_are_not_mutated(self, chunk_factory):
        first = chunk_factory("A", chunk_type="export", start_line=1, end_line=1, token_count=5)
        second = chunk_factory("B", chunk_type="export", start_line=2, end_line=2, token_count=5)

        merge_small_chunks([first, second], OPTIONS)

        assert first.end_line == 1
        assert first.token_count == 5

    def test_large_current_chunk_stays(self, chunk_factory):
        chunks = [
            chunk_factory("A", chunk_type="export", start_line=1, end_line=1, token_count=5),
            chunk_factory("B", chunk_type="export", start_line=2, end_line=9, token_count=60),
        ]
        assert len(merge_small_chunks(chunks, OPTIONS)) == 2

    def test_combined_size_limit(self, chunk_factory):
        chunks = [
            chunk_factory("A", chunk_type="export", start_line=1, end_line=9, token_count=90),
            chunk_factory("B", chunk_type="export", start_line=10, end_line=10, token_count=20),
        ]
        assert len(merge_small_chunks(chunks, OPTIONS)) == 2

    def test_different_parents_or_files_stay(self, chunk_factory):
        chunks = [
            chunk_factory("A", chunk_type="export", token_count=1, parent_id="p1"),
            chunk_factory("B", chunk_type="export", token_count=1, parent_id="p2"),
            chunk_factory("C", chunk_type="export", token_count=1, parent_id="p2", file_path="src/b.ts"),
        ]
        assert [c.name for c in merge_small_chunks(chunks, OPTIONS)] == ["A", "B", "C"]

    def test_merged_content_rebuilt_from_source(self, chunk_factory):
        chunks = [
            chunk_factory("A", chunk_type="export", start_line=1, end_line=1, content="export const A = 1;"),
            chunk_factory("B", chunk_type="export", start_line=3, end_line=3, content="export const B = 2;"),
        ]
        source = "export const A = 1;\n// between\nexport const B = 2;\n"

        (merged,) = merge_small_chunks(chunks, OPTIONS, source)

        assert merged.content == source.rstrip("\n")


class TestChunkerMerging:
    def test_chunker_merges_exported_constants(self):
        code = "export const A = 1;\nexport const B = 2;\nexport interface C {}\nexport interface D {}\n"
        chunks = Chunker(ChunkOptions(include_content=True)).chunk_code(code, "src/consts.ts")

        assert [(c.name, c.type) for c in chunks] == [
            ("A", "export"),
            ("C", "interface"),
            ("D", "interface"),
        ]
        assert chunks[0].content == "export const A = 1;\nexport const B = 2;"

    def test_merging_can_be_disabled(self):
        code = "export const A = 1;\nexport const B = 2;\n"
        chunks = Chunker(ChunkOptions(merge_small_chunks=False)).chunk_code(code, "src/consts.ts")
        assert [c.name for c in chunks] == ["A", "B"]
