"""
Tests for chunk identity and fingerprints.
"""

import os

from hypothesis import given
from hypothesis import strategies as st

from depchunk.core.hashing import (
    HASH_LENGTH,
    file_stat_hash,
    generate_chunk_hash,
    generate_chunk_id,
    generate_content_hash,
    normalize_path,
)

names = st.text(alphabet="abcdefghijklmnopqrstuvwxyzABC_.", min_size=1, max_size=30)
chunk_types = st.sampled_from(["function", "class", "method", "interface", "enum"])


class TestNormalizePath:
    def test_backslashes_become_forward_slashes(self):
        assert normalize_path("src\\utils\\format.ts") == "src/utils/format.ts"

    def test_redundant_segments_removed(self):
        assert normalize_path("./src/../src/a.ts") == "src/a.ts"
        assert normalize_path("src//a.ts") == "src/a.ts"

    def test_empty_path(self):
        assert normalize_path("") == ""


class TestChunkId:
    def test_length_and_hex(self):
        chunk_id = generate_chunk_id("src/a.ts", "main", "function")
        assert len(chunk_id) == HASH_LENGTH
        int(chunk_id, 16)

    def test_equivalent_paths_share_ids(self):
        """Paths that normalize to the same file yield the same id."""
        assert generate_chunk_id("./src/a.ts", "main", "function") == generate_chunk_id(
            "src\\a.ts", "main", "function"
        )

    def test_kind_is_part_of_identity(self):
        assert generate_chunk_id("a.ts", "Foo", "class") != generate_chunk_id(
            "a.ts", "Foo", "interface"
        )

    @given(path=names, name=names, chunk_type=chunk_types)
    def test_deterministic(self, path, name, chunk_type):
        """The same triple always produces the same id."""
        assert generate_chunk_id(path, name, chunk_type) == generate_chunk_id(
            path, name, chunk_type
        )

    @given(name_a=names, name_b=names)
    def test_distinct_names_distinct_ids(self, name_a, name_b):
        if name_a != name_b:
            assert generate_chunk_id("a.ts", name_a, "function") != generate_chunk_id(
                "a.ts", name_b, "function"
            )


class TestChunkHash:
    def test_text_change_changes_hash(self):
        assert generate_chunk_hash("a()", "a.ts", 1, 3) != generate_chunk_hash("b()", "a.ts", 1, 3)

    def test_position_change_changes_hash(self):
        assert generate_chunk_hash("a()", "a.ts", 1, 3) != generate_chunk_hash("a()", "a.ts", 2, 4)

    @given(content=st.text(max_size=200), start=st.integers(1, 500), length=st.integers(0, 50))
    def test_stable_for_same_input(self, content, start, length):
        assert generate_chunk_hash(content, "x.ts", start, start + length) == generate_chunk_hash(
            content, "x.ts", start, start + length
        )


class TestContentAndStatHash:
    def test_content_hash_changes_with_content(self):
        assert generate_content_hash("a") != generate_content_hash("b")
        assert len(generate_content_hash("a")) == HASH_LENGTH

    def test_stat_hash_tracks_mtime_and_size(self, tmp_path):
        path = tmp_path / "a.ts"
        path.write_text("export const a = 1;\n")
        first = file_stat_hash(path)
        assert first.endswith(f"-{path.stat().st_size}")

        path.write_text("export const a = 12345;\n")
        stat = path.stat()
        os.utime(path, (stat.st_atime, stat.st_mtime + 10))
        assert file_stat_hash(path) != first
