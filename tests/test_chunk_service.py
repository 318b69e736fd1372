"""
Tests for ChunkService: file caching, directory scans and lookups.
"""

import os

import pytest

from depchunk.core.config import DepchunkConfig
from depchunk.core.models import FileRangeRequest, LineRange
from depchunk.services import ChunkService

UTILS = """export function format(value: string): string {
  return value.trim();
}
"""

MAIN = """import { format } from './utils';

export function main(input: string) {
  return format(input);
}
"""


@pytest.fixture
def project(write_files):
    return write_files(
        {
            "src/utils.ts": UTILS,
            "src/main.ts": MAIN,
            "node_modules/lib/index.ts": "export function vendored() {}\n",
            "README.md": "# readme\n",
        }
    )


@pytest.fixture
def service(project) -> ChunkService:
    return ChunkService(DepchunkConfig(), root_dir=project)


class TestChunkFile:
    def test_unchanged_file_served_from_cache(self, service):
        first = service.chunk_file("src/utils.ts")
        second = service.chunk_file("src/utils.ts")

        assert second is first
        assert service.get_cache_stats()["file_cache"] == {"size": 1}

    def test_changed_file_is_rechunked(self, service, project):
        first = service.chunk_file("src/utils.ts")
        path = project / "src" / "utils.ts"
        path.write_text(UTILS + "\nexport function extra() {}\n", encoding="utf-8")
        stat = path.stat()
        os.utime(path, (stat.st_atime, stat.st_mtime + 10))

        second = service.chunk_file("src/utils.ts")

        assert second is not first
        assert [c.name for c in second] == ["format", "extra"]

    def test_missing_file(self, service):
        with pytest.raises(FileNotFoundError):
            service.chunk_file("src/nope.ts")


class TestChunkDirectory:
    def test_default_globs(self, service):
        result = service.chunk_directory(".")

        files = {c.file_path for c in result.chunks}
        assert files == {"src/main.ts", "src/utils.ts"}
        assert result.stats.total_files == 2
        main = next(c for c in result.chunks if c.name == "main")
        fmt = next(c for c in result.chunks if c.name == "format")
        assert result.dependency_graph[main.id] == [fmt.id]
        assert [s.name for s in result.import_export_map.exports_of("src/utils.ts")] == ["format"]

    def test_explicit_globs(self, service):
        result = service.chunk_directory("src", include=["main.ts"], exclude=[])
        assert {c.file_path for c in result.chunks} == {"src/main.ts"}

    def test_not_a_directory(self, service):
        with pytest.raises(NotADirectoryError):
            service.chunk_directory("src/main.ts")

    def test_chunk_files(self, service):
        result = service.chunk_files(["src/main.ts", "src/utils.ts"])
        assert result.stats.total_files == 2
        assert result.stats.total_chunks == 2


class TestLookupsAndExtraction:
    def test_find_chunk_and_content(self, service):
        (chunk,) = service.chunk_file("src/utils.ts")

        assert service.find_chunk(chunk.id) is chunk
        assert service.find_chunk("missing") is None
        assert service.get_chunk_content(chunk) == UTILS.rstrip("\n")

    def test_extract_with_dependencies(self, service):
        result = service.extract_with_dependencies(
            [FileRangeRequest(file_path="src/main.ts", ranges=[LineRange(3, 5)])]
        )

        assert [c.name for c in result.selected_chunks] == ["main"]
        assert [c.name for c in result.dependent_chunks] == ["format"]
        assert set(result.code_blocks) == {"src/main.ts", "src/utils.ts"}
        # Extracted chunks become findable
        assert service.find_chunk(result.dependent_chunks[0].id) is not None

    def test_extract_missing_file(self, service):
        with pytest.raises(OSError):
            service.extract_with_dependencies(
                [FileRangeRequest(file_path="src/nope.ts", ranges=[LineRange(1, 2)])]
            )


class TestCaches:
    def test_cache_stats_keys(self, service):
        service.chunk_file("src/utils.ts")
        stats = service.get_cache_stats()

        assert set(stats) == {"ast_cache", "parser_pool", "file_cache"}
        assert stats["ast_cache"]["size"] == 1

    def test_invalidate_one_file(self, service):
        service.chunk_file("src/utils.ts")
        service.chunk_file("src/main.ts")

        service.invalidate_ast_cache("src/utils.ts")

        assert service.get_cache_stats()["file_cache"]["size"] == 1
        assert "src/utils.ts" not in service.chunker.ast_cache

    def test_invalidate_all(self, service):
        service.chunk_file("src/utils.ts")
        service.invalidate_ast_cache()

        stats = service.get_cache_stats()
        assert stats["file_cache"]["size"] == 0
        assert stats["ast_cache"]["size"] == 0

    def test_clear_caches_forgets_chunks(self, service):
        (chunk,) = service.chunk_file("src/utils.ts")

        service.clear_caches()

        assert service.find_chunk(chunk.id) is None
        assert service.get_cache_stats()["file_cache"]["size"] == 0


class TestBounds:
    def test_known_chunks_drop_oldest(self, project):
        service = ChunkService(DepchunkConfig(), root_dir=project, max_known_chunks=2)
        first = service.chunk_code("function a() {}\n", "src/a.ts")[0]
        second = service.chunk_code("function b() {}\n", "src/b.ts")[0]
        third = service.chunk_code("function c() {}\n", "src/c.ts")[0]

        assert service.find_chunk(first.id) is None
        assert service.find_chunk(second.id) is second
        assert service.find_chunk(third.id) is third

    def test_file_cache_drops_oldest(self, project):
        config = DepchunkConfig()
        config.cache.ast_cache_max_size = 1
        service = ChunkService(config, root_dir=project)

        service.chunk_file("src/utils.ts")
        service.chunk_file("src/main.ts")

        assert service.get_cache_stats()["file_cache"] == {"size": 1}
