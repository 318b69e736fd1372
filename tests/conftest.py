"""
Shared fixtures for depchunk tests.
"""

from pathlib import Path

import pytest

from depchunk.core.chunker import Chunker, ChunkOptions
from depchunk.core.models import Chunk, Dependency, Position, Range
from depchunk.core.hashing import generate_chunk_hash, generate_chunk_id


@pytest.fixture
def chunker() -> Chunker:
    """Chunker with default options."""
    return Chunker(ChunkOptions())


@pytest.fixture
def content_chunker() -> Chunker:
    """Chunker that keeps chunk source text."""
    return Chunker(ChunkOptions(include_content=True))


@pytest.fixture
def write_files(tmp_path: Path):
    """Write {relative path: text} under tmp_path and return tmp_path."""

    def _write(files: dict[str, str]) -> Path:
        for rel_path, text in files.items():
            path = tmp_path / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        return tmp_path

    return _write


def make_chunk(
    name: str,
    file_path: str = "src/a.ts",
    chunk_type: str = "function",
    start_line: int = 1,
    end_line: int = 1,
    exported: bool = False,
    export_name: str | None = None,
    dependencies: list[Dependency] | None = None,
    parent_id: str | None = None,
    qualified_name: str | None = None,
    token_count: int | None = None,
    content: str | None = None,
) -> Chunk:
    """Build a chunk directly, for tests of code that consumes chunks."""
    qualified_name = qualified_name or name
    return Chunk(
        id=generate_chunk_id(file_path, qualified_name, chunk_type),
        type=chunk_type,
        name=name,
        qualified_name=qualified_name,
        file_path=file_path,
        range=Range(Position(start_line, 0), Position(end_line, 0)),
        start_line=start_line,
        end_line=end_line,
        hash=generate_chunk_hash(content or name, file_path, start_line, end_line),
        dependencies=list(dependencies or []),
        parent_id=parent_id,
        exported=exported,
        export_name=export_name if export_name is not None else (name if exported else None),
        token_count=token_count,
        content=content,
    )


@pytest.fixture
def chunk_factory():
    return make_chunk
