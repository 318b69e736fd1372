"""
Chunk post-processing.

Adjacent small chunks of non-structural kinds (plain exported variables and
similar) are folded into their predecessor until they reach a useful size.
Structural chunks always stand alone.
"""

import logging
from dataclasses import replace
from typing import Optional

from depchunk.core.chunker.interfaces import ChunkOptions
from depchunk.core.hashing import generate_chunk_hash
from depchunk.core.models import STRUCTURAL_CHUNK_TYPES, Chunk, Position, Range
from depchunk.core.tokenizer import CHARS_PER_TOKEN

logger = logging.getLogger(__name__)

TOKENS_PER_LINE = 4


def estimate_chunk_size(chunk: Chunk) -> int:
    """Token count, else content length, else a per-line estimate."""
    if chunk.token_count is not None:
        return chunk.token_count
    if chunk.content is not None:
        return -(-len(chunk.content) // CHARS_PER_TOKEN)
    return chunk.line_count * TOKENS_PER_LINE


def is_mergeable(chunk: Chunk) -> bool:
    return chunk.type not in STRUCTURAL_CHUNK_TYPES


def _can_merge(previous: Chunk, current: Chunk, options: ChunkOptions) -> bool:
    if not (is_mergeable(previous) and is_mergeable(current)):
        return False
    if previous.file_path != current.file_path or previous.parent_id != current.parent_id:
        return False
    current_size = estimate_chunk_size(current)
    if current_size >= options.min_chunk_size:
        return False
    return estimate_chunk_size(previous) + current_size <= options.chunk_size


def _absorb(previous: Chunk, current: Chunk, source_lines: Optional[list[str]]) -> None:
    previous_size = estimate_chunk_size(previous)
    current_size = estimate_chunk_size(current)

    previous.end_line = current.end_line
    previous.range = Range(
        start=previous.range.start,
        end=Position(line=current.range.end.line, column=current.range.end.column),
    )
    for child_id in current.children_ids:
        if child_id not in previous.children_ids:
            previous.children_ids.append(child_id)
    for dep in current.dependencies:
        if dep not in previous.dependencies:
            previous.dependencies.append(dep)

    if source_lines is not None:
        text = "\n".join(source_lines[previous.start_line - 1 : previous.end_line])
    elif previous.content is not None and current.content is not None:
        text = f"{previous.content}\n{current.content}"
    else:
        text = None

    if text is not None:
        previous.hash = generate_chunk_hash(
            text, previous.file_path, previous.start_line, previous.end_line
        )
        if previous.content is not None:
            previous.content = text
    previous.token_count = previous_size + current_size


def merge_small_chunks(
    chunks: list[Chunk],
    options: ChunkOptions,
    source: Optional[str] = None,
) -> list[Chunk]:
    """
    Merge adjacent small non-structural chunks.

    Input chunks are left untouched; merged chunks are copies.

    Args:
        chunks: Chunks of one file in source order
        options: Supplies min_chunk_size and chunk_size
        source: File text, used to rebuild merged content and hashes

    Returns:
        The chunk list with merged neighbours collapsed.
    """
    source_lines = source.splitlines() if source is not None else None
    merged: list[Chunk] = []
    for chunk in chunks:
        if merged and _can_merge(merged[-1], chunk, options):
            _absorb(merged[-1], chunk, source_lines)
            logger.debug(f"Merged '{chunk.qualified_name}' into '{merged[-1].qualified_name}'")
            continue
        if is_mergeable(chunk):
            chunk = replace(
                chunk,
                dependencies=list(chunk.dependencies),
                children_ids=list(chunk.children_ids),
            )
        merged.append(chunk)
    return merged
