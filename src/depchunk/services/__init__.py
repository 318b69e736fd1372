"""
Service Layer - ChunkService.
"""

from depchunk.services.chunk_service import ChunkService

__all__ = [
    "ChunkService",
]
