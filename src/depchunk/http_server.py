"""
HTTP layer for depchunk.

Provides a lightweight FastAPI server exposing chunking, dependency analysis
and extract-with-dependencies endpoints.
"""

import logging
from dataclasses import asdict, replace
from typing import NoReturn, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from depchunk import __version__
from depchunk.core.config import DepchunkConfig, load_config
from depchunk.core.models import ChunkingResult, CodeExtractionResult, FileRangeRequest, LineRange
from depchunk.services import ChunkService

logger = logging.getLogger(__name__)


class ChunkRequest(BaseModel):
    code: str
    file_path: str
    include_content: bool | None = None


class ChunkFileRequest(BaseModel):
    file_path: str
    include_content: bool | None = None


class ChunkDirectoryRequest(BaseModel):
    directory: str
    include: list[str] | None = None
    exclude: list[str] | None = None


class AnalyzeRequest(BaseModel):
    """Request model for dependency analysis over a set of files."""

    file_paths: list[str] = Field(min_length=1)


class RangeModel(BaseModel):
    start: int
    end: int


class FileRangeModel(BaseModel):
    file_path: str
    ranges: list[RangeModel]


class ExtractRequest(BaseModel):
    """Request model for extract-with-dependencies."""

    requests: list[FileRangeModel] = Field(min_length=1)


def _result_payload(result: ChunkingResult) -> dict:
    return {
        "chunks": [chunk.to_dict() for chunk in result.chunks],
        "dependency_graph": result.dependency_graph,
        "import_export_map": result.import_export_map.to_dict(),
        "stats": asdict(result.stats),
    }


def _extraction_payload(result: CodeExtractionResult) -> dict:
    return {
        "selected_chunks": [chunk.to_dict() for chunk in result.selected_chunks],
        "dependent_chunks": [chunk.to_dict() for chunk in result.dependent_chunks],
        "all_chunks": [chunk.to_dict() for chunk in result.all_chunks],
        "code_blocks": result.code_blocks,
        "dependency_graph": result.dependency_graph,
    }


def _raise_http_error(endpoint: str, exc: Exception) -> NoReturn:
    """Map service exceptions onto HTTP errors."""
    if isinstance(exc, FileNotFoundError):
        raise HTTPException(status_code=404, detail=f"File not found: {exc.filename or exc}")
    if isinstance(exc, (NotADirectoryError, ValueError)):
        raise HTTPException(status_code=400, detail=str(exc))
    logger.error(f"Error in {endpoint}: {exc}", exc_info=True)
    raise HTTPException(status_code=500, detail="Internal Server Error")


def create_app(config: Optional[DepchunkConfig] = None) -> FastAPI:
    """
    FastAPI application factory.

    Args:
        config: Configuration (loaded from defaults and environment if None)
    """
    cfg = config or load_config()
    service = ChunkService(config=cfg)

    app = FastAPI(
        title="depchunk",
        version=__version__,
        description="HTTP interface for semantic code chunking and dependency extraction.",
    )

    def _options(include_content: bool | None):
        if include_content is None:
            return None
        return replace(service.chunker.options, include_content=include_content)

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__}

    @app.post("/chunk")
    async def chunk(req: ChunkRequest):
        try:
            chunks = service.chunk_code(req.code, req.file_path, _options(req.include_content))
            return {"chunks": [c.to_dict() for c in chunks], "total_chunks": len(chunks)}
        except Exception as exc:
            _raise_http_error("/chunk", exc)

    @app.post("/chunk/file")
    async def chunk_file(req: ChunkFileRequest):
        try:
            chunks = service.chunk_file(req.file_path, _options(req.include_content))
            return {"chunks": [c.to_dict() for c in chunks], "total_chunks": len(chunks)}
        except Exception as exc:
            _raise_http_error("/chunk/file", exc)

    @app.post("/chunk/directory")
    async def chunk_directory(req: ChunkDirectoryRequest):
        try:
            result = service.chunk_directory(req.directory, include=req.include, exclude=req.exclude)
            return _result_payload(result)
        except Exception as exc:
            _raise_http_error("/chunk/directory", exc)

    @app.post("/analyze/dependencies")
    async def analyze_dependencies(req: AnalyzeRequest):
        try:
            result = service.chunk_files(req.file_paths)
            return {
                "dependency_graph": result.dependency_graph,
                "import_export_map": result.import_export_map.to_dict(),
                "stats": asdict(result.stats),
            }
        except Exception as exc:
            _raise_http_error("/analyze/dependencies", exc)

    @app.get("/metadata/{chunk_id}")
    async def metadata(chunk_id: str):
        found = service.find_chunk(chunk_id)
        if found is None:
            raise HTTPException(status_code=404, detail=f"Unknown chunk: {chunk_id}")
        return found.to_dict()

    @app.post("/extract")
    async def extract(req: ExtractRequest):
        try:
            requests = [
                FileRangeRequest(
                    file_path=item.file_path,
                    ranges=[LineRange(start=r.start, end=r.end) for r in item.ranges],
                )
                for item in req.requests
            ]
            return _extraction_payload(service.extract_with_dependencies(requests))
        except Exception as exc:
            _raise_http_error("/extract", exc)

    @app.get("/cache/stats")
    async def cache_stats():
        return service.get_cache_stats()

    @app.post("/cache/clear")
    async def cache_clear():
        service.clear_caches()
        return {"status": "cleared"}

    return app
