"""
Tests for the FastAPI HTTP layer.
"""

import pytest
from fastapi.testclient import TestClient

from depchunk import __version__
from depchunk.core.config import DepchunkConfig
from depchunk.http_server import create_app

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
def client() -> TestClient:
    return TestClient(create_app(DepchunkConfig()))


@pytest.fixture
def project(write_files):
    return write_files({"src/utils.ts": UTILS, "src/main.ts": MAIN})


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "version": __version__}


class TestChunkEndpoints:
    def test_chunk_code(self, client):
        response = client.post(
            "/chunk", json={"code": UTILS, "file_path": "src/utils.ts", "include_content": True}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total_chunks"] == 1
        assert body["chunks"][0]["name"] == "format"
        assert body["chunks"][0]["content"].startswith("export function format")

    def test_chunk_file(self, client, project):
        response = client.post("/chunk/file", json={"file_path": str(project / "src" / "main.ts")})

        assert response.status_code == 200
        assert [c["name"] for c in response.json()["chunks"]] == ["main"]

    def test_chunk_missing_file(self, client, tmp_path):
        response = client.post("/chunk/file", json={"file_path": str(tmp_path / "nope.ts")})
        assert response.status_code == 404

    def test_chunk_directory(self, client, project):
        response = client.post("/chunk/directory", json={"directory": str(project)})

        assert response.status_code == 200
        body = response.json()
        assert body["stats"]["total_files"] == 2
        assert set(body) == {"chunks", "dependency_graph", "import_export_map", "stats"}

    def test_chunk_directory_not_a_directory(self, client, project):
        response = client.post(
            "/chunk/directory", json={"directory": str(project / "src" / "main.ts")}
        )
        assert response.status_code == 400


class TestAnalysisAndMetadata:
    def test_analyze_dependencies(self, client, project):
        paths = [str(project / "src" / "main.ts"), str(project / "src" / "utils.ts")]
        response = client.post("/analyze/dependencies", json={"file_paths": paths})

        assert response.status_code == 200
        body = response.json()
        assert body["stats"]["total_chunks"] == 2
        assert len(body["dependency_graph"]) == 2

    def test_metadata(self, client):
        chunk_id = client.post("/chunk", json={"code": UTILS, "file_path": "src/utils.ts"}).json()[
            "chunks"
        ][0]["id"]

        response = client.get(f"/metadata/{chunk_id}")

        assert response.status_code == 200
        assert response.json()["qualified_name"] == "format"

    def test_metadata_unknown(self, client):
        assert client.get("/metadata/does-not-exist").status_code == 404


class TestExtract:
    def test_extract(self, client, project):
        main_path = str(project / "src" / "main.ts")
        response = client.post(
            "/extract",
            json={"requests": [{"file_path": main_path, "ranges": [{"start": 3, "end": 5}]}]},
        )

        assert response.status_code == 200
        body = response.json()
        assert [c["name"] for c in body["selected_chunks"]] == ["main"]
        assert main_path in body["code_blocks"]

    def test_extract_missing_file(self, client, tmp_path):
        response = client.post(
            "/extract",
            json={
                "requests": [
                    {"file_path": str(tmp_path / "nope.ts"), "ranges": [{"start": 1, "end": 2}]}
                ]
            },
        )
        assert response.status_code == 404

    @pytest.mark.parametrize(
        "path,payload",
        [("/extract", {"requests": []}), ("/analyze/dependencies", {"file_paths": []})],
    )
    def test_empty_lists_rejected(self, client, path, payload):
        assert client.post(path, json=payload).status_code == 422


class TestCacheEndpoints:
    def test_stats_and_clear(self, client):
        client.post("/chunk", json={"code": UTILS, "file_path": "src/utils.ts"})

        stats = client.get("/cache/stats").json()
        assert stats["ast_cache"]["size"] == 1

        assert client.post("/cache/clear").json() == {"status": "cleared"}
        assert client.get("/cache/stats").json()["ast_cache"]["size"] == 0

    def test_clear_forgets_metadata(self, client):
        chunk_id = client.post("/chunk", json={"code": UTILS, "file_path": "src/utils.ts"}).json()[
            "chunks"
        ][0]["id"]

        client.post("/cache/clear")

        assert client.get(f"/metadata/{chunk_id}").status_code == 404
