"""Unit tests for checkpoint models and the JSON checkpoint store."""

import json

import pytest
from pydantic import ValidationError

from llmkit.core.errors import CheckpointIOError
from llmkit.extraction.models import Checkpoint, ChunkExtraction, ChunkResult
from llmkit.io.checkpoints import CheckpointStore


def results(successes, failures=()):
    out = {}
    for index in successes:
        out[index] = ChunkResult(
            chunk_index=index,
            success=True,
            data=ChunkExtraction(summary=f"Chunk {index}", companies=["Acme"]),
            processing_time=12.5,
        )
    for index in failures:
        out[index] = ChunkResult(chunk_index=index, success=False, error="timeout")
    return out


class TestCheckpointModel:
    def test_completed_chunks_follow_successes(self):
        checkpoint = Checkpoint.from_results("doc.txt", 5, results([2, 0], failures=[1]))
        assert checkpoint.completed_chunks == [0, 2]
        assert [r.chunk_index for r in checkpoint.chunk_results] == [0, 1, 2]

    def test_mismatched_completed_chunks_rejected(self):
        with pytest.raises(ValidationError):
            Checkpoint(
                file_path="doc.txt",
                total_chunks=3,
                completed_chunks=[0, 1],
                chunk_results=list(results([0]).values()),
            )

    def test_out_of_range_index_rejected(self):
        with pytest.raises(ValidationError):
            Checkpoint.from_results("doc.txt", 2, results([0, 5]))

    def test_failed_result_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            Checkpoint(
                file_path="doc.txt",
                total_chunks=1,
                completed_chunks=[],
                chunk_results=[ChunkResult(chunk_index=7, success=False)],
            )

    def test_duplicate_results_rejected(self):
        with pytest.raises(ValidationError):
            Checkpoint(
                file_path="doc.txt",
                total_chunks=3,
                completed_chunks=[1],
                chunk_results=[
                    ChunkResult(chunk_index=1, success=True),
                    ChunkResult(chunk_index=1, success=False, error="timeout"),
                ],
            )


class TestCheckpointStore:
    """Tests for persistence of checkpoints."""

    def test_path_uses_document_stem(self, tmp_path):
        store = CheckpointStore(tmp_path)
        assert store.path_for("/data/report.txt") == tmp_path / "report.checkpoint.json"

    def test_save_and_load(self, tmp_path):
        store = CheckpointStore(tmp_path / "checkpoints")
        checkpoint = Checkpoint.from_results("report.txt", 4, results([0, 1], failures=[2]))

        path = store.save(checkpoint)
        loaded = store.load("report.txt")

        assert path.exists()
        assert loaded == checkpoint
        assert loaded.results_by_index()[2].error == "timeout"

    def test_file_uses_camel_case_keys(self, tmp_path):
        store = CheckpointStore(tmp_path)
        path = store.save(Checkpoint.from_results("report.txt", 2, results([0])))
        raw = json.loads(path.read_text(encoding="utf-8"))

        assert set(raw) == {"filePath", "totalChunks", "completedChunks", "chunkResults", "timestamp"}
        assert raw["completedChunks"] == [0]
        assert raw["chunkResults"][0]["chunkIndex"] == 0
        assert raw["chunkResults"][0]["processingTime"] == 12.5
        assert raw["chunkResults"][0]["data"]["keyTakeaway"] == ""

    def test_save_leaves_no_temporary_files(self, tmp_path):
        store = CheckpointStore(tmp_path)
        store.save(Checkpoint.from_results("report.txt", 2, results([0])))
        store.save(Checkpoint.from_results("report.txt", 2, results([0, 1])))
        assert [p.name for p in tmp_path.iterdir()] == ["report.checkpoint.json"]
        assert store.load("report.txt").completed_chunks == [0, 1]

    def test_missing_checkpoint(self, tmp_path):
        assert CheckpointStore(tmp_path).load("nothing.txt") is None

    def test_corrupt_checkpoint(self, tmp_path):
        store = CheckpointStore(tmp_path)
        store.path_for("report.txt").write_text("{not json", encoding="utf-8")
        with pytest.raises(CheckpointIOError):
            store.load("report.txt")

    def test_stray_chunk_result_on_disk_is_corrupt(self, tmp_path):
        store = CheckpointStore(tmp_path)
        raw = {
            "filePath": "report.txt",
            "totalChunks": 1,
            "completedChunks": [],
            "chunkResults": [{"chunkIndex": 7, "success": False, "error": "timeout"}],
            "timestamp": 0,
        }
        store.path_for("report.txt").write_text(json.dumps(raw), encoding="utf-8")
        with pytest.raises(CheckpointIOError):
            store.load("report.txt")

    def test_unwritable_directory(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory", encoding="utf-8")
        store = CheckpointStore(blocker)
        with pytest.raises(CheckpointIOError):
            store.save(Checkpoint.from_results("report.txt", 1, results([0])))

    def test_clear(self, tmp_path):
        store = CheckpointStore(tmp_path)
        store.save(Checkpoint.from_results("report.txt", 1, results([0])))
        assert store.clear("report.txt") is True
        assert store.clear("report.txt") is False
        assert not store.path_for("report.txt").exists()
