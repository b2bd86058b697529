"""Tests for search, info and the query engine."""

from __future__ import annotations

import threading
from pathlib import Path

import numpy as np
import pytest

from conftest import MockEmbedder
from docembed.chunking.schemas import Chunk
from docembed.collection.collection import Collection
from docembed.collection.schemas import CollectionInfo, SearchResult
from docembed.errors import ContractViolation, DecodeFailure
from docembed.pipeline.build import CollectionBuilder
from docembed.pipeline.query import QueryEngine, info, load_collection, search, search_vector
from docembed.snapshot.codec import export_collection, save_snapshot


class FixedQueryEmbedder(MockEmbedder):
    """Returns a fixed vector for every query."""

    def __init__(self, vector: list[float]):
        super().__init__(dim=len(vector))
        self.vector = vector
        self.queries: list[str] = []

    def embed_query(self, query: str) -> list[float]:
        self.queries.append(query)
        return self.vector


@pytest.fixture
def axes() -> Collection:
    c = Collection("axes")
    c.add("x", [1.0, 0.0, 0.0], "x axis", {"type": "docs"})
    c.add("xy", [1.0, 1.0, 0.0], "diagonal", {"type": "docs"})
    c.add("y", [0.0, 1.0, 0.0], "y axis", {"type": "schemas"})
    c.add("z", [0.0, 0.0, 1.0], "z axis", {"type": "examples"})
    return c.freeze()


@pytest.fixture
def built(sample_chunks: list[Chunk], embedder: MockEmbedder) -> Collection:
    return CollectionBuilder(embedder, "simple-container-docs", pause_seconds=0).build(
        sample_chunks
    ).collection


# ---------------------------------------------------------------------------
# search_vector
# ---------------------------------------------------------------------------


class TestSearchVector:
    def test_ordering(self, axes: Collection):
        results = search_vector(axes, [1.0, 0.2, 0.0], limit=4)
        assert [r.id for r in results] == ["x", "xy", "y", "z"]
        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)

    def test_scores_are_cosine(self, axes: Collection):
        results = search_vector(axes, [2.0, 0.0, 0.0], limit=2)
        assert results[0].score == pytest.approx(1.0)
        assert results[1].score == pytest.approx(1 / np.sqrt(2))

    def test_limit_truncates(self, axes: Collection):
        assert len(search_vector(axes, [1.0, 0.0, 0.0], limit=2)) == 2

    def test_limit_larger_than_collection(self, axes: Collection):
        assert len(search_vector(axes, [1.0, 0.0, 0.0], limit=50)) == 4

    def test_ties_keep_insertion_order(self):
        c = Collection("ties")
        for name in ("first", "second", "third"):
            c.add(name, [0.0, 1.0], name)
        results = search_vector(c.freeze(), [0.0, 1.0], limit=3)
        assert [r.id for r in results] == ["first", "second", "third"]

    def test_result_carries_text_and_metadata(self, axes: Collection):
        top = search_vector(axes, [0.0, 0.0, 1.0], limit=1)[0]
        assert isinstance(top, SearchResult)
        assert top.text == "z axis"
        assert top.metadata == {"type": "examples"}

    @pytest.mark.parametrize("limit", [0, -1, True, 2.5, "3"])
    def test_invalid_limit(self, axes: Collection, limit):
        with pytest.raises(ContractViolation):
            search_vector(axes, [1.0, 0.0, 0.0], limit=limit)

    def test_dimension_mismatch(self, axes: Collection):
        with pytest.raises(ContractViolation, match="dimension"):
            search_vector(axes, [1.0, 0.0], limit=1)

    def test_empty_collection(self):
        assert search_vector(Collection("empty").freeze(), [1.0, 0.0], limit=5) == []


# ---------------------------------------------------------------------------
# search
# ---------------------------------------------------------------------------


class TestSearch:
    def test_exact_text_ranks_first(self, built: Collection, embedder: MockEmbedder):
        text = built.texts()[3]
        results = search(built, text, 5, embedder)
        assert results[0].id == built.ids[3]
        assert results[0].score == pytest.approx(1.0, abs=1e-5)
        assert len(results) == 5

    def test_empty_collection_does_not_embed(self):
        embedder = FixedQueryEmbedder([1.0, 0.0])
        assert search(Collection("empty").freeze(), "anything", 5, embedder) == []
        assert embedder.queries == []

    def test_zero_limit_rejected_before_embedding(self, axes: Collection):
        embedder = FixedQueryEmbedder([1.0, 0.0, 0.0])
        with pytest.raises(ContractViolation):
            search(axes, "question", 0, embedder)
        assert embedder.queries == []

    def test_numpy_integer_limit(self, built: Collection, embedder: MockEmbedder):
        results = search(built, built.texts()[0], np.int64(2), embedder)
        assert len(results) == 2

    @pytest.mark.parametrize("limit", [True, 2.5, "3"])
    def test_invalid_limit(self, axes: Collection, limit):
        with pytest.raises(ContractViolation):
            search(axes, "question", limit, FixedQueryEmbedder([1.0, 0.0, 0.0]))

    def test_zero_limit_on_empty_collection(self):
        with pytest.raises(ContractViolation):
            search(Collection("empty").freeze(), "question", 0, FixedQueryEmbedder([1.0]))

    def test_provider_mismatch(self, built: Collection):
        with pytest.raises(ContractViolation):
            search(built, "question", 3, MockEmbedder(dim=16))

    def test_uses_query_embedding(self, axes: Collection):
        embedder = FixedQueryEmbedder([0.0, 1.0, 0.0])
        results = search(axes, "vertical", 1, embedder)
        assert [r.id for r in results] == ["y"]
        assert embedder.queries == ["vertical"]

    def test_concurrent_queries(self, built: Collection, embedder: MockEmbedder):
        expected = [r.id for r in search(built, "deploy", 3, embedder)]
        seen: list[list[str]] = []
        lock = threading.Lock()

        def worker() -> None:
            ids = [r.id for r in search(built, "deploy", 3, embedder)]
            with lock:
                seen.append(ids)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert seen == [expected] * 8


# ---------------------------------------------------------------------------
# info and loading
# ---------------------------------------------------------------------------


class TestInfo:
    def test_built_collection(self, built: Collection):
        details = info(built)
        assert isinstance(details, CollectionInfo)
        assert details.name == "simple-container-docs"
        assert details.entry_count == 5
        assert details.size_bytes == len(export_collection(built))

    def test_loaded_collection_reports_snapshot_size(self, built: Collection, tmp_path: Path):
        path = tmp_path / "docs.snapshot"
        size = save_snapshot(built, path)
        details = info(load_collection(path=path))
        assert details.size_bytes == size
        assert details.entry_count == 5

    def test_empty(self):
        details = info(Collection("empty").freeze())
        assert details.entry_count == 0
        assert details.size_bytes > 0


class TestLoadCollection:
    def test_from_bytes(self, built: Collection):
        loaded = load_collection(data=export_collection(built))
        assert loaded.ids == built.ids

    def test_needs_exactly_one_source(self, built: Collection, tmp_path: Path):
        with pytest.raises(ContractViolation):
            load_collection()
        with pytest.raises(ContractViolation):
            load_collection(path=tmp_path / "x", data=b"")

    def test_corrupt(self):
        with pytest.raises(DecodeFailure):
            load_collection(data=b"nope")


# ---------------------------------------------------------------------------
# QueryEngine
# ---------------------------------------------------------------------------


class TestQueryEngine:
    def test_from_snapshot(self, built: Collection, embedder: MockEmbedder, tmp_path: Path):
        path = tmp_path / "docs.snapshot"
        save_snapshot(built, path)

        engine = QueryEngine.from_snapshot(path, embedder)
        results = engine.search(built.texts()[0])

        assert len(results) == 5
        assert results[0].id == built.ids[0]
        assert engine.info().entry_count == 5

    def test_freezes_collection(self, embedder: MockEmbedder):
        c = Collection("open")
        c.add("a", embedder.embed("alpha"), "alpha")
        engine = QueryEngine(c, embedder)
        assert engine.collection.frozen
        assert engine.search("alpha", limit=1)[0].id == "a"

    def test_default_limit(self, embedder: MockEmbedder):
        c = Collection("many")
        for i in range(8):
            c.add(f"e{i}", embedder.embed(f"entry {i}"), f"entry {i}")
        assert len(QueryEngine(c, embedder).search("entry")) == 5
