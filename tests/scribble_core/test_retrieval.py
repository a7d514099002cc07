from __future__ import annotations

import logging
from pathlib import Path

import pytest

from scribble_core.retrieval import LocalRetrievalIndex, normalize_text, similarity, tokenize
from scribble_core.types import Document


def test_normalize_and_tokenize() -> None:
    assert normalize_text("Hello, World!!") == "hello world"
    assert normalize_text("  --a--b--  ") == "a b"
    assert tokenize("An ox ate THE hay, quickly") == ["ate", "the", "hay", "quickly"]


def test_similarity_is_share_of_query_tokens_found() -> None:
    assert similarity("machine learning", "Intro to Machine Learning") == 1.0
    assert similarity("machine learning", "cooking recipes") == 0.0
    assert similarity("machine learning basics", "machine learning") == pytest.approx(2 / 3)


def test_similarity_ignores_short_and_repeated_tokens() -> None:
    assert similarity("an ox", "an ox") == 0.0
    assert similarity("cats cats cats dogs", "cats only") == 0.5
    assert similarity("anything", "") == 0.0


def test_search_ranks_by_score_and_drops_low_matches(tmp_path: Path) -> None:
    index = LocalRetrievalIndex(tmp_path / "docs.idx")
    index.index_document(Document(id="a", content="python packaging guide", title="A"))
    index.index_document(Document(id="b", content="python testing and packaging tips", title="B"))
    index.index_document(Document(id="c", content="gardening notes", title="C"))

    results = index.search_documents("python packaging tips")

    assert [doc.id for doc in results] == ["b", "a"]
    assert results[0].relevance_score == 1.0
    assert results[1].relevance_score == pytest.approx(2 / 3)


def test_search_keeps_insertion_order_for_ties_and_limits_results(tmp_path: Path) -> None:
    index = LocalRetrievalIndex(tmp_path / "docs.idx")
    for doc_id in ("first", "second", "third"):
        index.index_document(Document(id=doc_id, content="shared keyword here"))

    results = index.search_documents("keyword", max_results=2)

    assert [doc.id for doc in results] == ["first", "second"]
    assert index.search_documents("keyword", max_results=0) == []


def test_search_excludes_scores_at_the_cutoff(tmp_path: Path) -> None:
    index = LocalRetrievalIndex(tmp_path / "docs.idx")
    index.index_document(Document(id="one", content="alpha notes"))
    index.index_document(Document(id="two", content="alpha bravo notes"))
    query = "alpha bravo charlie delta echo foxtrot golf hotel india juliet"

    assert similarity(query, "alpha notes") == 1 / 10

    results = index.search_documents(query)

    assert [doc.id for doc in results] == ["two"]
    assert results[0].relevance_score == pytest.approx(0.2)


def test_search_returns_copies(tmp_path: Path) -> None:
    index = LocalRetrievalIndex(tmp_path / "docs.idx")
    index.index_document(Document(id="a", content="alpha beta gamma"))

    result = index.search_documents("alpha")[0]
    result.content = "mutated"

    assert index.get("a").content == "alpha beta gamma"
    assert index.get("a").relevance_score == 0.0


def test_index_document_upserts_by_id(tmp_path: Path) -> None:
    index = LocalRetrievalIndex(tmp_path / "docs.idx")
    index.index_document(Document(id="a", content="old text"))
    index.index_document(Document(id="b", content="other"))
    index.index_document(Document(id="a", content="new text"))

    assert len(index) == 2
    assert [doc.id for doc in index.documents()] == ["a", "b"]
    assert index.get("a").content == "new text"


def test_remove_and_clear(tmp_path: Path) -> None:
    index = LocalRetrievalIndex(tmp_path / "docs.idx")
    index.index_document(Document(id="a", content="text"))

    assert index.remove_document("missing") is False
    assert index.remove_document("a") is True
    assert len(index) == 0

    index.index_document(Document(id="b", content="text"))
    index.clear()
    assert index.documents() == []


def test_save_and_reload_multiline_content(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "docs.idx"
    with LocalRetrievalIndex(path) as index:
        index.index_document(
            Document(id="doc_1", content="line one\nline two\n\nline four", title="Notes", source="user_document")
        )
        index.index_document(Document(id="doc_2", content="", title="Empty"))

    reloaded = LocalRetrievalIndex(path)

    assert [doc.id for doc in reloaded.documents()] == ["doc_1", "doc_2"]
    first = reloaded.get("doc_1")
    assert first.content == "line one\nline two\n\nline four"
    assert first.title == "Notes"
    assert first.source == "user_document"
    assert reloaded.get("doc_2").content == ""


def test_file_format_is_line_oriented(tmp_path: Path) -> None:
    path = tmp_path / "docs.idx"
    index = LocalRetrievalIndex(path)
    index.index_document(Document(id="x", content="body", title="T", source="S"))

    assert index.save() is True
    assert path.read_text(encoding="utf-8") == (
        "---DOC_START---\nID:x\nTITLE:T\nSOURCE:S\nCONTENT:body\n---DOC_END---\n"
    )


def test_missing_file_loads_empty(tmp_path: Path) -> None:
    index = LocalRetrievalIndex(tmp_path / "absent.idx")

    assert len(index) == 0
    assert not (tmp_path / "absent.idx").exists()


def test_malformed_records_are_skipped(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    path = tmp_path / "docs.idx"
    path.write_text(
        "garbage before any record\n"
        "---DOC_START---\nID:ok\nTITLE:Good\nCONTENT:kept\n---DOC_END---\n"
        "---DOC_START---\nID:dup\nCONTENT:first\n---DOC_END---\n"
        "---DOC_START---\nID:dup\nCONTENT:second\n---DOC_END---\n"
        "---DOC_START---\nID:cut\nCONTENT:never terminated\nmore\n",
        encoding="utf-8",
    )

    with caplog.at_level(logging.WARNING, logger="scribble_core.retrieval"):
        index = LocalRetrievalIndex(path)

    assert [doc.id for doc in index.documents()] == ["ok", "dup"]
    assert index.get("dup").content == "second"
    assert index.get("ok").title == "Good"
    assert "unterminated" in caplog.text


def test_save_failure_is_reported(tmp_path: Path) -> None:
    target = tmp_path / "as_directory"
    target.mkdir()
    index = LocalRetrievalIndex(target)
    index.index_document(Document(id="a", content="text"))

    assert index.save() is False
    assert len(index) == 1
