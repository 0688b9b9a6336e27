import sys

sys.path.append(".")

import pytest

from tinyretriever import tools
from tinyretriever.embedding import HashingEmbedding
from tinyretriever.searcher import Searcher


def _fake_searcher(db_name: str) -> Searcher:
    searcher = Searcher(embedding=HashingEmbedding(), base_dir=db_name)
    searcher.build_db(
        [
            {"id": "a", "text": "自然人享有生命权。", "meta": {"source_path": "minfadian.txt"}},
            {"id": "b", "text": "醉酒驾驶机动车的，处拘役。", "meta": {"source_path": "xingfa.txt"}},
        ]
    )
    return searcher


def test_rag_search_tool_returns_observation(monkeypatch) -> None:
    monkeypatch.setenv("TINYRETRIEVER_DEVICE", "cpu")
    monkeypatch.setattr(tools, "_get_searcher", _fake_searcher)

    out = tools.rag_search.invoke({"query": "生命权", "db_name": "law", "topk": 1})
    lines = out.splitlines()
    assert lines[0] == "[1] 自然人享有生命权。"
    assert lines[1] == "source=minfadian.txt"
    assert len(lines) == 2


def test_rag_search_tool_rejects_empty_input(monkeypatch) -> None:
    monkeypatch.setenv("TINYRETRIEVER_DEVICE", "cpu")
    monkeypatch.setattr(tools, "_get_searcher", _fake_searcher)

    assert tools.rag_search.invoke({"query": "  ", "db_name": "law"}) == "error=query 不能为空"
    assert tools.rag_search.invoke({"query": "生命权", "db_name": " "}) == "error=db_name 不能为空"


def test_rag_search_tool_schema() -> None:
    assert tools.rag_search.name == "rag_search"
    fields = tools.RAGSearchInput.model_fields
    assert set(fields) == {"query", "topk", "db_name", "is_hyde"}
    assert fields["topk"].default == 5


def test_rag_search_missing_database_raises(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("TINYRETRIEVER_DB_ROOT_DIR", str(tmp_path))
    monkeypatch.setenv("TINYRETRIEVER_DEVICE", "cpu")

    with pytest.raises(FileNotFoundError):
        tools._get_searcher("no_such_db")
    with pytest.raises(FileNotFoundError):
        tools.rag_search.invoke({"query": "生命权", "db_name": "no_such_db"})
