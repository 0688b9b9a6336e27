import sys

sys.path.append(".")

import os
import tempfile
from typing import List, Sequence, Tuple

import pytest
from langchain_core.documents import Document

from tinyretriever.embedding import HashingEmbedding
from tinyretriever.hyde import expand_query
from tinyretriever.retrievers import EnsembleRetriever, RankerBase, RerankRetriever
from tinyretriever.searcher import Searcher

_ITEMS = [
    {"id": "c1", "text": "承担民事责任的方式主要有停止侵害、排除妨碍、消除危险。", "meta": {"source_path": "minfadian.txt"}},
    {"id": "c2", "text": "醉酒驾驶机动车的，处拘役，并处罚金。", "meta": {"source_path": "xingfa.txt"}},
    {"id": "c3", "text": "自然人享有生命权，任何组织或者个人不得侵害他人的生命权。", "meta": {"source_path": "minfadian.txt"}},
]


class _ReverseRanker(RankerBase):
    """测试用：把候选顺序反过来。"""

    def rank(self, query: str, candidates: Sequence[Document], top_n: int = 3) -> List[Tuple[float, Document]]:
        n = len(candidates)
        return [(float(i), d) for i, d in enumerate(candidates)][::-1][:top_n] if n else []


def test_search_requires_build_or_load() -> None:
    searcher = Searcher(embedding=HashingEmbedding(), base_dir="unused")
    with pytest.raises(ValueError):
        searcher.search("生命权")
    with pytest.raises(ValueError):
        searcher.build_db([])


def test_build_save_load_and_search() -> None:
    with tempfile.TemporaryDirectory() as d:
        searcher = Searcher(embedding=HashingEmbedding(), base_dir=d, emb_batch_size=2)
        searcher.build_db(_ITEMS)
        searcher.save_db()
        assert os.path.isfile(os.path.join(d, "bm_corpus", "bm25_data.pkl"))
        assert os.path.isfile(os.path.join(d, "faiss_idx", "index_256", "invert_index.faiss"))

        loaded = Searcher(embedding=HashingEmbedding(), base_dir=d)
        loaded.load_db()
        docs = loaded.search("醉酒驾驶", top_n=1)
        assert len(docs) == 1
        assert docs[0].id == "c2"
        assert docs[0].metadata["source_path"] == "xingfa.txt"

        dedup = loaded.search("生命权", top_n=2, fusion_method="dedup")
        assert dedup[0].id == "c3"


def test_emb_query_text_only_drives_vector_side() -> None:
    searcher = Searcher(embedding=HashingEmbedding(), base_dir="unused")
    searcher.build_db(_ITEMS)
    expanded = expand_query("生命权", lambda prompt: "醉酒驾驶机动车")
    assert expanded == "生命权 醉酒驾驶机动车"

    docs = searcher.search("生命权", top_n=3, bm25_weight=1.0, emb_weight=0.0, emb_query_text=expanded)
    # BM25 使用原始 query，emb 权重为 0，第一名仍应是生命权条文
    assert docs[0].id == "c3"


def test_reranker_and_as_retriever() -> None:
    searcher = Searcher(embedding=HashingEmbedding(), ranker=_ReverseRanker(), base_dir="unused")
    searcher.build_db(_ITEMS)

    docs = searcher.search("生命权 侵害", top_n=1, recall_k=3)
    assert len(docs) == 1
    assert "rerank_score" in docs[0].metadata

    retriever = searcher.as_retriever(top_n=2, recall_k=5)
    assert isinstance(retriever, RerankRetriever)
    assert isinstance(retriever.base_retriever, EnsembleRetriever)
    assert [r.k for r in retriever.base_retriever.retrievers] == [5, 5]
    # 召回数量只作用于副本
    assert searcher.bm25_retriever.k == 4
    assert len(retriever.invoke("生命权 侵害")) <= 2

    plain = Searcher(embedding=HashingEmbedding(), base_dir="unused")
    plain.build_db(_ITEMS)
    assert isinstance(plain.as_retriever(top_n=1), EnsembleRetriever)
    assert len(plain.as_retriever(top_n=1).invoke("生命权")) == 1


def test_expand_query_skips_empty_question() -> None:
    called = []
    assert expand_query("   ", lambda p: called.append(p) or "x") == ""
    assert not called


if __name__ == "__main__":
    test_search_requires_build_or_load()
    test_build_save_load_and_search()
    test_emb_query_text_only_drives_vector_side()
    test_reranker_and_as_retriever()
    test_expand_query_skips_empty_question()
    print("ok")
