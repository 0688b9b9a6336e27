import sys

sys.path.append(".")

import pytest
from langchain_core.documents import Document

from tinyretriever.retrievers.fusion import dedup_fuse, doc_key, fuse_documents, rrf_fuse


def _d(text: str, **meta) -> Document:
    return Document(page_content=text, metadata=meta)


def test_doc_key_priority() -> None:
    assert doc_key(Document(page_content="x", id="abc", metadata={"doc_id": "d"})) == "id:abc"
    assert doc_key(_d("x", doc_id="d")) == "doc_id:d"
    assert doc_key(_d("x")) == "text:x"


def test_rrf_rewards_documents_found_by_both_lists() -> None:
    bm25 = [_d("a"), _d("b"), _d("c")]
    emb = [_d("c"), _d("d")]
    fused = rrf_fuse([bm25, emb], top_k=10, k=60)
    assert [d.page_content for d in fused] == ["c", "a", "b", "d"]
    assert fused[0].metadata["fusion_score"] == pytest.approx(1 / 63 + 1 / 61)


def test_rrf_weights_and_truncation() -> None:
    bm25 = [_d("a"), _d("b")]
    emb = [_d("b"), _d("a")]
    fused = rrf_fuse([bm25, emb], top_k=1, weights=[0.0, 1.0])
    assert [d.page_content for d in fused] == ["b"]

    with pytest.raises(ValueError):
        rrf_fuse([bm25, emb], top_k=1, weights=[1.0])


def test_dedup_prefers_first_list() -> None:
    fused = dedup_fuse([[_d("a"), _d("b")], [_d("b"), _d("c"), _d("d")]], top_k=3)
    assert [d.page_content for d in fused] == ["a", "b", "c"]


def test_fuse_documents_dispatch() -> None:
    lists = [[_d("a")], [_d("b")]]
    assert [d.page_content for d in fuse_documents(lists, top_k=5, method="DEDUP")] == ["a", "b"]
    assert len(fuse_documents(lists, top_k=5)) == 2
    with pytest.raises(ValueError):
        fuse_documents(lists, top_k=5, method="borda")


if __name__ == "__main__":
    test_doc_key_priority()
    test_rrf_rewards_documents_found_by_both_lists()
    test_rrf_weights_and_truncation()
    test_dedup_prefers_first_list()
    test_fuse_documents_dispatch()
    print("ok")
