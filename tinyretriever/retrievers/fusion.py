from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from langchain_core.documents import Document

__all__ = ["doc_key", "dedup_fuse", "fuse_documents", "rrf_fuse"]


def doc_key(doc: Document) -> str:
    """去重键：id > meta.doc_id > 正文。"""
    if doc.id:
        return f"id:{doc.id}"
    meta = doc.metadata or {}
    doc_id = meta.get("doc_id")
    if doc_id:
        return f"doc_id:{doc_id}"
    return f"text:{doc.page_content}"


def _check_weights(ranked_lists: Sequence[List[Document]], weights: Optional[Sequence[float]]) -> List[float]:
    if weights is None:
        return [1.0] * len(ranked_lists)
    if len(weights) != len(ranked_lists):
        raise ValueError(f"weights 数量（{len(weights)}）与召回列表数量（{len(ranked_lists)}）不一致")
    return [float(w) for w in weights]


def rrf_fuse(
    ranked_lists: Sequence[List[Document]],
    *,
    top_k: int,
    k: int = 60,
    weights: Optional[Sequence[float]] = None,
) -> List[Document]:
    """
    Reciprocal Rank Fusion (RRF)：
    每个列表已按相关性从高到低排好，score(d) = Σ w_i / (k + rank_i(d))。
    分数相同按首次出现顺序，融合分写入 metadata["fusion_score"]。
    """
    top_k = max(1, int(top_k))
    k = max(1, int(k))
    ws = _check_weights(ranked_lists, weights)

    score_map: Dict[str, float] = {}
    doc_map: Dict[str, Document] = {}

    for docs, weight in zip(ranked_lists, ws):
        for rank, doc in enumerate(docs, start=1):
            key = doc_key(doc)
            doc_map.setdefault(key, doc)
            score_map[key] = score_map.get(key, 0.0) + weight * (1.0 / (k + rank))

    fused = sorted(score_map.items(), key=lambda x: x[1], reverse=True)
    out: List[Document] = []
    for key, score in fused[:top_k]:
        doc = doc_map[key]
        out.append(
            Document(
                page_content=doc.page_content,
                metadata={**(doc.metadata or {}), "fusion_score": score},
                id=doc.id,
            )
        )
    return out


def dedup_fuse(ranked_lists: Sequence[List[Document]], *, top_k: int) -> List[Document]:
    """按列表顺序依次追加（第一个列表优先），去重后截断到 top_k。"""
    top_k = max(1, int(top_k))
    seen = set()
    out: List[Document] = []

    for docs in ranked_lists:
        for doc in docs:
            key = doc_key(doc)
            if key in seen:
                continue
            out.append(doc)
            seen.add(key)
            if len(out) >= top_k:
                return out
    return out


def fuse_documents(
    ranked_lists: Sequence[List[Document]],
    *,
    top_k: int,
    method: str = "rrf",
    rrf_k: int = 60,
    weights: Optional[Sequence[float]] = None,
) -> List[Document]:
    """
    融合候选集合：把多路召回列表合并为一份候选列表（去重后截断到 top_k）。

    - method="rrf"：Reciprocal Rank Fusion
    - method="dedup"：前面的列表优先 + 追加后续列表 + 去重
    """
    method = (method or "rrf").lower().strip()
    if method == "rrf":
        return rrf_fuse(ranked_lists, top_k=top_k, k=rrf_k, weights=weights)
    elif method == "dedup":
        _check_weights(ranked_lists, weights)
        return dedup_fuse(ranked_lists, top_k=top_k)
    else:
        raise ValueError(f"不支持的融合方法：{method}")
