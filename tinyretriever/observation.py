from __future__ import annotations

from typing import Any, Dict, List, Sequence

from langchain_core.documents import Document

"""
将检索结果格式化为适合回传给大模型的 Observation 文本。
"""

_SCORE_KEYS = ("rerank_score", "fusion_score", "score")


def _format_source(meta: Dict[str, Any]) -> str:
    source_path = str(meta.get("source_path") or "").strip()
    page = meta.get("page", None)
    if source_path:
        if page:
            return f"{source_path} 第{page}页"
        return source_path
    source = str(meta.get("source") or "").strip()
    return source or "未知来源"


def documents_to_items(docs: Sequence[Document]) -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = []
    for i, doc in enumerate(docs, start=1):
        meta = dict(doc.metadata or {})
        score = next((meta[k] for k in _SCORE_KEYS if k in meta), None)
        items.append(
            {
                "rank": i,
                "score": float(score) if score is not None else None,
                "id": str(doc.id or meta.get("doc_id") or ""),
                "text": doc.page_content,
                "meta": meta,
            }
        )
    return items


def format_observation_for_llm(result: Dict[str, Any], *, max_chars_per_item: int = 500) -> str:
    """
    约定输入结构（与 rag_search 工具一致）：
      {
        "items": [{"rank": 1, "text": "...", "meta": {...}}, ...],
        "error": "..."（可选）
      }
    """
    items = result.get("items") or []
    err = result.get("error")
    if not isinstance(items, list):
        items = []

    lines: List[str] = []
    if err:
        lines.append(f"error={err}")

    display_rank = 0
    for it in items:
        if not isinstance(it, dict):
            continue
        meta = it.get("meta") or {}
        if not isinstance(meta, dict):
            meta = {}
        text = str(it.get("text") or "").strip()
        if not text:
            continue

        display_rank += 1
        t = text.replace("\r\n", "\n").replace("\r", "\n")
        t = " ".join([x.strip() for x in t.splitlines() if x.strip()]).strip()
        if max_chars_per_item and len(t) > max_chars_per_item:
            t = t[:max_chars_per_item].rstrip() + "..."
        lines.append(f"[{display_rank}] {t}")
        lines.append(f"source={_format_source(meta)}")

    if display_rank == 0 and not err:
        lines.append("（无结果）")

    return "\n".join(lines).strip()
