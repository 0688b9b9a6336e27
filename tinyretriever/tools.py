from __future__ import annotations

import os
from functools import lru_cache

from langchain_core.tools import tool
from pydantic import BaseModel, Field

from tinyretriever.config import load_settings
from tinyretriever.observation import documents_to_items, format_observation_for_llm
from tinyretriever.searcher import Searcher


@lru_cache(maxsize=8)
def _get_searcher(db_name: str) -> Searcher:
    settings = load_settings()
    base_dir = os.path.join(settings.db_root_dir, str(db_name))
    if not os.path.isdir(base_dir):
        raise FileNotFoundError(f"数据库目录不存在：{base_dir}")
    searcher = Searcher.from_model_ids(
        emb_model_id=settings.emb_model_id,
        ranker_model_id=settings.rerank_model_id,
        device=settings.device,
        base_dir=base_dir,
        emb_batch_size=settings.emb_batch_size,
        query_instruction=settings.emb_query_instruction,
    )
    searcher.load_db()
    return searcher


def _hyde_query(query: str) -> str:
    from tinyretriever.hyde import expand_query, load_hf_generator

    return expand_query(query, load_hf_generator(load_settings().hyde_model_id))


class RAGSearchInput(BaseModel):
    query: str = Field(description="用户问题/检索查询（必填）")
    topk: int = Field(default=5, ge=1, le=20, description="返回条数（1~20）")
    db_name: str = Field(description="数据库名，即 db_root_dir 下的子目录名（必填）")
    is_hyde: bool = Field(default=False, description="是否启用 HyDE 查询扩展用于向量检索（默认 False）")


@tool("rag_search", args_schema=RAGSearchInput)
def rag_search(query: str, db_name: str, topk: int = 5, is_hyde: bool = False) -> str:
    """
    在指定数据库中进行证据检索（BM25 + 向量召回，RRF 融合后 rerank），返回带来源的片段列表。
    当你需要从已建库的资料中寻找答案时使用。
    """
    q = (query or "").strip()
    if not q:
        return format_observation_for_llm({"items": [], "error": "query 不能为空"})

    name = str(db_name or "").strip()
    if not name:
        return format_observation_for_llm({"items": [], "error": "db_name 不能为空"})

    topk = max(1, min(20, int(topk) if topk is not None else 5))
    settings = load_settings()
    searcher = _get_searcher(name)

    emb_q = _hyde_query(q) if is_hyde else q
    docs = searcher.search(
        q,
        top_n=topk,
        recall_k=max(1, topk * settings.recall_factor),
        fusion_method="rrf",
        rrf_k=settings.rrf_k,
        bm25_weight=settings.bm25_weight,
        emb_weight=settings.emb_weight,
        emb_query_text=emb_q,
    )
    return format_observation_for_llm({"query": q, "topk": topk, "db_name": name, "items": documents_to_items(docs)})
