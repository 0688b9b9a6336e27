"""
tinyretriever：检索器与提示词模板的使用文档及配套实现。

说明：
docs/ 下的页面介绍检索器接口（query 进、documents 出）与 partial prompt template；
本包提供页面示例中用到的检索器、策略对照表，以及校验文档示例输出的 doccheck。
为避免导入时强制依赖 faiss/torch 等重组件，这里采用延迟导入（PEP 562：__getattr__）。
"""

from __future__ import annotations

from typing import Any

__all__ = [
    # 策略对照表
    "LLMUsage",
    "RetrievalStrategy",
    "list_strategies",
    "get_strategy",
    "filter_strategies",
    "render_markdown_table",
    # 提示词
    "bind_partials",
    "with_current_date",
    "get_datetime",
    # 检索
    "Searcher",
    "BM25Retriever",
    "VectorStoreRetriever",
    "EnsembleRetriever",
    "RerankRetriever",
    # Embeddings
    "BaseEmbedding",
    "HashingEmbedding",
    "HFSTEmbedding",
    # 文档
    "load_documents",
    "check_docs",
]

_CATALOG = ("LLMUsage", "RetrievalStrategy", "list_strategies", "get_strategy", "filter_strategies", "render_markdown_table")
_PROMPTS = ("bind_partials", "with_current_date", "get_datetime")
_RETRIEVERS = ("BM25Retriever", "VectorStoreRetriever", "EnsembleRetriever", "RerankRetriever")


def __getattr__(name: str) -> Any:
    if name in _CATALOG:
        from . import catalog

        return getattr(catalog, name)

    if name in _PROMPTS:
        from . import prompts

        return getattr(prompts, name)

    if name == "Searcher":
        from .searcher import Searcher

        return Searcher

    if name in _RETRIEVERS:
        from . import retrievers

        return getattr(retrievers, name)

    if name in ("BaseEmbedding", "HashingEmbedding", "HFSTEmbedding"):
        from . import embedding

        return getattr(embedding, name)

    if name == "load_documents":
        from .loaders import load_documents

        return load_documents

    if name == "check_docs":
        from .doccheck import check_docs

        return check_docs

    raise AttributeError(name)
