"""
检索器实现。全部继承 langchain_core 的 BaseRetriever，对外只有一个操作：

    docs = retriever.invoke("query")
"""

from .bm25 import BM25Retriever
from .ensemble import EnsembleRetriever
from .fusion import dedup_fuse, doc_key, fuse_documents, rrf_fuse
from .rerank import RankerBase, RerankerBGEM3, RerankRetriever
from .vectorstore import VectorStoreRetriever

__all__ = [
    "BM25Retriever",
    "EnsembleRetriever",
    "RankerBase",
    "RerankRetriever",
    "RerankerBGEM3",
    "VectorStoreRetriever",
    "dedup_fuse",
    "doc_key",
    "fuse_documents",
    "rrf_fuse",
]
