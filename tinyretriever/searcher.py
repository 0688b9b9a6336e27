from __future__ import annotations

import os
from typing import Any, List, Optional

from langchain_core.documents import Document
from langchain_core.retrievers import BaseRetriever

from tinyretriever.embedding.base_emb import BaseEmbedding
from tinyretriever.logging_utils import logger
from tinyretriever.retrievers.bm25 import BM25Retriever
from tinyretriever.retrievers.ensemble import EnsembleRetriever
from tinyretriever.retrievers.fusion import fuse_documents
from tinyretriever.retrievers.rerank import RankerBase, RerankRetriever
from tinyretriever.retrievers.vectorstore import VectorStoreRetriever
from tinyretriever.utils import item_to_doc


class Searcher:
    """
    单库混合检索：BM25 + 向量召回 -> 融合 -> （可选）rerank。
    目录结构：
      <base_dir>/bm_corpus
      <base_dir>/faiss_idx
    """

    def __init__(
        self,
        *,
        embedding: BaseEmbedding,
        ranker: Optional[RankerBase] = None,
        base_dir: str = "data/db",
        emb_batch_size: int = 16,
    ) -> None:
        self.base_dir = base_dir
        self.bm25_dir = os.path.join(self.base_dir, "bm_corpus")
        self.faiss_dir = os.path.join(self.base_dir, "faiss_idx")

        self.embedding = embedding
        self.ranker = ranker
        self.emb_batch_size = max(1, int(emb_batch_size))

        self.bm25_retriever: Optional[BM25Retriever] = None
        self.emb_retriever: Optional[VectorStoreRetriever] = None

        logger.info("Searcher init success, base_dir: {}", self.base_dir)

    @classmethod
    def from_model_ids(
        cls,
        *,
        emb_model_id: str,
        ranker_model_id: str = "",
        device: str = "cpu",
        base_dir: str = "data/db",
        emb_batch_size: int = 16,
        query_instruction: str = "",
    ) -> "Searcher":
        # 延迟导入，避免仅做 BM25/文档检查时加载 torch
        from tinyretriever.embedding.hf_emb import HFSTEmbedding
        from tinyretriever.retrievers.rerank import RerankerBGEM3

        embedding = HFSTEmbedding(path=emb_model_id, device=device, query_instruction=query_instruction)
        ranker = RerankerBGEM3(model_id_key=ranker_model_id, device=device) if ranker_model_id else None
        return cls(embedding=embedding, ranker=ranker, base_dir=base_dir, emb_batch_size=emb_batch_size)

    def build_db(self, docs: List[Any]) -> None:
        if not docs:
            raise ValueError("构建失败：docs 为空，无法构建 BM25/向量索引。")
        documents = [item_to_doc(d) for d in docs]

        self.bm25_retriever = BM25Retriever.from_documents(documents)
        logger.info("bm25 retriever build success...")

        self.emb_retriever = VectorStoreRetriever.from_documents(
            documents, self.embedding, batch_size=self.emb_batch_size
        )
        logger.info("emb retriever build success...")

    def _require_loaded(self) -> None:
        if self.bm25_retriever is None or self.emb_retriever is None:
            raise ValueError("数据库未构建或未加载，请先调用 build_db() 或 load_db()。")

    def save_db(self) -> None:
        self._require_loaded()
        self.bm25_retriever.save(self.bm25_dir)
        logger.info("bm25 retriever save success...")
        self.emb_retriever.save(self.faiss_dir)
        logger.info("emb retriever save success...")

    def load_db(self) -> None:
        self.bm25_retriever = BM25Retriever.load(self.bm25_dir)
        logger.info("bm25 retriever load success...")
        self.emb_retriever = VectorStoreRetriever.load(self.faiss_dir, self.embedding, batch_size=self.emb_batch_size)
        logger.info("emb retriever load success...")

    @staticmethod
    def _recall_k(top_n: int, recall_k: Optional[int]) -> int:
        top_n = max(1, int(top_n))
        recall_k = int(recall_k) if recall_k is not None else 2 * top_n
        return max(top_n, recall_k)

    def search(
        self,
        query: str,
        *,
        top_n: int = 3,
        recall_k: Optional[int] = None,
        fusion_method: str = "rrf",
        rrf_k: int = 60,
        bm25_weight: float = 1.0,
        emb_weight: float = 1.0,
        emb_query_text: Optional[str] = None,
    ) -> List[Document]:
        """
        emb_query_text：只用于向量召回的查询文本（例如 HyDE 扩展后的文本）；
        BM25 与 rerank 始终使用原始 query。
        """
        self._require_loaded()
        top_n = max(1, int(top_n))
        recall_k = self._recall_k(top_n, recall_k)

        bm25_list = self.bm25_retriever.search(query, recall_k)
        logger.info("bm25 recall text num: {}", len(bm25_list))

        emb_list = self.emb_retriever.search(emb_query_text or query, recall_k)
        logger.info("emb recall text num: {}", len(emb_list))

        candidates = fuse_documents(
            [bm25_list, emb_list],
            top_k=recall_k,
            method=fusion_method,
            rrf_k=rrf_k,
            weights=[bm25_weight, emb_weight],
        )
        logger.info("fusion candidate text num: {}", len(candidates))
        if self.ranker is None or not candidates:
            return candidates[:top_n]
        return [
            Document(page_content=doc.page_content, metadata={**doc.metadata, "rerank_score": float(score)}, id=doc.id)
            for score, doc in self.ranker.rank(query, candidates, top_n)
        ]

    def as_retriever(
        self,
        *,
        top_n: int = 3,
        recall_k: Optional[int] = None,
        fusion_method: str = "rrf",
        rrf_k: int = 60,
        bm25_weight: float = 1.0,
        emb_weight: float = 1.0,
    ) -> BaseRetriever:
        self._require_loaded()
        top_n = max(1, int(top_n))
        recall_k = self._recall_k(top_n, recall_k)
        ensemble = EnsembleRetriever(
            retrievers=[
                self.bm25_retriever.model_copy(update={"k": recall_k}),
                self.emb_retriever.model_copy(update={"k": recall_k}),
            ],
            weights=[bm25_weight, emb_weight],
            method=fusion_method,
            rrf_k=rrf_k,
            k=recall_k if self.ranker is not None else top_n,
        )
        if self.ranker is None:
            return ensemble
        return RerankRetriever(base_retriever=ensemble, ranker=self.ranker, top_n=top_n)
