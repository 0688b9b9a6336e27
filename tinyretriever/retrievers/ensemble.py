from typing import Any, List, Optional

from langchain_core.callbacks import CallbackManagerForRetrieverRun
from langchain_core.documents import Document
from langchain_core.retrievers import BaseRetriever
from pydantic import model_validator

from tinyretriever.logging_utils import logger
from tinyretriever.retrievers.fusion import fuse_documents


class EnsembleRetriever(BaseRetriever):
    """
    多路召回 + 融合：依次调用每个检索器，再用 RRF（默认）或 dedup 合并。
    单路检索失败时记录错误并跳过，raise_on_error=True 时直接抛出。
    """

    retrievers: List[BaseRetriever]
    weights: Optional[List[float]] = None
    method: str = "rrf"
    rrf_k: int = 60
    k: int = 4
    raise_on_error: bool = False

    @model_validator(mode="after")
    def _check_config(self) -> "EnsembleRetriever":
        if not self.retrievers:
            raise ValueError("retrievers 不能为空")
        if self.weights is not None and len(self.weights) != len(self.retrievers):
            raise ValueError(f"weights 数量（{len(self.weights)}）与检索器数量（{len(self.retrievers)}）不一致")
        if (self.method or "").lower().strip() not in ("rrf", "dedup"):
            raise ValueError(f"不支持的融合方法：{self.method}")
        return self

    def _get_relevant_documents(
        self, query: str, *, run_manager: CallbackManagerForRetrieverRun
    ) -> List[Document]:
        ranked_lists: List[List[Document]] = []
        weights: List[float] = []
        for i, retriever in enumerate(self.retrievers):
            try:
                docs = retriever.invoke(query, config={"callbacks": run_manager.get_child(tag=f"retriever_{i + 1}")})
            except Exception as e:
                if self.raise_on_error:
                    raise
                logger.error("第 {} 路召回失败（{}）：{}", i + 1, type(retriever).__name__, str(e))
                continue
            logger.info("retriever_{} recall num: {}", i + 1, len(docs))
            ranked_lists.append(docs)
            weights.append(self.weights[i] if self.weights is not None else 1.0)

        if not ranked_lists:
            return []
        candidates = fuse_documents(
            ranked_lists,
            top_k=self.k,
            method=self.method,
            rrf_k=self.rrf_k,
            weights=weights,
        )
        logger.info("fusion candidate num: {}", len(candidates))
        return candidates
