from abc import ABC, abstractmethod
from typing import Any, List, Sequence, Tuple

from langchain_core.callbacks import CallbackManagerForRetrieverRun
from langchain_core.documents import Document
from langchain_core.retrievers import BaseRetriever

from tinyretriever.logging_utils import logger


class RankerBase(ABC):
    def __init__(self, model_id_key: str = "", is_api: bool = False) -> None:
        self.model_id_key = model_id_key
        self.is_api = is_api

    @abstractmethod
    def rank(self, query: str, candidates: Sequence[Document], top_n: int = 3) -> List[Tuple[float, Document]]:
        """返回按分数从高到低排序的 (score, doc)，最多 top_n 条。"""
        raise NotImplementedError


class RerankerBGEM3(RankerBase):
    """cross-encoder 精排（bge-reranker 系列）。"""

    def __init__(self, model_id_key: str, device: str = "", is_api: bool = False) -> None:
        super().__init__(model_id_key, is_api)
        import torch
        from transformers import AutoModelForSequenceClassification, AutoTokenizer

        self._torch = torch
        self.device = torch.device(device if device else "cuda:0" if torch.cuda.is_available() else "cpu")
        self.tokenizer = AutoTokenizer.from_pretrained(model_id_key)
        self.model = AutoModelForSequenceClassification.from_pretrained(model_id_key)
        self.model.to(self.device)
        self.model.eval()

    def rank(self, query: str, candidates: Sequence[Document], top_n: int = 3) -> List[Tuple[float, Document]]:
        if not candidates:
            return []
        pairs = [[query, doc.page_content] for doc in candidates]

        with self._torch.no_grad():
            inputs = self.tokenizer(pairs, padding=True, truncation=True, return_tensors="pt", max_length=512).to(self.device)
            outputs = self.model(**inputs, return_dict=True)
            scores = outputs.logits.view(-1).float().cpu().tolist()

        scored: List[Tuple[float, Document]] = list(zip([float(s) for s in scores], candidates))
        scored.sort(key=lambda x: x[0], reverse=True)
        return scored[: max(1, int(top_n))]


class RerankRetriever(BaseRetriever):
    """
    在任意检索器之上做精排：先召回候选，再用 ranker 重新打分并保留 top_n。
    metadata["rerank_score"] 为精排分数。
    """

    base_retriever: BaseRetriever
    ranker: Any
    top_n: int = 3

    def _get_relevant_documents(
        self, query: str, *, run_manager: CallbackManagerForRetrieverRun
    ) -> List[Document]:
        candidates = self.base_retriever.invoke(query, config={"callbacks": run_manager.get_child()})
        logger.info("rerank candidate num: {}", len(candidates))
        if not candidates:
            return []
        ranked = self.ranker.rank(query, candidates, self.top_n)
        return [
            Document(page_content=doc.page_content, metadata={**doc.metadata, "rerank_score": float(score)}, id=doc.id)
            for score, doc in ranked
        ]
