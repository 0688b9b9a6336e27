import os
import time
from typing import Any, Iterable, List, Optional

from langchain_core.callbacks import CallbackManagerForRetrieverRun
from langchain_core.documents import Document
from langchain_core.retrievers import BaseRetriever
from pydantic import Field
from tqdm import tqdm

from tinyretriever.embedding.base_emb import BaseEmbedding
from tinyretriever.logging_utils import logger
from tinyretriever.retrievers.emb_index import EmbIndex
from tinyretriever.utils import doc_to_item, item_to_doc, read_jsonl_to_list, write_list_to_jsonl


class VectorStoreRetriever(BaseRetriever):
    """
    向量检索：faiss 倒排索引（invert_index）+ 文档前排索引（forward_index）。
    metadata["score"] 为余弦相似度，越大越相关。
    """

    embedding: BaseEmbedding
    index: Any = None
    forward_index: List[Document] = Field(default_factory=list)
    k: int = 4
    score_threshold: Optional[float] = None
    batch_size: int = 16

    def model_post_init(self, __context: Any) -> None:
        super().model_post_init(__context)
        if self.index is None:
            self.index = EmbIndex(self.embedding.dim)

    @classmethod
    def from_documents(cls, documents: Iterable[Any], embedding: BaseEmbedding, **kwargs: Any) -> "VectorStoreRetriever":
        retriever = cls(embedding=embedding, **kwargs)
        retriever.add_documents(list(documents))
        return retriever

    def add_documents(self, documents: List[Any]) -> None:
        docs = [item_to_doc(d) for d in documents]
        if not docs:
            return
        batch_size = max(1, int(self.batch_size))
        for start in tqdm(range(0, len(docs), batch_size), desc="emb build ", ascii=True):
            batch_docs = docs[start : start + batch_size]
            batch_embs = self.embedding.get_embeddings([d.page_content for d in batch_docs], batch_size=batch_size)
            self.add_embeddings(batch_embs, batch_docs)

    def add_embeddings(self, embs: List[List[float]], docs: List[Document]) -> None:
        if not docs:
            return
        if embs is None or len(embs) != len(docs):
            raise ValueError("add_embeddings: embs 与 docs 长度不一致")
        self.index.batch_insert(embs)
        self.forward_index.extend(docs)

    def search_by_vector(self, emb: List[float], top_n: Optional[int] = None) -> List[Document]:
        top_n = self.k if top_n is None else max(1, int(top_n))
        if len(self.index) == 0:
            return []
        distances, indices = self.index.search(emb, top_n)
        result: List[Document] = []
        for sim, doc_idx in zip(distances[0].tolist(), indices[0].tolist()):
            if doc_idx < 0 or doc_idx >= len(self.forward_index):
                continue
            if self.score_threshold is not None and sim < float(self.score_threshold):
                continue
            doc = self.forward_index[doc_idx]
            result.append(Document(page_content=doc.page_content, metadata={**doc.metadata, "score": float(sim)}, id=doc.id))
        return result

    def search(self, query: str, top_n: Optional[int] = None) -> List[Document]:
        return self.search_by_vector(self.embedding.get_query_embedding(query), top_n)

    def _get_relevant_documents(
        self, query: str, *, run_manager: CallbackManagerForRetrieverRun
    ) -> List[Document]:
        return self.search(query, self.k)

    def _index_folder(self, base_dir: str, index_name: str) -> str:
        name = index_name if index_name else "index_" + str(self.index.index_dim)
        return os.path.join(base_dir, name)

    def save(self, base_dir: str, index_name: str = "") -> str:
        folder = self._index_folder(base_dir, index_name)
        os.makedirs(folder, exist_ok=True)
        write_list_to_jsonl([doc_to_item(doc) for doc in self.forward_index], os.path.join(folder, "forward_index.txt"))
        self.index.save(os.path.join(folder, "invert_index.faiss"))
        logger.info("emb index saved: {}", folder)
        return folder

    @classmethod
    def load(cls, base_dir: str, embedding: BaseEmbedding, index_name: str = "", **kwargs: Any) -> "VectorStoreRetriever":
        retriever = cls(embedding=embedding, **kwargs)
        folder = retriever._index_folder(base_dir, index_name)
        inv_path = os.path.join(folder, "invert_index.faiss")
        fwd_path = os.path.join(folder, "forward_index.txt")
        if not os.path.isfile(inv_path) or not os.path.isfile(fwd_path):
            raise FileNotFoundError(
                f"向量索引文件不存在：{folder}（需要包含 invert_index.faiss 与 forward_index.txt）。"
                "请先完成建库并保存索引。"
            )

        t0 = time.time()
        retriever.index.load(inv_path)
        logger.info("向量倒排索引加载完成：{}，耗时 {:.1f}s", inv_path, time.time() - t0)

        forward: List[Document] = [item_to_doc(item) for item in read_jsonl_to_list(fwd_path)]
        if len(forward) != len(retriever.index):
            raise ValueError(f"前排索引条数（{len(forward)}）与向量条数（{len(retriever.index)}）不一致：{folder}")
        retriever.forward_index = forward
        logger.info("向量前排索引加载完成：{} 条", len(forward))
        return retriever
