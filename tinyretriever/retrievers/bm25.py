import os
import pickle
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from langchain_core.callbacks import CallbackManagerForRetrieverRun
from langchain_core.documents import Document
from langchain_core.retrievers import BaseRetriever
from pydantic import Field
from rank_bm25 import BM25Okapi
from tqdm import tqdm

from tinyretriever.logging_utils import logger
from tinyretriever.text import tokenize, warmup
from tinyretriever.utils import doc_to_item, item_to_doc


class BM25Retriever(BaseRetriever):
    """
    jieba 分词 + BM25Okapi 的关键词检索器。
    检索结果是原文档的副本，metadata["score"] 为 BM25 分数；与查询没有任何共同词的文档不返回（按词命中判断，不看分数正负）。
    """

    docs: List[Document] = Field(default_factory=list)
    tokenized_corpus: List[List[str]] = Field(default_factory=list)
    bm25: Any = None
    k: int = 4
    # 低于 max_score * k_percent / 2 的结果截掉；None 表示不截
    k_percent: Optional[float] = None
    stopwords: Optional[FrozenSet[str]] = None

    @classmethod
    def from_documents(
        cls,
        documents: Iterable[Any],
        *,
        stopwords: Optional[Iterable[str]] = None,
        **kwargs: Any,
    ) -> "BM25Retriever":
        retriever = cls(stopwords=frozenset(w.lower() for w in stopwords) if stopwords is not None else None, **kwargs)
        retriever.build(list(documents))
        return retriever

    @classmethod
    def from_texts(
        cls,
        texts: Iterable[str],
        metadatas: Optional[Iterable[Dict[str, Any]]] = None,
        **kwargs: Any,
    ) -> "BM25Retriever":
        texts = list(texts)
        metas = list(metadatas) if metadatas is not None else [{} for _ in texts]
        if len(metas) != len(texts):
            raise ValueError("from_texts: texts 与 metadatas 长度不一致")
        docs = [Document(page_content=t, metadata=m) for t, m in zip(texts, metas)]
        return cls.from_documents(docs, **kwargs)

    def tokenize(self, text: str) -> List[str]:
        return tokenize(text, self.stopwords)

    def build(self, documents: List[Any]) -> None:
        docs = [item_to_doc(d) for d in documents]
        if not docs:
            raise ValueError("构建失败：docs 为空，无法构建 BM25 索引。")
        warmup()
        tokenized = [self.tokenize(d.page_content) for d in tqdm(docs, desc="bm25 build ", ascii=True)]
        if not any(tokenized):
            raise ValueError("构建失败：分词后语料为空（全部是停用词或标点）。")
        self.docs = docs
        self.tokenized_corpus = tokenized
        # 初始化 BM25Okapi 实例
        self.bm25 = BM25Okapi(self.tokenized_corpus)

    def search(self, query: str, top_n: Optional[int] = None) -> List[Document]:
        """ 使用BM25算法检索最相似的文本。
        """
        if self.bm25 is None:
            raise ValueError("BM25 索引未构建或未加载。")

        top_n = self.k if top_n is None else max(1, int(top_n))
        tokenized_query = self.tokenize(query)
        if not tokenized_query:
            return []
        scores = self.bm25.get_scores(tokenized_query)

        # 只保留与查询有共同词的文档；高频词 idf 为负，命中文档的分数可能 <= 0
        query_terms = set(tokenized_query)
        matched = [i for i, toks in enumerate(self.tokenized_corpus) if query_terms.intersection(toks)]
        # 获取分数最高的前 N 个文本的索引
        top_n_indices = sorted(matched, key=lambda i: scores[i], reverse=True)[:top_n]

        threshold: Optional[float] = None
        # BM25 分数长尾分布，直接按 k_percent*max_score 截断过狠，这里用 k_percent/2
        if self.k_percent is not None and top_n_indices:
            kp = min(1.0, max(0.0, float(self.k_percent)))
            max_score = max(float(scores[i]) for i in top_n_indices)
            if max_score > 0:
                threshold = max_score * kp / 2

        result: List[Document] = []
        for i in top_n_indices:
            s = float(scores[i])
            if threshold is not None and s < threshold:
                continue
            doc = self.docs[i]
            result.append(Document(page_content=doc.page_content, metadata={**doc.metadata, "score": s}, id=doc.id))
        return result

    def _get_relevant_documents(
        self, query: str, *, run_manager: CallbackManagerForRetrieverRun
    ) -> List[Document]:
        return self.search(query, self.k)

    def save(self, base_dir: str, db_name: str = "bm25_data") -> str:
        """ 保存文档与分词结果，加载时无需重新分词。
        """
        if self.bm25 is None:
            raise ValueError("BM25 索引未构建，无法保存。")
        os.makedirs(base_dir, exist_ok=True)
        db_file_path = os.path.join(base_dir, (db_name or "bm25_data") + ".pkl")
        data_to_save = {
            "data_list": [doc_to_item(d) for d in self.docs],
            "tokenized_corpus": self.tokenized_corpus,
        }
        with open(db_file_path, "wb") as f:
            pickle.dump(data_to_save, f)
        logger.info("bm25 data saved: {}", db_file_path)
        return db_file_path

    @classmethod
    def load(cls, base_dir: str, db_name: str = "bm25_data", **kwargs: Any) -> "BM25Retriever":
        """ 从文件中读取分词后的语料库，并重新初始化 BM25Okapi 实例。
        """
        db_file_path = os.path.join(base_dir, (db_name or "bm25_data") + ".pkl")
        if not os.path.isfile(db_file_path):
            raise FileNotFoundError(f"BM25 数据文件不存在：{db_file_path}，请先完成建库并保存。")
        with open(db_file_path, "rb") as f:
            data = pickle.load(f)

        retriever = cls(**kwargs)
        retriever.docs = [item_to_doc(x) for x in data["data_list"]]
        retriever.tokenized_corpus = data["tokenized_corpus"]
        retriever.bm25 = BM25Okapi(retriever.tokenized_corpus)
        warmup()
        return retriever
