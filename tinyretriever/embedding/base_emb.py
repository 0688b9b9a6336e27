from abc import ABC, abstractmethod
from typing import List


class BaseEmbedding(ABC):
    """
    Base class for embeddings

    文档与查询分开编码：get_embeddings 用于建库，get_query_embedding 用于检索。
    embed_documents / embed_query 与 LangChain Embeddings 接口同名，可直接交给 LangChain 的向量库。
    """

    def __init__(self, path: str = "", is_api: bool = False) -> None:
        self.path = path
        self.is_api = is_api
        self.name = ""

    @abstractmethod
    def get_embedding(self, text: str) -> List[float]:
        raise NotImplementedError

    def get_embeddings(self, texts: List[str], batch_size: int = 64) -> List[List[float]]:
        return [self.get_embedding(t) for t in texts]

    def get_query_embedding(self, query: str) -> List[float]:
        return self.get_embedding(query)

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        return self.get_embeddings(list(texts))

    def embed_query(self, text: str) -> List[float]:
        return self.get_query_embedding(text)

    @property
    def dim(self) -> int:
        return len(self.get_embedding("test_dim"))
