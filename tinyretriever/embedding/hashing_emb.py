import hashlib
from typing import List

import numpy as np

from tinyretriever.embedding.base_emb import BaseEmbedding
from tinyretriever.text import tokenize


class HashingEmbedding(BaseEmbedding):
    """
    不依赖模型的哈希词袋向量：jieba 分词 -> md5 取模落桶 -> L2 归一化。
    语义能力有限，用于离线调试、文档示例与单元测试。
    """

    def __init__(self, dim: int = 256) -> None:
        super().__init__("hashing", False)
        if int(dim) <= 0:
            raise ValueError(f"dim 必须为正整数：{dim}")
        self._dim = int(dim)
        self.name = "hashing"

    @property
    def dim(self) -> int:
        return self._dim

    def _bucket(self, token: str) -> int:
        digest = hashlib.md5(token.encode("utf-8")).hexdigest()
        return int(digest, 16) % self._dim

    def get_embedding(self, text: str) -> List[float]:
        vec = np.zeros(self._dim, dtype=np.float32)
        for token in tokenize(text):
            vec[self._bucket(token)] += 1.0
        norm = float(np.linalg.norm(vec))
        if norm > 0:
            vec /= norm
        return vec.tolist()
