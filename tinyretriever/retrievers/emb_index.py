from typing import List, Tuple

import faiss
import numpy as np


class EmbIndex:
    """
    faiss 内积索引。向量需事先 L2 归一化，此时内积即余弦相似度。
    """

    def __init__(self, index_dim: int) -> None:
        self.index_dim = int(index_dim)
        self.index = faiss.IndexFlatIP(self.index_dim)

    def _as_matrix(self, embs) -> np.ndarray:
        mat = np.asarray(embs, dtype=np.float32)
        if mat.ndim == 1:
            mat = mat.reshape(1, -1)
        if mat.shape[1] != self.index_dim:
            raise ValueError(f"向量维度不一致：期望 {self.index_dim}，实际 {mat.shape[1]}")
        return np.ascontiguousarray(mat)

    def __len__(self) -> int:
        return int(self.index.ntotal)

    def insert(self, emb: List[float]) -> None:
        self.index.add(self._as_matrix([emb]))

    def batch_insert(self, embs: List[List[float]]) -> None:
        self.index.add(self._as_matrix(embs))

    def search(self, emb: List[float], top_n: int) -> Tuple[np.ndarray, np.ndarray]:
        # k 不能超过库内向量数，否则 faiss 会用 -1 补齐
        k = max(1, min(int(top_n), len(self)))
        return self.index.search(self._as_matrix(emb), k)

    def save(self, file_path: str) -> None:
        faiss.write_index(self.index, file_path)

    def load(self, file_path: str) -> None:
        index = faiss.read_index(file_path)
        if index.d != self.index_dim:
            raise ValueError(f"索引维度不一致：期望 {self.index_dim}，文件中为 {index.d}")
        self.index = index
