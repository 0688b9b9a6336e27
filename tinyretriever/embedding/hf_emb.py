from typing import List, Optional

import torch
from sentence_transformers import SentenceTransformer

from tinyretriever.embedding.base_emb import BaseEmbedding
from tinyretriever.logging_utils import logger


class HFSTEmbedding(BaseEmbedding):
    """
    sentence-transformers 向量模型（如 bge-base-zh-v1.5），输出已 L2 归一化，可直接用于内积检索。

    query_instruction 只加在查询前面，文档不加；bge 系列短查询检索长文档时推荐
    "为这个句子生成表示以用于检索相关文章："。
    """

    def __init__(
        self,
        path: str,
        is_api: bool = False,
        device: str = "",
        *,
        query_instruction: str = "",
        normalize: bool = True,
    ) -> None:
        super().__init__(path, is_api)
        if not device:
            device = "cuda" if torch.cuda.is_available() else "cpu"
        self.device = device
        self.query_instruction = query_instruction or ""
        self.normalize = normalize
        self.st_model = SentenceTransformer(path, device=device)
        if str(device).lower().startswith("cuda"):
            # 半精度失败时保持 fp32
            try:
                self.st_model.half()
            except RuntimeError as e:
                logger.warning("half precision not available: {}", str(e))
        self.name = "hf_model"
        self._dim: Optional[int] = None
        logger.info("embedding model loaded: {} (device={}, dim={})", path, device, self.dim)

    @property
    def dim(self) -> int:
        if self._dim is None:
            dim = self.st_model.get_sentence_embedding_dimension()
            self._dim = int(dim) if dim else len(self._encode(["test_dim"], batch_size=1)[0])
        return self._dim

    def _encode(self, texts: List[str], batch_size: int) -> List[List[float]]:
        embs = self.st_model.encode(
            texts,
            normalize_embeddings=self.normalize,
            batch_size=batch_size,
            show_progress_bar=False,
        )
        return embs.tolist()

    def get_embedding(self, text: str) -> List[float]:
        return self._encode([text], batch_size=1)[0]

    def get_embeddings(self, texts: List[str], batch_size: int = 64) -> List[List[float]]:
        if not texts:
            return []
        return self._encode(list(texts), batch_size=max(1, int(batch_size)))

    def get_query_embedding(self, query: str) -> List[float]:
        return self.get_embedding(self.query_instruction + query)
