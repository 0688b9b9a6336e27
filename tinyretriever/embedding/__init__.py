from .base_emb import BaseEmbedding
from .hashing_emb import HashingEmbedding

__all__ = ["BaseEmbedding", "HashingEmbedding", "HFSTEmbedding"]


def __getattr__(name: str):
    # sentence-transformers/torch 较重，按需导入
    if name == "HFSTEmbedding":
        from .hf_emb import HFSTEmbedding

        return HFSTEmbedding
    raise AttributeError(name)
