from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

_ENV_PREFIX = "TINYRETRIEVER_"


def _default_device() -> str:
    import torch

    return "cuda" if torch.cuda.is_available() else "cpu"


class Settings(BaseModel):
    db_root_dir: str = Field(default=os.path.join("data", "db"), description="数据库根目录，每个子目录是一个库")
    emb_model_id: str = Field(default=os.path.join("models", "bge-base-zh-v1.5"))
    emb_query_instruction: str = Field(default="", description="检索时加在查询前的指令，只作用于向量侧")
    rerank_model_id: str = Field(default=os.path.join("models", "bge-reranker-base"))
    hyde_model_id: str = Field(default=os.path.join("models", "Qwen2-1.5B-Instruct"))
    device: str = "cpu"
    emb_batch_size: int = Field(default=16, ge=1)
    recall_factor: int = Field(default=4, ge=1)
    rrf_k: int = Field(default=60, ge=1)
    bm25_weight: float = Field(default=1.0, ge=0.0)
    emb_weight: float = Field(default=1.0, ge=0.0)
    log_level: str = "INFO"


def _env(name: str) -> Optional[str]:
    value = os.getenv(_ENV_PREFIX + name)
    if value is None or not value.strip():
        return None
    return value.strip()


def load_settings(*, dotenv: bool = True) -> Settings:
    """
    读取 .env 与 TINYRETRIEVER_* 环境变量，未设置的字段取默认值。
    例：TINYRETRIEVER_DEVICE=cuda、TINYRETRIEVER_EMB_BATCH_SIZE=96
    """
    if dotenv:
        load_dotenv()

    values = {}
    for field_name in Settings.model_fields:
        raw = _env(field_name.upper())
        if raw is not None:
            values[field_name] = raw

    if "device" not in values:
        values["device"] = _default_device()
    if "emb_batch_size" not in values and "cuda" in str(values["device"]).lower():
        values["emb_batch_size"] = 96
    # pydantic 负责把字符串转换成 int/float，并在非法值时抛 ValidationError
    return Settings(**values)
