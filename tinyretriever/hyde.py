from __future__ import annotations

from functools import lru_cache
from typing import Any, Callable

from tinyretriever.prompts import build_hyde_prompt


def expand_query(question: str, generate: Callable[[str], str]) -> str:
    """
    HyDE：让生成模型先写一段“假设答案”，再与原问题拼接用于向量召回。
    拼接原问题，防止 HyDE 丢失原问题信息。
    """
    q = (question or "").strip()
    if not q:
        return ""
    passage = generate(build_hyde_prompt(q))
    return f"{q} {str(passage or '').strip()}".strip()


@lru_cache(maxsize=1)
def _get_hyde_pipe(model_path: str) -> Any:
    """
    HyDE 生成模型缓存。
    不缓存会导致每次查询都重复加载模型。
    """
    import torch
    from transformers import pipeline

    return pipeline(
        "text-generation",
        model=model_path,
        torch_dtype=torch.bfloat16,
        device_map="auto",
    )


def load_hf_generator(model_path: str, *, max_new_tokens: int = 256) -> Callable[[str], str]:
    pipe = _get_hyde_pipe(model_path)

    def generate(prompt: str) -> str:
        message = [{"role": "user", "content": prompt}]
        response = pipe(message, max_new_tokens=max_new_tokens, do_sample=False)
        return response[0]["generated_text"][-1]["content"]

    return generate
