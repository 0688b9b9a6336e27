from __future__ import annotations

from datetime import datetime
from typing import Callable, Union

from langchain_core.prompts import PromptTemplate

_DEFAULT_HYDE = (
    "你是一名检索增强系统的查询改写器。\n"
    "请根据用户问题，写一段“可能出现在知识库/百科/说明文中的答案段落”，用于向量检索召回相关资料。\n"
    "要求：只输出正文，不要标题，不要编号，不要引用，不要出现“根据/可能/我认为”等措辞；"
    "尽量包含关键实体、别名、时间、地点、定义、要点等信息；长度控制在 200~400 字。\n"
    "用户问题：{question}\n"
    "正文："
)

_DEFAULT_RAG = (
    "参考信息（每段以 [编号] 开头）：\n"
    "{context}\n"
    "---\n"
    "我的问题或指令：\n"
    "{question}\n"
    "---\n"
    "请根据上述参考信息回答问题。回答一定要忠于原文，简洁但不丢信息，不要胡乱编造。"
    "请在关键结论后标注引用编号，例如 [1][3]。\n"
    "你的回答："
)

RAG_PROMPT = PromptTemplate.from_template(_DEFAULT_RAG)
HYDE_PROMPT = PromptTemplate.from_template(_DEFAULT_HYDE)

PartialValue = Union[str, Callable[[], str]]


def build_rag_prompt(*, context: str, question: str) -> str:
    return RAG_PROMPT.format(
        context=(context or "").strip(),
        question=(question or "").strip(),
    )


def build_hyde_prompt(question: str) -> str:
    return HYDE_PROMPT.format(question=(question or "").strip())


def get_datetime() -> str:
    now = datetime.now()
    return now.strftime("%m/%d/%Y, %H:%M:%S")


def bind_partials(prompt: PromptTemplate, **values: PartialValue) -> PromptTemplate:
    """
    对 PromptTemplate.partial 的薄封装：提前检查变量名与取值类型。

    - 值可以是字符串，也可以是零参数函数（每次 format 时重新求值）
    - 返回新的模板，原模板不变
    """
    known = set(prompt.input_variables)
    unknown = sorted(k for k in values if k not in known)
    if unknown:
        raise ValueError(
            f"模板中不存在变量：{', '.join(unknown)}（可用变量：{', '.join(sorted(known)) or '无'}）"
        )
    for name, value in values.items():
        if not isinstance(value, str) and not callable(value):
            raise TypeError(f"partial 变量 {name} 只能是 str 或零参数函数，实际为 {type(value).__name__}")
    return prompt.partial(**values)


def with_current_date(prompt: PromptTemplate, variable: str = "date") -> PromptTemplate:
    return bind_partials(prompt, **{variable: get_datetime})
