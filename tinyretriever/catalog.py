"""
检索策略对照表。

docs/retrievers.md 中的表格由 render_markdown_table() 生成，两者必须保持一致
（test/test_catalog.py 会校验）。这里只记录策略的适用场景，不实现这些策略本身。
"""

from __future__ import annotations

import re
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict


class LLMUsage(str, Enum):
    NO = "No"
    YES = "Yes"
    SOMETIMES = "Sometimes"
    DURING_INDEXING = "Sometimes during indexing"


class RetrievalStrategy(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    index_type: str
    uses_llm: LLMUsage
    when_to_use: str
    description: str
    # 本包中可直接使用的对应检索器（仅供参考）
    implementation: Optional[str] = None


_STRATEGIES: List[RetrievalStrategy] = [
    RetrievalStrategy(
        name="Vectorstore",
        index_type="Vectorstore",
        uses_llm=LLMUsage.NO,
        when_to_use="If you are just getting started and looking for something quick and easy.",
        description=(
            "This is the simplest method and the one that is easiest to get started with. "
            "It involves creating embeddings for each piece of text."
        ),
        implementation="VectorStoreRetriever",
    ),
    RetrievalStrategy(
        name="ParentDocument",
        index_type="Vectorstore + Document Store",
        uses_llm=LLMUsage.NO,
        when_to_use=(
            "If your pages have lots of smaller pieces of distinct information that are best "
            "indexed by themselves, but best retrieved all together."
        ),
        description=(
            "This involves indexing multiple chunks for each document. Then you find the chunks "
            "that are most similar in embedding space, but you retrieve the whole parent document "
            "and return that (rather than individual chunks)."
        ),
    ),
    RetrievalStrategy(
        name="Multi Vector",
        index_type="Vectorstore + Document Store",
        uses_llm=LLMUsage.DURING_INDEXING,
        when_to_use=(
            "If you are able to extract information from documents that you think is more "
            "relevant to index than the text itself."
        ),
        description=(
            "This involves creating multiple vectors for each document. Each vector could be "
            "created in a myriad of ways - examples include summaries of the text and "
            "hypothetical questions."
        ),
    ),
    RetrievalStrategy(
        name="Self Query",
        index_type="Vectorstore",
        uses_llm=LLMUsage.YES,
        when_to_use=(
            "If users are asking questions that are better answered by fetching documents based "
            "on metadata rather than similarity with the text."
        ),
        description=(
            "This uses an LLM to transform user input into two things: (1) a string to look up "
            "semantically, (2) a metadata filter to go along with it. This is useful because "
            "oftentimes questions are about the METADATA of documents (not the content itself)."
        ),
    ),
    RetrievalStrategy(
        name="Contextual Compression",
        index_type="Any",
        uses_llm=LLMUsage.SOMETIMES,
        when_to_use=(
            "If you are finding that your retrieved documents contain too much irrelevant "
            "information and are distracting the LLM."
        ),
        description=(
            "This puts a post-processing step on top of another retriever and extracts only the "
            "most relevant information from retrieved documents. This can be done with embeddings "
            "or an LLM."
        ),
        implementation="RerankRetriever",
    ),
    RetrievalStrategy(
        name="Time-Weighted Vectorstore",
        index_type="Vectorstore",
        uses_llm=LLMUsage.NO,
        when_to_use=(
            "If you have timestamps associated with your documents, and you want to retrieve "
            "the most recent ones."
        ),
        description=(
            "This fetches documents based on a combination of semantic similarity (as in normal "
            "vector retrieval) and recency (looking at timestamps of indexed documents)."
        ),
    ),
    RetrievalStrategy(
        name="Multi-Query Retriever",
        index_type="Any",
        uses_llm=LLMUsage.YES,
        when_to_use=(
            "If users are asking questions that are complex and require multiple pieces of "
            "distinct information to respond."
        ),
        description=(
            "This uses an LLM to generate multiple queries from the original one. This is useful "
            "when the original query needs pieces of information about multiple topics to be "
            "properly answered. By generating multiple queries, we can then fetch documents for "
            "each of them."
        ),
    ),
    RetrievalStrategy(
        name="Ensemble",
        index_type="Any",
        uses_llm=LLMUsage.NO,
        when_to_use="If you have multiple retrieval methods and want to try combining them.",
        description="This fetches documents from multiple retrievers and then combines them.",
        implementation="EnsembleRetriever",
    ),
    RetrievalStrategy(
        name="Long-Context Reorder",
        index_type="Any",
        uses_llm=LLMUsage.NO,
        when_to_use=(
            "If you are working with a long-context model and noticing that it's not paying "
            "attention to information in the middle of retrieved documents."
        ),
        description=(
            "This fetches documents from an underlying retriever, and then reorders them so that "
            "the most similar are near the beginning and end. This is useful because it's been "
            "shown that for longer context models they sometimes don't pay attention to "
            "information in the middle of the context window."
        ),
    ),
]

_HEADER = ("Name", "Index Type", "Uses an LLM", "When to Use", "Description")


def _norm_name(name: str) -> str:
    return re.sub(r"[\s_\-]+", "", str(name or "")).lower()


def list_strategies() -> List[RetrievalStrategy]:
    return list(_STRATEGIES)


def get_strategy(name: str) -> RetrievalStrategy:
    key = _norm_name(name)
    for s in _STRATEGIES:
        if _norm_name(s.name) == key:
            return s
    known = ", ".join(s.name for s in _STRATEGIES)
    raise KeyError(f"未知的检索策略：{name}（可选：{known}）")


def _coerce_usage(uses_llm: Union[LLMUsage, str, bool]) -> Union[LLMUsage, bool]:
    if isinstance(uses_llm, (bool, LLMUsage)):
        return uses_llm
    text = str(uses_llm).strip().lower()
    for usage in LLMUsage:
        if usage.value.lower() == text:
            return usage
    raise ValueError(f"不支持的 uses_llm 取值：{uses_llm}")


def filter_strategies(
    *,
    uses_llm: Union[LLMUsage, str, bool, None] = None,
    index_type: Optional[str] = None,
) -> List[RetrievalStrategy]:
    """
    按“是否使用 LLM”与索引类型过滤。

    - uses_llm=True：只要不是 "No" 都算（包括 Sometimes）
    - index_type：按 "+" 拆分后任一部分命中即可；索引类型为 Any 的策略总是命中
    """
    out: List[RetrievalStrategy] = []
    usage = _coerce_usage(uses_llm) if uses_llm is not None else None
    wanted = str(index_type or "").strip().lower()

    for s in _STRATEGIES:
        if isinstance(usage, bool):
            if usage != (s.uses_llm != LLMUsage.NO):
                continue
        elif usage is not None and s.uses_llm != usage:
            continue

        if wanted:
            parts = [p.strip().lower() for p in s.index_type.split("+")]
            if "any" not in parts and wanted not in parts:
                continue
        out.append(s)
    return out


def render_markdown_table(strategies: Optional[List[RetrievalStrategy]] = None) -> str:
    rows = _STRATEGIES if strategies is None else strategies
    lines = [
        "| " + " | ".join(_HEADER) + " |",
        "|" + "|".join(["---"] * len(_HEADER)) + "|",
    ]
    for s in rows:
        cells = [s.name, s.index_type, s.uses_llm.value, s.when_to_use, s.description]
        lines.append("| " + " | ".join(c.replace("|", "\\|") for c in cells) + " |")
    return "\n".join(lines)
