from __future__ import annotations

import os
import re
from functools import lru_cache
from typing import FrozenSet, Iterable, List, Optional

import jieba

_STOPWORDS_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "stopwords.txt")
_WORD_CHAR = re.compile(r"\w")


@lru_cache(maxsize=4)
def load_stopwords(path: str = _STOPWORDS_PATH) -> FrozenSet[str]:
    words = set()
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            word = line.strip()
            if word and not word.startswith("#"):
                words.add(word.lower())
    return frozenset(words)


def tokenize(text: str, stopwords: Optional[Iterable[str]] = None) -> List[str]:
    """
    jieba 搜索引擎模式分词；英文统一小写，去掉纯标点/空白与停用词。
    stopwords=None 时使用包内自带的 stopwords.txt。
    """
    stop = load_stopwords() if stopwords is None else stopwords
    result = []
    for word in jieba.cut_for_search(str(text or "")):
        word = word.strip().lower()
        if not word or not _WORD_CHAR.search(word):
            continue
        if word in stop:
            continue
        result.append(word)
    return result


def warmup() -> None:
    # 触发 jieba 冷启动初始化，避免第一次 search 才付出代价
    list(jieba.cut_for_search("热启动"))
