from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import markdown
from bs4 import BeautifulSoup

RUN_LANG = "python"
SKIP_LANG = "python-skip"
OUTPUT_LANG = "output"


@dataclass(frozen=True)
class CodeBlock:
    lang: str
    code: str


@dataclass(frozen=True)
class Example:
    index: int
    code: str
    expected: Optional[str] = None
    skip: bool = False


def parse_code_blocks(markdown_text: str) -> List[CodeBlock]:
    """按出现顺序返回所有围栏代码块，lang 取自 ```lang（没有则为空串）。"""
    html = markdown.markdown(markdown_text or "", extensions=["fenced_code"])
    soup = BeautifulSoup(html, "html.parser")
    blocks: List[CodeBlock] = []
    for code in soup.find_all("code"):
        if code.parent is None or code.parent.name != "pre":
            continue
        lang = ""
        for cls in code.get("class") or []:
            if cls.startswith("language-"):
                lang = cls[len("language-"):]
                break
        blocks.append(CodeBlock(lang=lang.lower(), code=code.get_text()))
    return blocks


def collect_examples(blocks: List[CodeBlock]) -> List[Example]:
    examples: List[Example] = []
    prev_is_code = False
    for block in blocks:
        if block.lang in (RUN_LANG, SKIP_LANG):
            examples.append(Example(index=len(examples) + 1, code=block.code, skip=block.lang == SKIP_LANG))
            prev_is_code = True
            continue
        if block.lang == OUTPUT_LANG and prev_is_code:
            last = examples[-1]
            examples[-1] = Example(index=last.index, code=last.code, expected=block.code, skip=last.skip)
        # output 只绑定紧邻的上一个代码块
        prev_is_code = False
    return examples
