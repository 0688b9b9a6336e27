"""
文档示例校验：执行 Markdown 页面中的 ```python 代码块，并与紧随其后的 ```output 块比对。

约定：
- ```python        执行
- ```python-skip   只展示，不执行（依赖外部服务/模型的示例）
- ```output        上一个 python 块的期望输出；其中 "..." 匹配任意内容
"""

from .parser import CodeBlock, Example, collect_examples, parse_code_blocks
from .runner import ExampleResult, PageReport, check_docs, check_page, outputs_match, run_examples

__all__ = [
    "CodeBlock",
    "Example",
    "ExampleResult",
    "PageReport",
    "check_docs",
    "check_page",
    "collect_examples",
    "outputs_match",
    "parse_code_blocks",
    "run_examples",
]
