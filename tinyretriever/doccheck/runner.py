from __future__ import annotations

import contextlib
import io
import re
import traceback
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from tinyretriever.doccheck.parser import Example, collect_examples, parse_code_blocks
from tinyretriever.logging_utils import logger

_ELLIPSIS = "..."


@dataclass
class ExampleResult:
    example: Example
    actual: str = ""
    error: Optional[str] = None
    skipped: bool = False

    @property
    def passed(self) -> bool:
        if self.skipped:
            return True
        if self.error is not None:
            return False
        if self.example.expected is None:
            return True
        return outputs_match(self.example.expected, self.actual)


@dataclass
class PageReport:
    path: str
    results: List[ExampleResult] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(r.passed for r in self.results)

    @property
    def failures(self) -> List[ExampleResult]:
        return [r for r in self.results if not r.passed]


def _normalize(text: str) -> str:
    lines = [line.rstrip() for line in (text or "").replace("\r\n", "\n").split("\n")]
    return "\n".join(lines).strip("\n")


def outputs_match(expected: str, actual: str) -> bool:
    """逐行去掉行尾空白后比较；期望输出中的 ... 可匹配任意字符（含换行）。"""
    exp = _normalize(expected)
    act = _normalize(actual)
    if _ELLIPSIS not in exp:
        return exp == act
    pattern = ".*?".join(re.escape(part) for part in exp.split(_ELLIPSIS))
    return re.fullmatch(pattern, act, flags=re.DOTALL) is not None


def run_examples(examples: Iterable[Example], namespace: Optional[Dict[str, Any]] = None) -> List[ExampleResult]:
    """
    在同一个命名空间里按顺序执行示例（与 notebook 一致，后面的示例可以用前面定义的变量）。
    单个示例抛异常只记为失败，继续执行后续示例。
    """
    ns: Dict[str, Any] = {"__name__": "__doccheck__"} if namespace is None else namespace
    results: List[ExampleResult] = []
    for ex in examples:
        if ex.skip:
            results.append(ExampleResult(example=ex, skipped=True))
            continue
        buf = io.StringIO()
        error: Optional[str] = None
        try:
            with contextlib.redirect_stdout(buf):
                exec(compile(ex.code, f"<example {ex.index}>", "exec"), ns)
        except (Exception, SystemExit) as e:
            error = "".join(traceback.format_exception_only(type(e), e)).strip()
            logger.error("示例 {} 执行失败：{}", ex.index, error)
        results.append(ExampleResult(example=ex, actual=buf.getvalue(), error=error))
    return results


def check_page(path: Union[str, Path]) -> PageReport:
    path = Path(str(path))
    if not path.is_file():
        raise FileNotFoundError(f"文档不存在：{path}")
    examples = collect_examples(parse_code_blocks(path.read_text(encoding="utf-8")))
    report = PageReport(path=str(path), results=run_examples(examples))
    logger.info(
        "doccheck {}: {} examples, {} failed",
        str(path),
        len(report.results),
        len(report.failures),
    )
    return report


def check_docs(paths: Union[str, Path, Iterable[Union[str, Path]]]) -> List[PageReport]:
    """paths 可以是单个文件、目录（递归查找 *.md），或二者组成的列表。"""
    if isinstance(paths, (str, Path)):
        paths = [paths]
    pages: List[Path] = []
    for p in paths:
        p = Path(str(p))
        if p.is_dir():
            pages.extend(sorted(p.rglob("*.md")))
        else:
            pages.append(p)
    return [check_page(p) for p in pages]
