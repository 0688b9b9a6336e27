import sys

sys.path.append(".")

import os
import tempfile

from tinyretriever.doccheck import (
    check_docs,
    check_page,
    collect_examples,
    outputs_match,
    parse_code_blocks,
    run_examples,
)

_PAGE = """# Demo

Some prose.

```python
x = 1 + 1
print(x)
```

```output
2
```

```python-skip
client.call_remote_service()
```

```python
print(undefined_name)
```

```output
never
```

```python
print(x * 10)
```

```text
not an expected output
```
"""


def test_parse_code_blocks_keeps_order_and_language() -> None:
    blocks = parse_code_blocks(_PAGE)
    assert [b.lang for b in blocks] == ["python", "output", "python-skip", "python", "output", "python", "text"]
    assert blocks[0].code == "x = 1 + 1\nprint(x)\n"


def test_collect_examples_pairs_outputs() -> None:
    examples = collect_examples(parse_code_blocks(_PAGE))
    assert len(examples) == 4
    assert examples[0].expected == "2\n"
    assert examples[1].skip and examples[1].expected is None
    assert examples[2].expected == "never\n"
    # text 块不是 output，不绑定
    assert examples[3].expected is None


def test_run_examples_shares_namespace_and_continues_after_error() -> None:
    results = run_examples(collect_examples(parse_code_blocks(_PAGE)))
    assert [r.passed for r in results] == [True, True, False, True]
    assert results[1].skipped
    assert "NameError" in (results[2].error or "")
    assert results[3].actual == "20\n", "后续示例应当能使用前面示例定义的变量"


def test_run_examples_records_sys_exit_as_failure() -> None:
    page = "```python\nimport sys\nsys.exit(3)\n```\n\n```python\nprint(\"after\")\n```\n\n```output\nafter\n```\n"
    results = run_examples(collect_examples(parse_code_blocks(page)))
    assert [r.passed for r in results] == [False, True], "sys.exit 只让当前示例失败，不中断整页"
    assert "SystemExit" in (results[0].error or "")


def test_outputs_match_whitespace_and_ellipsis() -> None:
    assert outputs_match("a\nb\n", "a  \nb")
    assert not outputs_match("a\nb", "a\nc")
    assert outputs_match("Tell me a joke about ...", "Tell me a joke about 04/21/2024, 19:43:57")
    assert outputs_match("start\n...\nend", "start\nline 1\nline 2\nend")
    assert not outputs_match("start ... end", "start middle")
    # 特殊字符按字面比较
    assert outputs_match("['name'] (x)", "['name'] (x)")


def test_check_page_and_directory() -> None:
    with tempfile.TemporaryDirectory() as d:
        good = os.path.join(d, "good.md")
        bad = os.path.join(d, "sub", "bad.md")
        os.makedirs(os.path.dirname(bad))
        with open(good, "w", encoding="utf-8") as f:
            f.write("```python\nprint('hi')\n```\n\n```output\nhi\n```\n")
        with open(bad, "w", encoding="utf-8") as f:
            f.write("```python\nprint('hi')\n```\n\n```output\nbye\n```\n")

        report = check_page(good)
        assert report.passed

        reports = check_docs(d)
        assert [os.path.basename(r.path) for r in reports] == ["good.md", "bad.md"]
        assert reports[1].failures[0].actual == "hi\n"


def test_repository_docs_examples_pass() -> None:
    reports = check_docs("docs")
    assert {os.path.basename(r.path) for r in reports} == {"retrievers.md", "partial_prompts.md"}
    for report in reports:
        failed = [(r.example.index, r.error, r.actual) for r in report.failures]
        assert report.passed, f"{report.path} 示例输出与文档不一致：{failed}"


if __name__ == "__main__":
    test_parse_code_blocks_keeps_order_and_language()
    test_collect_examples_pairs_outputs()
    test_run_examples_shares_namespace_and_continues_after_error()
    test_run_examples_records_sys_exit_as_failure()
    test_outputs_match_whitespace_and_ellipsis()
    test_check_page_and_directory()
    test_repository_docs_examples_pass()
    print("ok")
