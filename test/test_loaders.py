import sys

sys.path.append(".")

import json
import os
import tempfile

import pytest

from tinyretriever.loaders import load_documents
from tinyretriever.logging_utils import logger
from tinyretriever.utils import make_doc_id


def _write(path: str, text: str) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)


def test_load_documents_from_directory() -> None:
    with tempfile.TemporaryDirectory() as d:
        _write(os.path.join(d, "a.txt"), "纯文本文档")
        _write(os.path.join(d, "b.md"), "# 标题\n\n正文 **加粗**\n")
        _write(
            os.path.join(d, "sub", "c.jsonl"),
            json.dumps({"id": "keep-me", "text": "第一条", "meta": {"law": "民法典"}}, ensure_ascii=False)
            + "\n\n"
            + json.dumps("第二条", ensure_ascii=False)
            + "\n",
        )
        _write(os.path.join(d, "d.json"), json.dumps([{"text": "甲"}, {"text": "  "}, "乙"], ensure_ascii=False))
        _write(os.path.join(d, "e.csv"), "x,y\n")

        docs = load_documents(d)
        by_text = {doc.page_content.strip(): doc for doc in docs}
        assert set(by_text) == {"纯文本文档", "标题\n正文 加粗", "第一条", "第二条", "甲", "乙"}

        md = by_text["标题\n正文 加粗"]
        assert md.metadata["type"] == "md"
        assert "**" not in md.page_content

        first = by_text["第一条"]
        assert first.id == "keep-me"
        assert first.metadata["law"] == "民法典"
        assert first.metadata["record_index"] == 0

        second = by_text["第二条"]
        source = os.path.join(d, "sub", "c.jsonl")
        assert second.id == make_doc_id(source_path=source, page=0, record_index=1)
        assert second.metadata["doc_id"] == second.id

        assert len(load_documents(d, recursive=False)) == 4


def test_load_documents_warns_and_skips_unsupported_suffix() -> None:
    messages = []
    sink_id = logger.add(lambda m: messages.append(m.record), level="WARNING")
    try:
        with tempfile.TemporaryDirectory() as d:
            _write(os.path.join(d, "keep.txt"), "保留")
            skipped = os.path.join(d, "table.csv")
            _write(skipped, "x,y\n")
            docs = load_documents(d)
    finally:
        logger.remove(sink_id)

    assert [doc.page_content.strip() for doc in docs] == ["保留"]
    warnings = [r for r in messages if r["level"].name == "WARNING"]
    assert len(warnings) == 1
    assert skipped in warnings[0]["message"], "跳过的文件应当在告警里写明路径"


def test_load_documents_missing_path_and_bad_json() -> None:
    with pytest.raises(FileNotFoundError):
        load_documents("does/not/exist")
    with tempfile.TemporaryDirectory() as d:
        bad = os.path.join(d, "bad.json")
        _write(bad, "{not json")
        with pytest.raises(ValueError):
            load_documents(bad)


if __name__ == "__main__":
    test_load_documents_from_directory()
    test_load_documents_warns_and_skips_unsupported_suffix()
    test_load_documents_missing_path_and_bad_json()
    print("ok")
