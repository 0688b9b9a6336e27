import sys

sys.path.append(".")

from langchain_core.documents import Document

from tinyretriever.observation import documents_to_items, format_observation_for_llm


def test_format_observation_with_sources() -> None:
    docs = [
        Document(page_content="第一百七十九条 承担民事责任的方式主要有：\n（一）停止侵害；", metadata={"source_path": "minfadian.txt", "rerank_score": 2.5}, id="c1"),
        Document(page_content="some page text", metadata={"source_path": "manual.pdf", "page": 3, "score": 0.4}),
        Document(page_content="from memory", metadata={"source": "notes"}),
        Document(page_content="   ", metadata={}),
    ]
    items = documents_to_items(docs)
    assert items[0]["rank"] == 1 and items[0]["score"] == 2.5 and items[0]["id"] == "c1"
    assert items[2]["score"] is None

    out = format_observation_for_llm({"items": items})
    lines = out.splitlines()
    assert lines[0] == "[1] 第一百七十九条 承担民事责任的方式主要有： （一）停止侵害；"
    assert lines[1] == "source=minfadian.txt"
    assert lines[3] == "source=manual.pdf 第3页"
    assert lines[5] == "source=notes"
    # 空文本不占编号
    assert len(lines) == 6


def test_format_observation_truncates_and_reports_errors() -> None:
    out = format_observation_for_llm({"items": [{"text": "x" * 20, "meta": {}}]}, max_chars_per_item=5)
    assert out.splitlines()[0] == "[1] xxxxx..."
    assert out.splitlines()[1] == "source=未知来源"

    assert format_observation_for_llm({"items": []}) == "（无结果）"
    assert format_observation_for_llm({"items": [], "error": "query 不能为空"}) == "error=query 不能为空"


def test_format_observation_blank_items_count_as_no_result() -> None:
    out = format_observation_for_llm({"items": [{"text": "  ", "meta": {}}, {"text": None, "meta": {}}]})
    assert out == "（无结果）", "全部是空文本时应当与空列表一样提示无结果"


if __name__ == "__main__":
    test_format_observation_with_sources()
    test_format_observation_truncates_and_reports_errors()
    test_format_observation_blank_items_count_as_no_result()
    print("ok")
