from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Union

from langchain_core.documents import Document

from tinyretriever.logging_utils import logger
from tinyretriever.utils import make_doc_id

_SUFFIXES = ("txt", "md", "json", "jsonl")


def read_text_file(path: Path) -> str:
    for enc in ("utf-8", "utf-8-sig", "gbk"):
        try:
            return path.read_text(encoding=enc)
        except UnicodeDecodeError:
            continue
    return path.read_text(encoding="utf-8", errors="ignore")


def read_md_file_to_text(path: Path) -> str:
    import markdown
    from bs4 import BeautifulSoup

    html_content = markdown.markdown(read_text_file(path), extensions=["fenced_code", "tables"])
    soup = BeautifulSoup(html_content, "html.parser")
    return soup.get_text()


def _records_from_json(obj: Any) -> List[Dict[str, Any]]:
    """json 支持：字符串 / {"text", "meta", "id"} / 二者组成的列表。"""
    if obj is None:
        return []
    if isinstance(obj, str):
        return [{"text": obj}]
    if isinstance(obj, list):
        out: List[Dict[str, Any]] = []
        for item in obj:
            out.extend(_records_from_json(item))
        return out
    if isinstance(obj, dict) and isinstance(obj.get("text"), str):
        return [obj]
    return []


def _new_doc(text: str, meta: Dict[str, Any], *, source_path: str, record_index: int, doc_id: str = "") -> Document:
    meta = dict(meta)
    meta.setdefault("source_path", source_path)
    meta["doc_id"] = doc_id or make_doc_id(source_path=source_path, page=0, record_index=record_index)
    return Document(page_content=text, metadata=meta, id=meta["doc_id"])


def load_documents(input_path: Union[str, Path], *, recursive: bool = True) -> List[Document]:
    """
    将输入（文件或目录）读取为 Document 列表。
    - txt/md：整篇一个 Document
    - json/jsonl：每条记录一个 Document（记录为字符串或 {"text", "meta", "id"}）
    metadata 至少包含 source_path 与 doc_id；doc_id 同时作为 Document.id。
    """
    input_path = Path(str(input_path))
    if not input_path.exists():
        raise FileNotFoundError(f"输入路径不存在：{input_path}")

    files: List[Path] = []
    if input_path.is_dir():
        it = input_path.rglob("*") if recursive else input_path.glob("*")
        files = sorted(p for p in it if p.is_file())
    else:
        files = [input_path]

    docs: List[Document] = []
    for file_path in files:
        suffix = file_path.suffix.lower().lstrip(".")
        if suffix not in _SUFFIXES:
            logger.warning("不支持的文件类型，已跳过：{}", str(file_path))
            continue
        source_path = str(file_path)

        try:
            if suffix in ("txt", "md"):
                text = read_text_file(file_path) if suffix == "txt" else read_md_file_to_text(file_path)
                if text.strip():
                    docs.append(_new_doc(text, {"type": suffix}, source_path=source_path, record_index=0))
                continue

            if suffix == "json":
                records = _records_from_json(json.loads(read_text_file(file_path)))
            else:
                records = []
                for line in read_text_file(file_path).splitlines():
                    line = line.strip()
                    if line:
                        records.extend(_records_from_json(json.loads(line)))

            for idx, rec in enumerate(records):
                text = str(rec.get("text") or "")
                if not text.strip():
                    continue
                meta = rec.get("meta") or {}
                meta = dict(meta) if isinstance(meta, dict) else {}
                meta.update({"type": suffix, "record_index": idx})
                docs.append(
                    _new_doc(text, meta, source_path=source_path, record_index=idx, doc_id=str(rec.get("id") or ""))
                )
        except Exception as e:
            logger.error("读取失败：{}，错误：{}", source_path, str(e))
            raise

    logger.info("load documents: {} from {}", len(docs), str(input_path))
    return docs
