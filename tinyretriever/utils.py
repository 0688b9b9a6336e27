import os
import json
import hashlib
from typing import Any, Dict, List

from langchain_core.documents import Document


def make_doc_id(*, source_path: str = "", page: int = 0, record_index: int = 0) -> str:
    """
    生成稳定的 doc_id（不对全文做 hash），同一文件同一位置多次建库结果一致。
    """
    base = f"{source_path}|{page}|{record_index}"
    return hashlib.sha1(base.encode("utf-8", errors="ignore")).hexdigest()


def doc_to_item(doc: Document) -> Dict[str, Any]:
    """Document -> 落盘用的 {"id", "text", "meta"} 结构。"""
    return {
        "id": doc.id or "",
        "text": doc.page_content,
        "meta": dict(doc.metadata or {}),
    }


def item_to_doc(item: Any) -> Document:
    """
    兼容三种输入：Document / {"text": "...", "meta": {...}} / 纯字符串。
    """
    if isinstance(item, Document):
        return item
    if isinstance(item, dict):
        meta = item.get("meta") or item.get("metadata") or {}
        text = item.get("text")
        if text is None:
            text = item.get("page_content") or ""
        return Document(
            page_content=str(text),
            metadata=dict(meta) if isinstance(meta, dict) else {},
            id=str(item.get("id") or "") or None,
        )
    return Document(page_content=str(item or ""))


def read_jsonl_to_list(file_path: str) -> List[Any]:
    """
    从 jsonl 文件读取数据到列表中（跳过空行）。
    """
    data = []
    with open(file_path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            data.append(json.loads(line))
    return data


def write_list_to_jsonl(data: List[Any], file_path: str) -> None:
    dir_name = os.path.dirname(file_path)
    if dir_name:
        os.makedirs(dir_name, exist_ok=True)
    with open(file_path, "w", encoding="utf-8") as f:
        for item in data:
            f.write(json.dumps(item, ensure_ascii=False) + "\n")
