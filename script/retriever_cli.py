import sys

sys.path.append(".")

import argparse
import os
from typing import Optional

from tinyretriever.catalog import filter_strategies, render_markdown_table
from tinyretriever.config import load_settings
from tinyretriever.logging_utils import logger, setup_logging


def show_strategies(*, uses_llm: Optional[str] = None, index_type: Optional[str] = None) -> None:
    usage = None
    if uses_llm:
        flag = uses_llm.strip().lower()
        # yes/no 按布尔解释：yes 包括 Sometimes
        usage = {"yes": True, "no": False}.get(flag, uses_llm)
    print(render_markdown_table(filter_strategies(uses_llm=usage, index_type=index_type)), flush=True)


def check_docs_cmd(paths) -> int:
    from tinyretriever.doccheck import check_docs

    reports = check_docs(paths)
    failed = 0
    for report in reports:
        for r in report.results:
            status = "skip" if r.skipped else ("ok" if r.passed else "FAIL")
            print(f"{report.path} [{r.example.index}] {status}", flush=True)
            if not r.passed:
                failed += 1
                if r.error:
                    print(f"  error: {r.error}")
                else:
                    print(f"  expected:\n{r.example.expected}\n  actual:\n{r.actual}")
    print(f"页面数：{len(reports)}，失败示例数：{failed}", flush=True)
    return 1 if failed else 0


def build_db(*, db_name: str, input_path: str, offline: bool = False) -> None:
    from tinyretriever.loaders import load_documents

    settings = load_settings()
    base_dir = os.path.join(settings.db_root_dir, db_name)
    os.makedirs(base_dir, exist_ok=True)

    docs = load_documents(input_path, recursive=True)
    print(f"读取文档数：{len(docs)}", flush=True)
    if not docs:
        raise ValueError("建库失败：没有读取到任何文档。请检查输入路径。")

    searcher = _make_searcher(base_dir, offline=offline)
    searcher.build_db(docs)
    searcher.save_db()
    print(f"建库完成：{base_dir}", flush=True)


def _make_searcher(base_dir: str, *, offline: bool):
    from tinyretriever.searcher import Searcher

    settings = load_settings()
    if offline:
        from tinyretriever.embedding.hashing_emb import HashingEmbedding

        # 离线模式：不加载任何模型，也不做 rerank
        return Searcher(embedding=HashingEmbedding(), base_dir=base_dir, emb_batch_size=settings.emb_batch_size)
    return Searcher.from_model_ids(
        emb_model_id=settings.emb_model_id,
        ranker_model_id=settings.rerank_model_id,
        device=settings.device,
        base_dir=base_dir,
        emb_batch_size=settings.emb_batch_size,
        query_instruction=settings.emb_query_instruction,
    )


def search_db(
    *,
    db_name: str,
    query: str,
    topk: int,
    is_hyde: bool = False,
    bm25_weight: float = 1.0,
    emb_weight: float = 1.0,
    fusion_method: str = "rrf",
    offline: bool = False,
) -> None:
    from tinyretriever.observation import documents_to_items, format_observation_for_llm

    settings = load_settings()
    base_dir = os.path.join(settings.db_root_dir, db_name)
    searcher = _make_searcher(base_dir, offline=offline)
    searcher.load_db()

    emb_q = query
    if is_hyde:
        from tinyretriever.hyde import expand_query, load_hf_generator

        emb_q = expand_query(query, load_hf_generator(settings.hyde_model_id))
        logger.info("HyDE 扩展后：{}", emb_q)

    docs = searcher.search(
        query,
        top_n=topk,
        recall_k=max(1, topk * settings.recall_factor),
        fusion_method=fusion_method,
        rrf_k=settings.rrf_k,
        bm25_weight=bm25_weight,
        emb_weight=emb_weight,
        emb_query_text=emb_q,
    )
    print(format_observation_for_llm({"items": documents_to_items(docs)}), flush=True)


def main() -> None:
    parser = argparse.ArgumentParser(description="检索器文档工具：策略对照表 / 文档示例校验 / 建库 / 检索")
    parser.add_argument("--log-level", type=str, default="", help="日志级别，默认取 TINYRETRIEVER_LOG_LEVEL 或 INFO")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_st = sub.add_parser("strategies", help="输出检索策略对照表（Markdown）")
    p_st.add_argument("--uses-llm", type=str, default="", help="yes/no，或 Sometimes / 'Sometimes during indexing'")
    p_st.add_argument("--index-type", type=str, default="", help="例如 Vectorstore、Document Store")

    p_check = sub.add_parser("check-docs", help="执行文档中的 python 示例并比对 output")
    p_check.add_argument("paths", nargs="*", default=["docs"], help="文档文件或目录，默认 docs")

    p_build = sub.add_parser("build", help="建库：读取文档 -> BM25/向量索引落盘")
    p_build.add_argument("--db-name", type=str, required=True, help="数据库名（目录名）")
    p_build.add_argument("--path", type=str, required=True, help="输入文件或目录路径")
    p_build.add_argument("--offline", action="store_true", default=False, help="使用哈希向量，不加载模型")

    p_search = sub.add_parser("search", help="检索：返回带 source 的 Observation 文本")
    p_search.add_argument("--db-name", type=str, required=True)
    p_search.add_argument("--query", type=str, required=True)
    p_search.add_argument("--topk", type=int, default=5)
    p_search.add_argument("--is_hyde", action="store_true", default=False, help="是否使用 HyDE 生成假设查询")
    p_search.add_argument("--bm25-weight", type=float, default=1.0, help="BM25 权重")
    p_search.add_argument("--emb-weight", type=float, default=1.0, help="向量相似度权重")
    p_search.add_argument("--fusion-method", type=str, default="rrf", help="融合方法：rrf 或 dedup")
    p_search.add_argument("--offline", action="store_true", default=False, help="使用哈希向量，不加载模型")

    args = parser.parse_args()
    setup_logging(args.log_level or load_settings().log_level)

    if args.cmd == "strategies":
        show_strategies(uses_llm=args.uses_llm or None, index_type=args.index_type or None)
    elif args.cmd == "check-docs":
        sys.exit(check_docs_cmd(args.paths))
    elif args.cmd == "build":
        build_db(db_name=str(args.db_name).strip(), input_path=str(args.path), offline=bool(args.offline))
    elif args.cmd == "search":
        search_db(
            db_name=str(args.db_name).strip(),
            query=str(args.query).strip(),
            topk=int(args.topk),
            is_hyde=bool(args.is_hyde),
            bm25_weight=float(args.bm25_weight),
            emb_weight=float(args.emb_weight),
            fusion_method=str(args.fusion_method),
            offline=bool(args.offline),
        )


if __name__ == "__main__":
    main()
