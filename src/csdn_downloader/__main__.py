"""命令行入口：批量下载 CSDN 文章并保存为 HTML（可选同时生成 PDF）。"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from contextlib import ExitStack
from pathlib import Path

from .config import AppConfig, Credentials, apply_overrides, load_config
from .export import Renderer, export_records_csv, save_result
from .fetchers import RequestsFetcher
from .html_processor import load_template
from .models import DownloadResult
from .pdf import PdfRenderError, PlaywrightPdfRenderer
from .pipeline import ArticlePipeline
from .task_queue import BatchScheduler, EmptyBatchError
from .urls import split_url_lines, validate_lines

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="CSDN 文章批量下载器")
    parser.add_argument(
        "input",
        nargs="?",
        default="-",
        help="每行一个文章链接的文本文件（默认: 从标准输入读取）",
    )
    parser.add_argument("--config", type=str, default="config.yaml", help="配置文件路径（默认: config.yaml）")
    parser.add_argument("--cookies", type=str, default=None, help="Cookie 文件路径（覆盖配置）")
    parser.add_argument("--template", type=str, default=None, help="HTML 模板文件路径（覆盖配置）")
    parser.add_argument("--output-dir", type=str, default=None, help="保存目录（覆盖配置）")
    parser.add_argument("--concurrency", type=int, default=None, help="并发 worker 数（覆盖配置）")
    parser.add_argument("--delay-ms", type=int, default=None, help="每个 worker 的任务间隔（毫秒）")
    parser.add_argument("--timeout", type=float, default=None, help="单次请求超时（秒）")
    parser.add_argument("--csv", type=str, default=None, help="导出下载记录 CSV 的路径")
    parser.add_argument(
        "--pdf",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="保存 HTML 后同时生成 PDF（需要安装 pdf 扩展，覆盖配置）",
    )
    parser.add_argument("--check", action="store_true", help="只校验链接，不下载")
    parser.add_argument("-v", "--verbose", action="store_true", help="输出调试日志")
    return parser


def _apply_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    return apply_overrides(
        config,
        cookie_file=args.cookies,
        template=args.template,
        output_dir=args.output_dir,
        concurrency=args.concurrency,
        delay_ms=args.delay_ms,
        timeout_seconds=args.timeout,
        pdf=args.pdf,
    )


def _read_input(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def _check_only(text: str) -> int:
    report = validate_lines(text)
    print(f"验证完成：有效链接 {len(report.valid)} 个，无效链接 {len(report.invalid)} 个")
    for url in report.invalid:
        print(f"  无效: {url}")
    return 0 if not report.invalid else 1


def _open_renderer(enabled: bool, stack: ExitStack) -> Renderer | None:
    if not enabled:
        return None
    try:
        return stack.enter_context(PlaywrightPdfRenderer())
    except PdfRenderError:
        logger.exception("PDF 渲染器不可用，本次只保存 HTML")
        return None


def run(
    config: AppConfig,
    text: str,
    csv_path: str | None = None,
    *,
    cancel: threading.Event | None = None,
) -> int:
    credentials = Credentials.load(config.cookie_file)
    template = load_template(config.output.template)
    fetcher = RequestsFetcher(
        timeout=config.http.timeout_seconds,
        verify_ssl=config.http.verify_ssl,
        user_agent=config.http.user_agent,
        bot_user_agent=config.http.bot_user_agent,
        cookies=credentials.cookies,
    )
    scheduler = BatchScheduler(
        ArticlePipeline(fetcher, template),
        concurrency=config.batch.concurrency,
        delay_ms=config.batch.delay_ms,
    )

    urls = split_url_lines(text)
    if cancel is None:
        cancel = threading.Event()
    try:
        batch = scheduler.run(urls, cancel=cancel)
    except EmptyBatchError as exc:
        logger.error("%s", exc)
        return 2

    # Ctrl-C 只停止领取新任务，已开始的任务继续完成
    previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: batch.cancel())
    records: list[tuple[int, DownloadResult, Path | None]] = []
    unsaved = 0
    try:
        with ExitStack() as stack:
            renderer = _open_renderer(config.output.pdf, stack)
            for result in batch:
                local_path = save_result(result, result.sequence_index, config.output.dir, renderer)
                records.append((result.sequence_index, result, local_path))
                if not result.success:
                    logger.warning("失败 [%d] %s: %s", result.sequence_index, result.url, result.error)
                elif local_path is None:
                    unsaved += 1
                else:
                    logger.info("完成 [%d] %s (%dms)", result.sequence_index, result.title, result.elapsed_ms)
    except BaseException:
        # 结果流不再被消费，剩余任务不能继续抓取
        batch.cancel()
        raise
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    if csv_path:
        records.sort(key=lambda record: record[0])
        export_records_csv(records, csv_path)

    state = batch.state
    logger.info(
        "任务已完成: 成功 %d, 失败 %d, 不存在 %d, 未执行 %d, 保存失败 %d",
        state.succeeded,
        state.failed,
        state.not_found,
        state.total - state.completed,
        unsaved,
    )
    return 0 if state.failed == 0 and state.not_found == 0 and unsaved == 0 else 1


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    text = _read_input(args.input)
    if args.check:
        return _check_only(text)

    config = _apply_overrides(load_config(args.config), args)
    return run(config, text, csv_path=args.csv)


if __name__ == "__main__":
    sys.exit(main())
