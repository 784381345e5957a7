"""下载结果的本地保存与下载记录导出。"""

from __future__ import annotations

import csv
import logging
import re
from collections.abc import Callable, Iterable
from pathlib import Path

from .models import DownloadResult

logger = logging.getLogger(__name__)

# 外部渲染器：接收清洗后的 HTML 与输出路径，失败时抛出任意异常
Renderer = Callable[[str, Path], None]

_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|]')

RECORD_HEADER = ["序号", "文章标题", "下载结果", "文件大小", "耗时", "本地路径"]


def safe_filename(title: str, index: int) -> str:
    """生成 `NNN_标题` 形式的文件名（不含扩展名）。"""
    safe_title = _UNSAFE_FILENAME_CHARS.sub("_", title.strip()) or "untitled"
    return f"{index:03d}_{safe_title}"


def save_result(
    result: DownloadResult,
    index: int,
    output_dir: str | Path,
    renderer: Renderer | None = None,
) -> Path | None:
    """保存成功结果为 HTML 文件，并可选地调用渲染器生成 PDF。

    渲染失败只记录日志，不影响 HTML 保存结果。

    Returns:
        HTML 文件路径；失败结果或写入失败时返回 None
    """
    if not result.success or not result.html:
        return None

    base_dir = Path(output_dir)
    stem = safe_filename(result.title, index)
    html_path = base_dir / f"{stem}.html"

    try:
        base_dir.mkdir(parents=True, exist_ok=True)
        html_path.write_text(result.html, encoding="utf-8")
    except OSError:
        logger.exception("文件保存失败: %s", html_path)
        return None
    logger.info("已保存 HTML: %s", html_path)

    if renderer is not None:
        pdf_path = base_dir / f"{stem}.pdf"
        try:
            renderer(result.html, pdf_path)
            logger.info("已生成 PDF: %s", pdf_path)
        except Exception:  # noqa: BLE001 - 渲染失败不影响下载结果
            logger.exception("PDF生成失败: %s", stem)

    return html_path


def status_label(result: DownloadResult) -> str:
    if result.success:
        return "限制内容(已尝试破解)" if result.restriction else "成功"
    if not result.article_exists:
        return "文章不存在"
    return "失败"


def format_size(content_length: int) -> str:
    return f"{content_length / 1024:.1f} KB" if content_length > 0 else "0"


def export_records_csv(
    records: Iterable[tuple[int, DownloadResult, Path | None]],
    path: str | Path,
) -> int:
    """导出下载记录为 CSV（带 BOM，便于 Excel 直接打开）。

    Args:
        records: (序号, 结果, 本地路径) 三元组
        path: 输出文件路径

    Returns:
        写入的记录条数
    """
    path = Path(path)
    count = 0
    with path.open("w", encoding="utf-8-sig", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(RECORD_HEADER)
        for index, result, local_path in records:
            writer.writerow(
                [
                    index,
                    result.title or result.url,
                    status_label(result),
                    format_size(result.content_length),
                    f"{result.elapsed_ms}ms",
                    str(local_path) if local_path else "-",
                ]
            )
            count += 1
    logger.info("下载记录已导出: %s (%d 条)", path, count)
    return count
