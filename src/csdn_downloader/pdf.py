"""基于 Playwright (Chromium) 的 HTML -> PDF 渲染器。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

PDF_FORMAT = "A4"
PDF_MARGIN = {"top": "1cm", "right": "1cm", "bottom": "1cm", "left": "1cm"}
CHROMIUM_ARGS = ["--disable-gpu", "--disable-dev-shm-usage", "--no-sandbox"]

_sync_playwright: Any = None


class PdfRenderError(RuntimeError):
    """PDF 渲染器无法启动或渲染失败。"""


def _ensure_playwright() -> Any:
    """惰性加载 Playwright，未启用 PDF 时不需要安装。"""
    global _sync_playwright

    if _sync_playwright is None:
        try:
            from playwright.sync_api import sync_playwright
        except ModuleNotFoundError as exc:  # pragma: no cover - 运行期缺依赖
            raise PdfRenderError(
                "Playwright 未安装，请执行 `pip install csdn-downloader[pdf]` 并运行 `playwright install chromium`"
            ) from exc
        _sync_playwright = sync_playwright

    return _sync_playwright


class PlaywrightPdfRenderer:
    """用同一个无头 Chromium 渲染整个批次的 PDF。

    Playwright 同步 API 不是线程安全的，只能在创建它的线程里调用；
    命令行入口在消费结果流的主线程中保存文件，满足这一要求。

    用法::

        with PlaywrightPdfRenderer() as renderer:
            save_result(result, index, output_dir, renderer=renderer)
    """

    def __init__(self, *, page_format: str = PDF_FORMAT, timeout_ms: int = 30_000) -> None:
        self.page_format = page_format
        self.timeout_ms = timeout_ms
        self._playwright: Any = None
        self._browser: Any = None

    def __enter__(self) -> PlaywrightPdfRenderer:
        sync_playwright = _ensure_playwright()
        try:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(headless=True, args=CHROMIUM_ARGS)
        except Exception as exc:
            self.__exit__(None, None, None)
            raise PdfRenderError(f"Chromium 启动失败，请运行 `playwright install chromium`: {exc}") from exc
        logger.info("PDF 渲染器已启动 (format=%s)", self.page_format)
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self._browser is not None:
            self._browser.close()
            self._browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None

    def __call__(self, html: str, path: Path) -> None:
        if self._browser is None:
            raise PdfRenderError("PDF 渲染器未启动")

        page = self._browser.new_page()
        try:
            # 等待外链图片加载完成再打印
            page.set_content(html, wait_until="networkidle", timeout=self.timeout_ms)
            page.pdf(
                path=str(path),
                format=self.page_format,
                margin=PDF_MARGIN,
                print_background=True,
            )
        finally:
            page.close()
