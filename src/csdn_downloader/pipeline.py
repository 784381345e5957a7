from __future__ import annotations

import logging
import time
from typing import Protocol

from .detector import RestrictionReason, RestrictionVerdict, classify
from .fetchers.structs import FetchIdentity, NetworkError, RawPage
from .html_processor import ExtractionError, extract, normalize_title
from .models import NOT_FOUND_STATUS, DownloadResult, Task
from .urls import extract_article_id

logger = logging.getLogger(__name__)

INTERNAL_ERROR_STATUS = 500


class PageFetcher(Protocol):
    def fetch(self, url: str, identity: FetchIdentity = ...) -> RawPage: ...


class ArticlePipeline:
    """单篇文章的处理流程：抓取 -> 限制检测 -> (切换身份重试一次) -> 清洗。

    身份切换只在这里决定；同一身份失败不会重复请求。
    """

    def __init__(self, fetcher: PageFetcher, template: str | None = None) -> None:
        self._fetcher = fetcher
        self._template = template

    def process(self, task: Task) -> DownloadResult:
        """处理单个任务，任何异常都转为失败结果，不向外抛出。"""
        started = time.monotonic()
        try:
            return self._process(task, started)
        except Exception as exc:  # noqa: BLE001 - 单任务失败不能影响整个批次
            logger.exception("处理文章时出现未预期异常: %s", task.url)
            return DownloadResult.failure(
                task.url,
                f"处理失败: {exc}",
                INTERNAL_ERROR_STATUS,
                elapsed_ms=_elapsed_ms(started),
                article_id=extract_article_id(task.url),
                sequence_index=task.sequence_index,
            )

    def _process(self, task: Task, started: float) -> DownloadResult:
        url = task.url
        article_id = extract_article_id(url)

        def fail(error: str, status: int, restriction: str | None = None) -> DownloadResult:
            logger.warning("[%d] 处理失败 (HTTP %d): %s - %s", task.sequence_index, status, url, error)
            return DownloadResult.failure(
                url,
                error,
                status,
                elapsed_ms=_elapsed_ms(started),
                article_id=article_id,
                sequence_index=task.sequence_index,
                restriction=restriction,
            )

        # 步骤 1: 浏览器身份抓取
        logger.info("[%d] 步骤 1/3: 抓取文章 %s", task.sequence_index, url)
        try:
            page = self._fetcher.fetch(url, FetchIdentity.PRIMARY)
        except NetworkError as exc:
            return fail(str(exc), INTERNAL_ERROR_STATUS)

        if page.status_code == NOT_FOUND_STATUS:
            return fail("文章不存在 (HTTP 404)", NOT_FOUND_STATUS)

        # 步骤 2: 检测限制，必要时切换爬虫身份重试一次
        restriction: str | None = None
        verdict = self._verdict_for(page)
        if verdict.restricted:
            restriction = verdict.reason.value if verdict.reason else None
            logger.info(
                "[%d] 步骤 2/3: 检测到内容受限 (%s)，切换为爬虫身份: %s",
                task.sequence_index,
                restriction,
                url,
            )
            try:
                page = self._fetcher.fetch(url, FetchIdentity.FALLBACK)
            except NetworkError as exc:
                return fail(str(exc), INTERNAL_ERROR_STATUS, restriction)

            if page.status_code == NOT_FOUND_STATUS:
                return fail("文章不存在 (HTTP 404)", NOT_FOUND_STATUS, restriction)
            if page.status_code >= 400:
                return fail(f"爬虫身份抓取失败: HTTP {page.status_code}", page.status_code, restriction)
        else:
            logger.info("[%d] 步骤 2/3: 页面未受限", task.sequence_index)

        # 步骤 3: 清洗正文并渲染模板
        logger.info("[%d] 步骤 3/3: 清洗正文", task.sequence_index)
        try:
            html_doc = extract(page, url, self._template)
        except ExtractionError as exc:
            return fail(str(exc), INTERNAL_ERROR_STATUS, restriction)

        elapsed = _elapsed_ms(started)
        logger.info("[%d] 处理完成, 耗时 %dms, 长度 %d: %s", task.sequence_index, elapsed, len(html_doc), url)
        return DownloadResult(
            success=True,
            url=url,
            title=normalize_title(page.title),
            html=html_doc,
            http_status=page.status_code,
            content_type=page.content_type,
            elapsed_ms=elapsed,
            content_length=len(html_doc),
            article_exists=True,
            article_id=article_id,
            sequence_index=task.sequence_index,
            restriction=restriction,
        )

    @staticmethod
    def _verdict_for(page: RawPage) -> RestrictionVerdict:
        # 403/5xx 之类的拦截页同样按反爬处理
        if page.status_code >= 400:
            return RestrictionVerdict.restricted_by(RestrictionReason.ANTIBOT)
        return classify(page)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
