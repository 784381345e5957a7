"""基于 requests 的文章抓取客户端。"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

import requests
from bs4 import BeautifulSoup

from .html_headers import DEFAULT_BOT_USER_AGENT, DEFAULT_HEADERS, DEFAULT_USER_AGENT
from .structs import FetchIdentity, NetworkError, RawPage

logger = logging.getLogger(__name__)

if TYPE_CHECKING:  # pragma: no cover - 类型辅助
    from requests import Response


def extract_title(html: str) -> str:
    """读取页面 <title> 文本，缺失时返回空字符串。"""
    soup = BeautifulSoup(html, "html.parser")
    if soup.title is None:
        return ""
    return soup.title.get_text().strip()


class RequestsFetcher:
    """使用 requests 获取 CSDN 文章 HTML。

    HTTP 错误状态码不会抛出异常，而是原样放进 RawPage 交给上层判断；
    只有传输层失败才抛出 NetworkError。
    """

    def __init__(
        self,
        timeout: float = 10,
        verify_ssl: bool = True,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        bot_user_agent: str = DEFAULT_BOT_USER_AGENT,
        cookies: Mapping[str, str] | None = None,
    ) -> None:
        """初始化 Fetcher。

        Args:
            timeout: 单次请求超时时间（秒）
            verify_ssl: 是否验证 SSL 证书
            user_agent: PRIMARY 身份使用的 User-Agent
            bot_user_agent: FALLBACK 身份使用的 User-Agent
            cookies: 会话 Cookie，只读，仅 PRIMARY 身份携带
        """
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.user_agent = user_agent
        self.bot_user_agent = bot_user_agent
        self._cookies = dict(cookies or {})

    def _headers_for(self, identity: FetchIdentity) -> dict[str, str]:
        headers = dict(DEFAULT_HEADERS)
        headers["User-Agent"] = self.user_agent if identity is FetchIdentity.PRIMARY else self.bot_user_agent
        return headers

    def _cookies_for(self, identity: FetchIdentity) -> dict[str, str] | None:
        if identity is FetchIdentity.PRIMARY and self._cookies:
            return self._cookies
        return None

    def fetch(self, url: str, identity: FetchIdentity = FetchIdentity.PRIMARY) -> RawPage:
        """以指定身份抓取一次页面。

        Raises:
            NetworkError: 超时、连接失败等传输层错误
        """
        cookies = self._cookies_for(identity)
        logger.info(
            "抓取文章: %s (identity=%s, timeout=%s, cookies=%d)",
            url,
            identity.value,
            self.timeout,
            len(cookies or {}),
        )

        try:
            resp: Response = requests.get(
                url,
                timeout=self.timeout,
                verify=self.verify_ssl,
                headers=self._headers_for(identity),
                cookies=cookies,
            )
        except requests.exceptions.Timeout as exc:
            raise NetworkError(f"请求超时 (timed out after {self.timeout}s): {exc}") from exc
        except requests.exceptions.RequestException as exc:
            raise NetworkError(f"网络请求失败: {exc}") from exc

        try:
            body = resp.text
        except Exception as exc:  # noqa: BLE001 - 解码失败视为无法解析的响应
            raise NetworkError(f"响应内容无法解析: {exc}") from exc

        logger.info(
            "抓取完成, 状态码: %d, 最终 URL: %s, 内容长度: %d",
            resp.status_code,
            resp.url,
            len(body),
        )

        return RawPage(
            url=url,
            final_url=resp.url or url,
            status_code=resp.status_code,
            body=body,
            title=extract_title(body),
            content_type=resp.headers.get("Content-Type"),
        )
