"""抓取层通用数据结构定义。"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class NetworkError(RuntimeError):
    """传输层失败：超时、DNS 解析失败、连接被拒绝等。"""


class FetchIdentity(str, Enum):
    """单次抓取使用的身份。

    PRIMARY: 浏览器 User-Agent，存在 Cookie 时携带 Cookie
    FALLBACK: 爬虫 User-Agent，不携带 Cookie
    """

    PRIMARY = "primary"
    FALLBACK = "fallback"


class RawPage(BaseModel):
    """一次抓取得到的原始页面。

    Attributes:
        url: 原始请求 URL
        final_url: 最终 URL（可能经过重定向）
        status_code: HTTP 状态码
        body: 响应正文（HTML）
        title: 页面 <title> 文本，未做任何清洗
        content_type: 响应 Content-Type
    """

    model_config = ConfigDict(frozen=True)

    url: str
    final_url: str
    status_code: int
    body: str
    title: str = ""
    content_type: str | None = None
