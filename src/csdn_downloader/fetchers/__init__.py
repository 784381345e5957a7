"""Fetchers 包 - CSDN 文章抓取。

推荐用法::

    from csdn_downloader.fetchers import FetchIdentity, RequestsFetcher

    fetcher = RequestsFetcher(timeout=10, cookies={"UserName": "demo"})
    page = fetcher.fetch("https://blog.csdn.net/demo/article/details/123", FetchIdentity.PRIMARY)
"""

from __future__ import annotations

from .requests_fetcher import RequestsFetcher, extract_title
from .structs import FetchIdentity, NetworkError, RawPage

__all__ = [
    "FetchIdentity",
    "NetworkError",
    "RawPage",
    "RequestsFetcher",
    "extract_title",
]
