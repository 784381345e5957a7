"""CSDN 文章链接校验。"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

SITE_DOMAIN = "csdn.net"
ARTICLE_PATH = "/article/details/"

_ARTICLE_ID_REGEX = re.compile(r"/article/details/(\d+)")


@dataclass
class UrlCheckReport:
    """多行链接的校验结果，空行不计入。"""

    valid: list[str] = field(default_factory=list)
    invalid: list[str] = field(default_factory=list)


def is_acceptable(raw: str | None) -> bool:
    """判断字符串是否像一篇 CSDN 文章链接。

    只做结构检查，不访问网络，也不去重。
    """
    if not isinstance(raw, str):
        return False
    url = raw.strip()
    return SITE_DOMAIN in url and ARTICLE_PATH in url


def extract_article_id(url: str) -> str | None:
    match = _ARTICLE_ID_REGEX.search(url)
    return match.group(1) if match else None


def split_url_lines(text: str) -> list[str]:
    """按行拆分输入，返回去除首尾空白后通过校验的链接（保持原顺序）。"""
    return [line.strip() for line in text.splitlines() if is_acceptable(line)]


def validate_lines(text: str) -> UrlCheckReport:
    report = UrlCheckReport()
    for line in text.splitlines():
        url = line.strip()
        if not url:
            continue
        if is_acceptable(url):
            report.valid.append(url)
        else:
            report.invalid.append(url)
    return report
