"""访问限制检测：判断抓到的页面是否被折叠、拦截或缺失正文。"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from bs4 import BeautifulSoup

from .fetchers.structs import RawPage

logger = logging.getLogger(__name__)

CONTENT_SELECTOR = "#content_views"
FALLBACK_CONTENT_SELECTOR = "article"
# 付费/关注后可读的折叠框
GATED_MARKER = "hide-article-box"
# 防火墙拦截页的标题标记
ACCESS_CONTROL_MARKER = "Custom-Access-Control"


class VerdictStatus(str, Enum):
    NORMAL = "normal"
    RESTRICTED = "restricted"


class RestrictionReason(str, Enum):
    PAYWALL = "paywall"
    ANTIBOT = "antibot"
    # 正文容器缺失：可能是反爬挑战页，也可能是文章已删除，二者不做区分
    MISSING = "missing"


@dataclass(frozen=True)
class RestrictionVerdict:
    status: VerdictStatus
    reason: RestrictionReason | None = None

    @property
    def restricted(self) -> bool:
        return self.status is VerdictStatus.RESTRICTED

    @classmethod
    def normal(cls) -> RestrictionVerdict:
        return cls(VerdictStatus.NORMAL)

    @classmethod
    def restricted_by(cls, reason: RestrictionReason) -> RestrictionVerdict:
        return cls(VerdictStatus.RESTRICTED, reason)


def classify(page: RawPage) -> RestrictionVerdict:
    """按固定顺序检测页面，命中第一条规则即返回。

    1. 正文容器与兜底容器都不存在 -> missing
    2. 页面包含折叠框标记 -> paywall
    3. 标题包含访问控制标记 -> antibot
    4. 其他 -> normal
    """
    soup = BeautifulSoup(page.body, "html.parser")
    if soup.select_one(CONTENT_SELECTOR) is None and soup.select_one(FALLBACK_CONTENT_SELECTOR) is None:
        verdict = RestrictionVerdict.restricted_by(RestrictionReason.MISSING)
    elif GATED_MARKER in page.body:
        verdict = RestrictionVerdict.restricted_by(RestrictionReason.PAYWALL)
    elif ACCESS_CONTROL_MARKER in page.title:
        verdict = RestrictionVerdict.restricted_by(RestrictionReason.ANTIBOT)
    else:
        verdict = RestrictionVerdict.normal()

    logger.debug("限制检测结果: %s -> %s (%s)", page.url, verdict.status.value, verdict.reason)
    return verdict
