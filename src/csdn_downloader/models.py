"""批量下载的任务与结果模型。"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, model_validator

NOT_FOUND_STATUS = 404


@dataclass(frozen=True)
class Task:
    """一条通过校验的下载任务。

    Attributes:
        sequence_index: 在已接受链接中的序号（从 1 开始）
        url: 去除首尾空白后的文章链接
    """

    sequence_index: int
    url: str


def _now() -> datetime:
    return datetime.now(timezone.utc)


class DownloadResult(BaseModel):
    """单篇文章的最终处理结果，创建后不可修改。

    三种结局必须可区分：
    - success=True：抓取并清洗成功
    - success=False 且 article_exists=False：文章不存在（HTTP 404）
    - success=False 且 article_exists=True：文章存在但未能获取
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    url: str
    title: str = ""
    error: str | None = None
    html: str | None = None
    http_status: int = 200
    content_type: str | None = None
    elapsed_ms: int = 0
    content_length: int = 0
    article_exists: bool = True
    article_id: str | None = None
    # 对应 Task.sequence_index，0 表示不属于任何批次
    sequence_index: int = 0
    # 首次抓取命中的限制原因（paywall/antibot/missing），未受限为 None
    restriction: str | None = None
    produced_at: datetime = Field(default_factory=_now)

    @model_validator(mode="after")
    def _check_invariants(self) -> DownloadResult:
        if self.success:
            if not self.html:
                raise ValueError("成功结果必须包含非空 html")
            if self.error is not None:
                raise ValueError("成功结果不能包含 error")
        elif self.html is not None:
            raise ValueError("失败结果不能包含 html")
        if self.article_exists != (self.http_status != NOT_FOUND_STATUS):
            raise ValueError("article_exists 仅在 http_status == 404 时为 False")
        return self

    @property
    def not_found(self) -> bool:
        return not self.success and self.http_status == NOT_FOUND_STATUS

    @classmethod
    def failure(
        cls,
        url: str,
        error: str,
        http_status: int = 500,
        *,
        title: str = "",
        elapsed_ms: int = 0,
        article_id: str | None = None,
        sequence_index: int = 0,
        restriction: str | None = None,
    ) -> DownloadResult:
        """快速创建失败结果，article_exists 由状态码推导。"""
        return cls(
            success=False,
            url=url,
            title=title,
            error=error,
            http_status=http_status,
            elapsed_ms=elapsed_ms,
            article_exists=http_status != NOT_FOUND_STATUS,
            article_id=article_id,
            sequence_index=sequence_index,
            restriction=restriction,
        )
