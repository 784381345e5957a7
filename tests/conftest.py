"""共享测试 fixtures 和配置。"""

from __future__ import annotations

from pathlib import Path

import pytest

from csdn_downloader.config import AppConfig, BatchConfig, HttpConfig, OutputConfig
from csdn_downloader.fetchers.requests_fetcher import extract_title
from csdn_downloader.fetchers.structs import FetchIdentity, NetworkError, RawPage

ARTICLE_URL = "https://blog.csdn.net/demo_user/article/details/123456789"


# ============================================================
# 配置相关 Fixtures
# ============================================================


@pytest.fixture
def sample_http_config() -> HttpConfig:
    """创建测试用 HTTP 配置。"""
    return HttpConfig(timeout_seconds=5, verify_ssl=True)


@pytest.fixture
def sample_app_config(sample_http_config: HttpConfig, tmp_path: Path) -> AppConfig:
    """创建完整的测试用应用配置，输出目录指向临时目录。"""
    return AppConfig(
        http=sample_http_config,
        batch=BatchConfig(concurrency=2, delay_ms=0),
        output=OutputConfig(dir=str(tmp_path / "out")),
        cookie_file=str(tmp_path / "cookie.txt"),
    )


@pytest.fixture
def sample_config_path(tmp_path: Path) -> Path:
    """创建临时测试配置文件并返回路径。"""
    config_content = """
http:
  timeout_seconds: 15
  user_agent: "TestBrowser/1.0"
  bot_user_agent: "TestBot/1.0"
  verify_ssl: false

batch:
  concurrency: 3
  delay_ms: 200

output:
  dir: "./downloads"
  template: "template.html"

cookies:
  file: "my_cookie.txt"
"""
    config_path = tmp_path / "test_config.yaml"
    config_path.write_text(config_content, encoding="utf-8")
    return config_path


# ============================================================
# CSDN 页面相关 Fixtures
# ============================================================


@pytest.fixture
def article_url() -> str:
    return ARTICLE_URL


@pytest.fixture
def normal_article_html() -> str:
    """正常可读的 CSDN 文章页面。"""
    return """
<!DOCTYPE html>
<html lang="zh-CN">
<head>
    <meta charset="UTF-8">
    <title>Python 并发编程入门-CSDN博客</title>
</head>
<body>
    <div class="toolbar">导航栏</div>
    <div id="article_content">
        <div id="content_views">
            <h2>线程池</h2>
            <p>使用 ThreadPoolExecutor 可以方便地管理线程。</p>
            <img src="" data-src="//img-blog.csdnimg.cn/demo.png" onerror="this.remove()">
            <pre><code>from concurrent.futures import ThreadPoolExecutor</code></pre>
            <script>console.log('tracking');</script>
            <div class="recommend-box">相关推荐</div>
        </div>
    </div>
    <div class="btn-readmore">阅读全文</div>
</body>
</html>
"""


@pytest.fixture
def paywalled_article_html() -> str:
    """被折叠（需要关注/付费）的文章页面。"""
    return """
<html>
<head><title>付费专栏文章-CSDN博客</title></head>
<body>
    <div id="content_views"><p>前半部分内容</p></div>
    <div class="hide-article-box">关注博主即可阅读全文</div>
</body>
</html>
"""


@pytest.fixture
def challenge_html() -> str:
    """没有正文容器的反爬挑战页。"""
    return """
<html>
<head><title>安全验证</title></head>
<body><div class="captcha">请完成验证</div></body>
</html>
"""


# ============================================================
# Fake Fetcher
# ============================================================


class FakeFetcher:
    """按 (url, identity) 返回预设页面的 Fetcher，记录每次调用。"""

    def __init__(self, responses: dict[tuple[str, FetchIdentity], RawPage | Exception]) -> None:
        self._responses = responses
        self.calls: list[tuple[str, FetchIdentity]] = []

    def fetch(self, url: str, identity: FetchIdentity = FetchIdentity.PRIMARY) -> RawPage:
        self.calls.append((url, identity))
        outcome = self._responses.get((url, identity))
        if outcome is None:
            raise NetworkError(f"未预设响应: {url} ({identity.value})")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def make_page(url: str, body: str, *, status: int = 200, title: str | None = None) -> RawPage:
    """构造 RawPage；未指定标题时从 HTML 中读取。"""
    return RawPage(
        url=url,
        final_url=url,
        status_code=status,
        body=body,
        title=extract_title(body) if title is None else title,
        content_type="text/html; charset=utf-8",
    )


# ============================================================
# Pytest Hooks
# ============================================================


def pytest_addoption(parser: pytest.Parser) -> None:
    """注册 --run-functional 选项，用于控制真实功能测试执行。"""
    parser.addoption(
        "--run-functional",
        action="store_true",
        default=False,
        help="运行带 functional 标记的真实功能测试，默认跳过以避免访问外部网络",
    )


def pytest_configure(config: pytest.Config) -> None:
    """注册 pytest 标记。"""
    config.addinivalue_line(
        "markers",
        "functional: 需要访问真实 CSDN 站点的功能测试",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """默认跳过 functional 测试，除非显式传入 --run-functional。"""
    if config.getoption("--run-functional"):
        return

    skip_marker = pytest.mark.skip(reason="缺少 --run-functional，因此跳过真实功能测试")
    for item in items:
        if "functional" in item.keywords:
            item.add_marker(skip_marker)
