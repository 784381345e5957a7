from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from .fetchers.html_headers import DEFAULT_BOT_USER_AGENT, DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"
DEFAULT_COOKIE_PATH = "cookie.txt"


@dataclass
class HttpConfig:
    timeout_seconds: float = 10
    user_agent: str = DEFAULT_USER_AGENT
    # 内容受限时切换使用的爬虫 UA
    bot_user_agent: str = DEFAULT_BOT_USER_AGENT
    verify_ssl: bool = True


@dataclass
class BatchConfig:
    concurrency: int = 6
    # 每个 worker 完成一个任务后的等待时间，不是全局限速
    delay_ms: int = 1500


@dataclass
class OutputConfig:
    dir: str = "CSDN_Downloads"
    template: str | None = None
    # 保存 HTML 后同时渲染 PDF
    pdf: bool = False


@dataclass
class AppConfig:
    http: HttpConfig = field(default_factory=HttpConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    cookie_file: str = DEFAULT_COOKIE_PATH


@dataclass(frozen=True)
class Credentials:
    """启动时加载一次的 Cookie，批次执行期间只读。"""

    cookies: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def __bool__(self) -> bool:
        return bool(self.cookies)

    @classmethod
    def from_cookie_string(cls, raw: str) -> Credentials:
        """解析浏览器里直接复制的 `name=value; name2=value2` 字符串。"""
        cookies: dict[str, str] = {}
        if "=" in raw:
            for part in raw.split(";"):
                name, sep, value = part.partition("=")
                name = name.strip()
                if sep and name:
                    cookies[name] = value.strip()
        return cls(cookies=MappingProxyType(cookies))

    @classmethod
    def load(cls, path: str | Path) -> Credentials:
        path = Path(path)
        if not path.exists():
            logger.info("未找到 Cookie 文件 %s，以匿名身份访问", path)
            return cls()
        try:
            raw = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("读取 Cookie 文件失败: %s", exc)
            return cls()
        credentials = cls.from_cookie_string(raw)
        logger.info("Cookie 加载成功，共 %d 条", len(credentials.cookies))
        return credentials


def _coerce_int(section: str, key: str, value: Any, default: int, *, minimum: int) -> int:
    if value in (None, ""):
        return default
    try:
        number = int(str(value).strip())
    except ValueError:
        logger.warning("%s.%s 格式错误 (%r)，使用默认值: %s", section, key, value, default)
        return default
    if number < minimum:
        logger.warning("%s.%s 不能小于 %d (%r)，使用默认值: %s", section, key, minimum, value, default)
        return default
    return number


def _coerce_float(section: str, key: str, value: Any, default: float) -> float:
    if value in (None, ""):
        return default
    try:
        number = float(str(value).strip())
    except ValueError:
        logger.warning("%s.%s 格式错误 (%r)，使用默认值: %s", section, key, value, default)
        return default
    if number <= 0:
        logger.warning("%s.%s 必须 > 0 (%r)，使用默认值: %s", section, key, value, default)
        return default
    return number


_TRUE_WORDS = {"true", "yes", "on", "1"}
_FALSE_WORDS = {"false", "no", "off", "0"}


def _coerce_bool(section: str, key: str, value: Any, default: bool) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    word = str(value).strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    logger.warning("%s.%s 不是布尔值 (%r)，使用默认值: %s", section, key, value, default)
    return default


def _coerce_str(value: Any, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, Mapping):
        logger.warning("配置段 %s 必须是映射，已忽略", name)
        return {}
    return value


def build_config(raw: Mapping[str, Any]) -> AppConfig:
    """由原始字典构造配置，单项格式错误时记录警告并回退到默认值。"""
    http_raw = _section(raw, "http")
    batch_raw = _section(raw, "batch")
    output_raw = _section(raw, "output")
    cookies_raw = _section(raw, "cookies")

    defaults = AppConfig()

    http = HttpConfig(
        timeout_seconds=_coerce_float(
            "http", "timeout_seconds", http_raw.get("timeout_seconds"), defaults.http.timeout_seconds
        ),
        user_agent=_coerce_str(http_raw.get("user_agent"), defaults.http.user_agent),
        bot_user_agent=_coerce_str(http_raw.get("bot_user_agent"), defaults.http.bot_user_agent),
        verify_ssl=_coerce_bool("http", "verify_ssl", http_raw.get("verify_ssl"), defaults.http.verify_ssl),
    )
    batch = BatchConfig(
        concurrency=_coerce_int(
            "batch", "concurrency", batch_raw.get("concurrency"), defaults.batch.concurrency, minimum=1
        ),
        delay_ms=_coerce_int("batch", "delay_ms", batch_raw.get("delay_ms"), defaults.batch.delay_ms, minimum=0),
    )
    template = output_raw.get("template")
    output = OutputConfig(
        dir=_coerce_str(output_raw.get("dir"), defaults.output.dir),
        template=str(template).strip() if template else None,
        pdf=_coerce_bool("output", "pdf", output_raw.get("pdf"), defaults.output.pdf),
    )

    return AppConfig(
        http=http,
        batch=batch,
        output=output,
        cookie_file=_coerce_str(cookies_raw.get("file"), defaults.cookie_file),
    )


def apply_overrides(
    config: AppConfig,
    *,
    cookie_file: str | None = None,
    template: str | None = None,
    output_dir: str | None = None,
    concurrency: Any = None,
    delay_ms: Any = None,
    timeout_seconds: Any = None,
    pdf: bool | None = None,
) -> AppConfig:
    """用命令行参数覆盖配置。

    数值参数与配置文件走同一套校验，非法值记录警告后保留当前配置值。
    """
    if cookie_file:
        config.cookie_file = cookie_file
    if template:
        config.output.template = template
    if output_dir:
        config.output.dir = output_dir
    if pdf is not None:
        config.output.pdf = pdf
    config.batch.concurrency = _coerce_int(
        "batch", "concurrency", concurrency, config.batch.concurrency, minimum=1
    )
    config.batch.delay_ms = _coerce_int("batch", "delay_ms", delay_ms, config.batch.delay_ms, minimum=0)
    config.http.timeout_seconds = _coerce_float(
        "http", "timeout_seconds", timeout_seconds, config.http.timeout_seconds
    )
    return config


def load_config(path: str | Path | None = DEFAULT_CONFIG_PATH) -> AppConfig:
    """加载 YAML 配置文件，文件不存在时使用全部默认值。"""
    if path is None:
        return AppConfig()

    path = Path(path)
    if not path.exists():
        logger.info("未找到配置文件 %s，使用内置默认配置", path)
        return AppConfig()

    with path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, Mapping):
        logger.warning("配置文件 %s 顶层不是映射，使用内置默认配置", path)
        return AppConfig()

    config = build_config(raw)
    logger.info(
        "配置加载完成: output=%s, timeout=%ss, concurrency=%d, delay=%dms",
        config.output.dir,
        config.http.timeout_seconds,
        config.batch.concurrency,
        config.batch.delay_ms,
    )
    return config
