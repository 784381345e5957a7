"""配置与 Cookie 加载测试。"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from csdn_downloader.config import AppConfig, Credentials, apply_overrides, build_config, load_config
from csdn_downloader.fetchers.html_headers import DEFAULT_USER_AGENT


class TestLoadConfig:
    """测试 YAML 配置加载。"""

    def test_load_from_file(self, sample_config_path: Path) -> None:
        config = load_config(sample_config_path)

        assert config.http.timeout_seconds == 15
        assert config.http.user_agent == "TestBrowser/1.0"
        assert config.http.bot_user_agent == "TestBot/1.0"
        assert config.http.verify_ssl is False
        assert config.batch.concurrency == 3
        assert config.batch.delay_ms == 200
        assert config.output.dir == "./downloads"
        assert config.output.template == "template.html"
        assert config.cookie_file == "my_cookie.txt"

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        config = load_config(tmp_path / "nope.yaml")

        assert config == AppConfig()
        assert config.batch.concurrency == 6
        assert config.batch.delay_ms == 1500
        assert config.http.timeout_seconds == 10
        assert config.output.dir == "CSDN_Downloads"
        assert config.cookie_file == "cookie.txt"

    def test_none_path(self) -> None:
        assert load_config(None) == AppConfig()

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")

        assert load_config(path) == AppConfig()

    def test_non_mapping_top_level(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with caplog.at_level(logging.WARNING):
            config = load_config(path)

        assert config == AppConfig()
        assert "顶层不是映射" in caplog.text


class TestBuildConfig:
    """测试单项回退。"""

    def test_malformed_values_fall_back(self, caplog: pytest.LogCaptureFixture) -> None:
        raw = {
            "http": {"timeout_seconds": "fast", "user_agent": "  "},
            "batch": {"concurrency": "abc", "delay_ms": -1},
        }

        with caplog.at_level(logging.WARNING):
            config = build_config(raw)

        assert config.http.timeout_seconds == 10
        assert config.http.user_agent == DEFAULT_USER_AGENT
        assert config.batch.concurrency == 6
        assert config.batch.delay_ms == 1500
        assert "batch.concurrency" in caplog.text
        assert "http.timeout_seconds" in caplog.text

    def test_zero_concurrency_rejected(self) -> None:
        assert build_config({"batch": {"concurrency": 0}}).batch.concurrency == 6

    def test_zero_delay_allowed(self) -> None:
        assert build_config({"batch": {"delay_ms": 0}}).batch.delay_ms == 0

    def test_section_not_mapping(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING):
            config = build_config({"http": "oops"})

        assert config.http.timeout_seconds == 10
        assert "http" in caplog.text


class TestCredentials:
    """测试 Cookie 解析。"""

    def test_parse_cookie_string(self) -> None:
        credentials = Credentials.from_cookie_string("UserName=demo; UserToken=a=b ; ;bad\n")

        assert dict(credentials.cookies) == {"UserName": "demo", "UserToken": "a=b"}
        assert bool(credentials) is True

    def test_string_without_pairs(self) -> None:
        assert bool(Credentials.from_cookie_string("just-some-text")) is False

    def test_cookies_read_only(self) -> None:
        credentials = Credentials.from_cookie_string("a=1")

        with pytest.raises(TypeError):
            credentials.cookies["b"] = "2"  # type: ignore[index]

    def test_load_file(self, tmp_path: Path) -> None:
        path = tmp_path / "cookie.txt"
        path.write_text("a=1; b=2\n", encoding="utf-8")

        assert dict(Credentials.load(path).cookies) == {"a": "1", "b": "2"}

    def test_load_missing_file(self, tmp_path: Path) -> None:
        credentials = Credentials.load(tmp_path / "cookie.txt")

        assert bool(credentials) is False
        assert dict(credentials.cookies) == {}


class TestBooleanValues:
    """测试布尔配置项。"""

    @pytest.mark.parametrize(("raw", "expected"), [("false", False), ("no", False), ("0", False), ("Yes", True)])
    def test_string_values(self, raw: str, expected: bool) -> None:
        assert build_config({"http": {"verify_ssl": raw}}).http.verify_ssl is expected

    def test_yaml_boolean(self) -> None:
        assert build_config({"http": {"verify_ssl": False}}).http.verify_ssl is False

    def test_invalid_value_falls_back(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING):
            config = build_config({"http": {"verify_ssl": "maybe"}, "output": {"pdf": "sometimes"}})

        assert config.http.verify_ssl is True
        assert config.output.pdf is False
        assert "http.verify_ssl" in caplog.text
        assert "output.pdf" in caplog.text

    def test_pdf_enabled(self) -> None:
        assert build_config({"output": {"pdf": True}}).output.pdf is True


class TestApplyOverrides:
    """测试命令行覆盖值的校验。"""

    def test_valid_overrides(self) -> None:
        config = apply_overrides(
            AppConfig(),
            cookie_file="c.txt",
            output_dir="out",
            concurrency=2,
            delay_ms=0,
            timeout_seconds=3.5,
            pdf=True,
        )

        assert config.cookie_file == "c.txt"
        assert config.output.dir == "out"
        assert config.batch.concurrency == 2
        assert config.batch.delay_ms == 0
        assert config.http.timeout_seconds == 3.5
        assert config.output.pdf is True

    @pytest.mark.parametrize(
        ("overrides", "key"),
        [
            ({"concurrency": 0}, "batch.concurrency"),
            ({"delay_ms": -1}, "batch.delay_ms"),
            ({"timeout_seconds": 0}, "http.timeout_seconds"),
        ],
    )
    def test_invalid_values_keep_current(
        self, overrides: dict[str, int], key: str, caplog: pytest.LogCaptureFixture
    ) -> None:
        """非法覆盖值记录警告，保留原配置值。"""
        with caplog.at_level(logging.WARNING):
            config = apply_overrides(AppConfig(), **overrides)

        assert config == AppConfig()
        assert key in caplog.text

    def test_invalid_value_keeps_file_value(self, sample_config_path: Path) -> None:
        config = apply_overrides(load_config(sample_config_path), concurrency=-3)

        assert config.batch.concurrency == 3

    def test_none_means_no_override(self, sample_config_path: Path) -> None:
        config = apply_overrides(load_config(sample_config_path))

        assert config == load_config(sample_config_path)
