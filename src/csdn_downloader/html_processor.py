from __future__ import annotations

import html
import logging
from pathlib import Path

from bs4 import BeautifulSoup, Tag

from .fetchers.structs import RawPage

logger = logging.getLogger(__name__)

# 按优先级排列的正文容器选择器
CONTENT_SELECTORS = ("#content_views", "article")

# 正文中需要移除的干扰元素
NOISE_SELECTOR = ", ".join(
    [
        "script",
        "iframe",
        "style",
        ".hide-article-box",
        ".btn-readmore",
        ".recommend-box",
        ".opt-box",
        ".template-box",
    ]
)

# 会导致离线/分页渲染异常的图片属性
IMG_DROP_ATTRS = ("data-src", "onerror", "onload", "loading")
IMG_STYLE = "max-width: 95%; height: auto; display: block; margin: 15px auto; border-radius: 4px;"
PRE_STYLE = (
    "white-space: pre-wrap; word-break: break-all; background: #282c34; "
    "color: #abb2bf; padding: 10px; border-radius: 5px;"
)

TITLE_SUFFIX = "-CSDN博客"
PLACEHOLDER_HTML = "<div style='color:red'>无法解析正文内容，可能是付费文章或需要VIP。</div>"

DEFAULT_TEMPLATE = (
    "<!DOCTYPE html>"
    "<html lang='zh-CN'>"
    "<head><meta charset='UTF-8'><title>{{title}}</title>"
    "<style>"
    "  body { font-family: 'PingFang SC', 'Microsoft YaHei', SimHei, sans-serif; line-height: 1.6;"
    " padding: 20px; background-color: #f6f8fa; }"
    "  .paper { max-width: 900px; margin: 0 auto; background: #fff; padding: 40px;"
    " box-shadow: 0 2px 12px 0 rgba(0,0,0,0.1); }"
    "  h1 { font-size: 24px; color: #2c3e50; border-bottom: 1px solid #eaecef; padding-bottom: 10px; }"
    "  a { color: #0366d6; text-decoration: none; }"
    "  blockquote { border-left: 4px solid #dfe2e5; color: #6a737d; padding-left: 10px; margin: 10px 0; }"
    "  code { font-family: Consolas, Monaco, monospace; background: rgba(27,31,35,0.05);"
    " padding: 0.2em 0.4em; border-radius: 3px; }"
    "  pre { background: #282c34; color: #abb2bf; padding: 15px; border-radius: 5px; overflow-x: auto; }"
    "  * { font-family: 'MyChineseFont', sans-serif !important; }"
    "</style>"
    "</head>"
    "<body>"
    "  <div class='paper'>"
    "    <h1>{{title}}</h1>"
    "    <div style='color: #888; font-size: 12px; margin-bottom: 20px;'>"
    "原文链接: <a href='{{url}}'>{{url}}</a></div>"
    "    <div id='content'>{{content}}</div>"
    "  </div>"
    "</body></html>"
)


class ExtractionError(RuntimeError):
    """页面中没有任何可解析的文档内容。"""


def normalize_title(raw_title: str | None) -> str:
    """去掉站点标题后缀和首尾空白。"""
    title = (raw_title or "").strip()
    if title.endswith(TITLE_SUFFIX):
        title = title[: -len(TITLE_SUFFIX)]
    return title.strip()


def load_template(path: str | Path | None) -> str:
    """读取外部模板文件，失败时回退到内置模板。

    每个批次只应调用一次，结果作为字符串注入到 Pipeline。
    """
    if not path:
        logger.info("未配置外部模板，使用内置默认样式")
        return DEFAULT_TEMPLATE

    template_path = Path(path)
    if not template_path.exists():
        logger.info("未找到外部模板 %s，使用内置默认样式", template_path)
        return DEFAULT_TEMPLATE

    try:
        template = template_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        logger.exception("读取外部模板失败，回退到内置模板: %s", template_path)
        return DEFAULT_TEMPLATE

    if not template.strip():
        logger.warning("外部模板为空，回退到内置模板: %s", template_path)
        return DEFAULT_TEMPLATE

    logger.info("成功加载外部模板文件: %s", template_path)
    return template


def locate_content(soup: BeautifulSoup) -> Tag | None:
    for selector in CONTENT_SELECTORS:
        content = soup.select_one(selector)
        if content is not None:
            return content
    return None


def strip_noise(content: Tag) -> None:
    for tag in content.select(NOISE_SELECTOR):
        # 外层已被移除时其子节点也随之失效
        if tag.decomposed:
            continue
        tag.decompose()


def rewrite_images(content: Tag) -> None:
    """修复懒加载图片并强制响应式样式，防止图片溢出页面。"""
    for img in content.find_all("img"):
        src = str(img.get("src") or "")
        data_src = str(img.get("data-src") or "")
        if data_src:
            src = data_src
        if src.startswith("//"):
            src = "https:" + src
        img["src"] = src
        for attr in IMG_DROP_ATTRS:
            if attr in img.attrs:
                del img[attr]
        img["style"] = IMG_STYLE


def normalize_code_blocks(content: Tag) -> None:
    for pre in content.find_all("pre"):
        pre["style"] = PRE_STYLE


def render_template(template: str | None, *, title: str, url: str, content: str) -> str:
    """替换模板中的 {{title}}、{{url}}、{{content}} 占位符。

    正文最后替换，避免正文里出现的占位符文本被二次替换。
    """
    template = template or DEFAULT_TEMPLATE
    return (
        template.replace("{{title}}", html.escape(title, quote=False))
        .replace("{{url}}", html.escape(url))
        .replace("{{content}}", content)
    )


def extract(page: RawPage, source_url: str, template: str | None = None) -> str:
    """清洗页面正文并渲染为完整 HTML 文档。

    找不到正文容器时输出占位提示（仍视为成功）；只有页面完全为空时才失败。

    Args:
        page: 抓取到的原始页面
        source_url: 写入文档的原文链接
        template: 已解析好的模板字符串，None 表示使用内置模板

    Returns:
        渲染后的 HTML 字符串，相同输入输出逐字节一致

    Raises:
        ExtractionError: 页面没有任何可解析内容
    """
    if not page.body or not page.body.strip():
        raise ExtractionError(f"页面内容为空，无法解析: {source_url}")

    soup = BeautifulSoup(page.body, "html.parser")
    title = normalize_title(page.title)

    content = locate_content(soup)
    if content is None:
        logger.warning("未找到正文容器，输出占位内容: %s", source_url)
        fragment = PLACEHOLDER_HTML
    else:
        strip_noise(content)
        rewrite_images(content)
        normalize_code_blocks(content)
        fragment = content.decode_contents()

    logger.info("正文清洗完成, 标题: %s, 正文长度: %d", title, len(fragment))
    return render_template(template, title=title, url=source_url, content=fragment)
