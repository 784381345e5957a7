"""抓取请求使用的公共 Header 与身份常量。"""

from __future__ import annotations

# 浏览器身份（PRIMARY）默认 User-Agent
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# 爬虫身份（FALLBACK）默认 User-Agent
DEFAULT_BOT_USER_AGENT = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"

# Referer 指向站点自身
SITE_REFERER = "https://blog.csdn.net/"

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
    "Referer": SITE_REFERER,
}
