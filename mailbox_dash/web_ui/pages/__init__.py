"""Web UI ページモジュール。"""
from mailbox_dash.web_ui.pages.analytics import render_analytics
from mailbox_dash.web_ui.pages.crawler import render_crawler
from mailbox_dash.web_ui.pages.mailboxes import render_mailboxes

__all__ = ["render_analytics", "render_mailboxes", "render_crawler"]
