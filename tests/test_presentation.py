"""実行ステータスの表示定義のテスト。"""
from mailbox_dash.api.models import RunStatus, TERMINAL_STATUSES
from mailbox_dash.web_ui.presentation import STATUS_BADGES, status_badge, status_markdown


def test_every_status_has_a_badge():
    assert set(STATUS_BADGES) == set(RunStatus)
    for status in RunStatus:
        badge = status_badge(status)
        assert badge.label
        assert badge.level in ("info", "success", "warning", "error")


def test_only_running_is_non_terminal():
    assert TERMINAL_STATUSES == set(RunStatus) - {RunStatus.RUNNING}


def test_status_markdown():
    assert status_markdown(RunStatus.SUCCESS) == ":green[✅ 成功]"
