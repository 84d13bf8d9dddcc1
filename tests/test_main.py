"""CLI（main）のテスト。モックバックエンドのみ使う。"""
import pytest

from mailbox_dash.main import main


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    for key in ("BACKEND_MODE", "API_BASE_URL"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("CONFIG_PATH", str(tmp_path / "missing.yaml"))


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "usage" in capsys.readouterr().out


def test_stats(capsys):
    assert main(["--mock", "stats"]) == 0
    assert "total=120" in capsys.readouterr().out


def test_mailboxes_page(capsys):
    assert main(["--mock", "mailboxes", "--page-size", "5", "--state", "CA"]) == 0
    out = capsys.readouterr().out
    assert "page 1/" in out


def test_runs_lists_history(capsys):
    assert main(["--mock", "runs"]) == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[0].startswith("RUN_20250520000002\tsuccess")


def test_cancel_finished_run_fails():
    assert main(["--mock", "cancel", "RUN_20250520000002"]) == 1


def test_invalid_page_fails():
    assert main(["--mock", "mailboxes", "--page", "0"]) == 1
