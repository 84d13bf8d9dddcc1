"""ui_state（選択中 run ID の保存）のテスト。"""
from mailbox_dash.store import db, repo_ui_state
from mailbox_dash.web_ui.run_tracking import load_selected_run_id, save_selected_run_id


def test_set_get_and_delete():
    conn = db.get_connection(":memory:")
    db.init_schema(conn)
    assert repo_ui_state.get_selected_run_id(conn) is None
    repo_ui_state.save_selected_run_id(conn, "RUN_1")
    repo_ui_state.save_selected_run_id(conn, "RUN_2")
    assert repo_ui_state.get_selected_run_id(conn) == "RUN_2"
    repo_ui_state.save_selected_run_id(conn, None)
    assert repo_ui_state.get_selected_run_id(conn) is None
    conn.close()


def test_selected_run_survives_reconnect(tmp_path):
    path = str(tmp_path / "sub" / "state.db")
    assert load_selected_run_id(path) is None
    save_selected_run_id("RUN_20250521120000", path)
    assert load_selected_run_id(path) == "RUN_20250521120000"
