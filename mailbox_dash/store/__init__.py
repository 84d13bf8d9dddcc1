"""ローカル永続化（SQLite）。"""
