"""
Streamlit Community Cloud 用エントリーポイント。
mailbox_dash/web.py の内容をそのまま使用。
"""
import sys
from pathlib import Path

# プロジェクトルートをパスに追加（import より前に必須）
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import streamlit as st

try:
    import mailbox_dash.web  # noqa: F401
except Exception as e:
    st.error("アプリの読み込みに失敗しました。")
    st.exception(e)
