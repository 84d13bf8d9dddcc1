"""Streamlit Web UI。"""
