"""ダッシュボード API（外部バックエンド）クライアントとレスポンスモデル。"""
