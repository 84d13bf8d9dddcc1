"""クロール実行の履歴・ライフサイクル追跡。"""
