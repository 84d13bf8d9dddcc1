"""メールボックス一覧クロールの監視ダッシュボード。"""
