"""メールボックスディレクトリの検索・集計。"""
