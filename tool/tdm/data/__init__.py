# データモジュール
# 階層 JSON ドキュメントの読み込みとディープマージを提供

from .loader import DataLayout, Document, TestDataLoader, load_test_data, read_document
from .merge import deep_merge, merge_all

__all__ = [
    "DataLayout",
    "Document",
    "TestDataLoader",
    "deep_merge",
    "load_test_data",
    "merge_all",
    "read_document",
]
