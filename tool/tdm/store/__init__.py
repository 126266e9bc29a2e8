"""
ストアモジュール

シナリオ単位の階層テストデータストアとダミーデータ生成を提供する。

主要エクスポート:
  - ScenarioDataStore: Dynamic / Static / Durable の 3 階層ストア
  - DurableTier: 実行全体で共有する永続ファイル
  - DataGenerator: Faker によるエンティティ生成
"""

from .generators import DataGenerator, Order, OrderItem, Product, User, order_total
from .manager import (
    ScenarioDataStore,
    StoreState,
    default_persistent_path,
    format_run_timestamp,
    to_document_value,
)
from .tiers import (
    MISSING,
    DurableTier,
    DynamicTier,
    PersistenceError,
    StaticTier,
    TierProvider,
    persistent_file_name,
)

__all__ = [
    "MISSING",
    "DataGenerator",
    "DurableTier",
    "DynamicTier",
    "Order",
    "OrderItem",
    "PersistenceError",
    "Product",
    "ScenarioDataStore",
    "StaticTier",
    "StoreState",
    "TierProvider",
    "User",
    "default_persistent_path",
    "format_run_timestamp",
    "order_total",
    "persistent_file_name",
    "to_document_value",
]
