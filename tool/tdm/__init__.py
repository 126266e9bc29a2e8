"""
tdm — シナリオ単位の階層テストデータストア

テスト自動化ハーネスのステップに値を供給する。
feature / シナリオ単位の静的 JSON ドキュメントのマージ、
シナリオ内の一時データ、実行全体で共有する永続データの 3 階層を扱う。
"""

from .config import StoreConfig, load_config
from .data import TestDataLoader, deep_merge, load_test_data
from .hooks import ScenarioHooks, extract_scenario_key
from .store import DataGenerator, DurableTier, PersistenceError, ScenarioDataStore, StoreState

__all__ = [
    "DataGenerator",
    "DurableTier",
    "PersistenceError",
    "ScenarioDataStore",
    "ScenarioHooks",
    "StoreConfig",
    "StoreState",
    "TestDataLoader",
    "deep_merge",
    "extract_scenario_key",
    "load_config",
    "load_test_data",
]
