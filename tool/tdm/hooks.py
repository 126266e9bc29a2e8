"""
シナリオフック — テストハーネスとストアをつなぐライフサイクル処理

BDD ランナー（pytest-bdd, behave 等）の before/after フックから呼び出し、
シナリオ開始時に @data:<key> タグからシナリオキーを取り出してストアを構成し、
シナリオ終了時に Dynamic 階層を破棄する。

タグは "@data:standard_login" と "data:standard_login" のどちらの形式も受け付ける
（ランナーによって先頭の @ の有無が異なるため）。
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .store.manager import ScenarioDataStore

logger = logging.getLogger(__name__)

DATA_TAG_PREFIX = "data:"


def extract_scenario_key(tags: Iterable[str]) -> Optional[str]:
    """タグ一覧から最初の data:<key> タグのキーを返す。

    Args:
        tags: シナリオのタグ一覧

    Returns:
        シナリオキー。該当タグが無い、またはキーが空なら None
    """
    for tag in tags:
        name = tag[1:] if tag.startswith("@") else tag
        if name.startswith(DATA_TAG_PREFIX):
            key = name[len(DATA_TAG_PREFIX):].strip()
            return key or None
    return None


class ScenarioHooks:
    """1 つのストアに対するシナリオ前後処理。"""

    def __init__(self, store: ScenarioDataStore) -> None:
        self._store = store
        self._scenario_name = ""

    @property
    def store(self) -> ScenarioDataStore:
        return self._store

    def before_all(self) -> None:
        logger.info("テストスイートを開始します (永続データ: %s)", self._store.persistent_path)

    def before_scenario(
        self,
        feature_name: str,
        scenario_name: str,
        tags: Iterable[str] = (),
        environment: Optional[str] = None,
    ) -> Optional[str]:
        """シナリオ開始時にストアを構成する。

        Args:
            feature_name: feature 名（features/<feature>/data/ のディレクトリ名）
            scenario_name: シナリオ名（ログ出力用）
            tags: シナリオのタグ一覧
            environment: 実行環境名（省略時は設定の environment）

        Returns:
            使用したシナリオキー（無ければ None）
        """
        env = environment or self._store.config.environment
        scenario_key = extract_scenario_key(tags)
        self._scenario_name = scenario_name
        self._store.configure(env, feature_name, scenario_key)
        logger.info("シナリオを実行します: %s (feature: %s)", scenario_name, feature_name)
        logger.info("環境: %s, データキー: %s", env, scenario_key or "default")
        return scenario_key

    def after_scenario(self) -> None:
        """シナリオ終了時に Dynamic 階層を破棄する。"""
        self._store.end_scenario()
        logger.info("シナリオが完了しました: %s", self._scenario_name)

    def after_all(self) -> None:
        logger.info("テストスイートが完了しました")
