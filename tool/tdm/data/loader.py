"""
テストデータローダー — feature / シナリオ単位の JSON ドキュメント解決

features/<feature>/data/ 配下の JSON ファイルを読み込み、
デフォルト → シナリオ の順にディープマージした静的ドキュメントを返す。

ファイル構成:
  features/<feature>/data/default.json              : feature 共通のデフォルト値
  features/<feature>/data/scenarios/<scenario>.json : シナリオ固有の上書き値

ファイルの欠落・破損はいずれもエラーにせず、空ドキュメントとして扱う。
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from pydantic import JsonValue, TypeAdapter, ValidationError

from .merge import merge_all

logger = logging.getLogger(__name__)

Document = dict[str, Any]
"""文字列キーから JSON 値（スカラー・リスト・ネストした辞書）への写像。"""

_DOCUMENT_ADAPTER: TypeAdapter[dict[str, JsonValue]] = TypeAdapter(dict[str, JsonValue])


# ---------------------------------------------------------------------------
# ドキュメント読み込み
# ---------------------------------------------------------------------------

def read_document(path: Path) -> Document:
    """JSON ドキュメントを読み込む。

    ファイルが無い場合は空辞書を返す。構文エラー・トップレベルが
    オブジェクトでない・読み込み失敗の場合は警告ログを出して空辞書を返す。

    Args:
        path: 読み込む JSON ファイルのパス

    Returns:
        読み込んだドキュメント
    """
    path = Path(path)
    if not path.exists():
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        logger.warning("JSON を解析できません: %s (行 %d, 列 %d: %s)", path, e.lineno, e.colno, e.msg)
        return {}
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("ファイルを読み込めません: %s (%s)", path, e)
        return {}

    try:
        return _DOCUMENT_ADAPTER.validate_python(raw)
    except ValidationError as e:
        logger.warning("トップレベルが JSON オブジェクトではありません: %s (%d 件のエラー)", path, e.error_count())
        return {}


# ---------------------------------------------------------------------------
# ディレクトリ構成
# ---------------------------------------------------------------------------

def _is_safe_segment(name: str) -> bool:
    """パス区切りや親ディレクトリ参照を含まない名前かどうか。"""
    return bool(name) and "/" not in name and "\\" not in name and name not in (".", "..")


@dataclass(frozen=True)
class DataLayout:
    """テストデータファイルの配置規則。

    Attributes:
        root: features/ ディレクトリを含むルート
    """

    root: Path = field(default_factory=lambda: Path("."))

    def feature_dir(self, feature_name: str) -> Optional[Path]:
        """features/<feature>/data/ を返す。不正な feature 名なら None。"""
        if not _is_safe_segment(feature_name):
            logger.warning("不正な feature 名のため無視します: %r", feature_name)
            return None
        return Path(self.root) / "features" / feature_name / "data"

    def feature_default_path(self, feature_name: str) -> Optional[Path]:
        data_dir = self.feature_dir(feature_name)
        return None if data_dir is None else data_dir / "default.json"

    def scenario_path(self, feature_name: str, scenario_key: str) -> Optional[Path]:
        data_dir = self.feature_dir(feature_name)
        if data_dir is None:
            return None
        if not _is_safe_segment(scenario_key):
            logger.warning("不正なシナリオキーのため無視します: %r", scenario_key)
            return None
        return data_dir / "scenarios" / f"{scenario_key}.json"


# ---------------------------------------------------------------------------
# TestDataLoader 本体
# ---------------------------------------------------------------------------

class TestDataLoader:
    """feature / シナリオ単位の静的テストデータを解決するローダー。

    resolve() は入力とディスク上のファイルだけで結果が決まる純粋関数として振る舞い、
    内部状態を持たない。
    """

    __test__ = False  # pytest の収集対象外

    def __init__(self, root: Path | str = ".") -> None:
        """ローダーを初期化する。

        Args:
            root: features/ ディレクトリを含むルート
        """
        self._layout = DataLayout(Path(root))

    @property
    def layout(self) -> DataLayout:
        """ファイル配置規則を返す。"""
        return self._layout

    def resolve(
        self,
        environment: str,
        feature_name: Optional[str] = None,
        scenario_key: Optional[str] = None,
    ) -> Document:
        """デフォルト → シナリオの順にマージした静的ドキュメントを返す。

        Args:
            environment: 実行環境名（ログ出力用）
            feature_name: feature 名。None または空文字なら空ドキュメント
            scenario_key: シナリオキー（@data:<key> タグ由来）

        Returns:
            マージ済みドキュメント
        """
        if not feature_name:
            return {}

        default_doc: Document = {}
        default_path = self._layout.feature_default_path(feature_name)
        if default_path is not None:
            if default_path.exists():
                default_doc = read_document(default_path)
            else:
                logger.debug("デフォルトデータがありません: %s", default_path)

        scenario_doc: Document = {}
        if scenario_key:
            scenario_path = self._layout.scenario_path(feature_name, scenario_key)
            if scenario_path is not None and scenario_path.exists():
                scenario_doc = read_document(scenario_path)
                logger.info("シナリオデータを読み込みました: %s", scenario_path)
            else:
                logger.warning(
                    "シナリオデータが見つかりません: %s (feature: %s)",
                    scenario_key, feature_name,
                )

        resolved = merge_all([default_doc, scenario_doc])
        logger.debug(
            "テストデータを解決しました: env=%s feature=%s scenario=%s keys=%d",
            environment, feature_name, scenario_key or "default", len(resolved),
        )
        return resolved


def load_test_data(
    environment: str,
    feature_name: Optional[str] = None,
    scenario_key: Optional[str] = None,
    root: Path | str = ".",
) -> Document:
    """TestDataLoader(root).resolve() の簡易呼び出し。"""
    return TestDataLoader(root).resolve(environment, feature_name, scenario_key)
