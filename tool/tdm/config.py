"""
ストア設定 — プロジェクトファイル・環境変数からの設定読み込み

テストデータストアの動作を制御する設定を解決する。
明示引数 > 環境変数 > tdm.yaml > デフォルト値 の優先順位で適用される。

環境変数一覧:
  TEST_ENV           : 実行環境名（デフォルト: qa）
  TDM_DATA_ROOT      : features/ を含むデータルート（デフォルト: .）
  TDM_RESULTS_DIR    : 永続データファイルの出力先（デフォルト: test-results）
  TDM_PERSISTENT_FILE: 永続データファイルのパス（並列プロセス間で共有する場合に指定）
  TDM_PERSIST_ERRORS : 永続化失敗時の扱い（warn/raise, デフォルト: warn）
  TDM_FILE_LOCK      : プロセス内ファイルロック（true/false, デフォルト: true）
  TDM_FAKER_LOCALE   : Faker のロケール（デフォルト: en_US）
  TDM_FAKER_SEED     : Faker のシード値（デフォルト: 未設定）
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Literal, Mapping, Optional

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# 定数
# ---------------------------------------------------------------------------

PROJECT_FILE_NAME = "tdm.yaml"
"""カレントディレクトリで自動検出するプロジェクト設定ファイル名。"""

_ENV_ENVIRONMENT = "TEST_ENV"
_ENV_DATA_ROOT = "TDM_DATA_ROOT"
_ENV_RESULTS_DIR = "TDM_RESULTS_DIR"
_ENV_PERSISTENT_FILE = "TDM_PERSISTENT_FILE"
_ENV_PERSIST_ERRORS = "TDM_PERSIST_ERRORS"
_ENV_FILE_LOCK = "TDM_FILE_LOCK"
_ENV_FAKER_LOCALE = "TDM_FAKER_LOCALE"
_ENV_FAKER_SEED = "TDM_FAKER_SEED"

_PERSIST_ERROR_MODES = ("warn", "raise")


class ConfigError(Exception):
    """明示指定された設定ファイルを読み込めない場合に送出される例外。

    Attributes:
        path: 設定ファイルのパス
    """

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f"設定ファイルを読み込めません: {path} ({reason})")


# ---------------------------------------------------------------------------
# 設定データクラス
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StoreConfig:
    """テストデータストアの実行時設定。

    Attributes:
        environment: 実行環境名（qa, staging 等）
        data_root: features/<feature>/data/ を含むルートディレクトリ
        results_dir: 永続データファイルを書き出すディレクトリ
        persistent_file: 永続データファイルのパス（None なら results_dir と実行開始時刻から決定）
        persist_errors: 永続化失敗時の扱い（"warn" は警告のみ、"raise" は例外）
        file_lock: 同一プロセス内で永続ファイルの読み書きを直列化するか
        faker_locale: ダミーデータ生成のロケール
        faker_seed: ダミーデータ生成のシード（None でランダム）
    """

    environment: str = "qa"
    data_root: Path = Path(".")
    results_dir: Path = Path("test-results")
    persistent_file: Optional[Path] = None
    persist_errors: Literal["warn", "raise"] = "warn"
    file_lock: bool = True
    faker_locale: str = "en_US"
    faker_seed: Optional[int] = None


# ---------------------------------------------------------------------------
# 値の変換ヘルパー
# ---------------------------------------------------------------------------

def _parse_bool(value: str) -> bool:
    """文字列を bool に変換する。

    Args:
        value: "true", "1", "yes" → True、それ以外 → False

    Returns:
        変換結果
    """
    return value.lower() in ("true", "1", "yes")


def _coerce(name: str, value: Any, source: str) -> Any:
    """設定値をフィールドの型に合わせて変換する。

    変換できない値は警告を出して None を返す（呼び出し側でデフォルトを維持）。
    """
    if name in ("data_root", "results_dir", "persistent_file"):
        return Path(str(value))
    if name == "file_lock":
        if isinstance(value, bool):
            return value
        return _parse_bool(str(value))
    if name == "faker_seed":
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning("%s の faker_seed が不正です: %s", source, value)
            return None
    if name == "persist_errors":
        if value in _PERSIST_ERROR_MODES:
            return value
        logger.warning("%s の persist_errors が不正です: %s (warn/raise)", source, value)
        return None
    return str(value)


# ---------------------------------------------------------------------------
# 各ソースからの読み込み
# ---------------------------------------------------------------------------

def load_project_file(path: Path) -> dict[str, Any]:
    """tdm.yaml を読み込み、既知のキーだけを辞書で返す。

    Args:
        path: 設定ファイルのパス

    Returns:
        設定値の辞書（未知のキーは警告して無視）

    Raises:
        ConfigError: ファイルが存在しない、または YAML 構文エラーの場合
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(path, "ファイルが存在しません")

    yaml = YAML(typ="safe")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.load(f)
    except YAMLError as e:
        raise ConfigError(path, f"YAML 構文エラー: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(path, "トップレベルがマッピングではありません")

    known = {f.name for f in fields(StoreConfig)}
    values: dict[str, Any] = {}
    for key, value in data.items():
        if key not in known:
            logger.warning("%s の未知のキーを無視します: %s", path, key)
            continue
        coerced = _coerce(key, value, str(path))
        if coerced is not None:
            values[key] = coerced
    return values


def load_env_overrides(environ: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
    """環境変数から設定値を読み取る。

    設定されていない環境変数は結果に含めない。

    Args:
        environ: 環境変数辞書（省略時は os.environ）

    Returns:
        環境変数から読み込んだ設定値の辞書
    """
    env = os.environ if environ is None else environ
    mapping = {
        _ENV_ENVIRONMENT: "environment",
        _ENV_DATA_ROOT: "data_root",
        _ENV_RESULTS_DIR: "results_dir",
        _ENV_PERSISTENT_FILE: "persistent_file",
        _ENV_PERSIST_ERRORS: "persist_errors",
        _ENV_FILE_LOCK: "file_lock",
        _ENV_FAKER_LOCALE: "faker_locale",
        _ENV_FAKER_SEED: "faker_seed",
    }
    values: dict[str, Any] = {}
    for env_key, name in mapping.items():
        if env_key not in env:
            continue
        coerced = _coerce(name, env[env_key], env_key)
        if coerced is not None:
            values[name] = coerced
    return values


def load_config(
    project_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> StoreConfig:
    """全ソースを優先順位どおりに重ねて StoreConfig を生成する。

    project_file を省略した場合はカレントディレクトリの tdm.yaml を探し、
    無ければデフォルト値のまま進む。明示指定されたファイルの読み込み失敗は
    ConfigError になる。

    Args:
        project_file: 設定ファイルのパス（省略時は自動検出）
        environ: 環境変数辞書（省略時は os.environ）
        **overrides: 最優先で適用する設定値（None の値は無視）

    Returns:
        解決済みの設定
    """
    config = StoreConfig()

    if project_file is not None:
        config = replace(config, **load_project_file(project_file))
    elif Path(PROJECT_FILE_NAME).exists():
        try:
            config = replace(config, **load_project_file(Path(PROJECT_FILE_NAME)))
        except ConfigError as exc:
            logger.warning("%s", exc)

    config = replace(config, **load_env_overrides(environ))

    explicit = {k: v for k, v in overrides.items() if v is not None}
    if explicit:
        config = replace(config, **explicit)

    logger.debug("設定を読み込みました: %s", config)
    return config
