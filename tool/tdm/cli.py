"""
CLI エントリポイント — Typer ベースのテストデータ確認ツール

tdm コマンドとして以下のサブコマンドを提供する:
  - resolve: feature / シナリオの静的ドキュメントをマージして表示
  - get: ストアと同じ優先順位でキーを検索して表示
  - show-persistent: 永続データファイルの内容を表示
  - clear-persistent: 永続データファイルを削除
  - generate: ダミーエンティティ（user / order / product）を生成して表示
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import typer

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Typer アプリ定義
# ---------------------------------------------------------------------------

app = typer.Typer(
    help=(
        "tdm — シナリオ単位の階層テストデータストア\n\n"
        "features/<feature>/data/ の JSON と実行ごとの永続データを確認します。"
    ),
    no_args_is_help=True,
)


class EntityKind(str, Enum):
    user = "user"
    order = "order"
    product = "product"


def _echo_json(value: Any) -> None:
    typer.echo(json.dumps(value, indent=2, ensure_ascii=False))


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="詳細ログを表示する"),
) -> None:
    """ログ出力を初期化する。"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s - %(levelname)s - %(message)s",
    )


# ---------------------------------------------------------------------------
# resolve コマンド
# ---------------------------------------------------------------------------

@app.command()
def resolve(
    feature: str = typer.Argument(..., help="feature 名"),
    scenario: Optional[str] = typer.Option(None, "--scenario", "-s", help="シナリオキー"),
    env: Optional[str] = typer.Option(None, "--env", "-e", help="実行環境名（デフォルト: TEST_ENV または qa）"),
    data_root: Optional[Path] = typer.Option(None, "--data-root", help="features/ を含むディレクトリ"),
) -> None:
    """feature デフォルトとシナリオ上書きをマージした結果を JSON で表示する。"""
    from .config import load_config
    from .data.loader import TestDataLoader

    try:
        config = load_config(data_root=data_root, environment=env)
        loader = TestDataLoader(config.data_root)
        _echo_json(loader.resolve(config.environment, feature, scenario))
    except Exception as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# get コマンド
# ---------------------------------------------------------------------------

@app.command()
def get(
    key: str = typer.Argument(..., help="取得するキー"),
    feature: Optional[str] = typer.Option(None, "--feature", "-f", help="feature 名"),
    scenario: Optional[str] = typer.Option(None, "--scenario", "-s", help="シナリオキー"),
    persistent: Optional[Path] = typer.Option(None, "--persistent", "-p", help="永続データファイル"),
    env: Optional[str] = typer.Option(None, "--env", "-e", help="実行環境名"),
    data_root: Optional[Path] = typer.Option(None, "--data-root", help="features/ を含むディレクトリ"),
) -> None:
    """静的ドキュメント → 永続データの順にキーを検索して表示する。

    見つからない場合は終了コード 1 を返す。
    """
    from .config import load_config
    from .store import ScenarioDataStore

    try:
        config = load_config(data_root=data_root, environment=env, persistent_file=persistent)
        store = ScenarioDataStore(config)
        if feature:
            store.configure(config.environment, feature, scenario)
        found = store.has(key)
        value = store.get(key)
    except Exception as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)

    if not found:
        typer.echo(f"キーが見つかりません: {key}", err=True)
        raise typer.Exit(code=1)
    _echo_json(value)


# ---------------------------------------------------------------------------
# 永続データコマンド
# ---------------------------------------------------------------------------

@app.command("show-persistent")
def show_persistent(
    file: Path = typer.Argument(..., help="永続データファイル"),
) -> None:
    """永続データファイルの内容を表示する。"""
    from .store import DurableTier

    if not file.exists():
        typer.echo(f"エラー: {file} が見つかりません", err=True)
        raise typer.Exit(code=1)
    _echo_json(DurableTier(file).load())


@app.command("clear-persistent")
def clear_persistent(
    file: Path = typer.Argument(..., help="永続データファイル"),
) -> None:
    """永続データファイルを削除する。存在しない場合も成功扱い。"""
    from .store import DurableTier

    DurableTier(file).clear()
    typer.echo(f"削除しました: {file}")


# ---------------------------------------------------------------------------
# generate コマンド
# ---------------------------------------------------------------------------

@app.command()
def generate(
    kind: EntityKind = typer.Argument(..., help="生成するエンティティ"),
    seed: Optional[int] = typer.Option(None, "--seed", help="シード値（再現性が必要な場合）"),
    locale: Optional[str] = typer.Option(None, "--locale", help="Faker のロケール"),
) -> None:
    """ダミーエンティティを生成して JSON で表示する（保存はしない）。"""
    from .config import load_config
    from .store import DataGenerator

    try:
        config = load_config(faker_seed=seed, faker_locale=locale)
        generator = DataGenerator(locale=config.faker_locale, seed=config.faker_seed)
        entity = getattr(generator, kind.value)()
        _echo_json(entity.model_dump(mode="json"))
    except Exception as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)
