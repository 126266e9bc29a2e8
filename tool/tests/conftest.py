"""
テスト共通フィクスチャ・Hypothesis ストラテジー定義

全テストモジュールで共有するフィクスチャとデータ生成器を提供する。
features/<feature>/data/ のディレクトリ構成は tmp_path 配下に毎回作り直す。
"""

import json
from pathlib import Path

import pytest
from hypothesis import HealthCheck, settings
from hypothesis import strategies as st

from tdm.config import StoreConfig
from tdm.store import ScenarioDataStore

# 入れ子ドキュメント生成では too_slow ヘルスチェックを無効にする
settings.register_profile(
    "tdm",
    suppress_health_check=[HealthCheck.too_slow],
    deadline=None,
)
settings.load_profile("tdm")


# ---------------------------------------------------------------------------
# ヘルパー
# ---------------------------------------------------------------------------

def write_json(path: Path, data: object) -> Path:
    """親ディレクトリを作成して JSON を書き出す。"""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# pytest フィクスチャ
# ---------------------------------------------------------------------------

@pytest.fixture
def data_root(tmp_path: Path) -> Path:
    """login / checkout feature のテストデータを配置したルートディレクトリ。

    構成:
      features/login/data/default.json
      features/login/data/scenarios/standard_login.json
      features/login/data/scenarios/broken.json（JSON 構文エラー）
      features/checkout/data/default.json（ネストしたドキュメント）
      features/checkout/data/scenarios/express.json
    """
    root = tmp_path / "project"
    login = root / "features" / "login" / "data"
    write_json(login / "default.json", {"expectedTitle": "Login"})
    write_json(login / "scenarios" / "standard_login.json", {"expectedWelcomeMessage": "Welcome!"})
    (login / "scenarios" / "broken.json").write_text("{not json", encoding="utf-8")

    checkout = root / "features" / "checkout" / "data"
    write_json(checkout / "default.json", {
        "currency": "USD",
        "shipping": {"method": "standard", "days": 5, "carriers": ["ups", "fedex"]},
        "coupon": None,
    })
    write_json(checkout / "scenarios" / "express.json", {
        "shipping": {"method": "express", "days": 1, "carriers": ["dhl"]},
        "coupon": "FAST10",
    })
    return root


@pytest.fixture
def store_config(tmp_path: Path, data_root: Path) -> StoreConfig:
    """tmp_path 配下を使うストア設定。Faker のシードを固定する。"""
    return StoreConfig(
        environment="qa",
        data_root=data_root,
        results_dir=tmp_path / "test-results",
        persistent_file=tmp_path / "test-results" / "persistent-data-test.json",
        faker_seed=1234,
    )


@pytest.fixture
def store(store_config: StoreConfig) -> ScenarioDataStore:
    """未構成の ScenarioDataStore。"""
    return ScenarioDataStore(store_config)


# ---------------------------------------------------------------------------
# Hypothesis ストラテジー
# ---------------------------------------------------------------------------

def make_scalar_strategy():
    """ドキュメントに入り得るスカラー値（NaN/Infinity は JSON 非互換のため除外）。"""
    return st.one_of(
        st.none(),
        st.booleans(),
        st.integers(min_value=-10**6, max_value=10**6),
        st.floats(allow_nan=False, allow_infinity=False),
        st.text(max_size=10),
    )


def make_key_strategy():
    return st.text(alphabet="abcdefgh", min_size=1, max_size=3)


def make_document_strategy(max_leaves: int = 8):
    """ネストした辞書・リストを含むドキュメントを生成する。"""
    values = st.recursive(
        make_scalar_strategy(),
        lambda children: st.one_of(
            st.lists(children, max_size=3),
            st.dictionaries(make_key_strategy(), children, max_size=3),
        ),
        max_leaves=max_leaves,
    )
    return st.dictionaries(make_key_strategy(), values, max_size=5)
