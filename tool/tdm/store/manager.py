"""
ScenarioDataStore — シナリオ単位の階層テストデータストア

テストステップに値（認証情報・期待メッセージ・生成エンティティ等）を供給する。
get() は次の順に階層を問い合わせ、最初に見つかった値を返す:

  1. Dynamic : 現在のシナリオで store_data() された値（シナリオ終了で破棄）
  2. Static  : feature デフォルト + シナリオ上書きをマージした静的ドキュメント
  3. Durable : 実行（run）全体で共有する JSON ファイル

階層をまたいだ値のマージは行わない。

store_data() は Dynamic に書き込んだ後、Durable ファイル全体を読み込み・更新・書き戻す。
ファイル書き込みに失敗しても Dynamic の値は残る。
別プロセスのストアが同じファイルへ同時に書き込むと、ファイル単位で後勝ちとなる。

状態遷移:
  UNCONFIGURED --configure()--> CONFIGURED --end_scenario()--> UNCONFIGURED
  （end_scenario() は静的ドキュメントを保持したまま Dynamic だけを破棄する）
"""

from __future__ import annotations

import enum
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic_core import PydanticSerializationError, to_jsonable_python

from ..config import StoreConfig
from ..data.loader import Document, TestDataLoader
from .generators import DataGenerator, Order, Product, User
from .tiers import (
    MISSING,
    DurableTier,
    DynamicTier,
    PersistenceError,
    StaticTier,
    TierProvider,
    persistent_file_name,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# 実行開始時刻
# ---------------------------------------------------------------------------

_RUN_STARTED_AT: Optional[datetime] = None


def run_started_at() -> datetime:
    """このプロセスで最初に呼ばれた時刻を実行開始時刻として返す。"""
    global _RUN_STARTED_AT
    if _RUN_STARTED_AT is None:
        _RUN_STARTED_AT = datetime.now(timezone.utc)
    return _RUN_STARTED_AT


def format_run_timestamp(moment: datetime) -> str:
    """実行開始時刻を ISO-8601（ミリ秒・UTC の Z 表記）に整形する。"""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def default_persistent_path(config: StoreConfig, started_at: Optional[datetime] = None) -> Path:
    """設定と実行開始時刻から永続ファイルのパスを決める。"""
    if config.persistent_file is not None:
        return Path(config.persistent_file)
    moment = started_at if started_at is not None else run_started_at()
    return Path(config.results_dir) / persistent_file_name(format_run_timestamp(moment))


# ---------------------------------------------------------------------------
# ストア状態
# ---------------------------------------------------------------------------

class StoreState(enum.Enum):
    """ストアの状態。"""

    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"


def to_document_value(value: Any) -> Any:
    """値を JSON 互換の形（dict / list / str / 数値 / bool / None）に正規化する。

    ネストした Pydantic モデルは辞書に、タプルはリストに、辞書のキーは文字列になる。
    Dynamic と Durable の両方にこの形で保存するため、シナリオをまたいでも
    get() の結果は変わらない。

    Raises:
        PydanticSerializationError: JSON で表現できない値の場合
    """
    return to_jsonable_python(value)


# ---------------------------------------------------------------------------
# ScenarioDataStore 本体
# ---------------------------------------------------------------------------

class ScenarioDataStore:
    """3 階層のテストデータストア。

    1 インスタンスは同時に 1 シナリオだけが使用する。
    並列実行する場合は同じ DurableTier（または同じ persistent_file 設定）を
    各インスタンスに渡して永続ファイルを共有する。
    """

    def __init__(
        self,
        config: Optional[StoreConfig] = None,
        *,
        durable: Optional[DurableTier] = None,
        loader: Optional[TestDataLoader] = None,
        generator: Optional[DataGenerator] = None,
        started_at: Optional[datetime] = None,
    ) -> None:
        """ストアを初期化する。

        Args:
            config: ストア設定（省略時はデフォルト値）
            durable: 共有する永続階層（省略時は設定と実行開始時刻から生成）
            loader: 静的ドキュメントのローダー（省略時は config.data_root を使用）
            generator: ダミーデータ生成器（省略時は config の Faker 設定を使用）
            started_at: 永続ファイル名に使う実行開始時刻
        """
        self._config = config if config is not None else StoreConfig()
        self._loader = loader if loader is not None else TestDataLoader(self._config.data_root)
        self._generator = generator if generator is not None else DataGenerator(
            locale=self._config.faker_locale, seed=self._config.faker_seed,
        )
        self._durable = durable if durable is not None else DurableTier(
            default_persistent_path(self._config, started_at),
            use_lock=self._config.file_lock,
        )
        self._dynamic = DynamicTier()
        self._static = StaticTier()
        self._tiers: tuple[TierProvider, ...] = (self._dynamic, self._static, self._durable)

        self._state = StoreState.UNCONFIGURED
        self._environment: str = self._config.environment
        self._feature_name: str = ""
        self._scenario_key: Optional[str] = None

    # ----- プロパティ -----

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def state(self) -> StoreState:
        """現在の状態を返す。"""
        return self._state

    @property
    def environment(self) -> str:
        return self._environment

    @property
    def feature_name(self) -> str:
        return self._feature_name

    @property
    def scenario_key(self) -> Optional[str]:
        return self._scenario_key

    @property
    def persistent_path(self) -> Path:
        """永続ファイルのパスを返す。"""
        return self._durable.path

    @property
    def tiers(self) -> tuple[TierProvider, ...]:
        """問い合わせ順の階層プロバイダを返す。"""
        return self._tiers

    @property
    def static_data(self) -> Document:
        """静的ドキュメントのコピーを返す。"""
        return self._static.snapshot()

    @property
    def dynamic_data(self) -> dict[str, Any]:
        """現在のシナリオで保存した値のコピーを返す。"""
        return self._dynamic.snapshot()

    @property
    def generator(self) -> DataGenerator:
        return self._generator

    # ----- ライフサイクル -----

    def configure(
        self,
        environment: str,
        feature_name: str,
        scenario_key: Optional[str] = None,
    ) -> None:
        """シナリオ開始時に静的ドキュメントを解決し、Dynamic を空にする。

        Args:
            environment: 実行環境名
            feature_name: feature 名
            scenario_key: シナリオキー（@data:<key> タグ由来）
        """
        document = self._loader.resolve(environment, feature_name, scenario_key)
        self._static.replace(document)
        self._dynamic.clear()
        self._environment = environment
        self._feature_name = feature_name
        self._scenario_key = scenario_key
        self._state = StoreState.CONFIGURED
        logger.debug(
            "ストアを構成しました: env=%s feature=%s scenario=%s",
            environment, feature_name, scenario_key or "default",
        )

    def end_scenario(self) -> None:
        """Dynamic だけを破棄する。静的ドキュメントと永続ファイルは残す。"""
        self._dynamic.clear()
        self._state = StoreState.UNCONFIGURED

    # ----- 読み書き -----

    def get(self, key: str, default: Any = None) -> Any:
        """Dynamic → Static → Durable の順にキーを探す。

        Args:
            key: 取得するキー
            default: どの階層にも無い場合の戻り値

        Returns:
            最初に見つかった階層の値。見つからなければ default
        """
        for tier in self._tiers:
            value = tier.try_get(key)
            if value is not MISSING:
                return value
        return default

    def has(self, key: str) -> bool:
        """いずれかの階層にキーが存在するか。"""
        return any(tier.try_get(key) is not MISSING for tier in self._tiers)

    def store_data(self, key: str, value: Any) -> bool:
        """値を Dynamic と Durable の両方に書き込む。

        Dynamic への書き込みは常に成功する。Durable への書き込みが失敗した場合、
        Dynamic の値は残したまま警告ログを出して False を返す
        （config.persist_errors が "raise" の場合は PersistenceError を送出する）。

        Args:
            key: 保存するキー
            value: 保存する値（to_document_value() で JSON 互換の形に正規化して保存）

        Returns:
            永続化に成功したら True

        Raises:
            PersistenceError: persist_errors="raise" で永続化に失敗した場合
        """
        try:
            value = to_document_value(value)
        except PydanticSerializationError as exc:
            # JSON で表現できない値はそのまま Dynamic にだけ置く
            self._dynamic.set(key, value)
            return self._persist_failed(PersistenceError(key, self._durable.path, exc))
        self._dynamic.set(key, value)

        try:
            self._durable.store(key, value)
        except PersistenceError as exc:
            return self._persist_failed(exc)
        return True

    def _persist_failed(self, error: PersistenceError) -> bool:
        if self._config.persist_errors == "raise":
            raise error
        logger.warning("キー '%s' の永続化に失敗しました: %s", error.key, error.cause)
        return False

    def clear_persistent(self) -> None:
        """永続ファイルを削除する。ファイルが無くてもエラーにしない。"""
        self._durable.clear()

    # ----- エンティティ生成 -----

    def _store_fields(self, fields: dict[str, Any]) -> None:
        for key, value in fields.items():
            self.store_data(key, value)

    def generate_user(self, store: bool = True) -> User:
        """ダミーユーザーを生成し、store=True なら全フィールドを保存する。"""
        user = self._generator.user()
        if store:
            self._store_fields(user.model_dump(mode="json"))
        logger.info("テストユーザーを生成しました: %s %s (%s)", user.firstName, user.lastName, user.email)
        return user

    def generate_order(self, store: bool = True) -> Order:
        """ダミー注文を生成する。

        store=True の場合は orderId / orderItems / totalAmount として保存する。
        """
        order = self._generator.order()
        if store:
            dumped = order.model_dump(mode="json")
            self._store_fields({
                "orderId": dumped["orderId"],
                "orderItems": dumped["items"],
                "totalAmount": dumped["totalAmount"],
            })
        return order

    def generate_product(self, store: bool = True) -> Product:
        """ダミー商品を生成し、store=True なら全フィールドを保存する。"""
        product = self._generator.product()
        if store:
            self._store_fields(product.model_dump(mode="json"))
        return product

    def generate_string(self, prefix: str = "test", length: int = 8) -> str:
        return self._generator.string(prefix, length)

    def generate_number(self, min_value: int = 1, max_value: int = 100) -> int:
        return self._generator.number(min_value, max_value)
