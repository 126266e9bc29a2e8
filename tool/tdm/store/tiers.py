"""
データ階層 — get() が優先順に問い合わせる参照プロバイダ群

各階層は try_get(key) だけを共通インターフェースとして持ち、
値が無い場合は None ではなく MISSING を返す（null も有効な値として扱うため）。

階層:
  - DynamicTier : 現在のシナリオだけが持つメモリ上の値
  - StaticTier  : TestDataLoader が解決した静的ドキュメント
  - DurableTier : 実行（run）全体で共有する JSON ファイル

DurableTier の store() はファイル全体を読み込み、1 キーを更新し、
ファイル全体を書き戻す。別プロセスからの同時書き込みはファイル単位で
後勝ちとなり、キー単位の更新は失われうる。同一プロセス内の書き込みは
パスごとのロックで直列化できる。
"""

from __future__ import annotations

import json
import logging
import threading
import weakref
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# 欠損値センチネル
# ---------------------------------------------------------------------------

class _MissingType:
    """キーが存在しないことを表すセンチネル型。"""

    __slots__ = ()

    def __repr__(self) -> str:
        return "<MISSING>"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _MissingType()


# ---------------------------------------------------------------------------
# カスタム例外
# ---------------------------------------------------------------------------

class PersistenceError(Exception):
    """永続ファイルへの書き込みに失敗した場合の例外。

    persist_errors="raise" のときだけ呼び出し側に送出される。

    Attributes:
        key: 書き込もうとしたキー
        path: 永続ファイルのパス
        cause: 元になった例外
    """

    def __init__(self, key: str, path: Path, cause: BaseException) -> None:
        self.key = key
        self.path = path
        self.cause = cause
        super().__init__(f"永続データを書き込めません: key={key!r} path={path} ({cause})")


# ---------------------------------------------------------------------------
# 階層プロバイダ Protocol
# ---------------------------------------------------------------------------

@runtime_checkable
class TierProvider(Protocol):
    """get() が問い合わせる 1 階層分のインターフェース。"""

    name: str

    def try_get(self, key: str) -> Any:
        """キーの値を返す。存在しなければ MISSING を返す。"""
        ...


# ---------------------------------------------------------------------------
# メモリ上の階層
# ---------------------------------------------------------------------------

class DynamicTier:
    """シナリオ単位のメモリ上の値。シナリオ終了時に破棄される。"""

    name = "dynamic"

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def try_get(self, key: str) -> Any:
        return self._data.get(key, MISSING)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def clear(self) -> None:
        self._data.clear()

    def snapshot(self) -> dict[str, Any]:
        return dict(self._data)


class StaticTier:
    """TestDataLoader が解決した静的ドキュメント。"""

    name = "static"

    def __init__(self, document: Optional[Mapping[str, Any]] = None) -> None:
        self._document: dict[str, Any] = dict(document or {})

    def try_get(self, key: str) -> Any:
        return self._document.get(key, MISSING)

    def replace(self, document: Mapping[str, Any]) -> None:
        self._document = dict(document)

    def snapshot(self) -> dict[str, Any]:
        return dict(self._document)


# ---------------------------------------------------------------------------
# ファイルロック（プロセス内）
# ---------------------------------------------------------------------------

# 使用中のロックだけを保持する。参照が無くなったパスのエントリは自動で消える
_LOCKS: "weakref.WeakValueDictionary[Path, threading.Lock]" = weakref.WeakValueDictionary()
_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    """解決済みパスごとに 1 つのロックを返す。

    呼び出し側がロックを保持している間は同じパスに同じロックを返す。
    """
    key = path.resolve()
    with _LOCKS_GUARD:
        lock = _LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _LOCKS[key] = lock
        return lock


class _NullLock:
    def __enter__(self) -> None:
        return None

    def __exit__(self, *exc: object) -> None:
        return None


# ---------------------------------------------------------------------------
# 永続階層
# ---------------------------------------------------------------------------

def persistent_file_name(timestamp: str) -> str:
    """実行開始時刻から永続ファイル名を生成する。

    ISO-8601 文字列中の ":" と "." を "-" に置き換える。
    """
    return f"persistent-data-{timestamp.replace(':', '-').replace('.', '-')}.json"


class DurableTier:
    """実行全体で共有する JSON ファイル上の値。

    同じパスを指す複数のインスタンス（並列ワーカー）が同一ファイルを共有する。
    ファイルは最初の書き込みで作成され、clear() でのみ削除される。
    """

    name = "durable"

    def __init__(self, path: Path, *, use_lock: bool = True) -> None:
        """永続階層を初期化する。

        Args:
            path: 永続ファイルのパス
            use_lock: 同一プロセス内で読み書きを直列化するか
        """
        self._path = Path(path)
        self._use_lock = use_lock

    @property
    def path(self) -> Path:
        """永続ファイルのパスを返す。"""
        return self._path

    def _lock(self) -> Any:
        return _lock_for(self._path) if self._use_lock else _NullLock()

    def _read_all(self) -> dict[str, Any]:
        """ファイル全体を読み込む。無ければ空辞書。失敗時は例外を送出する。"""
        if not self._path.exists():
            return {}
        with open(self._path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"永続ファイルのトップレベルがオブジェクトではありません: {self._path}")
        return data

    def try_get(self, key: str) -> Any:
        """永続ファイルからキーを読む。読み込み失敗は欠損として扱う。"""
        try:
            with self._lock():
                data = self._read_all()
        except (OSError, ValueError) as exc:
            # json.JSONDecodeError は ValueError のサブクラス
            logger.warning("永続データを読み込めません: key=%r (%s)", key, exc)
            return MISSING
        return data.get(key, MISSING)

    def load(self) -> dict[str, Any]:
        """永続ファイル全体を返す。読み込み失敗時は警告して空辞書。"""
        try:
            with self._lock():
                return self._read_all()
        except (OSError, ValueError) as exc:
            logger.warning("永続データを読み込めません: %s (%s)", self._path, exc)
            return {}

    def store(self, key: str, value: Any) -> None:
        """1 キーを更新してファイル全体を書き戻す。

        Raises:
            PersistenceError: 読み込み・シリアライズ・書き込みのいずれかに失敗した場合
        """
        try:
            with self._lock():
                self._path.parent.mkdir(parents=True, exist_ok=True)
                data = self._read_all()
                data[key] = value
                text = json.dumps(data, indent=2, ensure_ascii=False)
                self._path.write_text(text, encoding="utf-8")
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(key, self._path, exc) from exc
        logger.debug("永続データを書き込みました: key=%r path=%s", key, self._path)

    def clear(self) -> None:
        """永続ファイルを削除する。存在しなくてもエラーにしない。"""
        try:
            with self._lock():
                self._path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("永続データファイルを削除できません: %s (%s)", self._path, exc)
            return
        logger.info("永続データファイルを削除しました: %s", self._path)
