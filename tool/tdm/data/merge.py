"""
ディープマージ — 階層ドキュメントの右優先マージ

feature デフォルト → シナリオ上書き の順にドキュメントを重ねるために使用する。

マージ規則:
  - どちらかがリスト → override が定義済み（None 以外）なら override、そうでなければ base
  - どちらかが辞書でない → 同上
  - 両方が辞書 → キーごとに再帰マージ。override にしかないキーはそのまま追加

入力は一切変更しない。戻り値は常に新しいコンテナとなる。
"""

from __future__ import annotations

import copy
from typing import Any, Iterable


def _is_document(value: Any) -> bool:
    return isinstance(value, dict)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def deep_merge(base: Any, override: Any) -> Any:
    """base に override を右優先で再帰マージした結果を返す。

    リストは要素単位でマージせず丸ごと置き換える。
    override 側の None は「未定義」とみなし base を残す。

    Args:
        base: マージ元の値
        override: 上書きする値

    Returns:
        マージ結果（入力とは独立したコピー）
    """
    if _is_sequence(base) or _is_sequence(override):
        return copy.deepcopy(override if override is not None else base)

    if not _is_document(base) or not _is_document(override):
        return copy.deepcopy(override if override is not None else base)

    result: dict[str, Any] = {}
    for key, base_value in base.items():
        if key in override:
            result[key] = deep_merge(base_value, override[key])
        else:
            result[key] = copy.deepcopy(base_value)

    for key, override_value in override.items():
        if key not in base:
            result[key] = copy.deepcopy(override_value)

    return result


def merge_all(documents: Iterable[dict[str, Any]]) -> dict[str, Any]:
    """複数ドキュメントを左から順に重ねる。後のものほど優先される。"""
    merged: dict[str, Any] = {}
    for document in documents:
        merged = deep_merge(merged, document)
    return merged
