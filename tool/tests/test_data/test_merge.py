"""
deep_merge のユニットテスト・プロパティテスト

右優先の再帰マージ、リストの丸ごと置換、None を未定義として扱う規則、
入力を変更しないことを検証する。
"""

import copy

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from conftest import make_document_strategy
from tdm.data.merge import deep_merge, merge_all


# ---------------------------------------------------------------------------
# 具体例
# ---------------------------------------------------------------------------

class TestDeepMergeRules:
    """マージ規則ごとのテスト。"""

    def test_override_scalar_wins(self):
        """両方にあるスカラーは override が勝つこと。"""
        assert deep_merge({"title": "A"}, {"title": "B"}) == {"title": "B"}

    def test_override_only_key_added(self):
        """override にしかないキーが追加されること。"""
        assert deep_merge({"a": 1}, {"b": 2}) == {"a": 1, "b": 2}

    def test_nested_documents_merged_recursively(self):
        """ネストした辞書がキー単位でマージされること。"""
        base = {"user": {"name": "alice", "role": "admin"}}
        override = {"user": {"role": "guest", "locale": "ja"}}
        assert deep_merge(base, override) == {
            "user": {"name": "alice", "role": "guest", "locale": "ja"},
        }

    def test_lists_replaced_not_concatenated(self):
        """リストは連結されず丸ごと置き換わること。"""
        assert deep_merge({"tags": [1, 2, 3]}, {"tags": [9]}) == {"tags": [9]}

    def test_list_base_dict_override(self):
        """base がリストでも override の辞書に置き換わること。"""
        assert deep_merge({"x": [1]}, {"x": {"a": 1}}) == {"x": {"a": 1}}

    def test_dict_base_list_override(self):
        """base が辞書でも override のリストに置き換わること。"""
        assert deep_merge({"x": {"a": 1}}, {"x": [1, 2]}) == {"x": [1, 2]}

    def test_none_override_keeps_base(self):
        """override の None は未定義扱いで base が残ること。"""
        assert deep_merge({"x": 1}, {"x": None}) == {"x": 1}

    def test_none_override_for_new_key_is_kept(self):
        """base に無いキーの None はそのまま追加されること。"""
        assert deep_merge({}, {"x": None}) == {"x": None}

    def test_scalar_override_replaces_document(self):
        """辞書をスカラーで上書きできること。"""
        assert deep_merge({"x": {"a": 1}}, {"x": "flat"}) == {"x": "flat"}

    def test_false_and_zero_are_defined(self):
        """False や 0 は定義済みの値として上書きすること。"""
        assert deep_merge({"a": True, "b": 5}, {"a": False, "b": 0}) == {"a": False, "b": 0}

    def test_top_level_non_documents(self):
        """トップレベルが辞書でない場合も同じ規則に従うこと。"""
        assert deep_merge(1, 2) == 2
        assert deep_merge(1, None) == 1
        assert deep_merge(None, None) is None

    def test_key_order_base_first(self):
        """base のキー順を保ち、新しいキーは後ろに追加されること。"""
        merged = deep_merge({"b": 1, "a": 2}, {"c": 3, "a": 4})
        assert list(merged) == ["b", "a", "c"]

    def test_result_is_independent_copy(self):
        """結果を変更しても入力に影響しないこと。"""
        base = {"nested": {"items": [1, 2]}}
        merged = deep_merge(base, {})
        merged["nested"]["items"].append(3)
        assert base == {"nested": {"items": [1, 2]}}


class TestMergeAll:
    """merge_all() のテスト。"""

    def test_later_documents_win(self):
        """後ろのドキュメントほど優先されること。"""
        assert merge_all([{"a": 1}, {"a": 2}, {"a": 3, "b": 1}]) == {"a": 3, "b": 1}

    def test_empty_sequence(self):
        """ドキュメントが無ければ空辞書を返すこと。"""
        assert merge_all([]) == {}


# ---------------------------------------------------------------------------
# プロパティテスト
# ---------------------------------------------------------------------------

class TestDeepMergeProperties:
    """Hypothesis によるマージ特性の検証。"""

    def test_profile_allows_slow_generation(self):
        """入れ子ドキュメントの生成が too_slow で失敗しない設定であること。"""
        assert HealthCheck.too_slow in settings().suppress_health_check

    @given(a=make_document_strategy())
    @settings(max_examples=100)
    def test_right_identity(self, a):
        """merge(a, {}) == a であること。"""
        assert deep_merge(a, {}) == a

    @given(b=make_document_strategy())
    @settings(max_examples=100)
    def test_left_identity(self, b):
        """merge({}, b) == b であること。"""
        assert deep_merge({}, b) == b

    @given(
        a=make_document_strategy(),
        b=make_document_strategy(),
        c=make_document_strategy(),
    )
    @settings(max_examples=100)
    def test_associative_for_disjoint_overrides(self, a, b, c):
        """b と c のキーが重ならない場合は結合的であること。"""
        c = {k: v for k, v in c.items() if k not in b}
        assert deep_merge(deep_merge(a, b), c) == deep_merge(a, deep_merge(b, c))

    @given(a=make_document_strategy(), b=make_document_strategy())
    @settings(max_examples=100)
    def test_inputs_not_mutated(self, a, b):
        """マージ後も入力が変化していないこと。"""
        a_before, b_before = copy.deepcopy(a), copy.deepcopy(b)
        deep_merge(a, b)
        assert a == a_before
        assert b == b_before

    @given(
        a=make_document_strategy(),
        key=st.text(alphabet="abcdefgh", min_size=1, max_size=3),
        value=st.one_of(st.integers(), st.text(max_size=5), st.lists(st.integers(), max_size=3)),
    )
    def test_defined_non_document_override_wins(self, a, key, value):
        """None 以外の非辞書値で上書きしたキーは override の値になること。"""
        assert deep_merge(a, {key: value})[key] == value

    @given(a=make_document_strategy(), b=make_document_strategy())
    def test_all_keys_present(self, a, b):
        """結果のキー集合は a と b のキーの和集合であること。"""
        assert set(deep_merge(a, b)) == set(a) | set(b)
