"""Tests for LCOM strategies."""

import pytest

from coderag.analysis.cohesion import (
    LCOM4,
    HendersonSellersLCOM,
    PairwiseLCOM,
    UnionFind,
    get_cohesion_strategy,
)
from coderag.core.exceptions import ConfigError

METHODS = ["m1", "m2", "m3"]


class TestPairwise:
    def test_fully_cohesive(self):
        access = {"m1": {"f"}, "m2": {"f"}, "m3": {"f"}}
        assert PairwiseLCOM().compute(METHODS, access) == 0.0

    def test_no_shared_state(self):
        access = {"m1": {"a"}, "m2": {"b"}, "m3": set()}
        assert PairwiseLCOM().compute(METHODS, access) == 1.0

    def test_partial(self):
        # (m1, m2) share, (m1, m3) and (m2, m3) do not
        access = {"m1": {"a"}, "m2": {"a"}, "m3": {"b"}}
        assert PairwiseLCOM().compute(METHODS, access) == pytest.approx(2 / 3)

    @pytest.mark.parametrize("methods", [[], ["only"]])
    def test_fewer_than_two_methods(self, methods):
        assert PairwiseLCOM().compute(methods, {}) == 0.0


class TestHendersonSellers:
    def test_every_method_uses_every_field(self):
        access = {"m1": {"a", "b"}, "m2": {"a", "b"}, "m3": {"a", "b"}}
        assert HendersonSellersLCOM().compute(METHODS, access) == 0.0

    def test_each_field_used_once(self):
        access = {"m1": {"a"}, "m2": {"b"}, "m3": {"c"}}
        assert HendersonSellersLCOM().compute(METHODS, access) == 1.0

    def test_no_fields(self):
        assert HendersonSellersLCOM().compute(METHODS, {}) == 0.0


class TestLCOM4:
    def test_components_from_fields_and_calls(self):
        access = {"m1": {"a"}, "m2": {"a"}}
        calls = {"m3": {"m4"}}
        value = LCOM4().compute(["m1", "m2", "m3", "m4"], access, calls)
        # Two components among four methods
        assert value == pytest.approx(1 / 3)

    def test_single_component(self):
        calls = {"m1": {"m2"}, "m2": {"m3"}}
        assert LCOM4().compute(METHODS, {}, calls) == 0.0

    def test_calls_to_foreign_methods_ignored(self):
        calls = {"m1": {"other.m"}}
        assert LCOM4().compute(["m1", "m2"], {}, calls) == 1.0


class TestUnionFind:
    def test_count(self):
        uf = UnionFind(["a", "b", "c", "d"])
        uf.union("a", "b")
        uf.union("c", "d")
        uf.union("b", "d")
        assert uf.count() == 1
        assert uf.find("a") == uf.find("c")


class TestRegistry:
    @pytest.mark.parametrize(
        ("name", "cls"),
        [("pairwise", PairwiseLCOM), ("henderson_sellers", HendersonSellersLCOM), ("lcom4", LCOM4)],
    )
    def test_known(self, name, cls):
        assert isinstance(get_cohesion_strategy(name), cls)

    def test_unknown(self):
        with pytest.raises(ConfigError):
            get_cohesion_strategy("lcom5")
