"""Tests for bounded cycle detection."""

from coderag.analysis.cycles import find_cycles


class TestFindCycles:
    def test_two_node_cycle_reported_once(self):
        graph = {"a": {"b"}, "b": {"a"}}
        assert find_cycles(graph, max_length=8) == [["a", "b"]]

    def test_rotated_to_smallest_node(self):
        graph = {"c": {"a"}, "a": {"b"}, "b": {"c"}}
        assert find_cycles(graph, max_length=8) == [["a", "b", "c"]]

    def test_acyclic(self):
        graph = {"a": {"b", "c"}, "b": {"c"}}
        assert find_cycles(graph, max_length=8) == []

    def test_self_loops_ignored(self):
        assert find_cycles({"a": {"a"}}, max_length=8) == []

    def test_length_bound(self):
        graph = {"a": {"b"}, "b": {"c"}, "c": {"d"}, "d": {"a"}}
        assert find_cycles(graph, max_length=3) == []
        assert find_cycles(graph, max_length=4) == [["a", "b", "c", "d"]]

    def test_overlapping_cycles(self):
        graph = {"a": {"b"}, "b": {"a", "c"}, "c": {"b"}}
        assert find_cycles(graph, max_length=8) == [["a", "b"], ["b", "c"]]

    def test_limit(self):
        graph = {"a": {"b"}, "b": {"a", "c"}, "c": {"b"}}
        assert len(find_cycles(graph, max_length=8, limit=1)) == 1
