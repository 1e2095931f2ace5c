"""Tests for affected-test resolution and test classification."""

import pytest

from testgraph_cli.call_graph import ReverseCallGraph
from testgraph_cli.resolver import (
    AffectedTestResolver,
    FunctionClassifier,
    NamingConventionClassifier,
    find_affected,
)


def _graph(*edges):
    graph = ReverseCallGraph()
    for caller, callee in edges:
        graph.add_edge(caller, callee)
    return graph


class TestNamingConventionClassifier:
    """Default and configured naming heuristics."""

    @pytest.mark.parametrize(
        "function_id",
        [
            "tests.test_calc.test_add",
            "CalculatorTest.testAdd",
            "pkg.CalculatorTest.helper",
            "pkg.CalculatorTests.helper",
            "pkg.CalculatorSpec.helper",
            "pkg.計算機テスト.加算",
            "pkg.足し算できるかどうか.check",
            "test",
        ],
    )
    def test_default_positive(self, function_id):
        assert NamingConventionClassifier().is_test(function_id)

    @pytest.mark.parametrize(
        "function_id",
        [
            "calc.Calculator.add",
            "helper.helper_b",
            "pkg.calculatortest.helper",   # suffix match is case-sensitive
            "pkg.TestCalculator.helper",   # prefix on the container is not a suffix
            "pkg.Testing.run",
            "pkg.mytest_helper",
        ],
    )
    def test_default_negative(self, function_id):
        assert not NamingConventionClassifier().is_test(function_id)

    def test_custom_prefixes_and_suffixes(self):
        classifier = NamingConventionClassifier(name_prefixes=["check_"], container_suffixes=["Suite"])

        assert classifier.is_test("mod.check_totals")
        assert classifier.is_test("mod.BillingSuite.setup")
        assert not classifier.is_test("mod.test_totals")
        assert not classifier.is_test("mod.BillingTest.setup")

    def test_empty_configuration_classifies_nothing(self):
        classifier = NamingConventionClassifier(name_prefixes=[], container_suffixes=[])

        assert not classifier.is_test("tests.test_calc.test_add")

    def test_classifier_is_callable(self):
        assert NamingConventionClassifier()("x.test_y") is True


class TestFindAffected:
    """Conservative reverse BFS."""

    def test_calculator_scenario(self, calculator_graph):
        affected = find_affected({"Calculator.add"}, calculator_graph, NamingConventionClassifier())

        assert affected == {"CalculatorTest.testAdd", "CalculatorTest.testHelper"}

    def test_change_to_intermediate_only_reaches_its_tests(self, calculator_graph):
        affected = find_affected({"helperB"}, calculator_graph, NamingConventionClassifier())

        assert affected == {"CalculatorTest.testHelper"}

    def test_no_callers_means_no_impact(self, calculator_graph):
        assert find_affected({"Calculator.multiply"}, calculator_graph, NamingConventionClassifier()) == set()

    def test_empty_changed_set(self, calculator_graph):
        assert find_affected(set(), calculator_graph, NamingConventionClassifier()) == set()

    def test_continues_past_test_nodes(self):
        graph = _graph(("testB", "changed"), ("testA", "testB"))

        affected = find_affected({"changed"}, graph, NamingConventionClassifier())

        assert affected == {"testA", "testB"}

    def test_continues_past_test_like_helper(self):
        graph = _graph(
            ("FixturesTest.make_user", "User.__init__"),
            ("service_test.test_create", "FixturesTest.make_user"),
            ("service_test.test_update", "FixturesTest.make_user"),
        )

        affected = find_affected({"User.__init__"}, graph, NamingConventionClassifier())

        assert affected == {
            "FixturesTest.make_user",
            "service_test.test_create",
            "service_test.test_update",
        }

    def test_changed_test_itself_is_not_reported_without_callers(self):
        graph = _graph(("test_a", "helper"))

        assert find_affected({"test_a"}, graph, NamingConventionClassifier()) == set()

    def test_terminates_on_cycle(self):
        graph = _graph(("a", "b"), ("b", "c"), ("c", "a"), ("test_x", "b"))

        affected = find_affected({"a"}, graph, NamingConventionClassifier())

        assert affected == {"test_x"}

    def test_terminates_on_self_edge(self):
        graph = _graph(("fact", "fact"), ("test_fact", "fact"))

        assert find_affected({"fact"}, graph, NamingConventionClassifier()) == {"test_fact"}

    def test_result_bounded_by_node_count_in_dense_cycle(self):
        nodes = [f"test_{i}" for i in range(6)]
        graph = _graph(*[(a, b) for a in nodes for b in nodes])

        affected = find_affected({nodes[0]}, graph, NamingConventionClassifier())

        assert affected == set(nodes)

    def test_each_node_is_expanded_once(self):
        graph = _graph(("a", "x"), ("b", "x"), ("test_c", "a"), ("test_c", "b"))
        calls = []

        class _Counting(ReverseCallGraph):
            def get_callers(self, callee):
                calls.append(callee)
                return super().get_callers(callee)

        counting = _Counting()
        for callee, callers in graph.all_edges().items():
            for caller in callers:
                counting.add_edge(caller, callee)

        find_affected({"x"}, counting, NamingConventionClassifier())

        assert sorted(calls) == ["a", "b", "test_c", "x"]

    def test_accepts_plain_predicate(self, calculator_graph):
        affected = find_affected({"Calculator.add"}, calculator_graph, lambda fid: fid == "helperB")

        assert affected == {"helperB"}


class TestAffectedTestResolver:
    """Resolver object wiring a graph to a strategy."""

    def test_default_classifier(self, calculator_graph):
        resolver = AffectedTestResolver(calculator_graph)

        assert isinstance(resolver.classifier, NamingConventionClassifier)
        assert resolver.find_affected({"Calculator.add"}) == {
            "CalculatorTest.testAdd",
            "CalculatorTest.testHelper",
        }

    def test_substituted_strategy(self, calculator_graph):
        class MarkedOnly(FunctionClassifier):
            def is_test(self, function_id):
                return function_id == "CalculatorTest.testHelper"

        resolver = AffectedTestResolver(calculator_graph, MarkedOnly())

        assert resolver.find_affected({"Calculator.add"}) == {"CalculatorTest.testHelper"}
