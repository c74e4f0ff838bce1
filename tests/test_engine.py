"""Tests for rule loading and engine/evaluator.py."""

import dataclasses

import pytest

from hostguard.engine import evaluate, recovery_diagnostics
from hostguard.exceptions import ErrorCode, InternalInvariantViolation, RuleLoadError
from hostguard.models import Category, Severity, sort_diagnostics
from hostguard.rules import ALL_RULES, Match, Rule, get_all_rules, get_rule, load_ruleset
from hostguard.symbols import SymbolTable
from hostguard.syntax import NodeKind, parse

MIXED = """using Microsoft.VisualStudio.Shell;
using System.Threading.Tasks;

[PackageRegistration(UseManagedResourcesOnly = true)]
public sealed class MyPackage : Package
{
    private async void OnClick(object sender, EventArgs e)
    {
        await Task.Delay(1);
    }

    private async Task Load(Task task)
    {
        task.Wait();
        Task.Run(Work);
        border.Background = Brushes.White;
    }
}
"""


@pytest.fixture(scope="module")
def symbols():
    return SymbolTable.builtin()


def _rule(**changes):
    base = Rule(
        id="sample-rule",
        category=Category.DESIGN,
        severity=Severity.INFO,
        node_kinds=frozenset({NodeKind.CLASS_DECL}),
        matcher=lambda node, ctx: Match(node.attrs["name_span"], {"name": node.attrs["name"]}),
        message="Class '{name}' seen",
        description="Reports every class.",
        remediation="None.",
    )
    return dataclasses.replace(base, **changes)


class TestRegistry:
    """Test the built-in rule catalogue."""

    def test_ten_rules_across_five_categories(self):
        rules = get_all_rules()
        assert len(rules) == 10
        assert {r.category for r in rules} == set(Category)

    def test_ids_are_unique_and_valid(self):
        ids = [r.id for r in ALL_RULES]
        assert len(ids) == len(set(ids))
        for rule in ALL_RULES:
            rule.validate()

    def test_get_rule(self):
        assert get_rule("async-void-entry").severity is Severity.ERROR
        assert get_rule("no-such-rule") is None

    def test_fixable_rules(self):
        unfixable = {r.id for r in ALL_RULES if not r.fixable}
        assert unfixable == {"mef-constructor-service-lookup", "hardcoded-visual-resource"}


class TestLoadRuleset:
    """Test load_ruleset()."""

    def test_all_categories_by_default(self):
        assert len(load_ruleset()) == len(ALL_RULES)

    def test_category_filter(self):
        ruleset = load_ruleset([Category.THREADING])
        assert ruleset.ids == ["blocking-call-on-affinity-thread", "command-handler-thread-assert"]
        assert ruleset.categories == frozenset({Category.THREADING})

    def test_disabled_rule(self):
        ruleset = load_ruleset(disabled=["async-method-naming"])
        assert "async-method-naming" not in ruleset
        assert len(ruleset) == len(ALL_RULES) - 1

    def test_unknown_disabled_id(self):
        with pytest.raises(RuleLoadError) as exc:
            load_ruleset(disabled=["no-such-rule"])
        assert exc.value.code is ErrorCode.HG203
        assert exc.value.rule_id == "no-such-rule"

    def test_duplicate_id(self):
        with pytest.raises(RuleLoadError) as exc:
            load_ruleset(rules=[_rule(), _rule()])
        assert exc.value.code is ErrorCode.HG201

    def test_malformed_rule(self):
        with pytest.raises(RuleLoadError) as exc:
            load_ruleset(rules=[_rule(id="Not Valid")])
        assert exc.value.code is ErrorCode.HG202

    def test_rule_without_node_kinds(self):
        with pytest.raises(RuleLoadError, match="declares no node kinds"):
            load_ruleset(rules=[_rule(node_kinds=frozenset())])

    def test_malformed_message_template(self):
        with pytest.raises(RuleLoadError, match="malformed"):
            load_ruleset(rules=[_rule(message="Class '{name'")])

    def test_rules_for_kind(self):
        ruleset = load_ruleset()
        ids = [r.id for r in ruleset.rules_for(NodeKind.METHOD_DECL)]
        assert ids == [
            "command-handler-thread-assert",
            "async-void-entry",
            "async-method-naming",
        ]


class TestEvaluate:
    """Test evaluate()."""

    def test_mixed_file(self, symbols):
        diagnostics = evaluate(parse(MIXED, "Pkg.cs"), symbols, load_ruleset())
        ids = sorted({d.rule_id for d in diagnostics})
        assert ids == [
            "async-method-naming",
            "async-void-entry",
            "blocking-call-on-affinity-thread",
            "hardcoded-visual-resource",
            "synchronous-package-base",
            "unobserved-async-result",
        ]
        assert all(d.path == "Pkg.cs" for d in diagnostics)

    def test_deterministic(self, symbols):
        ruleset = load_ruleset()
        first = evaluate(parse(MIXED), symbols, ruleset)
        second = evaluate(parse(MIXED), symbols, ruleset)
        assert first == second

    def test_sorted_by_position_then_severity(self, symbols):
        diagnostics = evaluate(parse(MIXED), symbols, load_ruleset())
        assert diagnostics == sort_diagnostics(diagnostics)
        starts = [d.span.start for d in diagnostics]
        assert starts == sorted(starts)

    def test_category_filter_limits_output(self, symbols):
        diagnostics = evaluate(parse(MIXED), symbols, load_ruleset([Category.THEMING]))
        assert [d.rule_id for d in diagnostics] == ["hardcoded-visual-resource"]

    def test_no_rules_no_diagnostics(self, symbols):
        assert evaluate(parse(MIXED), symbols, load_ruleset(rules=[])) == []

    def test_spans_stay_inside_the_text(self, symbols):
        for d in evaluate(parse(MIXED), symbols, load_ruleset()):
            assert 0 <= d.span.start <= d.span.end <= len(MIXED)

    def test_span_outside_text_is_an_internal_error(self, symbols):
        from hostguard.models import Span

        bad = _rule(matcher=lambda node, ctx: Match(Span(0, 10_000, 1, 1, 1, 1), {"name": "x"}))
        with pytest.raises(InternalInvariantViolation) as exc:
            evaluate(parse("class A { }"), symbols, load_ruleset(rules=[bad]))
        assert exc.value.code is ErrorCode.HG900

    def test_missing_message_value_is_an_internal_error(self, symbols):
        bad = _rule(matcher=lambda node, ctx: Match(node.attrs["name_span"], {}))
        with pytest.raises(InternalInvariantViolation) as exc:
            evaluate(parse("class A { }"), symbols, load_ruleset(rules=[bad]))
        assert exc.value.code is ErrorCode.HG902

    def test_custom_rule_runs(self, symbols):
        (d,) = evaluate(parse("class Widget { }"), symbols, load_ruleset(rules=[_rule()]))
        assert d.message == "Class 'Widget' seen"


class TestRecoveryDiagnostics:
    """Test recovery_diagnostics()."""

    def test_one_warning_per_unclosed_delimiter(self):
        parsed = parse("class A {\n  void M() {\n", "Trunc.cs")
        records = recovery_diagnostics(parsed)
        assert len(records) == 2
        assert all(r.rule_id == "recoverable-syntax-error" for r in records)
        assert all(r.severity is Severity.WARNING and r.category is None for r in records)

    def test_rules_still_run_on_recovered_files(self, symbols):
        parsed = parse("using System.Threading.Tasks;\nclass A {\n  async Task Load() {\n    await Task.Yield();\n")
        diagnostics = evaluate(parsed, symbols, load_ruleset())
        assert [d.rule_id for d in diagnostics] == ["async-method-naming"]
