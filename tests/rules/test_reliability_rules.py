"""Tests for rules/reliability.py."""

import textwrap

import pytest

from hostguard.fixer import apply_fixes
from hostguard.models import Category, Severity

UNOBSERVED = "unobserved-async-result"
ASYNC_VOID = "async-void-entry"
UNCHECKED = "unchecked-service-lookup"


def _cs(text: str) -> str:
    return textwrap.dedent(text).lstrip("\n")


def _only(analyzer, text, rule_id):
    return [d for d in analyzer.analyze_text(text, "Demo.cs").diagnostics if d.rule_id == rule_id]


class TestUnobservedAsyncResult:
    """Test unobserved-async-result."""

    SOURCE = _cs(
        """
        using System.Threading.Tasks;

        public class Loader
        {
            private Task RefreshAsync()
            {
                return Task.CompletedTask;
            }

            public async Task StartAsync()
            {
                RefreshAsync();
            }
        }
        """
    )

    def test_dropped_task_is_reported(self, analyzer):
        (d,) = _only(analyzer, self.SOURCE, UNOBSERVED)
        assert d.severity is Severity.WARNING
        assert d.category is Category.RELIABILITY
        assert "'RefreshAsync()'" in d.message

    def test_fix_awaits_the_call(self, analyzer):
        fixed = apply_fixes(self.SOURCE, _only(analyzer, self.SOURCE, UNOBSERVED)).new_text
        assert "        await RefreshAsync();" in fixed
        assert _only(analyzer, fixed, UNOBSERVED) == []

    def test_synchronous_caller_has_no_fix(self, analyzer):
        text = self.SOURCE.replace("public async Task StartAsync()", "public void Start()")
        (d,) = _only(analyzer, text, UNOBSERVED)
        assert not d.fix_available

    @pytest.mark.parametrize("block", ["lock (_gate)", "unsafe"])
    def test_call_inside_lock_or_unsafe_has_no_fix(self, analyzer, block):
        guarded = f"        {block}\n        {{\n            RefreshAsync();\n        }}"
        text = self.SOURCE.replace("        RefreshAsync();", guarded)
        (d,) = _only(analyzer, text, UNOBSERVED)
        assert not d.fix_available
        assert apply_fixes(text, [d]).new_text == text

    def test_configure_await_is_looked_through(self, analyzer):
        text = self.SOURCE.replace("RefreshAsync();\n    }\n}", "RefreshAsync().ConfigureAwait(false);\n    }\n}")
        assert len(_only(analyzer, text, UNOBSERVED)) == 1

    def test_discard_is_deliberate(self, analyzer):
        text = self.SOURCE.replace("        RefreshAsync();", "        _ = RefreshAsync();")
        assert _only(analyzer, text, UNOBSERVED) == []

    def test_known_framework_calls(self, analyzer):
        text = _cs(
            """
            using System.Threading.Tasks;
            class A
            {
                void M()
                {
                    Task.Run(Work);
                    Task.Delay(10);
                }
            }
            """
        )
        assert len(_only(analyzer, text, UNOBSERVED)) == 2


class TestAsyncVoidEntry:
    """Test async-void-entry."""

    SOURCE = _cs(
        """
        using System.Threading.Tasks;

        public class ToolWindowControl
        {
            public ToolWindowControl(Button button)
            {
                button.Click += OnClick;
            }

            private async void OnClick(object sender, RoutedEventArgs e)
            {
                await Task.Delay(10);
            }
        }
        """
    )

    def test_subscribed_async_void_is_reported(self, analyzer):
        (d,) = _only(analyzer, self.SOURCE, ASYNC_VOID)
        assert d.severity is Severity.ERROR
        assert self.SOURCE[d.span.start : d.span.end] == "void OnClick"
        assert d.message == "async void event handler 'OnClick' crashes the host if it throws"

    def test_returning_task_clears_the_diagnostic(self, analyzer):
        fixed = apply_fixes(self.SOURCE, _only(analyzer, self.SOURCE, ASYNC_VOID)).new_text
        assert "private async Task OnClick(object sender, RoutedEventArgs e)" in fixed
        assert _only(analyzer, fixed, ASYNC_VOID) == []

    def test_fix_qualifies_task_without_import(self, analyzer):
        text = self.SOURCE.replace("using System.Threading.Tasks;\n", "")
        fixed = apply_fixes(text, _only(analyzer, text, ASYNC_VOID)).new_text
        assert "private async System.Threading.Tasks.Task OnClick(" in fixed

    def test_handler_shape_without_subscription(self, analyzer):
        text = self.SOURCE.replace("        button.Click += OnClick;\n", "")
        assert len(_only(analyzer, text, ASYNC_VOID)) == 1

    def test_plain_async_void_helper_is_not_reported(self, analyzer):
        text = _cs(
            """
            class A
            {
                async void Fire(int count) { }
            }
            """
        )
        assert _only(analyzer, text, ASYNC_VOID) == []

    def test_synchronous_handler_is_not_reported(self, analyzer):
        text = self.SOURCE.replace("private async void OnClick", "private void OnClick").replace(
            "await Task.Delay(10);", "Refresh();"
        )
        assert _only(analyzer, text, ASYNC_VOID) == []


class TestUncheckedServiceLookup:
    """Test unchecked-service-lookup."""

    SOURCE = _cs(
        """
        public class Helper
        {
            public void Show(IServiceProvider provider)
            {
                var shell = provider.GetService(typeof(SVsUIShell)) as IVsUIShell;
                shell.SetWaitCursor();
            }
        }
        """
    )

    def test_dereference_before_check(self, analyzer):
        (d,) = _only(analyzer, self.SOURCE, UNCHECKED)
        assert d.severity is Severity.WARNING
        assert "through 'shell'" in d.message
        assert d.fix_available

    def test_fix_inserts_assumes_present(self, analyzer):
        fixed = apply_fixes(self.SOURCE, _only(analyzer, self.SOURCE, UNCHECKED)).new_text
        assert "as IVsUIShell;\n        Microsoft.Assumes.Present(shell);\n        shell.SetWaitCursor();" in fixed
        assert _only(analyzer, fixed, UNCHECKED) == []

    def test_fix_uses_short_name_when_imported(self, analyzer):
        text = "using Microsoft;\n" + self.SOURCE
        fixed = apply_fixes(text, _only(analyzer, text, UNCHECKED)).new_text
        assert "        Assumes.Present(shell);\n" in fixed

    def test_null_check_first_is_clean(self, analyzer):
        text = self.SOURCE.replace(
            "        shell.SetWaitCursor();", "        if (shell == null) return;\n        shell.SetWaitCursor();"
        )
        assert _only(analyzer, text, UNCHECKED) == []

    def test_null_conditional_is_clean(self, analyzer):
        text = self.SOURCE.replace("shell.SetWaitCursor();", "shell?.SetWaitCursor();")
        assert _only(analyzer, text, UNCHECKED) == []

    def test_null_conditional_is_not_a_presence_check(self, analyzer):
        text = self.SOURCE.replace(
            "        shell.SetWaitCursor();", "        shell?.Refresh();\n        shell.SetWaitCursor();"
        )
        (d,) = _only(analyzer, text, UNCHECKED)
        assert "through 'shell'" in d.message
        assert d.fix_available

    def test_direct_dereference_of_lookup(self, analyzer):
        text = _cs(
            """
            class A
            {
                void M()
                {
                    var name = Package.GetGlobalService(typeof(SDTE)).ToString();
                }
            }
            """
        )
        (d,) = _only(analyzer, text, UNCHECKED)
        assert not d.fix_available

    def test_awaited_lookup_is_reported_too(self, analyzer):
        text = self.SOURCE.replace("provider.GetService(", "await provider.GetServiceAsync(")
        text = text.replace("public void Show", "public async Task ShowAsync")
        assert len(_only(analyzer, text, UNCHECKED)) == 1
