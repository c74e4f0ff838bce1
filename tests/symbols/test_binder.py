"""Tests for symbols/ - symbol table lookup and the binder."""

import textwrap

import pytest

from hostguard.symbols import (
    AwaitStrategy,
    Capability,
    SymbolKind,
    SymbolTable,
    SymbolTag,
    bind,
    custom_entry,
    is_awaitable_type,
)
from hostguard.symbols.registry import normalize_name
from hostguard.syntax import NodeKind, parse


def _bind(text: str, table: SymbolTable = None):
    result = parse(textwrap.dedent(text))
    binding = bind(result.root, table or SymbolTable.builtin())
    return result.root, binding


def _node(root, kind, name=None):
    for node in root.walk():
        if node.kind is kind and (name is None or node.attrs.get("name") == name or node.attrs.get("target") == name):
            return node
    raise AssertionError(f"no {kind.value} named {name!r}")


@pytest.fixture(scope="module")
def table():
    return SymbolTable.builtin()


class TestNormalizeName:
    """Test normalize_name()."""

    def test_strips_global_and_generics(self):
        assert normalize_name("global::System.Threading.Tasks.Task<int>") == "System.Threading.Tasks.Task"

    def test_strips_nested_generics_and_nullable(self):
        assert normalize_name("Dictionary<string, List<int>>?") == "Dictionary"


class TestAwaitableTypes:
    """Test is_awaitable_type()."""

    @pytest.mark.parametrize("name", ["Task", "Task<int>", "System.Threading.Tasks.ValueTask<bool>", "JoinableTask"])
    def test_awaitable(self, name):
        assert is_awaitable_type(name)

    @pytest.mark.parametrize("name", ["void", "int", "TaskFactory", None])
    def test_not_awaitable(self, name):
        assert not is_awaitable_type(name)


class TestSymbolTable:
    """Test SymbolTable lookup order."""

    def test_exact_name(self, table):
        entry = table.lookup("Microsoft.VisualStudio.Shell.AsyncPackage", SymbolKind.TYPE)
        assert SymbolTag.ASYNC_ENTRY_POINT in entry.tags
        assert Capability.SUPPORTS_BACKGROUND_LOAD in entry.capabilities

    def test_namespace_expansion(self, table):
        entry = table.lookup("Package", SymbolKind.TYPE, namespaces=["Microsoft.VisualStudio.Shell"])
        assert entry.replacement == "AsyncPackage"

    def test_unimported_type_is_unknown(self, table):
        assert table.lookup("Package", SymbolKind.TYPE) is None

    def test_member_suffix(self, table):
        entry = table.lookup("_task.Wait", SymbolKind.METHOD)
        assert SymbolTag.BLOCKING_WAIT in entry.tags
        assert entry.await_strategy is AwaitStrategy.WAIT

    def test_longest_suffix_wins(self, table):
        run = table.lookup("ThreadHelper.JoinableTaskFactory.Run", SymbolKind.METHOD)
        run_async = table.lookup("ThreadHelper.JoinableTaskFactory.RunAsync", SymbolKind.METHOD)
        assert run.await_strategy is AwaitStrategy.RUN_INLINE
        assert SymbolTag.BLOCKING_WAIT not in run_async.tags

    def test_kind_filter(self, table):
        assert table.lookup("task.Result", SymbolKind.METHOD) is None
        assert table.lookup("task.Result", SymbolKind.PROPERTY) is not None

    def test_unknown_names_resolve_to_nothing(self, table):
        assert table.resolve("Frobnicate", SymbolKind.METHOD) == frozenset()

    def test_custom_suffix_entry(self):
        table = SymbolTable.builtin([custom_entry("*.BlockOn", frozenset({SymbolTag.BLOCKING_WAIT}))])
        assert SymbolTag.BLOCKING_WAIT in table.resolve("helper.BlockOn", SymbolKind.METHOD)

    def test_custom_exact_entry(self):
        table = SymbolTable.builtin([custom_entry("Acme.Ui.Assert", frozenset({SymbolTag.UI_THREAD_SWITCH}))])
        assert SymbolTag.UI_THREAD_SWITCH in table.resolve("Acme.Ui.Assert", SymbolKind.METHOD)
        assert table.resolve("other.Assert", SymbolKind.METHOD) == frozenset()

    def test_alias_expansion(self, table):
        scope = table.scoped(aliases={"Shell": "Microsoft.VisualStudio.Shell"})
        assert scope.lookup("Shell.AsyncPackage", SymbolKind.TYPE) is not None

    def test_attribute_suffix_is_optional(self, table):
        scope = table.scoped(["System.ComponentModel.Composition"])
        assert SymbolTag.MEF_EXPORT in scope.lookup_attribute("Export").tags
        assert SymbolTag.MEF_EXPORT in scope.lookup_attribute("ExportAttribute").tags


class TestBinder:
    """Test bind()."""

    def test_type_tags_from_base(self):
        root, _ = _bind(
            """
            using Microsoft.VisualStudio.Shell;
            class MyPackage : AsyncPackage { }
            """
        )
        cls = _node(root, NodeKind.CLASS_DECL, "MyPackage")
        assert SymbolTag.ASYNC_ENTRY_POINT in cls.tags
        assert Capability.SUPPORTS_ASYNC_INIT in cls.attrs["capabilities"]

    def test_tags_are_inherited_within_the_file(self):
        root, _ = _bind(
            """
            using Microsoft.VisualStudio.Shell;
            class BasePane : ToolWindowPane { }
            class MyPane : BasePane { }
            """
        )
        assert SymbolTag.ASYNC_ENTRY_POINT in _node(root, NodeKind.CLASS_DECL, "MyPane").tags

    def test_mef_export_is_not_inherited(self):
        root, _ = _bind(
            """
            using System.ComponentModel.Composition;
            [Export(typeof(IFoo))]
            class Foo : IFoo { }
            class Bar : Foo { }
            """
        )
        assert SymbolTag.MEF_EXPORT in _node(root, NodeKind.CLASS_DECL, "Foo").tags
        assert SymbolTag.MEF_EXPORT not in _node(root, NodeKind.CLASS_DECL, "Bar").tags

    def test_call_targets_and_tags(self):
        root, _ = _bind(
            """
            class A
            {
                void M()
                {
                    task.Wait();
                    ThreadHelper.JoinableTaskFactory.SwitchToMainThreadAsync();
                }
            }
            """
        )
        wait = _node(root, NodeKind.CALL_EXPR, "task.Wait")
        assert SymbolTag.BLOCKING_WAIT in wait.tags
        assert wait.attrs["symbol"].await_strategy is AwaitStrategy.WAIT
        switch = _node(root, NodeKind.CALL_EXPR, "ThreadHelper.JoinableTaskFactory.SwitchToMainThreadAsync")
        assert switch.tags == frozenset({SymbolTag.UI_THREAD_SWITCH, SymbolTag.ASYNC_ENTRY_POINT})

    def test_property_access_is_resolved_as_property(self):
        root, _ = _bind("class A { void M() { var x = task.Result; } }")
        access = _node(root, NodeKind.MEMBER_ACCESS, "Result")
        assert SymbolTag.BLOCKING_WAIT in access.tags

    def test_local_async_methods(self):
        root, binding = _bind(
            """
            using System.Threading.Tasks;
            class A
            {
                Task LoadAsync() { return Task.CompletedTask; }
                void M() { LoadAsync(); }
            }
            """
        )
        assert binding.async_methods == frozenset({"LoadAsync"})
        assert SymbolTag.ASYNC_ENTRY_POINT in _node(root, NodeKind.METHOD_DECL, "LoadAsync").tags
        assert SymbolTag.ASYNC_ENTRY_POINT in _node(root, NodeKind.CALL_EXPR, "LoadAsync").tags

    def test_event_handlers(self):
        root, binding = _bind(
            """
            class A
            {
                A(Button button) { button.Click += OnClick; }
                async void OnClick(object sender, RoutedEventArgs e) { }
            }
            """
        )
        assert binding.event_handlers == frozenset({"OnClick"})
        assert _node(root, NodeKind.METHOD_DECL, "OnClick").attrs["event_handler"]

    def test_command_handlers(self):
        root, binding = _bind(
            """
            using System.ComponentModel.Design;
            class A
            {
                A(IMenuCommandService service) { service.AddCommand(new MenuCommand(Execute, id)); }
                void Execute(object sender, EventArgs e) { }
            }
            """
        )
        assert binding.command_handlers == frozenset({"Execute"})
        assert SymbolTag.COMMAND_HANDLER in _node(root, NodeKind.METHOD_DECL, "Execute").tags

    def test_unknown_names_get_no_tags(self):
        root, _ = _bind("class A { void M() { Frobnicate(); } }")
        assert _node(root, NodeKind.CALL_EXPR, "Frobnicate").tags == frozenset()

    def test_binding_is_repeatable(self, table):
        text = "using Microsoft.VisualStudio.Shell;\nclass P : Package { void M() { t.Wait(); } }"
        first = parse(text)
        second = parse(text)
        bind(first.root, table)
        bind(second.root, table)
        assert [n.tags for n in first.root.walk()] == [n.tags for n in second.root.walk()]
