"""Performance rules: packages that load synchronously on the UI thread.

synchronous-package-base
    Scope: type declaration
    Severity: Warning

    Detected when a base type has a registered asynchronous replacement and
    does not itself support asynchronous initialisation (``Package`` rather
    than ``AsyncPackage``). Fixed by renaming the base.

missing-background-load
    Scope: type declaration
    Severity: Warning

    Detected when the type supports background loading but its package
    registration attribute does not set ``AllowsBackgroundLoading = true``.
    Types without a registration attribute are not reported.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from ..models import Category, FixProposal, Severity, TextEdit
from ..symbols.registry import ROLE_PACKAGE_REGISTRATION
from ..symbols.tags import Capability, SymbolKind
from ..syntax.nodes import AstNode, NodeKind, unwrap
from .base import Match, Rule
from .helpers import is_name

if TYPE_CHECKING:
    from ..engine.context import RuleContext

BACKGROUND_LOAD_PROPERTY = "AllowsBackgroundLoading"


def _match_sync_base(node: AstNode, ctx: "RuleContext") -> Optional[Match]:
    bases = zip(node.attrs["bases"], node.attrs.get("base_symbols", ()), node.attrs["base_spans"])
    for base, entry, span in bases:
        if entry is None or entry.kind is not SymbolKind.TYPE or not entry.replacement:
            continue
        if Capability.SUPPORTS_ASYNC_INIT in entry.capabilities:
            continue
        values = {"name": node.attrs["name"], "base": base, "replacement": entry.replacement}
        return Match(span, values, data=entry)
    return None


def _fix_sync_base(node: AstNode, match: Match, ctx: "RuleContext") -> Optional[FixProposal]:
    entry = match.data
    written = ctx.source.slice(match.span)
    offset = written.rfind(entry.short_name)
    if offset < 0:
        return None
    start = match.span.start + offset
    edit = TextEdit(start, start + len(entry.short_name), entry.replacement)
    return FixProposal(f"Derive from {entry.replacement}", (edit,))


SYNCHRONOUS_PACKAGE_BASE = Rule(
    id="synchronous-package-base",
    category=Category.PERFORMANCE,
    severity=Severity.WARNING,
    node_kinds=frozenset({NodeKind.CLASS_DECL}),
    matcher=_match_sync_base,
    message="'{name}' derives from the synchronous '{base}'; derive from '{replacement}' instead",
    description="Packages that initialise synchronously and block the UI thread while loading.",
    remediation="Derive from AsyncPackage and move initialisation into InitializeAsync.",
    fix_template=_fix_sync_base,
)


def _registration(node: AstNode) -> Optional[AstNode]:
    for attribute in node.of_kind(NodeKind.ATTRIBUTE):
        entry = attribute.attrs.get("symbol")
        if entry is not None and entry.role == ROLE_PACKAGE_REGISTRATION:
            return attribute
    return None


def _background_setting(attribute: AstNode) -> Optional[AstNode]:
    for arg in attribute.children:
        if arg.kind is NodeKind.ASSIGNMENT and is_name(arg.children[0], BACKGROUND_LOAD_PROPERTY):
            return arg
    return None


def _match_background_load(node: AstNode, ctx: "RuleContext") -> Optional[Match]:
    if Capability.SUPPORTS_BACKGROUND_LOAD not in node.attrs.get("capabilities", ()):
        return None
    attribute = _registration(node)
    if attribute is None:
        return None
    setting = _background_setting(attribute)
    if setting is not None:
        value = unwrap(setting.children[-1])
        if value is not None and value.kind is NodeKind.LITERAL and value.attrs["value"] == "true":
            return None
    return Match(attribute.span, {"name": node.attrs["name"]}, data=(attribute, setting))


def _fix_background_load(node: AstNode, match: Match, ctx: "RuleContext") -> Optional[FixProposal]:
    attribute, setting = match.data
    assignment = f"{BACKGROUND_LOAD_PROPERTY} = true"
    if setting is not None:
        value = setting.children[-1]
        edit = TextEdit(value.span.start, value.span.end, "true")
    elif attribute.attrs["close_paren"] is not None:
        at = attribute.attrs["close_paren"]
        edit = TextEdit(at, at, f", {assignment}" if attribute.children else assignment)
    else:
        at = attribute.attrs["name_end"]
        edit = TextEdit(at, at, f"({assignment})")
    return FixProposal(f"Set {assignment}", (edit,))


MISSING_BACKGROUND_LOAD = Rule(
    id="missing-background-load",
    category=Category.PERFORMANCE,
    severity=Severity.WARNING,
    node_kinds=frozenset({NodeKind.CLASS_DECL}),
    matcher=_match_background_load,
    message="Package '{name}' can load in the background but its registration does not allow it",
    description="Async packages registered without AllowsBackgroundLoading load on the UI thread.",
    remediation="Add AllowsBackgroundLoading = true to the PackageRegistration attribute.",
    fix_template=_fix_background_load,
)

RULES = [SYNCHRONOUS_PACKAGE_BASE, MISSING_BACKGROUND_LOAD]
