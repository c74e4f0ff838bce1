"""hardcoded-visual-resource: literal colours assigned to themed properties.

Scope: assignment, including object initialiser members
Severity: Info

Detected when the assignment target resolves to a ThemeToken property
(``Background``, ``Foreground`` and friends) and the value is a named brush or
colour, a colour constructor, or a ``"#RRGGBB"`` string. Such values ignore
the user's theme. There is no automatic fix: the right resource key depends
on what the control is.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from ..models import Category, Severity
from ..symbols.tags import SymbolTag
from ..syntax.nodes import AstNode, NodeKind, dotted_name
from .base import Match, Rule
from .helpers import is_visual_literal, snippet

if TYPE_CHECKING:
    from ..engine.context import RuleContext


def _match(node: AstNode, ctx: "RuleContext") -> Optional[Match]:
    if node.attrs["op"] != "=" or SymbolTag.THEME_TOKEN not in node.tags:
        return None
    target, value = node.children[0], node.children[-1]
    if not is_visual_literal(value):
        return None
    prop = (dotted_name(target) or ctx.text(target)).rsplit(".", 1)[-1]
    return Match(node.span, {"value": snippet(ctx, value, 40), "property": prop})


HARDCODED_VISUAL_RESOURCE = Rule(
    id="hardcoded-visual-resource",
    category=Category.THEMING,
    severity=Severity.INFO,
    node_kinds=frozenset({NodeKind.ASSIGNMENT}),
    matcher=_match,
    message="Hard-coded visual resource '{value}' assigned to themed property '{property}'",
    description="Literal colours and brushes that do not follow the host theme.",
    remediation="Bind the property to a theme resource key (EnvironmentColors, VsBrushes) instead.",
)

RULES = [HARDCODED_VISUAL_RESOURCE]
