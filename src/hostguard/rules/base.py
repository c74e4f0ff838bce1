"""Rule definitions and the active rule set."""

from __future__ import annotations

import re
import string
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, Optional

from ..exceptions import InternalInvariantViolation, RuleLoadError
from ..exceptions.taxonomy import ErrorCode
from ..models import Category, Diagnostic, FixProposal, Severity, Span
from ..syntax.nodes import AstNode, NodeKind

if TYPE_CHECKING:
    from ..engine.context import RuleContext

_RULE_ID = re.compile(r"^[a-z][a-z0-9]*(-[a-z0-9]+)*$")


@dataclass(frozen=True)
class Match:
    """A matcher hit: where to report, message values, and data for the fix."""

    span: Span
    values: Mapping[str, str] = field(default_factory=dict)
    data: Any = None


Matcher = Callable[[AstNode, "RuleContext"], Optional[Match]]
FixTemplate = Callable[[AstNode, Match, "RuleContext"], Optional[FixProposal]]


@dataclass(frozen=True)
class Rule:
    id: str
    category: Category
    severity: Severity
    node_kinds: frozenset
    matcher: Matcher
    message: str
    description: str
    remediation: str
    fix_template: Optional[FixTemplate] = None

    @property
    def fixable(self) -> bool:
        return self.fix_template is not None

    def validate(self) -> None:
        """Raise RuleLoadError if the definition cannot be evaluated."""
        if not isinstance(self.id, str) or not _RULE_ID.match(self.id):
            raise RuleLoadError(f"invalid rule id {self.id!r}", rule_id=str(self.id))
        if not isinstance(self.category, Category):
            raise RuleLoadError(f"rule {self.id} has no valid category", rule_id=self.id)
        if not isinstance(self.severity, Severity):
            raise RuleLoadError(f"rule {self.id} has no valid severity", rule_id=self.id)
        if not self.node_kinds or not all(isinstance(k, NodeKind) for k in self.node_kinds):
            raise RuleLoadError(f"rule {self.id} declares no node kinds", rule_id=self.id)
        if not callable(self.matcher):
            raise RuleLoadError(f"rule {self.id} matcher is not callable", rule_id=self.id)
        if self.fix_template is not None and not callable(self.fix_template):
            raise RuleLoadError(f"rule {self.id} fix template is not callable", rule_id=self.id)
        if not self.message:
            raise RuleLoadError(f"rule {self.id} has an empty message template", rule_id=self.id)
        try:
            list(string.Formatter().parse(self.message))
        except ValueError as e:
            raise RuleLoadError(f"rule {self.id} message template is malformed: {e}", rule_id=self.id) from e

    def check(self, node: AstNode, ctx: "RuleContext") -> Optional[Diagnostic]:
        match = self.matcher(node, ctx)
        if match is None:
            return None
        try:
            message = self.message.format(**match.values)
        except (KeyError, IndexError) as e:
            raise InternalInvariantViolation(
                f"rule {self.id} produced no value for message field {e}", code=ErrorCode.HG902, path=ctx.path
            ) from e
        fix = self.fix_template(node, match, ctx) if self.fix_template is not None else None
        return Diagnostic(
            path=ctx.path,
            rule_id=self.id,
            category=self.category,
            severity=self.severity,
            span=match.span,
            message=message,
            fix=fix,
        )


class RuleSet:
    """Ordered, duplicate-free collection of active rules, indexed by node kind."""

    def __init__(self, rules: Iterable[Rule]):
        self.rules: tuple[Rule, ...] = tuple(rules)
        by_kind: dict[NodeKind, list[Rule]] = {}
        for rule in self.rules:
            for kind in sorted(rule.node_kinds, key=lambda k: k.value):
                by_kind.setdefault(kind, []).append(rule)
        self._by_kind = {kind: tuple(rules) for kind, rules in by_kind.items()}

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self):
        return iter(self.rules)

    def __contains__(self, rule_id: object) -> bool:
        return any(rule.id == rule_id for rule in self.rules)

    @property
    def ids(self) -> list[str]:
        return [rule.id for rule in self.rules]

    @property
    def categories(self) -> frozenset:
        return frozenset(rule.category for rule in self.rules)

    def rules_for(self, kind: NodeKind) -> tuple[Rule, ...]:
        return self._by_kind.get(kind, ())

    def get(self, rule_id: str) -> Optional[Rule]:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None
