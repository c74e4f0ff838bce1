"""Rule registry: every built-in rule, in a stable order, and rule-set loading."""

from __future__ import annotations

from collections import Counter
from typing import Iterable, Optional

from ..exceptions import RuleLoadError
from ..exceptions.taxonomy import ErrorCode
from ..logging_config import get_logger
from ..models import ALL_CATEGORIES
from . import design, performance, reliability, theming, threading
from .base import Rule, RuleSet

logger = get_logger(__name__)

# ==============================================================================
# Built-in rules, grouped by category
# ==============================================================================

ALL_RULES: list[Rule] = [
    *threading.RULES,
    *reliability.RULES,
    *performance.RULES,
    *design.RULES,
    *theming.RULES,
]


def get_all_rules() -> list[Rule]:
    """Return the built-in rules (snapshot)."""
    return list(ALL_RULES)


def get_rule(rule_id: str) -> Optional[Rule]:
    for rule in ALL_RULES:
        if rule.id == rule_id:
            return rule
    return None


# ==============================================================================
# Loading
# ==============================================================================


def load_ruleset(
    categories: Optional[Iterable] = None,
    disabled: Iterable[str] = (),
    rules: Optional[Iterable[Rule]] = None,
) -> RuleSet:
    """Build the active rule set.

    Args:
        categories: Categories to keep. None keeps all of them.
        disabled: Rule ids to drop. Every id must name a known rule.
        rules: Rule definitions to load from. Defaults to the built-in rules.

    Raises:
        RuleLoadError: On a duplicate id (HG201), a malformed rule (HG202) or
            an unknown id in ``disabled`` (HG203).
    """
    candidates = list(ALL_RULES if rules is None else rules)
    for rule in candidates:
        rule.validate()

    duplicates = sorted(rule_id for rule_id, n in Counter(r.id for r in candidates).items() if n > 1)
    if duplicates:
        raise RuleLoadError(
            f"duplicate rule id(s): {', '.join(duplicates)}", rule_id=duplicates[0], code=ErrorCode.HG201
        )

    known = {rule.id for rule in candidates}
    disabled = set(disabled)
    unknown = sorted(disabled - known)
    if unknown:
        raise RuleLoadError(f"unknown rule id(s): {', '.join(unknown)}", rule_id=unknown[0], code=ErrorCode.HG203)

    wanted = ALL_CATEGORIES if categories is None else frozenset(categories)
    active = [rule for rule in candidates if rule.category in wanted and rule.id not in disabled]
    logger.debug(f"Loaded {len(active)} of {len(candidates)} rule(s)")
    return RuleSet(active)
