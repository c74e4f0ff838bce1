"""Rules: declarative detectors over the bound syntax tree.

Each rule names the node kinds it inspects, a matcher, a message template
and an optional fix template. Rules never resolve names; they read the
symbol tags the binder attached.

Categories:
- Threading: blocking-call-on-affinity-thread, command-handler-thread-assert
- Reliability: unobserved-async-result, async-void-entry, unchecked-service-lookup
- Performance: synchronous-package-base, missing-background-load
- Design: mef-constructor-service-lookup, async-method-naming
- Theming: hardcoded-visual-resource
"""

from .base import Match, Rule, RuleSet
from .registry import ALL_RULES, get_all_rules, get_rule, load_ruleset

__all__ = [
    "Match",
    "Rule",
    "RuleSet",
    "ALL_RULES",
    "get_all_rules",
    "get_rule",
    "load_ruleset",
]
