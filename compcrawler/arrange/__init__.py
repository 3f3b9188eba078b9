"""Role classification and board auto-arrangement."""

from compcrawler.arrange.arranger import ArrangedUnit, Side, arrange, select_side
from compcrawler.arrange.roles import ROLE_RULES, ArrangeUnit, RoleTag, classify

__all__ = [
    "ROLE_RULES",
    "ArrangeUnit",
    "ArrangedUnit",
    "RoleTag",
    "Side",
    "arrange",
    "classify",
    "select_side",
]
