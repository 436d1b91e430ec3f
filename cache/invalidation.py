"""
Mutation to cache-partition invalidation rules.

After a write completes, the caller looks up the mutation tag here and
drops every cached query whose partition is listed. The table is static:
adding a mutation means adding a row, never computing keys at runtime.
"""

from enum import Enum
from typing import Any, Dict, List, Tuple


class MutationType(str, Enum):
    """Known mutation tags, written as ``<entity>:<action>``."""

    GOAL_CREATE = "goal:create"
    GOAL_UPDATE = "goal:update"
    GOAL_DELETE = "goal:delete"
    GOAL_CONTRIBUTE = "goal:contribute"

    POT_CREATE = "pot:create"
    POT_UPDATE = "pot:update"
    POT_DELETE = "pot:delete"
    POT_TRANSFER = "pot:transfer"

    TRANSACTION_CREATE = "transaction:create"
    TRANSACTION_UPDATE = "transaction:update"
    TRANSACTION_DELETE = "transaction:delete"
    TRANSACTION_CATEGORIZE = "transaction:categorize"
    TRANSACTION_IMPORT = "transaction:import"

    BUDGET_CREATE = "budget:create"
    BUDGET_UPDATE = "budget:update"
    BUDGET_DELETE = "budget:delete"

    CATEGORY_RULE_CREATE = "category_rule:create"
    CATEGORY_RULE_UPDATE = "category_rule:update"
    CATEGORY_RULE_DELETE = "category_rule:delete"

    DEBT_CREATE = "debt:create"
    DEBT_UPDATE = "debt:update"
    DEBT_DELETE = "debt:delete"
    DEBT_PAYMENT = "debt:payment"

    ACCOUNT_LINK = "account:link"
    ACCOUNT_UNLINK = "account:unlink"
    ACCOUNT_SYNC = "account:sync"

    AUTOMATION_CREATE = "automation:create"
    AUTOMATION_UPDATE = "automation:update"
    AUTOMATION_DELETE = "automation:delete"
    AUTOMATION_TOGGLE = "automation:toggle"

    WALLET_NOTIFICATION_READ = "wallet_notification:read"
    ACHIEVEMENT_UNLOCK = "achievement:unlock"
    PROFILE_UPDATE = "profile:update"


_DASHBOARD = ("dashboard_summary", "net_worth")

INVALIDATION_RULES: Dict[str, Tuple[str, ...]] = {
    MutationType.GOAL_CREATE.value: ("goals",) + _DASHBOARD,
    MutationType.GOAL_UPDATE.value: ("goals", "dashboard_summary"),
    MutationType.GOAL_DELETE.value: ("goals", "goal_contributions") + _DASHBOARD,
    MutationType.GOAL_CONTRIBUTE.value: (
        "goals",
        "goal_contributions",
        "transactions",
        "achievements",
        "user_streak",
    )
    + _DASHBOARD,
    MutationType.POT_CREATE.value: ("pots",) + _DASHBOARD,
    MutationType.POT_UPDATE.value: ("pots",),
    MutationType.POT_DELETE.value: ("pots",) + _DASHBOARD,
    MutationType.POT_TRANSFER.value: ("pots", "transactions") + _DASHBOARD,
    MutationType.TRANSACTION_CREATE.value: (
        "transactions",
        "recent_transactions",
        "budgets",
        "budget_pacing",
        "spending_insights",
    )
    + _DASHBOARD,
    MutationType.TRANSACTION_UPDATE.value: (
        "transactions",
        "recent_transactions",
        "budget_pacing",
        "spending_insights",
    ),
    MutationType.TRANSACTION_DELETE.value: (
        "transactions",
        "recent_transactions",
        "budgets",
        "budget_pacing",
        "spending_insights",
    )
    + _DASHBOARD,
    MutationType.TRANSACTION_CATEGORIZE.value: (
        "transactions",
        "budget_pacing",
        "spending_insights",
        "category_suggestions",
    ),
    MutationType.TRANSACTION_IMPORT.value: (
        "transactions",
        "recent_transactions",
        "budget_pacing",
        "round_ups",
        "spending_insights",
    )
    + _DASHBOARD,
    MutationType.BUDGET_CREATE.value: ("budgets", "budget_pacing", "dashboard_summary"),
    MutationType.BUDGET_UPDATE.value: ("budgets", "budget_pacing"),
    MutationType.BUDGET_DELETE.value: ("budgets", "budget_pacing", "dashboard_summary"),
    MutationType.CATEGORY_RULE_CREATE.value: ("category_rules", "category_suggestions"),
    MutationType.CATEGORY_RULE_UPDATE.value: ("category_rules", "category_suggestions"),
    MutationType.CATEGORY_RULE_DELETE.value: ("category_rules", "category_suggestions"),
    MutationType.DEBT_CREATE.value: ("debts", "debt_simulation") + _DASHBOARD,
    MutationType.DEBT_UPDATE.value: ("debts", "debt_simulation"),
    MutationType.DEBT_DELETE.value: ("debts", "debt_simulation", "debt_payments")
    + _DASHBOARD,
    MutationType.DEBT_PAYMENT.value: (
        "debts",
        "debt_payments",
        "debt_simulation",
        "transactions",
    )
    + _DASHBOARD,
    MutationType.ACCOUNT_LINK.value: ("connected_accounts", "plaid_items") + _DASHBOARD,
    MutationType.ACCOUNT_UNLINK.value: (
        "connected_accounts",
        "plaid_items",
        "transactions",
    )
    + _DASHBOARD,
    MutationType.ACCOUNT_SYNC.value: (
        "connected_accounts",
        "transactions",
        "recent_transactions",
        "budget_pacing",
        "round_ups",
    )
    + _DASHBOARD,
    MutationType.AUTOMATION_CREATE.value: ("automations",),
    MutationType.AUTOMATION_UPDATE.value: ("automations",),
    MutationType.AUTOMATION_DELETE.value: ("automations",),
    MutationType.AUTOMATION_TOGGLE.value: ("automations",),
    MutationType.WALLET_NOTIFICATION_READ.value: ("wallet_notifications",),
    MutationType.ACHIEVEMENT_UNLOCK.value: ("achievements", "user_streak"),
    MutationType.PROFILE_UPDATE.value: ("profile", "user_preferences"),
}


def get_invalidation_keys(mutation_type: Any) -> List[str]:
    """
    Return the cache partitions made stale by ``mutation_type``.

    Accepts a ``MutationType`` or its string value. Anything else, including
    unknown tags and non-string input, yields an empty list. The result is
    a new list in declaration order with duplicates removed.
    """
    if isinstance(mutation_type, MutationType):
        mutation_type = mutation_type.value
    if not isinstance(mutation_type, str):
        return []

    keys = INVALIDATION_RULES.get(mutation_type, ())
    return list(dict.fromkeys(keys))
