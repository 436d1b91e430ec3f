"""
Category rule matching for transactions.

Rules are plain pattern → category lookups evaluated in priority order.
"""

import logging
import re
from typing import Iterable, List, Optional, Sequence

from models.transactions import CategoryRule, Transaction

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "Other"

# Plaid personal_finance_category.primary → app category
PLAID_CATEGORY_MAP = {
    "FOOD_AND_DRINK": "Food & Dining",
    "GENERAL_MERCHANDISE": "Shopping",
    "TRANSPORTATION": "Transportation",
    "TRAVEL": "Travel",
    "ENTERTAINMENT": "Entertainment",
    "RENT_AND_UTILITIES": "Bills & Utilities",
    "HOME_IMPROVEMENT": "Home",
    "MEDICAL": "Health",
    "PERSONAL_CARE": "Personal Care",
    "GENERAL_SERVICES": "Services",
    "GOVERNMENT_AND_NON_PROFIT": "Taxes & Donations",
    "LOAN_PAYMENTS": "Debt Payments",
    "BANK_FEES": "Fees",
    "INCOME": "Income",
    "TRANSFER_IN": "Transfers",
    "TRANSFER_OUT": "Transfers",
}


def _candidate_texts(rule: CategoryRule, merchant: Optional[str], description: Optional[str]) -> List[str]:
    if rule.match_field == "merchant":
        texts = [merchant]
    elif rule.match_field == "description":
        texts = [description]
    else:
        texts = [merchant, description]
    return [text.strip().lower() for text in texts if text]


def rule_matches(rule: CategoryRule, merchant: Optional[str], description: Optional[str] = None) -> bool:
    """Case-insensitive test of one rule against a transaction's text."""
    pattern = rule.pattern.strip().lower()

    for text in _candidate_texts(rule, merchant, description):
        if rule.match_type == "contains" and pattern in text:
            return True
        if rule.match_type == "starts_with" and text.startswith(pattern):
            return True
        if rule.match_type == "exact" and text == pattern:
            return True
        if rule.match_type == "regex":
            try:
                if re.search(rule.pattern, text, re.IGNORECASE):
                    return True
            except re.error:
                logger.warning("Skipping category rule with invalid regex", extra={"rule_id": rule.id})
                return False
    return False


def sort_rules(rules: Iterable[CategoryRule]) -> List[CategoryRule]:
    """Active rules, highest priority first; equal priorities keep their order."""
    active = [rule for rule in rules if rule.is_active]
    return sorted(active, key=lambda rule: -rule.priority)


def match_category(
    rules: Sequence[CategoryRule], merchant: Optional[str], description: Optional[str] = None
) -> Optional[str]:
    """
    Return the category of the first matching rule, or None.

    Args:
        rules: User rules in declaration order
        merchant: Merchant name of the transaction
        description: Raw transaction description

    Returns:
        Category name or None when no active rule matches
    """
    for rule in sort_rules(rules):
        if rule_matches(rule, merchant, description):
            return rule.category
    return None


def categorize_transactions(
    transactions: Iterable[Transaction], rules: Sequence[CategoryRule]
) -> List[Transaction]:
    """
    Fill ``category`` on transactions that do not have one yet.

    User rules win, then the mapped Plaid category, then ``"Other"``.
    """
    ordered = sort_rules(rules)
    result = []
    for transaction in transactions:
        if not transaction.category:
            category = match_category(ordered, transaction.merchant_name, transaction.description)
            if category is None:
                category = PLAID_CATEGORY_MAP.get(transaction.plaid_category or "", DEFAULT_CATEGORY)
            transaction = transaction.model_copy(update={"category": category})
        result.append(transaction)
    return result


def parse_rules(rows: Iterable[dict]) -> List[CategoryRule]:
    """Build rules from ``category_rules`` rows, skipping invalid ones."""
    rules = []
    for row in rows:
        try:
            rules.append(CategoryRule(**row))
        except ValueError as e:
            logger.warning(f"Ignoring invalid category rule {row.get('id')}: {e}")
    return rules
