"""Linked bank account models."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class PublicTokenExchange(BaseModel):
    """Request body sent by Plaid Link's ``onSuccess`` callback."""

    public_token: str = Field(..., min_length=1)
    institution_id: Optional[str] = None
    institution_name: Optional[str] = None
    accounts: List[Dict[str, Any]] = Field(default_factory=list)


class TransactionSyncRequest(BaseModel):
    item_id: str = Field(..., min_length=1)


class ConnectedAccount(BaseModel):
    """A row of the ``connected_accounts`` table."""

    user_id: str
    plaid_item_id: str
    plaid_account_id: Optional[str] = None
    institution_name: Optional[str] = None
    account_name: Optional[str] = None
    account_mask: Optional[str] = None
    account_type: Optional[str] = None
    status: str = "active"
    last_synced_at: Optional[datetime] = None

    @classmethod
    def from_link_account(
        cls, user_id: str, item_id: str, institution_name: Optional[str], account: Dict[str, Any]
    ) -> "ConnectedAccount":
        return cls(
            user_id=user_id,
            plaid_item_id=item_id,
            plaid_account_id=account.get("id") or account.get("account_id"),
            institution_name=institution_name,
            account_name=account.get("name"),
            account_mask=account.get("mask"),
            account_type=account.get("subtype") or account.get("type"),
        )

    def to_row(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
