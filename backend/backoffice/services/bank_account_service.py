# Overview: Service-layer operations for bank accounts; one primary account per owner.

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db
from ..models import BankAccount
from .concurrency import unit_of_work
from .tenant_service import owned_query, require_owned


def _clear_primary(owner_id: int) -> None:
    db.session.execute(
        update(BankAccount)
        .where(BankAccount.owner_id == owner_id, BankAccount.is_primary.is_(True))
        .values(is_primary=False),
        execution_options={"synchronize_session": "fetch"},
    )


def create_account(owner_id: int, patch: dict) -> BankAccount:
    """The owner's first account, or one flagged primary, becomes the only primary."""
    has_accounts = owned_query(BankAccount, owner_id).count() > 0
    make_primary = bool(patch.get("is_primary")) or not has_accounts

    account = BankAccount(
        owner_id=owner_id,
        bank_name=patch["bank_name"],
        account_number=patch["account_number"],
        ifsc_code=patch["ifsc_code"],
        account_holder_name=patch["account_holder_name"],
        upi_id=patch["upi_id"],
        is_primary=make_primary,
    )
    with unit_of_work():
        if make_primary:
            _clear_primary(owner_id)
        db.session.add(account)
    return account


def list_accounts(owner_id: int) -> list[BankAccount]:
    return (
        owned_query(BankAccount, owner_id)
        .order_by(BankAccount.is_primary.desc(), BankAccount.created_at.desc(), BankAccount.id.desc())
        .all()
    )


def get_account(owner_id: int, account_id) -> BankAccount:
    return require_owned(BankAccount, owner_id, account_id, "Bank account")


def update_account(owner_id: int, account_id, patch: dict) -> BankAccount:
    account = get_account(owner_id, account_id)
    with unit_of_work():
        if patch.get("is_primary") and not account.is_primary:
            _clear_primary(owner_id)
        for key, value in patch.items():
            setattr(account, key, value)
    return account


def set_primary(owner_id: int, account_id) -> BankAccount:
    account = get_account(owner_id, account_id)
    with unit_of_work():
        _clear_primary(owner_id)
        account.is_primary = True
    return account


def delete_account(owner_id: int, account_id) -> None:
    """Soft delete; deleting the primary promotes the newest remaining account."""
    account = get_account(owner_id, account_id)
    with unit_of_work():
        was_primary = account.is_primary
        account.is_deleted = True
        account.is_primary = False
        if was_primary:
            db.session.flush()
            successor = (
                owned_query(BankAccount, owner_id)
                .order_by(BankAccount.created_at.desc(), BankAccount.id.desc())
                .first()
            )
            if successor is not None:
                successor.is_primary = True
