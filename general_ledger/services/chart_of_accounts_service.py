"""
Chart of accounts service.

Owns account records and the parent/child hierarchy:
1. Account codes are unique
2. A parent must exist, and an account is never its own ancestor
3. Balances are never edited here; only the posting engine moves
   them, through apply_balance_delta()
4. An account with children or with journal history is never deleted

Rolled-up balances are computed on every read by a post-order
walk over an id-keyed map of the whole chart.
"""

import json
import logging
from collections import defaultdict
from decimal import Decimal

from sqlalchemy import select, update, or_
from sqlalchemy.orm import Session

from general_ledger.errors import (
    NotFound,
    UnknownAccount,
    DuplicateCode,
    InvalidParent,
    SelfParent,
    HasChildren,
    Referenced,
)
from general_ledger.models.account import Account
from general_ledger.models.audit_log import AuditLog
from general_ledger.models.company_settings import CompanyAccountingSettings
from general_ledger.models.fiscal_year import FiscalYear
from general_ledger.models.journal_entry import JournalEntry
from general_ledger.schemas.account import (
    AccountCreate,
    AccountUpdate,
    AccountResponse,
    AccountWithRollup,
)

logger = logging.getLogger(__name__)


def compute_rolled_up_balances(accounts) -> dict[int, Decimal]:
    """
    Return {account id: own balance + all descendants' balances}.

    accounts is any iterable of objects with id, parent_id and
    balance. An account whose parent_id does not resolve to one of
    the given accounts is treated as a root.

    Children are finished before their parent (post-order) using an
    explicit stack, so deep charts do not hit the recursion limit.
    """
    by_id = {account.id: account for account in accounts}
    children: dict[int, list[int]] = defaultdict(list)
    roots = []
    for account in by_id.values():
        if account.parent_id is not None and account.parent_id in by_id:
            children[account.parent_id].append(account.id)
        else:
            roots.append(account.id)

    rolled: dict[int, Decimal] = {}
    for root_id in roots:
        stack = [(root_id, False)]
        while stack:
            account_id, children_done = stack.pop()
            if children_done:
                total = Decimal(by_id[account_id].balance or 0)
                for child_id in children[account_id]:
                    total += rolled[child_id]
                rolled[account_id] = total
                continue
            assert account_id not in rolled, (
                f"account {account_id} reached twice in hierarchy"
            )
            stack.append((account_id, True))
            for child_id in children[account_id]:
                stack.append((child_id, False))

    # Accounts in a parent cycle are never reachable from a root
    assert len(rolled) == len(by_id), (
        "account hierarchy contains a cycle: "
        f"{sorted(set(by_id) - set(rolled))}"
    )
    return rolled


class ChartOfAccountsService:

    def __init__(self, db: Session):
        self.db = db

    def get_account(self, account_id: int) -> Account:
        """Get an account by ID."""
        account = self.db.get(Account, account_id)
        if not account:
            raise NotFound(f"Account {account_id} not found")
        return account

    def get_account_by_code(
        self,
        code: str,
        for_update: bool = False,
        field: str = "code",
    ) -> Account:
        """
        Get an account by its code.

        for_update=True locks the row until the transaction ends,
        which the posting engine uses before changing a balance.
        """
        query = select(Account).where(Account.code == code)
        if for_update:
            query = query.with_for_update()
        account = self.db.execute(query).scalar_one_or_none()
        if not account:
            raise UnknownAccount(f"Account {code} does not exist", field=field)
        return account

    def lock_accounts_for_posting(
        self, codes: dict[str, str]
    ) -> dict[str, Account]:
        """
        Lock the accounts a posting touches and return them by field.

        codes maps a request field (e.g. "debit_account_code") to an
        account code. All rows are locked in one statement, ordered by
        code, so two postings over the same pair of accounts always
        queue on the same row first instead of deadlocking.
        """
        rows = self.db.execute(
            select(Account)
            .where(Account.code.in_(set(codes.values())))
            .order_by(Account.code)
            .with_for_update()
        ).scalars().all()
        by_code = {account.code: account for account in rows}

        accounts = {}
        for field, code in codes.items():
            if code not in by_code:
                raise UnknownAccount(
                    f"Account {code} does not exist", field=field
                )
            accounts[field] = by_code[code]
        return accounts

    def _code_taken(self, code: str, exclude_id: int | None = None) -> bool:
        query = select(Account.id).where(Account.code == code)
        if exclude_id is not None:
            query = query.where(Account.id != exclude_id)
        return self.db.execute(query.limit(1)).first() is not None

    def create_account(self, request: AccountCreate) -> Account:
        """
        Add an account to the chart.

        The opening balance becomes the account's starting balance
        and is kept separately so the balance can always be
        recomputed from the entry log.
        """
        if self._code_taken(request.code):
            raise DuplicateCode(
                f"Account code '{request.code}' already exists", field="code"
            )

        if request.parent_id is not None:
            if not self.db.get(Account, request.parent_id):
                raise InvalidParent(
                    f"Parent account {request.parent_id} does not exist",
                    field="parent_id",
                )

        account = Account(
            code=request.code,
            name=request.name,
            account_type=request.account_type,
            opening_balance=request.opening_balance,
            balance=request.opening_balance,
            parent_id=request.parent_id,
        )
        self.db.add(account)
        self.db.flush()
        logger.info(
            "Created account %s (%s)", account.code, account.account_type.value
        )
        return account

    def _parent_map(self) -> dict[int, int | None]:
        rows = self.db.execute(select(Account.id, Account.parent_id)).all()
        return {row.id: row.parent_id for row in rows}

    def _would_create_cycle(self, account_id: int, new_parent_id: int) -> bool:
        """Check whether account_id is new_parent_id or one of its ancestors."""
        parents = self._parent_map()
        seen = set()
        current = new_parent_id
        while current is not None and current not in seen:
            if current == account_id:
                return True
            seen.add(current)
            current = parents.get(current)
        return False

    def _has_entries(self, code: str, closed_years_only: bool = False) -> bool:
        query = select(JournalEntry.id).where(
            or_(
                JournalEntry.debit_account_code == code,
                JournalEntry.credit_account_code == code,
            )
        )
        if closed_years_only:
            query = query.join(
                FiscalYear, JournalEntry.fiscal_year_id == FiscalYear.id
            ).where(FiscalYear.is_closed.is_(True))
        return self.db.execute(query.limit(1)).first() is not None

    def update_account(self, account_id: int, request: AccountUpdate) -> Account:
        """
        Change code, name, type or parent of an account.

        Journal entries reference accounts by code, so a code change
        is carried over to the entries in the same transaction and
        audited. Entries in closed fiscal years are never rewritten:
        an account they reference keeps its code.

        The stored balance follows the sign rule of the account type.
        Moving to a type on the other natural side is only allowed
        while the account has no opening balance and no history.
        """
        account = self.get_account(account_id)

        if self._code_taken(request.code, exclude_id=account.id):
            raise DuplicateCode(
                f"Account code '{request.code}' already exists", field="code"
            )

        if request.parent_id is not None:
            if request.parent_id == account.id:
                raise SelfParent(
                    "An account cannot be its own parent", field="parent_id"
                )
            if not self.db.get(Account, request.parent_id):
                raise InvalidParent(
                    f"Parent account {request.parent_id} does not exist",
                    field="parent_id",
                )
            if self._would_create_cycle(account.id, request.parent_id):
                raise SelfParent(
                    f"Account {account.code} cannot be placed under one "
                    f"of its own descendants",
                    field="parent_id",
                )

        changes_side = (
            request.account_type.is_debit_natural
            != account.account_type.is_debit_natural
        )
        if changes_side:
            if (
                Decimal(account.opening_balance or 0) != 0
                or Decimal(account.balance or 0) != 0
                or self._has_entries(account.code)
            ):
                raise Referenced(
                    f"Account {account.code} has a balance or journal "
                    f"entries; its type cannot move from "
                    f"{account.account_type.value} to "
                    f"{request.account_type.value}",
                    field="account_type",
                )

        if request.code != account.code and self._has_entries(
            account.code, closed_years_only=True
        ):
            raise Referenced(
                f"Account {account.code} is referenced by entries in a "
                f"closed fiscal year; its code cannot change",
                field="code",
            )

        old_code = account.code
        account.code = request.code
        account.name = request.name
        account.account_type = request.account_type
        account.parent_id = request.parent_id
        self.db.flush()

        if old_code != account.code:
            # No-op where the database already cascaded the key change
            self.db.execute(
                update(JournalEntry)
                .where(JournalEntry.debit_account_code == old_code)
                .values(debit_account_code=account.code)
            )
            self.db.execute(
                update(JournalEntry)
                .where(JournalEntry.credit_account_code == old_code)
                .values(credit_account_code=account.code)
            )
            self.db.add(AuditLog(
                event_type="ACCOUNT_CODE_CHANGED",
                details=json.dumps({
                    "account_id": account.id,
                    "old_code": old_code,
                    "new_code": account.code,
                }),
            ))
            self.db.flush()
            logger.info("Renamed account code %s -> %s", old_code, account.code)

        return account

    def delete_account(self, account_id: int) -> None:
        """
        Remove an account with no children and no history.

        Accounts referenced by journal entries, or configured as the
        retained earnings account, are kept for auditability.
        """
        account = self.get_account(account_id)

        has_children = self.db.execute(
            select(Account.id).where(Account.parent_id == account.id).limit(1)
        ).first()
        if has_children:
            raise HasChildren(
                f"Account {account.code} has child accounts; reassign or "
                f"delete them first"
            )

        if self._has_entries(account.code):
            raise Referenced(
                f"Account {account.code} is referenced by journal entries"
            )

        in_settings = self.db.execute(
            select(CompanyAccountingSettings.id).where(
                CompanyAccountingSettings.retained_earnings_account_id
                == account.id
            ).limit(1)
        ).first()
        if in_settings:
            raise Referenced(
                f"Account {account.code} is the configured retained "
                f"earnings account"
            )

        self.db.delete(account)
        self.db.flush()
        logger.info("Deleted account %s", account.code)

    def list_accounts(self) -> list[AccountWithRollup]:
        """Return every account ordered by code, with rolled-up balances."""
        accounts = self.db.execute(
            select(Account).order_by(Account.code)
        ).scalars().all()
        rolled = compute_rolled_up_balances(accounts)
        return [
            AccountWithRollup(
                **AccountResponse.model_validate(account).model_dump(),
                rolled_up_balance=rolled[account.id],
            )
            for account in accounts
        ]

    def apply_balance_delta(self, code: str, signed_amount: Decimal) -> Account:
        """
        Add signed_amount to an account's stored balance.

        Only the journal posting engine calls this, inside the same
        transaction that inserts the originating entry.
        """
        account = self.get_account_by_code(code, for_update=True)
        account.balance = Decimal(account.balance or 0) + signed_amount
        return account
