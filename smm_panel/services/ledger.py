from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlmodel import Session

from ..core.errors import (
    InsufficientFundsError,
    InvalidTransactionStateError,
    TransactionNotFoundError,
    UserNotFoundError,
)
from ..models import (
    DepositRequest,
    StatementResponse,
    TransactionModel,
    TransactionResponse,
)
from .repository import PanelRepository


logger = logging.getLogger(__name__)

PROCESSOR_METHODS = frozenset({"stripe", "paypal", "coinbase"})


class LedgerStore:
    """The only sanctioned way to change a user's spendable balance.

    ``debit``, ``credit`` and ``record_transaction`` take part in the caller's
    unit of work and never commit. The deposit operations are complete units
    and commit on success.
    """

    def __init__(
        self,
        session: Session,
        repository: Optional[PanelRepository] = None,
    ) -> None:
        self.session = session
        self.repository = repository or PanelRepository(session)

    # ------------------------------------------------------------------
    # Helper utilities
    # ------------------------------------------------------------------
    def _check_amount(self, amount: Decimal) -> None:
        if amount <= 0:
            raise ValueError("Amount must be positive")

    def _get_transaction(self, transaction_id: UUID) -> TransactionModel:
        entry = self.repository.get_transaction(transaction_id)
        if entry is None:
            raise TransactionNotFoundError(f"Transaction {transaction_id} not found")
        return entry

    def _pending_deposit(self, transaction_id: UUID) -> TransactionModel:
        entry = self._get_transaction(transaction_id)
        if entry.type != "deposit" or entry.status != "pending":
            raise InvalidTransactionStateError(
                f"Transaction {transaction_id} is not a pending deposit"
            )
        return entry

    # ------------------------------------------------------------------
    # Balance primitives
    # ------------------------------------------------------------------
    def get_balance(self, user_id: UUID) -> Decimal:
        balance = self.repository.read_balance(user_id)
        if balance is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return balance

    def debit(self, user_id: UUID, amount: Decimal) -> None:
        self._check_amount(amount)
        if not self.repository.decrement_balance(user_id, amount):
            if self.repository.read_balance(user_id) is None:
                raise UserNotFoundError(f"User {user_id} not found")
            raise InsufficientFundsError("Insufficient balance")
        logger.info(
            "ledger.debit",
            extra={"user_id": str(user_id), "amount": str(amount)},
        )

    def credit(self, user_id: UUID, amount: Decimal) -> None:
        self._check_amount(amount)
        if not self.repository.increment_balance(user_id, amount):
            raise UserNotFoundError(f"User {user_id} not found")
        logger.info(
            "ledger.credit",
            extra={"user_id": str(user_id), "amount": str(amount)},
        )

    def record_transaction(
        self,
        *,
        user_id: UUID,
        entry_type: str,
        amount: Decimal,
        status: str,
        payment_method: Optional[str] = None,
        payment_id: Optional[str] = None,
        order_id: Optional[UUID] = None,
        description: Optional[str] = None,
    ) -> TransactionModel:
        return self.repository.add_transaction(
            TransactionModel(
                user_id=user_id,
                type=entry_type,
                amount=amount,
                status=status,
                payment_method=payment_method,
                payment_id=payment_id,
                order_id=order_id,
                description=description,
            )
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def create_deposit(self, user_id: UUID, payload: DepositRequest) -> TransactionResponse:
        if self.repository.get_user(user_id) is None:
            raise UserNotFoundError(f"User {user_id} not found")

        method = payload.payment_method
        if method in PROCESSOR_METHODS:
            if not payload.payment_id:
                raise ValueError(f"A {method} deposit needs a payment_id")
            existing = self.repository.find_payment(method, payload.payment_id)
            if existing is not None:
                if existing.user_id != user_id:
                    raise InvalidTransactionStateError(
                        "Payment id has already been used for another deposit"
                    )
                logger.info(
                    "idempotent.deposit.hit",
                    extra={"user_id": str(user_id), "payment_id": payload.payment_id},
                )
                return TransactionResponse.model_validate(existing)

        completed = method in PROCESSOR_METHODS
        entry = self.record_transaction(
            user_id=user_id,
            entry_type="deposit",
            amount=payload.amount,
            status="completed" if completed else "pending",
            payment_method=method,
            payment_id=payload.payment_id,
            description=(
                f"Deposit via {method}"
                if completed
                else f"Manual deposit request - ${payload.amount}"
            ),
        )
        if completed:
            self.credit(user_id, payload.amount)

        self.session.commit()
        self.session.refresh(entry)
        logger.info(
            "ledger.deposit",
            extra={
                "user_id": str(user_id),
                "amount": str(payload.amount),
                "status": entry.status,
                "payment_method": method,
            },
        )
        return TransactionResponse.model_validate(entry)

    def approve_deposit(self, transaction_id: UUID) -> TransactionResponse:
        entry = self._pending_deposit(transaction_id)
        entry.status = "completed"
        self.session.add(entry)
        self.credit(entry.user_id, entry.amount)
        self.session.commit()
        self.session.refresh(entry)
        logger.info(
            "ledger.deposit.approved",
            extra={"transaction_id": str(transaction_id), "amount": str(entry.amount)},
        )
        return TransactionResponse.model_validate(entry)

    def reject_deposit(self, transaction_id: UUID) -> TransactionResponse:
        entry = self._pending_deposit(transaction_id)
        entry.status = "failed"
        self.session.add(entry)
        self.session.commit()
        self.session.refresh(entry)
        logger.info(
            "ledger.deposit.rejected",
            extra={"transaction_id": str(transaction_id)},
        )
        return TransactionResponse.model_validate(entry)

    def get_statement(
        self,
        user_id: UUID,
        limit: int = 50,
        cursor: Optional[str] = None,
    ) -> StatementResponse:
        entries = self.repository.list_transactions(user_id)

        start_index = 0
        if cursor:
            try:
                cursor_ts = datetime.fromisoformat(cursor)
            except ValueError as exc:
                raise ValueError("Invalid cursor") from exc
            for idx, entry in enumerate(entries):
                if entry.ts.isoformat() == cursor_ts.isoformat():
                    start_index = idx + 1
                    break
            else:
                raise ValueError("Invalid cursor")

        slice_entries = entries[start_index : start_index + limit]
        next_cursor = None
        if start_index + limit < len(entries):
            next_cursor = slice_entries[-1].ts.isoformat()

        items = [TransactionResponse.model_validate(entry) for entry in slice_entries]
        return StatementResponse(items=items, next_cursor=next_cursor)
