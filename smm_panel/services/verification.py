from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Optional, Protocol
from uuid import uuid4

from sqlmodel import Session

from ..core.errors import InvalidVerificationTokenError
from ..models import EmailVerificationModel, UserModel
from .repository import PanelRepository


logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send_verification_email(self, *, email: str, token: str, user_name: str) -> None: ...


class LoggingNotifier:
    """Stands in for the outbound mail service; records what would be sent."""

    def send_verification_email(self, *, email: str, token: str, user_name: str) -> None:
        logger.info(
            "email.verification.sent",
            extra={"email": email, "user_name": user_name},
        )


def _aware(value: datetime) -> datetime:
    # SQLite hands datetimes back without tzinfo.
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


class EmailVerificationService:
    def __init__(
        self,
        session: Session,
        notifier: Notifier,
        ttl_hours: int = 24,
        repository: Optional[PanelRepository] = None,
    ) -> None:
        self.session = session
        self.notifier = notifier
        self.ttl = timedelta(hours=ttl_hours)
        self.repository = repository or PanelRepository(session)

    def request(self, user: UserModel) -> EmailVerificationModel:
        verification = EmailVerificationModel(
            user_id=user.id,
            token=str(uuid4()),
            expires_at=datetime.now(UTC) + self.ttl,
        )
        self.repository.add_verification(verification)
        self.session.commit()
        self.session.refresh(verification)

        # Fire and forget: a mail failure never fails the request.
        try:
            self.notifier.send_verification_email(
                email=user.email,
                token=verification.token,
                user_name=user.full_name or user.email,
            )
        except Exception:
            logger.exception(
                "email.verification.failed",
                extra={"user_id": str(user.id)},
            )
        return verification

    def confirm(self, token: str) -> UserModel:
        verification = self.repository.get_verification(token)
        now = datetime.now(UTC)
        if (
            verification is None
            or verification.verified_at is not None
            or _aware(verification.expires_at) <= now
        ):
            raise InvalidVerificationTokenError("Invalid or expired verification token")

        user = self.repository.get_user(verification.user_id)
        if user is None:
            raise InvalidVerificationTokenError("Invalid or expired verification token")

        verification.verified_at = now
        user.is_email_verified = True
        self.session.add(verification)
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        logger.info("email.verified", extra={"user_id": str(user.id)})
        return user
