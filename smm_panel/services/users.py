from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from sqlmodel import Session

from ..core.errors import EmailAlreadyRegisteredError, UserNotFoundError
from ..models import UserCreate, UserModel, UserResponse
from .repository import PanelRepository


logger = logging.getLogger(__name__)


class UserService:
    def __init__(
        self,
        session: Session,
        repository: Optional[PanelRepository] = None,
    ) -> None:
        self.session = session
        self.repository = repository or PanelRepository(session)

    def register(self, payload: UserCreate) -> UserResponse:
        email = payload.email.strip()
        if self.repository.get_user_by_email(email) is not None:
            raise EmailAlreadyRegisteredError("Email is already registered")
        user = self.repository.add_user(email, payload.full_name)
        self.session.commit()
        self.session.refresh(user)
        logger.info("user.registered", extra={"user_id": str(user.id)})
        return UserResponse.model_validate(user)

    def get_user_model(self, user_id: UUID) -> UserModel:
        user = self.repository.get_user(user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    def get_user(self, user_id: UUID) -> UserResponse:
        user = self.get_user_model(user_id)
        self.session.refresh(user)
        return UserResponse.model_validate(user)
