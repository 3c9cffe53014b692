# app/services/users.py
import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from app.models.user import User, UserRole
from app.schemas.user import UserRegister, UserUpdate
from app.services.storage import unit_of_work
from app.utils.errors import Conflict, NotFound, ValidationError
from app.utils.permissions import Action, Principal, authorize
from app.utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)


class UserDirectory:
    """Registration and administration of user accounts"""

    def __init__(self, db: Session):
        self.db = db

    def _get_or_404(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFound("User")
        return user

    def _ensure_email_free(self, email: str, exclude_id: Optional[int] = None) -> None:
        query = self.db.query(User).filter(User.email == email)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first():
            raise Conflict("email")

    def register(self, data: UserRegister) -> User:
        name = data.name.strip()
        if not name:
            raise ValidationError("name", "Name is required")
        self._ensure_email_free(data.email)

        user = User(
            name=name,
            email=data.email,
            hashed_password=hash_password(data.password),
            role=data.role.value,
            department=data.department,
            position=data.position,
            is_active=True,
            tasks_completed=0,
            productivity_score=0.0,
        )
        with unit_of_work(self.db, "registering user"):
            self.db.add(user)
        self.db.refresh(user)
        logger.info(f"User registered: {user.email} ({user.role})")
        return user

    def authenticate(self, email: str, password: str) -> Optional[User]:
        user = self.db.query(User).filter(User.email == email).first()
        if not user or not verify_password(password, user.hashed_password):
            return None
        return user

    def list_users(self, principal: Principal) -> List[User]:
        authorize(principal, Action.LIST_USERS)
        return self.db.query(User).order_by(User.id).all()

    def get_user(self, principal: Principal, user_id: int) -> User:
        # Checked before the lookup so employees learn nothing about other ids
        authorize(principal, Action.READ_USER, owner_id=user_id)
        return self._get_or_404(user_id)

    def update_user(self, principal: Principal, user_id: int, data: UserUpdate) -> User:
        authorize(principal, Action.UPDATE_USER, owner_id=user_id)
        user = self._get_or_404(user_id)

        update_data = data.model_dump(exclude_unset=True)
        for field in ("name", "email", "is_active", "role"):
            if field in update_data and update_data[field] is None:
                raise ValidationError(field, f"{field} cannot be null")

        if "name" in update_data:
            update_data["name"] = update_data["name"].strip()
            if not update_data["name"]:
                raise ValidationError("name", "Name is required")
        if "email" in update_data and update_data["email"] != user.email:
            self._ensure_email_free(update_data["email"], exclude_id=user.id)
        if "role" in update_data:
            update_data["role"] = UserRole(update_data["role"]).value

        with unit_of_work(self.db, f"updating user {user_id}"):
            for field, value in update_data.items():
                setattr(user, field, value)
        self.db.refresh(user)
        logger.info(f"User updated: {user.email}")
        return user

    def delete_user(self, principal: Principal, user_id: int) -> None:
        """Hard delete. Tasks and comments keep their ids and resolve to nothing."""
        authorize(principal, Action.DELETE_USER, owner_id=user_id)
        user = self._get_or_404(user_id)
        if user.id == principal.id:
            raise ValidationError("id", "You cannot delete your own account")

        email = user.email
        with unit_of_work(self.db, f"deleting user {user_id}"):
            self.db.delete(user)
        logger.info(f"User deleted: {email}")

    def lookup(self, user_ids: Iterable[int]) -> Dict[int, User]:
        """Resolve weak user references in one query; missing ids are absent"""
        ids = {user_id for user_id in user_ids if user_id is not None}
        if not ids:
            return {}
        users = self.db.query(User).filter(User.id.in_(ids)).all()
        return {user.id: user for user in users}
