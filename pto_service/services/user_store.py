"""
User Store.

Lookups by the chat platform id, admin mutations, and auto-provisioning of
users on their first interaction. Provisioning is the only store path that
retries: transient database errors are retried a bounded number of times
with exponential backoff before surfacing as StoreError.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from pto_service.core.config import settings
from pto_service.core.exceptions import StoreError
from pto_service.models.user import User
from pto_service.services.base import BaseService

USER_PATCHABLE_FIELDS = ("name", "country", "manager_id", "is_admin", "is_student")


class UserStore(BaseService):

    def get_by_external_id(self, external_id: str) -> Optional[User]:
        with self.store_errors("get_by_external_id"):
            return self.db.query(User).filter(User.slack_id == external_id).first()

    def get_by_id(self, user_id: int) -> Optional[User]:
        with self.store_errors("get_by_id"):
            return self.db.get(User, user_id)

    def get_many(self, user_ids) -> Dict[int, User]:
        ids = {i for i in user_ids if i is not None}
        if not ids:
            return {}
        with self.store_errors("get_many"):
            users = self.db.query(User).filter(User.id.in_(ids)).all()
        return {u.id: u for u in users}

    def list_all(self) -> List[User]:
        with self.store_errors("list_all"):
            return self.db.query(User).order_by(User.name.asc()).all()

    def list_by_manager(self, manager_id: int) -> List[User]:
        with self.store_errors("list_by_manager"):
            return self.db.query(User).filter(User.manager_id == manager_id).order_by(User.name.asc()).all()

    @staticmethod
    def _new_user(profile: Dict[str, Any]) -> User:
        return User(
            slack_id=profile["slack_id"],
            name=profile.get("name") or profile["slack_id"],
            country=profile.get("country"),
            manager_id=profile.get("manager_id"),
            is_admin=bool(profile.get("is_admin", False)),
            is_student=bool(profile.get("is_student", False)),
        )

    def create(self, profile: Dict[str, Any]) -> User:
        user = self._new_user(profile)
        self.db.add(user)
        self.commit("create_user")
        self.db.refresh(user)
        self.log_info(f"Created user {user.slack_id}", user_id=user.id)
        return user

    def create_many(self, profiles: List[Dict[str, Any]]) -> List[User]:
        """
        Insert a batch of users in a single transaction.

        A profile may carry `manager_slack_id` naming an existing user or one
        earlier in the batch; callers validate those references first.
        """
        created: List[User] = []
        staged: Dict[str, User] = {}
        with self.store_errors("create_users"):
            for profile in profiles:
                profile = dict(profile)
                manager_slack_id = profile.pop("manager_slack_id", None)
                user = self._new_user(profile)
                if manager_slack_id:
                    manager = staged.get(manager_slack_id) or self.get_by_external_id(manager_slack_id)
                    user.manager_id = manager.id
                self.db.add(user)
                self.db.flush()
                staged[user.slack_id] = user
                created.append(user)
            self.db.commit()
        for user in created:
            self.db.refresh(user)
        self.log_info(f"Imported {len(created)} users")
        return created

    def update(self, user_id: int, patch: Dict[str, Any]) -> Optional[User]:
        user = self.get_by_id(user_id)
        if not user:
            return None
        for field, value in patch.items():
            if field not in USER_PATCHABLE_FIELDS:
                raise ValueError(f"Field '{field}' cannot be patched")
            setattr(user, field, value)
        self.commit("update_user")
        self.db.refresh(user)
        return user

    def get_or_provision(self, external_id: str, name: Optional[str] = None) -> User:
        """Return the user for a platform id, creating it on first sight."""
        try:
            return self._provision(external_id, name)
        except SQLAlchemyError as e:
            self.db.rollback()
            self.log_error(f"Provisioning {external_id} failed after retries: {e}")
            raise StoreError() from e

    @retry(
        stop=stop_after_attempt(settings.user_provision_retries),
        wait=wait_exponential(multiplier=0.05, max=1),
        retry=retry_if_exception_type(OperationalError),
        reraise=True
    )
    def _provision(self, external_id: str, name: Optional[str]) -> User:
        try:
            user = self.db.query(User).filter(User.slack_id == external_id).first()
            if user:
                return user
            user = User(slack_id=external_id, name=name or external_id)
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
            self.log_info(f"Auto-provisioned user {external_id}", user_id=user.id)
            return user
        except IntegrityError:
            # Someone else provisioned the same id first
            self.db.rollback()
            return self.db.query(User).filter(User.slack_id == external_id).one()
        except OperationalError:
            self.db.rollback()
            self.log_warning(f"Transient store error provisioning {external_id}; retrying")
            raise
