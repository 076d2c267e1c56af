import logging
from typing import List, Optional

from digital_library.repositories.base import UserRepository
from digital_library.user import User
from digital_library.utils.ids import new_id

logger = logging.getLogger(__name__)


class MembershipService:
    def __init__(self, repository: UserRepository) -> None:
        self.repository = repository

    def register(self, name: str, email: str) -> User:
        """Create and store a user under a fresh id."""
        user = User(new_id(), name, email)
        self.repository.save(user)
        logger.info("User registered: %s (%s)", user.name, user.id)
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        return self.repository.find_by_id(user_id)

    def list_users(self) -> List[User]:
        return self.repository.find_all()

    def delete_user(self, user_id: str) -> bool:
        return self.repository.delete_by_id(user_id)

    def find_by_email(self, email: str) -> Optional[User]:
        wanted = email.strip().lower()
        for user in self.repository.find_all():
            if user.email.lower() == wanted:
                return user
        return None
