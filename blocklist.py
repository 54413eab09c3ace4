from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select
from typing import List, Set
import logging

from errors import StorageError, ValidationError
from models import BlockedUser


def _normalize(email: str) -> str:
    return (email or "").strip()


class Blocklist:
    """Blocked submitter emails, persisted in ``blocked_users`` and mirrored in memory.

    Submissions consult the in-memory set only. Every change is written to
    the database first; the mirror is touched only once the commit succeeded.
    """

    def __init__(self, engine):
        self.engine = engine
        self._emails: Set[str] = set()

    def load(self) -> int:
        try:
            with Session(self.engine) as session:
                rows = session.exec(select(BlockedUser.email)).all()
        except SQLAlchemyError as e:
            logging.error(f"Error loading blocked users: {e}")
            raise StorageError("Error loading blocked users") from e
        self._emails = set(rows)
        return len(self._emails)

    def is_blocked(self, email: str) -> bool:
        return _normalize(email) in self._emails

    __contains__ = is_blocked

    def emails(self) -> List[str]:
        return sorted(self._emails)

    def block(self, email: str) -> None:
        email = _normalize(email)
        if not email:
            raise ValidationError("Email is required.")
        try:
            with Session(self.engine) as session:
                if session.get(BlockedUser, email) is None:
                    session.add(BlockedUser(email=email))
                    session.commit()
        except IntegrityError:
            # a concurrent block of the same email committed first
            logging.info(f"{email} was already blocked")
        except SQLAlchemyError as e:
            logging.error(f"Error blocking {email}: {e}")
            raise StorageError("Error blocking user") from e
        self._emails.add(email)
        logging.info(f"Blocked {email}")

    def unblock(self, email: str) -> None:
        email = _normalize(email)
        if not email:
            raise ValidationError("Email is required.")
        try:
            with Session(self.engine) as session:
                blocked = session.get(BlockedUser, email)
                if blocked is not None:
                    session.delete(blocked)
                    session.commit()
        except SQLAlchemyError as e:
            logging.error(f"Error unblocking {email}: {e}")
            raise StorageError("Error unblocking user") from e
        self._emails.discard(email)
        logging.info(f"Unblocked {email}")
