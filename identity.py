from __future__ import annotations

from typing import Dict, List, Optional, Protocol

from werkzeug.security import check_password_hash, generate_password_hash

from errors import BootstrapError
from storage import JsonStorage


class IdentityStore(Protocol):
    """What bootstrap needs from the account subsystem."""

    def ensure_role(self, name: str) -> bool:
        ...

    def ensure_user(self, username: str, email: str, password: str, role: str) -> bool:
        ...


def _find(records: List[Dict], key: str, value: str) -> Optional[Dict]:
    for record in records:
        if record.get(key) == value:
            return record
    return None


class JsonIdentityStore:
    """Roles and accounts kept in the same data file as the posts."""

    def __init__(self, storage: JsonStorage):
        self.storage = storage

    def ensure_role(self, name: str) -> bool:
        """Create the role unless it exists. Returns True if it was created."""
        with self.storage.transaction() as data:
            if _find(data["roles"], "name", name):
                return False
            data["roles"].append({"name": name})
        return True

    def ensure_user(self, username: str, email: str, password: str, role: str) -> bool:
        """Create the account bound to ``role`` unless it exists."""
        with self.storage.transaction() as data:
            if _find(data["users"], "username", username):
                return False
            if not _find(data["roles"], "name", role):
                raise BootstrapError(f"Role {role} does not exist")
            data["users"].append(
                {
                    "username": username,
                    "email": email,
                    "password_hash": generate_password_hash(password),
                    "roles": [role],
                }
            )
        return True

    def find_user(self, username: str) -> Optional[Dict]:
        return _find(self.storage.load()["users"], "username", username)

    def roles_for(self, username: str) -> List[str]:
        user = self.find_user(username)
        return list(user.get("roles", [])) if user else []

    def verify_password(self, username: str, password: str) -> Optional[Dict]:
        user = self.find_user(username)
        if user and check_password_hash(user.get("password_hash", ""), password):
            return user
        return None
