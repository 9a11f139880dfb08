"""Make sure the data file, the Admin role and the admin account exist.

Runs once when the application starts. Every step checks before it creates,
so running it again changes nothing. A failure is logged and the application
keeps starting; without an admin account the panel stays unreachable until
someone runs ``flask bootstrap`` or fixes the data file by hand.
"""

from __future__ import annotations

import logging

import config
from identity import IdentityStore
from storage import JsonStorage


logger = logging.getLogger(__name__)


def run_bootstrap(
    storage: JsonStorage,
    identity: IdentityStore,
    username: str = config.ADMIN_USER,
    email: str = config.ADMIN_EMAIL,
    password: str = config.ADMIN_PASSWORD,
    role: str = config.ADMIN_ROLE,
) -> None:
    try:
        storage.ensure_created()
        if identity.ensure_role(role):
            logger.info("Bootstrap: role %s created", role)
        if identity.ensure_user(username, email, password, role):
            logger.info("Bootstrap: account %s created", username)
    except Exception:
        logger.exception("Bootstrap did not complete")
