"""Durable and session-scoped key-value storage for the browser session.

*What:* Keeps the auth ``token`` and the serialized ``user`` record together,
plus a transient area for short-lived login state (pending 2FA, pending
password change).
*When:* Built per request in the web shell over ``request.session``; built over
plain dicts in tests and scripts.
*Why:* Every other session component reads credentials through this one seam,
so token and user can never drift apart.
*How:* Both storages are ordinary ``MutableMapping`` objects. Writes are
synchronous and local, so setting the two keys one after the other is enough.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, MutableMapping

from pydantic import ValidationError

from ..schemas.auth import User

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"
LAST_ACTIVITY_KEY = "lastActivity"


class TokenStore:
    def __init__(
        self,
        durable: MutableMapping[str, Any],
        transient: MutableMapping[str, Any] | None = None,
    ) -> None:
        self._durable = durable
        self._transient: MutableMapping[str, Any] = transient if transient is not None else {}

    # ---- session (token + user)

    def get_token(self) -> str | None:
        token = self._durable.get(TOKEN_KEY)
        return token if isinstance(token, str) and token else None

    def set_session(self, token: str, user: User | Mapping[str, Any]) -> None:
        if not token:
            raise ValueError("A session needs a non-empty token")
        record = user if isinstance(user, User) else User.model_validate(user)
        self._durable[TOKEN_KEY] = token
        self._durable[USER_KEY] = json.dumps(record.to_storage())

    def clear_session(self) -> None:
        self._durable.pop(TOKEN_KEY, None)
        self._durable.pop(USER_KEY, None)
        self._durable.pop(LAST_ACTIVITY_KEY, None)

    def get_current_user(self) -> User | None:
        raw = self._durable.get(USER_KEY)
        if raw is None:
            return None
        try:
            if isinstance(raw, str):
                return User.model_validate_json(raw)
            return User.model_validate(raw)
        except (ValidationError, ValueError, TypeError):
            logger.warning("Stored user record is corrupt; clearing session")
            self.clear_session()
            return None

    def has_session(self) -> bool:
        return self.get_token() is not None and self.get_current_user() is not None

    # ---- activity

    def touch(self, now: float) -> None:
        self._durable[LAST_ACTIVITY_KEY] = now

    def last_activity(self) -> float | None:
        value = self._durable.get(LAST_ACTIVITY_KEY)
        return float(value) if isinstance(value, (int, float)) else None

    # ---- transient (session-scoped) storage

    def get_transient(self, key: str) -> Any:
        return self._transient.get(key)

    def set_transient(self, key: str, value: Any) -> None:
        self._transient[key] = value

    def pop_transient(self, key: str) -> Any:
        return self._transient.pop(key, None)

    def clear_transient(self) -> None:
        self._transient.clear()
