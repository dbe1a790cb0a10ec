"""Bearer token and current-user storage for the signed-in staff member."""

import datetime
import json
import logging
import threading
from typing import Any, Dict, Optional

from requests.cookies import RequestsCookieJar, create_cookie

from venue_admin.database import Database
from venue_admin.models import Session

TOKEN_KEY = "adminAuthToken"
USER_KEY = "adminUser"
REMEMBER_ME_KEY = "adminRememberMe"


class SessionStore:
    """
    Keeps the token in two places: a durable sqlite key/value store and a
    short-lived cookie in an in-memory cookie jar. The cookie carries the
    remember-me scoped expiry; the durable copy covers restarts.
    """

    def __init__(
        self,
        db: Database,
        cookie_name: str = "adminToken",
        remember_me_days: int = 30,
        default_days: int = 1,
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.db = db
        self.cookie_name = cookie_name
        self.remember_me_days = remember_me_days
        self.default_days = default_days
        self.cookies = RequestsCookieJar()
        # read from worker threads via asyncio.to_thread
        self._lock = threading.Lock()

    def max_age_seconds(self, remember_me: bool) -> int:
        days = self.remember_me_days if remember_me else self.default_days
        return days * 24 * 60 * 60

    def set_token(self, token: str, remember_me: bool = False) -> None:
        expires = int(
            datetime.datetime.now(datetime.timezone.utc).timestamp()
        ) + self.max_age_seconds(remember_me)
        with self._lock:
            self.db.set_value(TOKEN_KEY, token)
            self.db.set_value(REMEMBER_ME_KEY, "1" if remember_me else "0")
            self.cookies.set_cookie(
                create_cookie(self.cookie_name, token, path="/", expires=expires)
            )
        self.logger.info(
            f"Session token stored (remember_me={remember_me}, max_age={self.max_age_seconds(remember_me)}s)"
        )

    def get_token(self) -> Optional[str]:
        with self._lock:
            self.cookies.clear_expired_cookies()
            token = self.cookies.get(self.cookie_name)
            if token:
                return token
            # cookie missing or expired; durable copy
            return self.db.get_value(TOKEN_KEY)

    def remove_token(self) -> bool:
        with self._lock:
            had_cookie = self.cookie_name in self.cookies
            if had_cookie:
                self.cookies.clear(domain="", path="/", name=self.cookie_name)
            removed = self.db.delete_value(TOKEN_KEY)
            self.db.delete_value(REMEMBER_ME_KEY)
        return had_cookie or removed

    def remember_me(self) -> bool:
        return self.db.get_value(REMEMBER_ME_KEY) == "1"

    def set_user(self, user: Optional[Dict[str, Any]]) -> None:
        self.db.set_value(USER_KEY, json.dumps(user))

    def get_user(self) -> Optional[Dict[str, Any]]:
        raw = self.db.get_value(USER_KEY)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            self.logger.warning("Stored user record is not valid JSON; ignoring it")
            return None

    def remove_user(self) -> bool:
        return self.db.delete_value(USER_KEY)

    def clear(self) -> bool:
        """Drop token and user. Returns True if anything was stored."""
        token_removed = self.remove_token()
        user_removed = self.remove_user()
        if token_removed or user_removed:
            self.logger.info("Session cleared")
        return token_removed or user_removed

    def is_authenticated(self) -> bool:
        return self.get_token() is not None

    def current_session(self) -> Optional[Session]:
        token = self.get_token()
        if token is None:
            return None
        return Session(token=token, user=self.get_user(), remember_me=self.remember_me())
