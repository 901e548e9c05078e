# budget_api/auth.py
from __future__ import annotations
import hashlib
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from werkzeug.security import check_password_hash, generate_password_hash

from budget_api import config
from budget_api.core.errors import AuthError, ConflictError, TooManyAttemptsError, ValidationError
from budget_api.core.store import BaseStore
from budget_api.core.timeutils import utcnow
from budget_api.repositories.users import UserRepository

MAX_ATTEMPTS = 5
LOCKOUT_WINDOW = timedelta(minutes=15)
MIN_PASSWORD = 6


class AuthService:
    """Sign-up, login with a failed-attempt lockout, and bearer tokens."""

    def __init__(
        self,
        store: BaseStore,
        users: Optional[UserRepository] = None,
        secret_key: str = config.SECRET_KEY,
        max_age: int = config.TOKEN_MAX_AGE,
        admin_emails=None,
        now: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.users = users or UserRepository(store, now=now)
        self.max_age = max_age
        self.admin_emails = [e.lower() for e in (config.ADMIN_EMAILS if admin_emails is None else admin_emails)]
        self.now = now
        self._serializer = URLSafeTimedSerializer(secret_key, salt="budget-api-auth")

    # ------------------------------- tokens ------------------------------
    def issue_token(self, uid: str) -> str:
        return self._serializer.dumps({"uid": uid})

    def verify_token(self, token: str) -> str:
        try:
            payload = self._serializer.loads(token, max_age=self.max_age)
        except SignatureExpired:
            raise AuthError("Sesión expirada")
        except BadSignature:
            raise AuthError("Token inválido")
        uid = payload.get("uid") if isinstance(payload, dict) else None
        if not uid:
            raise AuthError("Token inválido")
        return uid

    # ------------------------------- signup ------------------------------
    def signup(self, email: str, password: str, display_name: str = "") -> Dict[str, Any]:
        email = (email or "").strip()
        if "@" not in email or not password or len(password) < MIN_PASSWORD:
            raise ValidationError({"credentials": "Credenciales inválidas"})
        if self.users.find_by_email(email):
            raise ConflictError("El email ya está registrado")

        uid = self.store.new_key()
        role = "admin" if email.lower() in self.admin_emails else "user"
        self.store.set(f"credentials/{uid}", {"passwordHash": generate_password_hash(password)})
        return self.users.create_profile(uid, email, display_name, role=role)

    # ------------------------------- login -------------------------------
    @staticmethod
    def _attempt_key(email: str) -> str:
        return "loginAttempts/" + hashlib.sha256(email.lower().encode("utf-8")).hexdigest()

    def login(self, email: str, password: str) -> Dict[str, Any]:
        email = (email or "").strip()
        if "@" not in email or not password:
            raise ValidationError({"credentials": "Credenciales inválidas"})

        key = self._attempt_key(email)
        now_ms = int(self.now().timestamp() * 1000)
        attempts = self.store.get(key) or {"count": 0, "lastAttempt": 0}
        window_ms = LOCKOUT_WINDOW.total_seconds() * 1000
        if attempts["count"] >= MAX_ATTEMPTS and now_ms - attempts["lastAttempt"] < window_ms:
            raise TooManyAttemptsError("Demasiados intentos fallidos. Intente nuevamente más tarde.")

        user = self.users.find_by_email(email)
        creds = self.store.get(f"credentials/{user['id']}") if user else None
        if not creds or not check_password_hash(creds.get("passwordHash", ""), password):
            self.store.set(key, {"count": attempts["count"] + 1, "lastAttempt": now_ms})
            raise AuthError("Email o contraseña incorrectos")

        self.store.set(key, {"count": 0, "lastAttempt": now_ms})
        self.users.touch_last_login(user["id"])
        return self.users.get(user["id"])
