# repositories/users.py
from __future__ import annotations
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from budget_api.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from budget_api.core.store import BaseStore
from budget_api.core.timeutils import to_iso, utcnow
from budget_api.core.validation import sanitize_data

ROLES = ("user", "admin")

# code -> (symbol, locale, name)
CURRENCIES: Dict[str, tuple] = {
    "USD": ("$", "en-US", "US Dollar"),
    "EUR": ("€", "es-ES", "Euro"),
    "MXN": ("$", "es-MX", "Mexican Peso"),
    "COP": ("$", "es-CO", "Colombian Peso"),
    "ARS": ("$", "es-AR", "Argentine Peso"),
    "CLP": ("$", "es-CL", "Chilean Peso"),
    "PEN": ("S/", "es-PE", "Peruvian Sol"),
    "CRC": ("₡", "es-CR", "Costa Rican Colón"),
    "GTQ": ("Q", "es-GT", "Guatemalan Quetzal"),
    "HNL": ("L", "es-HN", "Honduran Lempira"),
    "NIO": ("C$", "es-NI", "Nicaraguan Córdoba"),
    "DOP": ("RD$", "es-DO", "Dominican Peso"),
    "PYG": ("₲", "es-PY", "Paraguayan Guaraní"),
    "UYU": ("$", "es-UY", "Uruguayan Peso"),
    "BOB": ("Bs.", "es-BO", "Bolivian Boliviano"),
    "VES": ("Bs.", "es-VE", "Venezuelan Bolívar"),
}
DEFAULT_CURRENCY = "USD"


class UserRepository:
    """Profiles under ``users/{uid}``. Credentials are kept elsewhere."""

    def __init__(self, store: BaseStore, now: Callable[[], datetime] = utcnow):
        self.store = store
        self.now = now

    def create_profile(self, uid: str, email: str, display_name: str = "", role: str = "user") -> Dict[str, Any]:
        stamp = to_iso(self.now())
        profile = {
            "email": email,
            "displayName": sanitize_data(display_name or ""),
            "role": role,
            "currency": DEFAULT_CURRENCY,
            "createdAt": stamp,
            "lastLogin": stamp,
        }
        self.store.set(f"users/{uid}", profile)
        return {"id": uid, **profile}

    def get(self, uid: str) -> Dict[str, Any]:
        profile = self.store.get(f"users/{uid}")
        if not profile:
            raise NotFoundError("Usuario no encontrado")
        return {"id": uid, "role": "user", "currency": DEFAULT_CURRENCY, **profile}

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        matches = self.store.query("users", "email", email)
        if not matches:
            return None
        uid = next(iter(matches))
        return {"id": uid, **matches[uid]}

    def list_all(self) -> List[Dict[str, Any]]:
        users = self.store.get("users") or {}
        return [{"id": uid, "role": "user", **u} for uid, u in users.items()]

    def is_admin(self, uid: str) -> bool:
        return self.store.get(f"users/{uid}/role") == "admin"

    def set_role(self, target_uid: str, role: str, acting_uid: str) -> None:
        if not self.is_admin(acting_uid):
            raise PermissionDeniedError("Solo los administradores pueden cambiar roles")
        if target_uid == acting_uid:
            raise PermissionDeniedError("No puedes cambiar tu propio rol")
        if role not in ROLES:
            raise ValidationError({"role": "Rol inválido"})
        self.get(target_uid)
        self.store.update({f"users/{target_uid}/role": role})

    def set_currency(self, uid: str, code: str) -> None:
        if code not in CURRENCIES:
            raise ValidationError({"currency": "Moneda no soportada"})
        self.get(uid)
        self.store.update({f"users/{uid}/currency": code})

    def update_display_name(self, uid: str, display_name: str) -> None:
        self.get(uid)
        self.store.update({f"users/{uid}/displayName": sanitize_data(display_name)})

    def touch_last_login(self, uid: str) -> None:
        self.store.set(f"users/{uid}/lastLogin", to_iso(self.now()))
