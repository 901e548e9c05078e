# core/validation.py
from __future__ import annotations
import html
import math
import re
from typing import Any, Dict, NamedTuple

FOOD_CATEGORY = "Alimentación"
TRANSACTION_TYPES = ("income", "expense")
MAX_NAME = 100
MAX_DESCRIPTION = 500
MAX_AMOUNT = 1_000_000_000

_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")
_FIELD_RE = re.compile(r"[^./$#\[\]\s][^./$#\[\]]*")


class ValidationResult(NamedTuple):
    is_valid: bool
    errors: Dict[str, str]


def _result(errors: Dict[str, str]) -> ValidationResult:
    return ValidationResult(not errors, errors)

def _blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()

def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)

def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def validate_budget(data: Dict[str, Any]) -> ValidationResult:
    errors: Dict[str, str] = {}

    name = data.get("name")
    if _blank(name):
        errors["name"] = "El nombre es obligatorio"
    elif len(name) > MAX_NAME:
        errors["name"] = f"El nombre es demasiado largo (máximo {MAX_NAME} caracteres)"

    month = data.get("month")
    if month is None:
        errors["month"] = "El mes es obligatorio"
    elif not _is_int(month) or not 0 <= month <= 11:
        errors["month"] = "Mes inválido"

    year = data.get("year")
    if year is None:
        errors["year"] = "El año es obligatorio"
    elif not _is_int(year) or not 2000 <= year <= 2100:
        errors["year"] = "Año inválido"

    description = data.get("description")
    if description and len(str(description)) > MAX_DESCRIPTION:
        errors["description"] = f"La descripción es demasiado larga (máximo {MAX_DESCRIPTION} caracteres)"

    return _result(errors)


def validate_transaction(data: Dict[str, Any]) -> ValidationResult:
    errors: Dict[str, str] = {}

    if data.get("type") not in TRANSACTION_TYPES:
        errors["type"] = "Tipo de transacción inválido"

    name = data.get("name")
    if _blank(name):
        errors["name"] = "El nombre es obligatorio"
    elif len(name) > MAX_NAME:
        errors["name"] = f"El nombre es demasiado largo (máximo {MAX_NAME} caracteres)"

    amount = data.get("amount")
    if not _is_number(amount):
        errors["amount"] = "El monto es obligatorio y debe ser un número"
    elif amount < 0:
        errors["amount"] = "El monto no puede ser negativo"
    elif amount > MAX_AMOUNT:
        errors["amount"] = "El monto es demasiado grande"

    category = data.get("category")
    if _blank(category):
        errors["category"] = "La categoría es obligatoria"

    date = data.get("date")
    if not date:
        errors["date"] = "La fecha es obligatoria"
    elif not isinstance(date, str) or not _DATE_RE.fullmatch(date):
        errors["date"] = "Formato de fecha inválido (YYYY-MM-DD)"

    items = data.get("foodItems")
    if category == FOOD_CATEGORY and items is not None:
        if not isinstance(items, list):
            errors["foodItems"] = "Formato de items inválido"
        elif any(
            not isinstance(item, dict)
            or _blank(item.get("name"))
            or not _is_number(item.get("price"))
            or not _is_number(item.get("quantity"))
            for item in items
        ):
            errors["foodItems"] = "Algunos items tienen datos inválidos"

    return _result(errors)


def validate_field_names(data: Dict[str, Any]) -> ValidationResult:
    """Update payloads may only name top-level fields: no ``/`` paths, no reserved characters."""
    return _result({
        str(k): "Campo inválido"
        for k in data
        if not isinstance(k, str) or not _FIELD_RE.fullmatch(k)
    })


def sanitize_data(value: Any) -> Any:
    """
    Escape ``& < > " '`` in every string leaf. Lists and mappings keep their
    shape (keys are left alone); anything else is returned as is. Applying it
    twice escapes twice, so only call it once on the way into the store.
    """
    if isinstance(value, str):
        return html.escape(value, quote=True)
    if isinstance(value, (list, tuple)):
        return [sanitize_data(v) for v in value]
    if isinstance(value, dict):
        return {k: sanitize_data(v) for k, v in value.items()}
    return value
