import pytest

from budget_api.core.validation import (
    sanitize_data, validate_budget, validate_field_names, validate_transaction,
)


def _tx(**overrides):
    data = {"type": "expense", "name": "Pan", "category": "Vivienda", "amount": 10, "date": "2024-03-01"}
    data.update(overrides)
    return data


# ---------- budgets ----------
def test_valid_budget_has_no_errors():
    result = validate_budget({"name": "Marzo", "month": 2, "year": 2024})
    assert result.is_valid
    assert result.errors == {}

def test_empty_budget_reports_every_required_field():
    is_valid, errors = validate_budget({})
    assert not is_valid
    assert set(errors) == {"name", "month", "year"}

def test_budget_name_limits():
    assert validate_budget({"name": "x" * 100, "month": 0, "year": 2024}).is_valid
    errors = validate_budget({"name": "x" * 101, "month": 0, "year": 2024}).errors
    assert "name" in errors
    assert "name" in validate_budget({"name": "   ", "month": 0, "year": 2024}).errors

@pytest.mark.parametrize("month", [-1, 12, "3", True, 1.5])
def test_budget_rejects_bad_months(month):
    errors = validate_budget({"name": "Casa", "month": month, "year": 2024}).errors
    assert errors == {"month": "Mes inválido"}

@pytest.mark.parametrize("year", [1999, 2101, "2024"])
def test_budget_rejects_bad_years(year):
    errors = validate_budget({"name": "Casa", "month": 1, "year": year}).errors
    assert errors == {"year": "Año inválido"}

def test_budget_month_zero_and_year_bounds_are_valid():
    assert validate_budget({"name": "Casa", "month": 0, "year": 2000}).is_valid
    assert validate_budget({"name": "Casa", "month": 11, "year": 2100}).is_valid

def test_budget_description_limit():
    assert validate_budget({"name": "Casa", "month": 1, "year": 2024, "description": "d" * 500}).is_valid
    errors = validate_budget({"name": "Casa", "month": 1, "year": 2024, "description": "d" * 501}).errors
    assert "description" in errors


# ---------- transactions ----------
def test_valid_transaction():
    assert validate_transaction(_tx()).is_valid

def test_transaction_type_must_be_known():
    assert "type" in validate_transaction(_tx(type="transfer")).errors

@pytest.mark.parametrize("amount", [None, "10", True, float("nan")])
def test_transaction_amount_must_be_a_number(amount):
    assert "amount" in validate_transaction(_tx(amount=amount)).errors

def test_transaction_amount_bounds():
    assert validate_transaction(_tx(amount=0)).is_valid
    assert validate_transaction(_tx(amount=1_000_000_000)).is_valid
    assert validate_transaction(_tx(amount=-0.01)).errors["amount"] == "El monto no puede ser negativo"
    assert validate_transaction(_tx(amount=1_000_000_001)).errors["amount"] == "El monto es demasiado grande"

@pytest.mark.parametrize("date", ["2024/03/01", "01-03-2024", "2024-3-1", "2024-03-01T00:00"])
def test_transaction_date_format(date):
    assert validate_transaction(_tx(date=date)).errors["date"] == "Formato de fecha inválido (YYYY-MM-DD)"

def test_transaction_missing_date_and_category():
    errors = validate_transaction(_tx(date="", category=" ")).errors
    assert errors["date"] == "La fecha es obligatoria"
    assert "category" in errors

def test_food_items_checked_only_for_food_category():
    bad_items = [{"name": "", "price": "x", "quantity": 1}]
    assert validate_transaction(_tx(foodItems=bad_items)).is_valid
    errors = validate_transaction(_tx(category="Alimentación", foodItems=bad_items)).errors
    assert errors == {"foodItems": "Algunos items tienen datos inválidos"}

def test_food_items_must_be_a_list():
    errors = validate_transaction(_tx(category="Alimentación", foodItems={"a": 1})).errors
    assert errors == {"foodItems": "Formato de items inválido"}

def test_food_item_with_zero_price_is_accepted():
    items = [{"name": "Muestra", "price": 0, "quantity": 1}, {"name": "Leche", "price": 1.5, "quantity": 2}]
    assert validate_transaction(_tx(category="Alimentación", foodItems=items)).is_valid


# ---------- field names ----------
def test_field_names_must_be_plain_keys():
    assert validate_field_names({"name": 1, "isMonthly": 2, "foodItems": 3}).is_valid
    is_valid, errors = validate_field_names({"ownerId/x": 1, "a.b": 2, "": 3, "name": 4})
    assert not is_valid
    assert errors == {"ownerId/x": "Campo inválido", "a.b": "Campo inválido", "": "Campo inválido"}


# ---------- sanitize ----------
def test_sanitize_escapes_strings():
    assert sanitize_data("<script>alert('x')</script>") == "&lt;script&gt;alert(&#x27;x&#x27;)&lt;/script&gt;"
    assert sanitize_data('say "hi" & bye') == "say &quot;hi&quot; &amp; bye"

def test_sanitize_walks_nested_values_and_keeps_other_types():
    data = {"name": "<b>", "amount": 5, "ok": True, "none": None, "items": [{"name": "a&b", "price": 1.5}]}
    assert sanitize_data(data) == {
        "name": "&lt;b&gt;",
        "amount": 5,
        "ok": True,
        "none": None,
        "items": [{"name": "a&amp;b", "price": 1.5}],
    }

def test_sanitize_is_not_idempotent():
    once = sanitize_data("&")
    assert once == "&amp;"
    assert sanitize_data(once) == "&amp;amp;"
