import pytest

from budget_api.core.errors import NotFoundError, PermissionDeniedError, TooOldError, ValidationError


@pytest.fixture
def budget_id(budgets, budget_data):
    return budgets.create("ana", budget_data(sharedWith={"beto": True}))


def test_create_stamps_creator_and_time(store, transactions, budget_id, tx_data):
    tid = transactions.create(budget_id, tx_data(name="Renta <abril>", userName="Ana"), "ana")
    stored = store.get(f"transactions/{budget_id}/{tid}")
    assert stored["createdBy"] == "ana"
    assert stored["createdAt"] == "2024-01-15T12:00:00.000Z"
    assert stored["id"] == tid
    assert stored["name"] == "Renta &lt;abril&gt;"
    assert stored["userName"] == "Ana"
    assert "budgetId" not in stored

def test_create_takes_user_from_payload(store, transactions, budget_id, tx_data):
    tid = transactions.create(budget_id, tx_data(userId="beto"))
    stored = store.get(f"transactions/{budget_id}/{tid}")
    assert stored["createdBy"] == "beto"
    assert "userId" not in stored

def test_create_checks_budget_and_access(transactions, budget_id, tx_data):
    with pytest.raises(NotFoundError):
        transactions.create("nope", tx_data(), "ana")
    with pytest.raises(PermissionDeniedError):
        transactions.create(budget_id, tx_data(), "caro")
    with pytest.raises(PermissionDeniedError):
        transactions.create(budget_id, tx_data())

def test_create_validates(store, transactions, budget_id, tx_data):
    with pytest.raises(ValidationError) as exc:
        transactions.create(budget_id, tx_data(amount=-5, type="gift"), "ana")
    assert set(exc.value.errors) == {"amount", "type"}
    assert store.get(f"transactions/{budget_id}") is None

def test_create_is_recorded_in_activity(activity, transactions, budget_id, tx_data):
    tid = transactions.create(budget_id, tx_data(type="income", amount=900), "beto")
    entry = activity.list("beto")[0]
    assert entry["action"] == "createtransaction"
    assert entry["transactionId"] == tid
    assert entry["budgetId"] == budget_id
    assert entry["type"] == "income"
    assert entry["amount"] == 900

def test_food_items_keep_their_shape(transactions, budget_id, tx_data):
    items = [
        {"id": "1", "name": "Leche", "quantity": 2, "price": 1.5, "isPaid": False},
        {"id": "2", "name": "Pan", "quantity": 1, "price": 10, "isPaid": True},
    ]
    tid = transactions.create(budget_id, tx_data(category="Alimentación", foodItems=items, amount=3), "ana")
    assert transactions.get(budget_id, tid)["foodItems"] == items

def test_list_get_and_filter(transactions, budget_id, tx_data):
    rent = transactions.create(budget_id, tx_data(), "ana")
    food = transactions.create(budget_id, tx_data(category="Alimentación", name="Súper"), "beto")

    listed = transactions.list(budget_id)
    assert {t["id"] for t in listed} == {rent, food}
    assert all(t["budgetId"] == budget_id for t in listed)

    assert [t["id"] for t in transactions.list_by_category(budget_id, "Alimentación")] == [food]
    assert transactions.list_by_category(budget_id, "Ocio") == []
    assert transactions.get(budget_id, rent)["budgetId"] == budget_id
    with pytest.raises(NotFoundError):
        transactions.get(budget_id, "nope")

def test_list_of_empty_budget(transactions, budget_id):
    assert transactions.list(budget_id) == []


# ---------- update ----------
def test_update_merges_fields_and_protects_identity(clock, transactions, budget_id, tx_data):
    tid = transactions.create(budget_id, tx_data(), "ana")
    clock.advance(hours=1)
    transactions.update(
        budget_id, tid,
        {"amount": 650, "createdBy": "caro", "createdAt": "2000-01-01T00:00:00.000Z", "id": "x"},
        "beto",
    )
    tx = transactions.get(budget_id, tid)
    assert tx["amount"] == 650
    assert tx["name"] == "Renta"
    assert tx["createdBy"] == "ana"
    assert tx["createdAt"] == "2024-01-15T12:00:00.000Z"
    assert tx["updatedAt"] == "2024-01-15T13:00:00.000Z"
    assert tx["id"] == tid

def test_update_checks_access_and_existence(transactions, budget_id, tx_data):
    tid = transactions.create(budget_id, tx_data(), "ana")
    with pytest.raises(PermissionDeniedError):
        transactions.update(budget_id, tid, {"amount": 1}, "caro")
    with pytest.raises(NotFoundError):
        transactions.update(budget_id, "nope", {"amount": 1}, "ana")

def test_update_rejects_nested_paths(store, transactions, budget_id, tx_data):
    tid = transactions.create(budget_id, tx_data(), "ana")
    with pytest.raises(ValidationError) as exc:
        transactions.update(budget_id, tid, {"createdBy/x": "beto"}, "ana")
    assert set(exc.value.errors) == {"createdBy/x"}
    tx = transactions.get(budget_id, tid)
    assert tx["createdBy"] == "ana"
    assert "updatedAt" not in tx
    # beto still cannot delete what ana created
    with pytest.raises(PermissionDeniedError):
        transactions.delete(budget_id, tid, "beto")

def test_update_validates_changed_fields(transactions, budget_id, tx_data):
    tid = transactions.create(budget_id, tx_data(), "ana")
    with pytest.raises(ValidationError) as exc:
        transactions.update(budget_id, tid, {"amount": -1, "type": "gift", "date": "2024/01/10"}, "ana")
    assert set(exc.value.errors) == {"amount", "type", "date"}
    tx = transactions.get(budget_id, tid)
    assert (tx["amount"], tx["type"], tx["date"]) == (500, "expense", "2024-01-10")

def test_update_to_food_category_checks_items(transactions, budget_id, tx_data):
    bad_items = [{"name": "", "price": "x", "quantity": 1}]
    tid = transactions.create(budget_id, tx_data(foodItems=bad_items), "ana")
    with pytest.raises(ValidationError) as exc:
        transactions.update(budget_id, tid, {"category": "Alimentación"}, "ana")
    assert set(exc.value.errors) == {"foodItems"}
    assert transactions.get(budget_id, tid)["category"] == "Vivienda"


# ---------- delete ----------
def test_only_creator_can_delete(transactions, budget_id, tx_data):
    tid = transactions.create(budget_id, tx_data(), "beto")
    with pytest.raises(PermissionDeniedError):
        transactions.delete(budget_id, tid, "ana")
    transactions.delete(budget_id, tid, "beto")
    with pytest.raises(NotFoundError):
        transactions.get(budget_id, tid)

def test_delete_window_boundary(clock, transactions, budget_id, tx_data):
    at_limit = transactions.create(budget_id, tx_data(), "ana")
    clock.advance(days=30)
    transactions.delete(budget_id, at_limit, "ana")

    too_old = transactions.create(budget_id, tx_data(), "ana")
    clock.advance(days=30, seconds=1)
    with pytest.raises(TooOldError):
        transactions.delete(budget_id, too_old, "ana")
    assert transactions.get(budget_id, too_old)["id"] == too_old

def test_delete_without_creation_time(store, transactions, budget_id):
    store.set(f"transactions/{budget_id}/old", {
        "type": "expense", "name": "Luz", "category": "Vivienda",
        "amount": 40, "date": "2023-01-01", "createdBy": "ana",
    })
    store.set(f"transactions/{budget_id}/odd", {
        "type": "expense", "name": "Agua", "category": "Vivienda",
        "amount": 20, "date": "2023-01-01", "createdBy": "ana", "createdAt": "ayer",
    })
    transactions.delete(budget_id, "old", "ana")
    transactions.delete(budget_id, "odd", "ana")
    assert transactions.list(budget_id) == []

def test_delete_is_recorded_in_activity(activity, transactions, budget_id, tx_data):
    tid = transactions.create(budget_id, tx_data(), "ana")
    transactions.delete(budget_id, tid, "ana")
    actions = [e["action"] for e in activity.list("ana")]
    assert actions == ["deletetransaction", "createtransaction"]


# ---------- subscribe ----------
def test_subscribe_delivers_list_with_ids(transactions, budget_id, tx_data):
    seen = []
    sub = transactions.subscribe(budget_id, seen.append)
    assert seen == [[]]
    tid = transactions.create(budget_id, tx_data(), "ana")
    assert [(t["id"], t["budgetId"]) for t in seen[-1]] == [(tid, budget_id)]
    sub.cancel()
