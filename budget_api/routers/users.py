# routers/users.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from budget_api.deps import get_activity, get_current_user, get_users, require_admin
from budget_api.repositories import ActivityLog, UserRepository
from budget_api.repositories.users import CURRENCIES
from budget_api.schemas import ProfileUpdate, RoleUpdate, UserOut

router = APIRouter(prefix="/users", tags=["Users"])

# ---------- Endpoints ----------
@router.get("")
def list_users(admin: dict = Depends(require_admin), users: UserRepository = Depends(get_users)):
    rows = [UserOut(**u).model_dump() for u in users.list_all()]
    return {"ok": True, "data": rows, "total": len(rows)}

@router.get("/currencies")
def list_currencies():
    data = [
        {"code": code, "symbol": symbol, "locale": locale, "name": name}
        for code, (symbol, locale, name) in CURRENCIES.items()
    ]
    return {"ok": True, "data": data}

@router.patch("/me")
def update_me(
    body: ProfileUpdate,
    user: dict = Depends(get_current_user),
    users: UserRepository = Depends(get_users),
):
    if body.displayName is not None:
        users.update_display_name(user["id"], body.displayName)
    if body.currency is not None:
        users.set_currency(user["id"], body.currency)
    return {"ok": True, "data": UserOut(**users.get(user["id"])).model_dump()}

@router.get("/me/activity")
def my_activity(user: dict = Depends(get_current_user), activity: ActivityLog = Depends(get_activity)):
    return {"ok": True, "data": activity.list(user["id"])}

@router.patch("/{uid}/role")
def change_role(
    uid: str,
    body: RoleUpdate,
    admin: dict = Depends(require_admin),
    users: UserRepository = Depends(get_users),
):
    users.set_role(uid, body.role, admin["id"])
    return {"ok": True, "data": UserOut(**users.get(uid)).model_dump()}
