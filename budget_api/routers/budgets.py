# routers/budgets.py
from __future__ import annotations
import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool

from budget_api.auth import AuthService
from budget_api.core.errors import AuthError
from budget_api.core.store import BaseStore
from budget_api.core.summary import dashboard_summary
from budget_api.deps import get_budgets, get_current_user, get_store, get_transactions
from budget_api.repositories import BudgetRepository, TransactionRepository
from budget_api.schemas import BudgetCreate, BudgetUpdate, ShareInput

router = APIRouter(prefix="/budgets", tags=["Budgets"])

# ---------- Endpoints ----------
@router.get("")
def list_budgets(
    month: Optional[int] = Query(None, ge=0, le=11),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    user: dict = Depends(get_current_user),
    budgets: BudgetRepository = Depends(get_budgets),
):
    rows = budgets.list_for_user(user["id"], month=month, year=year)
    return {"ok": True, "data": rows, "total": len(rows)}

@router.post("", status_code=201)
def create_budget(
    body: BudgetCreate,
    user: dict = Depends(get_current_user),
    budgets: BudgetRepository = Depends(get_budgets),
):
    budget_id = budgets.create(user["id"], body.model_dump(exclude_none=True))
    return {"ok": True, "id": budget_id}

@router.get("/summary")
def budget_summary(
    month: Optional[int] = Query(None, ge=0, le=11),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    user: dict = Depends(get_current_user),
    budgets: BudgetRepository = Depends(get_budgets),
    transactions: TransactionRepository = Depends(get_transactions),
):
    rows = budgets.list_for_user(user["id"], month=month, year=year)
    by_budget = {b["id"]: transactions.list(b["id"]) for b in rows}
    return {"ok": True, "data": dashboard_summary(rows, by_budget)}

@router.websocket("/live")
async def live_budgets(websocket: WebSocket, token: str = "", store: BaseStore = Depends(get_store)):
    """Pushes the caller's full budget list on connect and after every change."""
    auth = AuthService(store)
    try:
        uid = auth.verify_token(token)
    except AuthError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()
    # la primera entrega lee el store; fuera del event loop
    subscription = await run_in_threadpool(
        BudgetRepository(store).subscribe_for_user,
        uid, lambda rows: loop.call_soon_threadsafe(queue.put_nowait, rows),
    )

    async def pump():
        while True:
            rows = await queue.get()
            await websocket.send_json({"ok": True, "data": rows})

    sender = asyncio.create_task(pump())
    try:
        # el cliente no manda nada útil; solo esperamos el cierre
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        subscription.cancel()
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass
        except Exception:
            logging.getLogger("uvicorn.error").exception("Falló el envío del feed para %s", uid)
        logging.getLogger("uvicorn.error").info("Feed de presupuestos cerrado para %s", uid)

@router.get("/{budget_id}")
def get_budget(
    budget_id: str,
    user: dict = Depends(get_current_user),
    budgets: BudgetRepository = Depends(get_budgets),
):
    return {"ok": True, "data": budgets.get(budget_id, user["id"])}

@router.patch("/{budget_id}")
def update_budget(
    budget_id: str,
    body: BudgetUpdate,
    user: dict = Depends(get_current_user),
    budgets: BudgetRepository = Depends(get_budgets),
):
    budgets.update(budget_id, body.model_dump(exclude_unset=True, exclude_none=True), user["id"])
    return {"ok": True, "data": budgets.get(budget_id, user["id"])}

@router.delete("/{budget_id}")
def delete_budget(
    budget_id: str,
    user: dict = Depends(get_current_user),
    budgets: BudgetRepository = Depends(get_budgets),
):
    budgets.delete(budget_id, user["id"])
    return {"ok": True}

@router.post("/{budget_id}/share")
def share_budget(
    budget_id: str,
    body: ShareInput,
    user: dict = Depends(get_current_user),
    budgets: BudgetRepository = Depends(get_budgets),
):
    created = budgets.share_with(budget_id, body.email, user["id"])
    return {"ok": True, "alreadyShared": not created}
