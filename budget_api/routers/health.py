from fastapi import APIRouter, Depends

from budget_api.core.store import BaseStore
from budget_api.deps import get_store

router = APIRouter(tags=["Health"])

@router.get("/health")
def health(store: BaseStore = Depends(get_store)):
    return {"ok": True, "store": type(store).__name__}
