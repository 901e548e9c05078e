# budget_api/app.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from budget_api import __version__, config
from budget_api.core.errors import BudgetAppError, StoreError, ValidationError
from budget_api.routers import auth, budgets, health, transactions, users

app = FastAPI(title="Presupuestos API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# errores de dominio -> HTTP
@app.exception_handler(BudgetAppError)
def handle_domain_error(request: Request, exc: BudgetAppError):
    body = {"ok": False, "detail": exc.message}
    if isinstance(exc, ValidationError):
        body["errors"] = exc.errors
    if isinstance(exc, StoreError):
        logging.getLogger("uvicorn.error").error("%s %s -> %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=body)

# monta routers
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(budgets.router)
app.include_router(transactions.router)
app.include_router(users.router)

@app.get("/")
def root():
    return {"name": "Presupuestos API", "ok": True}
