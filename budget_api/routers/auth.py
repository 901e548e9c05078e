# routers/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from budget_api.auth import AuthService
from budget_api.deps import get_auth, get_current_user
from budget_api.schemas import LoginInput, Token, UserCreate, UserOut

router = APIRouter(prefix="/auth", tags=["Auth"])

@router.post("/signup", status_code=201)
def signup(body: UserCreate, auth: AuthService = Depends(get_auth)):
    profile = auth.signup(body.email, body.password, body.displayName or "")
    token = Token(access_token=auth.issue_token(profile["id"]))
    return {"ok": True, "data": {"user": UserOut(**profile).model_dump(), **token.model_dump()}}

@router.post("/login", response_model=Token)
def login(body: LoginInput, auth: AuthService = Depends(get_auth)):
    profile = auth.login(body.email, body.password)
    return Token(access_token=auth.issue_token(profile["id"]))

@router.get("/me")
def me(user: dict = Depends(get_current_user)):
    return {"ok": True, "data": UserOut(**user).model_dump()}
