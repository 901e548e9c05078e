from pydantic import BaseModel, EmailStr
from typing import Dict, List, Literal, Optional

# -------- Auth / User --------
class UserCreate(BaseModel):
    email: EmailStr
    password: str
    displayName: Optional[str] = ""

class LoginInput(BaseModel):
    email: EmailStr
    password: str

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

class UserOut(BaseModel):
    id: str
    email: str
    displayName: Optional[str] = ""
    role: str = "user"
    currency: str = "USD"
    createdAt: Optional[str] = None
    lastLogin: Optional[str] = None

class ProfileUpdate(BaseModel):
    displayName: Optional[str] = None
    currency: Optional[str] = None

class RoleUpdate(BaseModel):
    role: Literal["user", "admin"]

# -------- Budgets --------
# Los rangos los revisa validation.py, aquí solo tipos
class BudgetCreate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    month: Optional[int] = None
    year: Optional[int] = None
    isMonthly: Optional[bool] = None
    sharedWith: Optional[Dict[str, bool]] = None

class BudgetUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    month: Optional[int] = None
    year: Optional[int] = None
    isMonthly: Optional[bool] = None

class ShareInput(BaseModel):
    email: EmailStr

# -------- Transactions --------
class FoodItem(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    quantity: Optional[float] = None
    price: Optional[float] = None
    isPaid: bool = False

class TransactionCreate(BaseModel):
    type: Optional[str] = None
    name: Optional[str] = None
    category: Optional[str] = None
    amount: Optional[float] = None
    date: Optional[str] = None
    description: Optional[str] = None
    foodItems: Optional[List[FoodItem]] = None
    userName: Optional[str] = None

class TransactionUpdate(BaseModel):
    type: Optional[str] = None
    name: Optional[str] = None
    category: Optional[str] = None
    amount: Optional[float] = None
    date: Optional[str] = None
    description: Optional[str] = None
    foodItems: Optional[List[FoodItem]] = None
