# techshop/db/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from techshop.db.models import AccountType, RoleEnum


# Product as the core hands it out
class ProductBase(BaseModel):
    id: int
    name: str
    price: Decimal
    stock: int
    company_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


# Seller / admin edit payload
class ProductCreate(BaseModel):
    name: str
    price: Decimal = Field(ge=0)
    stock: int = Field(ge=0)


class RankedProduct(BaseModel):
    product: ProductBase
    total_sold: int


class UserBase(BaseModel):
    id: int
    username: str
    email: str
    address: str = ""
    role: RoleEnum = RoleEnum.common
    account_type: AccountType = AccountType.user
    dni: Optional[str] = None
    nif: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserCreate(BaseModel):
    username: str
    password: str
    email: str
    address: str = ""
    account_type: AccountType = AccountType.user
    dni: str = ""
    nif: str = ""


class UserUpdate(BaseModel):
    username: str
    email: str
    address: str = ""
    dni: str = ""
    nif: str = ""


class LoginRequest(BaseModel):
    username: str
    password: str


# Admin-created account; the password is generated
class AdminUserCreate(BaseModel):
    username: str
    email: str
    address: str = ""
    role: RoleEnum = RoleEnum.common
    account_type: AccountType = AccountType.user
    dni: str = ""
    nif: str = ""


class AdminUserUpdate(BaseModel):
    username: str
    email: str
    address: str = ""
    role: RoleEnum = RoleEnum.common


class PasswordResetRequest(BaseModel):
    dni: str
    email: str


class MissingData(BaseModel):
    missing: bool
    fields: List[str] = []


class OrderBase(BaseModel):
    id: int
    total: Decimal
    created_at: datetime
    user_id: int

    model_config = ConfigDict(from_attributes=True)


# One invoice line: what invoice and email senders read
class OrderItemDetail(BaseModel):
    id: int
    order_id: int
    product_id: int
    quantity: int
    product_name: str
    unit_price: Decimal
    line_total: Decimal


class OrderWithItems(BaseModel):
    order: OrderBase
    items: List[OrderItemDetail] = []


class CartItemBase(BaseModel):
    product_id: int
    quantity: int


class CartLine(BaseModel):
    product: ProductBase
    quantity: int
    line_total: Decimal


class CartResponse(BaseModel):
    items: List[CartLine] = []
    total: Decimal


class DashboardStats(BaseModel):
    total_products: int = 0
    total_users: int = 0
    total_orders: int = 0
    total_revenue: Decimal = Decimal("0.00")
