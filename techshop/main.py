# techshop/main.py
from contextlib import asynccontextmanager
from typing import AsyncGenerator, List, Optional

from fastapi import FastAPI, Depends, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.middleware.sessions import SessionMiddleware

from techshop.auth_utils import create_access_token, decode_user_id
from techshop.cart import Cart, add_to_cart, remove_from_cart, clear_cart, get_cart_contents, get_cart_total
from techshop.config import SESSION_SECRET, SEED_DEMO
from techshop.db.database import get_db
from techshop.db.init_db import init_db, seed_demo_catalog
from techshop.db.models import User
from techshop.db.orders import (
    create_order, delete_order, get_all_orders, get_order_by_id, get_order_items, get_orders_by_user_id,
    get_dashboard_stats,
)
from techshop.db.pricing import line_total
from techshop.db.products import (
    get_all_products, get_product_by_id, get_products_by_ids, get_company_products,
    create_product, update_product, delete_product,
)
from techshop.db.recommendations import top_selling, top_for_buyer
from techshop.db.results import OpResult, NOT_FOUND_MESSAGES, STORE_ERROR
from techshop.db.schemas import (
    AdminUserCreate, AdminUserUpdate, CartItemBase, CartLine, CartResponse, DashboardStats, LoginRequest,
    MissingData, OrderBase, OrderWithItems, PasswordResetRequest, ProductBase, ProductCreate, RankedProduct,
    UserBase, UserCreate, UserUpdate,
)
from techshop.db.users import (
    admin_create_user, admin_update_user, authenticate_user, check_missing_required_data, create_user,
    delete_user, delete_user_account, get_all_users, get_user_by_id, reset_password_by_dni_and_email,
    reset_user_password, update_user_profile,
)
from techshop.logging_config import setup_logging, get_logger

setup_logging()
log = get_logger(__name__)

COMPANY_CANNOT_BUY = "Companies cannot buy products. This is only available to individual users"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="login", auto_error=False)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    await init_db()
    if SEED_DEMO:
        await seed_demo_catalog()
    log.info("TechShop started")
    yield


app = FastAPI(title="TechShop", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
# The cart lives in the signed session cookie
app.add_middleware(SessionMiddleware, secret_key=SESSION_SECRET)


class RemoveFromCart(BaseModel):
    product_id: int


def raise_for(result: OpResult):
    """Turn a failed core result into the matching HTTP error."""
    if result.success:
        return
    if result.message in NOT_FOUND_MESSAGES:
        raise HTTPException(status_code=404, detail=result.message)
    if result.message == STORE_ERROR:
        raise HTTPException(status_code=500, detail=result.message)
    raise HTTPException(status_code=400, detail=result.message)


async def optional_user(token: Optional[str] = Depends(oauth2_scheme),
                        db: AsyncSession = Depends(get_db)) -> Optional[User]:
    if not token:
        return None
    user_id = decode_user_id(token)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid token")
    return await get_user_by_id(db, user_id)


async def current_user(user: Optional[User] = Depends(optional_user)) -> User:
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def require_company(user: User = Depends(current_user)) -> User:
    if not user.is_company():
        raise HTTPException(status_code=403, detail="Company account required")
    return user


def require_admin(user: User = Depends(current_user)) -> User:
    if not user.is_admin():
        raise HTTPException(status_code=403, detail="Administrator access required")
    return user


def forbid_company(user: Optional[User]):
    if user is not None and user.is_company():
        raise HTTPException(status_code=403, detail=COMPANY_CANNOT_BUY)


@app.get("/")
async def health_check():
    """Health check endpoint."""
    return {"status": "techshop running"}


# Catalog

@app.get("/api/products", response_model=List[ProductBase])
async def read_products(search: str = Query(default=""), skip: int = 0, limit: int = 100,
                        db: AsyncSession = Depends(get_db)):
    return await get_all_products(db, search, skip, limit)


@app.get("/api/products/{product_id}", response_model=ProductBase)
async def read_product(product_id: int, db: AsyncSession = Depends(get_db)):
    product = await get_product_by_id(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


# Cart

@app.get("/cart", response_model=CartResponse)
async def view_cart(request: Request, db: AsyncSession = Depends(get_db)):
    cart = Cart.from_session(request.session)
    lines = [
        CartLine(product=ProductBase.model_validate(product), quantity=quantity,
                 line_total=line_total(product.price, quantity))
        for product, quantity in await get_products_by_ids(db, get_cart_contents(cart))
    ]
    return CartResponse(items=lines, total=await get_cart_total(db, cart))


@app.post("/cart/add")
async def add_item(item: CartItemBase, request: Request, user: Optional[User] = Depends(optional_user),
                   db: AsyncSession = Depends(get_db)):
    forbid_company(user)
    cart = Cart.from_session(request.session)
    result = await add_to_cart(db, cart, item.product_id, item.quantity)
    raise_for(result)
    cart.save(request.session)
    return {"success": True, "message": result.message, "quantity": result.value}


@app.post("/cart/remove")
async def remove_item(item: RemoveFromCart, request: Request, user: Optional[User] = Depends(optional_user)):
    forbid_company(user)
    cart = Cart.from_session(request.session)
    result = remove_from_cart(cart, item.product_id)
    raise_for(result)
    cart.save(request.session)
    return {"success": True, "message": result.message}


@app.post("/cart/clear")
async def clear_items(request: Request):
    cart = Cart.from_session(request.session)
    result = clear_cart(cart)
    cart.save(request.session)
    return {"success": True, "message": result.message}


# Orders

@app.post("/checkout")
async def checkout(request: Request, user: User = Depends(current_user), db: AsyncSession = Depends(get_db)):
    forbid_company(user)
    cart = Cart.from_session(request.session)
    result = await create_order(db, get_cart_contents(cart), user.id)
    raise_for(result)

    clear_cart(cart)
    cart.save(request.session)
    return {"success": True, "message": result.message, "order_id": result.value}


@app.get("/orders", response_model=List[OrderWithItems])
async def list_orders(user: User = Depends(current_user), db: AsyncSession = Depends(get_db)):
    return [OrderWithItems(order=order, items=items) for order, items in await get_orders_by_user_id(db, user.id)]


@app.get("/orders/{order_id}", response_model=OrderWithItems)
async def read_order(order_id: int, user: User = Depends(current_user), db: AsyncSession = Depends(get_db)):
    found = await get_order_by_id(db, order_id)
    raise_for(found)
    # Other users' orders are reported as missing
    if found.value.user_id != user.id and not user.is_admin():
        raise HTTPException(status_code=404, detail="Order not found")

    items = await get_order_items(db, order_id)
    raise_for(items)
    return OrderWithItems(order=found.value, items=items.value)


@app.get("/recommendations")
async def recommendations(limit: int = 3, user: Optional[User] = Depends(optional_user),
                          db: AsyncSession = Depends(get_db)):
    for_you = await top_for_buyer(db, user.id, limit) if user is not None else []
    return {
        "top_selling": [RankedProduct(product=p, total_sold=n) for p, n in await top_selling(db, limit)],
        "for_you": [RankedProduct(product=p, total_sold=n) for p, n in for_you],
    }


# Accounts

@app.post("/register", response_model=UserBase)
async def register(payload: UserCreate, db: AsyncSession = Depends(get_db)):
    result = await create_user(
        db, payload.username, payload.password, payload.email, payload.address,
        account_type=payload.account_type, dni=payload.dni, nif=payload.nif,
    )
    raise_for(result)
    return result.value


@app.post("/login")
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_db)):
    result = await authenticate_user(db, payload.username, payload.password)
    if not result.success:
        raise HTTPException(status_code=401, detail=result.message)
    user = result.value
    token = create_access_token({"sub": user.username, "id": user.id})
    return {"access_token": token, "token_type": "bearer"}


@app.get("/profile", response_model=UserBase)
async def read_profile(user: User = Depends(current_user)):
    return user


@app.put("/profile", response_model=UserBase)
async def edit_profile(payload: UserUpdate, user: User = Depends(current_user), db: AsyncSession = Depends(get_db)):
    result = await update_user_profile(db, user.id, payload.username, payload.email, payload.address,
                                       dni=payload.dni, nif=payload.nif)
    raise_for(result)
    return result.value


@app.delete("/profile")
async def delete_profile(request: Request, user: User = Depends(current_user), db: AsyncSession = Depends(get_db)):
    result = await delete_user_account(db, user.id)
    raise_for(result)
    request.session.clear()
    return {"success": True, "message": result.message}


@app.get("/profile/missing-data", response_model=MissingData)
async def missing_profile_data(user: User = Depends(current_user), db: AsyncSession = Depends(get_db)):
    missing, fields = await check_missing_required_data(db, user.id)
    return MissingData(missing=missing, fields=fields)


# Email delivery is not part of this service, so the new password goes back to the caller
@app.post("/password-reset")
async def password_reset(payload: PasswordResetRequest, db: AsyncSession = Depends(get_db)):
    result = await reset_password_by_dni_and_email(db, payload.dni, payload.email)
    raise_for(result)
    return {"success": True, "message": result.message, "new_password": result.value}


# Company products

@app.get("/company/products", response_model=List[ProductBase])
async def company_products(company: User = Depends(require_company), db: AsyncSession = Depends(get_db)):
    return await get_company_products(db, company.id)


@app.post("/company/products", response_model=ProductBase)
async def company_create_product(payload: ProductCreate, company: User = Depends(require_company),
                                 db: AsyncSession = Depends(get_db)):
    result = await create_product(db, payload.name, payload.price, payload.stock, company_id=company.id)
    raise_for(result)
    return await get_product_by_id(db, result.value)


@app.put("/company/products/{product_id}", response_model=ProductBase)
async def company_update_product(product_id: int, payload: ProductCreate, company: User = Depends(require_company),
                                 db: AsyncSession = Depends(get_db)):
    result = await update_product(db, product_id, payload.name, payload.price, payload.stock, company_id=company.id)
    raise_for(result)
    return await get_product_by_id(db, product_id)


@app.delete("/company/products/{product_id}")
async def company_delete_product(product_id: int, company: User = Depends(require_company),
                                 db: AsyncSession = Depends(get_db)):
    result = await delete_product(db, product_id, company_id=company.id)
    raise_for(result)
    return {"success": True, "message": result.message}


# Admin

@app.get("/admin/stats", response_model=DashboardStats)
async def admin_stats(admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return await get_dashboard_stats(db)


@app.post("/admin/products", response_model=ProductBase)
async def admin_create_product(payload: ProductCreate, admin: User = Depends(require_admin),
                               db: AsyncSession = Depends(get_db)):
    result = await create_product(db, payload.name, payload.price, payload.stock)
    raise_for(result)
    return await get_product_by_id(db, result.value)


@app.delete("/admin/products/{product_id}")
async def admin_delete_product(product_id: int, admin: User = Depends(require_admin),
                               db: AsyncSession = Depends(get_db)):
    result = await delete_product(db, product_id)
    raise_for(result)
    return {"success": True, "message": result.message}


@app.put("/admin/products/{product_id}", response_model=ProductBase)
async def admin_update_product(product_id: int, payload: ProductCreate, admin: User = Depends(require_admin),
                               db: AsyncSession = Depends(get_db)):
    result = await update_product(db, product_id, payload.name, payload.price, payload.stock)
    raise_for(result)
    return await get_product_by_id(db, product_id)


@app.get("/admin/users", response_model=List[UserBase])
async def admin_users(admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return await get_all_users(db)


@app.post("/admin/users")
async def admin_add_user(payload: AdminUserCreate, admin: User = Depends(require_admin),
                         db: AsyncSession = Depends(get_db)):
    result = await admin_create_user(db, payload.username, payload.email, payload.address, role=payload.role,
                                     account_type=payload.account_type, dni=payload.dni, nif=payload.nif)
    raise_for(result)
    user, password = result.value
    return {"user": UserBase.model_validate(user), "password": password}


@app.put("/admin/users/{user_id}", response_model=UserBase)
async def admin_edit_user(user_id: int, payload: AdminUserUpdate, admin: User = Depends(require_admin),
                          db: AsyncSession = Depends(get_db)):
    result = await admin_update_user(db, user_id, payload.username, payload.email, payload.address, payload.role)
    raise_for(result)
    return result.value


@app.post("/admin/users/{user_id}/reset-password")
async def admin_reset_password(user_id: int, admin: User = Depends(require_admin),
                               db: AsyncSession = Depends(get_db)):
    result = await reset_user_password(db, user_id)
    raise_for(result)
    return {"success": True, "message": result.message, "password": result.value}


@app.delete("/admin/users/{user_id}")
async def admin_remove_user(user_id: int, admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    result = await delete_user(db, user_id)
    raise_for(result)
    return {"success": True, "message": result.message}


@app.get("/admin/orders", response_model=List[OrderBase])
async def admin_orders(admin: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return await get_all_orders(db)


@app.delete("/admin/orders/{order_id}")
async def admin_remove_order(order_id: int, admin: User = Depends(require_admin),
                             db: AsyncSession = Depends(get_db)):
    result = await delete_order(db, order_id)
    raise_for(result)
    return {"success": True, "message": result.message}
