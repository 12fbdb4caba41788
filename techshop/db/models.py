# techshop/db/models.py
import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from techshop.db.database import Base


class RoleEnum(str, enum.Enum):
    common = "common"
    admin = "admin"


# Individuals buy, companies sell
class AccountType(str, enum.Enum):
    user = "user"
    company = "company"


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), index=True, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    company_id = Column(Integer, ForeignKey("users.id"), nullable=True)  # Seller that owns the product

    company = relationship("User", back_populates="products")
    order_items = relationship("OrderItem", back_populates="product")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(20), unique=True, index=True, nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    password_hash = Column(String(200), nullable=False)
    address = Column(Text, nullable=False, default="")
    role = Column(Enum(RoleEnum), nullable=False, default=RoleEnum.common)
    account_type = Column(Enum(AccountType), nullable=False, default=AccountType.user)
    dni = Column(String(9), nullable=True)  # DNI/NIE of an individual
    nif = Column(String(9), nullable=True)  # CIF of a company
    created_at = Column(DateTime, default=datetime.now)

    orders = relationship("Order", back_populates="user")
    products = relationship("Product", back_populates="company")

    def is_admin(self) -> bool:
        return self.role == RoleEnum.admin

    def is_company(self) -> bool:
        return self.account_type == AccountType.company


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    total = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    user = relationship("User", back_populates="orders")
    order_items = relationship("OrderItem", back_populates="order")


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="order_items")
    product = relationship("Product", back_populates="order_items")
