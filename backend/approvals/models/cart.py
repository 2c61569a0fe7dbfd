from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, ForeignKey, UniqueConstraint, DateTime, func

from .authz import Base


class Cart(Base):
    __tablename__ = 'carts'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    candidate_id: Mapped[int] = mapped_column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
    items = relationship('CartItem', back_populates='cart', cascade='all, delete-orphan', order_by='CartItem.id')


class CartItem(Base):
    __tablename__ = 'cart_items'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cart_id: Mapped[int] = mapped_column(ForeignKey('carts.id', ondelete='CASCADE'), nullable=False, index=True)
    # Opaque catalog reference (course or internship id)
    item_id: Mapped[str] = mapped_column(String(64), nullable=False)
    item_type: Mapped[str] = mapped_column(String(16), nullable=False)
    added_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())

    cart = relationship('Cart', back_populates='items')

    __table_args__ = (UniqueConstraint('cart_id', 'item_id', 'item_type', name='uq_cart_item'),)
