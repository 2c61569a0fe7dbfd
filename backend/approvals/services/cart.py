"""Candidate cart: staging area for intended enrollments.

Every operation is idempotent; the UI refreshes and retries freely, so adding
an item twice, removing a missing item or clearing an empty cart all succeed.
"""
from __future__ import annotations
from typing import List, Optional, Tuple

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError

from approvals import get_db
from approvals.models.cart import Cart, CartItem


def _cart_id(session, candidate_id: int) -> Optional[int]:
    return session.execute(select(Cart.id).where(Cart.candidate_id == candidate_id)).scalar_one_or_none()


def get_or_create_cart(candidate_id: int) -> Cart:
    session = get_db()
    cart = session.execute(select(Cart).where(Cart.candidate_id == candidate_id)).scalar_one_or_none()
    if cart:
        return cart
    cart = Cart(candidate_id=candidate_id)
    session.add(cart)
    try:
        session.commit()
    except IntegrityError:
        # concurrent first add created it
        session.rollback()
        cart = session.execute(select(Cart).where(Cart.candidate_id == candidate_id)).scalar_one()
    return cart


def find_item(session, cart_id: int, item_id: str, item_type: str) -> Optional[CartItem]:
    return session.execute(
        select(CartItem).where(
            CartItem.cart_id == cart_id,
            CartItem.item_id == item_id,
            CartItem.item_type == item_type,
        )
    ).scalar_one_or_none()


def add_item(candidate_id: int, item_id: str, item_type: str) -> Tuple[CartItem, bool]:
    """Returns (item, created). An item already present is returned unchanged."""
    session = get_db()
    cart = get_or_create_cart(candidate_id)
    existing = find_item(session, cart.id, item_id, item_type)
    if existing:
        return existing, False
    item = CartItem(cart_id=cart.id, item_id=item_id, item_type=item_type)
    session.add(item)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        return find_item(session, cart.id, item_id, item_type), False
    return item, True


def list_items(candidate_id: int) -> List[CartItem]:
    session = get_db()
    cart_id = _cart_id(session, candidate_id)
    if cart_id is None:
        return []
    return list(session.execute(select(CartItem).where(CartItem.cart_id == cart_id).order_by(CartItem.id)).scalars())


def discard_item(session, candidate_id: int, cart_item_id: int) -> int:
    """Delete one item of the candidate's cart without committing. Returns rows removed."""
    cart_id = _cart_id(session, candidate_id)
    if cart_id is None:
        return 0
    res = session.execute(delete(CartItem).where(CartItem.id == cart_item_id, CartItem.cart_id == cart_id))
    return res.rowcount


def discard_matching(session, candidate_id: int, item_id: str, item_type: str) -> int:
    cart_id = _cart_id(session, candidate_id)
    if cart_id is None:
        return 0
    res = session.execute(delete(CartItem).where(
        CartItem.cart_id == cart_id, CartItem.item_id == item_id, CartItem.item_type == item_type,
    ))
    return res.rowcount


def remove_item(candidate_id: int, cart_item_id: int) -> bool:
    session = get_db()
    removed = discard_item(session, candidate_id, cart_item_id)
    session.commit()
    return bool(removed)


def clear(candidate_id: int) -> int:
    session = get_db()
    cart_id = _cart_id(session, candidate_id)
    if cart_id is None:
        return 0
    res = session.execute(delete(CartItem).where(CartItem.cart_id == cart_id))
    session.commit()
    return res.rowcount
