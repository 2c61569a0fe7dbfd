from flask import Blueprint, request, g
from approvals.constants.permissions import ROLE_CANDIDATE
from approvals.decorators.auth import require_role
from approvals.errors import ValidationError
from approvals.models.cart import CartItem
from approvals.services import ledger

cart_bp = Blueprint('cart', __name__)


def cart_item_json(ci: CartItem):
    return {
        'id': ci.id,
        'item_id': ci.item_id,
        'item_type': ci.item_type,
        'added_at': ci.added_at.isoformat() if ci.added_at else None,
    }


def _cart_payload(candidate_id: int):
    items = ledger.get_cart(candidate_id)
    return {'candidate_id': candidate_id, 'items': [cart_item_json(ci) for ci in items], 'count': len(items)}


@cart_bp.get('')
@require_role(ROLE_CANDIDATE)
def get_cart():
    return _cart_payload(g.principal.id)


@cart_bp.post('/items')
@require_role(ROLE_CANDIDATE)
def add_item():
    data = request.json or {}
    item = ledger.add_to_cart(g.principal.id, data.get('item_id'), data.get('item_type'))
    return cart_item_json(item), 201


@cart_bp.delete('/items/<int:cart_item_id>')
@require_role(ROLE_CANDIDATE)
def remove_item(cart_item_id: int):
    removed = ledger.remove_from_cart(g.principal.id, cart_item_id)
    return {'removed': removed}


@cart_bp.delete('')
@require_role(ROLE_CANDIDATE)
def clear_cart():
    return {'removed': ledger.clear_cart(g.principal.id)}


@cart_bp.post('/checkout')
@require_role(ROLE_CANDIDATE)
def checkout():
    data = request.json or {}
    items = data.get('items')
    if items is not None and not isinstance(items, list):
        raise ValidationError('items must be a list of cart item ids')
    results = ledger.checkout(g.principal.id, items=items, evidence_ref=data.get('payment_evidence_ref'))
    return {
        'results': [r.to_dict() for r in results],
        'submitted': sum(1 for r in results if r.outcome == ledger.SUBMITTED),
        'cart': _cart_payload(g.principal.id),
    }
