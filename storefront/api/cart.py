from fastapi import APIRouter, Depends, HTTPException

from storefront.dependencies import get_catalog, get_cart, get_registry, require_identity
from storefront.errors import CatalogError, InsufficientStock, InvalidQuantity
from storefront.models.schemas import AddLineRequest, CartLineRequest, CartResponse
from storefront.services.auth import Identity
from storefront.services.cart import CartManager
from storefront.services.catalog import CatalogStore
from storefront.services.registry import ControllerRegistry

router = APIRouter(prefix="/api/cart", tags=["cart"])


def _cart_response(cart: CartManager) -> CartResponse:
    return CartResponse(
        lines=list(cart.lines),
        total_quantity=cart.total_quantity,
        total_price=cart.total_price,
        is_loading=cart.is_loading,
        error=cart.error,
    )


@router.get("", response_model=CartResponse)
async def read_cart(cart: CartManager = Depends(get_cart)):
    return _cart_response(cart)


@router.post("/lines", response_model=CartResponse)
async def add_line(
    payload: AddLineRequest,
    cart: CartManager = Depends(get_cart),
    catalog: CatalogStore = Depends(get_catalog),
):
    try:
        product = await catalog.get_product(payload.product_id)
    except CatalogError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")

    try:
        cart.add_line(product, payload.size, payload.color, payload.quantity)
    except InsufficientStock as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except InvalidQuantity as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return _cart_response(cart)


@router.post("/lines/increase", response_model=CartResponse)
async def increase_line(payload: CartLineRequest, cart: CartManager = Depends(get_cart)):
    try:
        cart.increase_quantity(payload.product_id, payload.size, payload.color)
    except InsufficientStock as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return _cart_response(cart)


@router.post("/lines/decrease", response_model=CartResponse)
async def decrease_line(payload: CartLineRequest, cart: CartManager = Depends(get_cart)):
    cart.decrease_quantity(payload.product_id, payload.size, payload.color)
    return _cart_response(cart)


@router.post("/lines/remove", response_model=CartResponse)
async def remove_line(payload: CartLineRequest, cart: CartManager = Depends(get_cart)):
    cart.remove_line(payload.product_id, payload.size, payload.color)
    return _cart_response(cart)


@router.delete("", response_model=CartResponse)
async def clear_cart(cart: CartManager = Depends(get_cart)):
    cart.clear()
    return _cart_response(cart)


@router.post("/logout", status_code=204)
async def logout(
    identity: Identity = Depends(require_identity),
    registry: ControllerRegistry = Depends(get_registry),
):
    await registry.drop_cart(identity.user_id)
