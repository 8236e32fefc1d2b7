from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from storefront.dependencies import get_catalog, require_admin
from storefront.errors import CatalogError, ProductValidationError
from storefront.models.schemas import Product, ProductCreatedResponse, ProductUpdateRequest
from storefront.services.auth import Identity
from storefront.services.catalog import CatalogStore

router = APIRouter(prefix="/api/catalog", tags=["catalog"])


@router.get("", response_model=list[Product], response_model_by_alias=True)
async def list_products(catalog: CatalogStore = Depends(get_catalog)):
    try:
        return await catalog.fetch_all_products()
    except CatalogError as exc:
        raise HTTPException(status_code=502, detail=str(exc))


@router.post("", response_model=ProductCreatedResponse, status_code=201)
async def add_product(
    draft: dict[str, Any] = Body(...),
    catalog: CatalogStore = Depends(get_catalog),
    identity: Identity = Depends(require_admin),
):
    try:
        row_id = await catalog.add_product(draft)
    except ProductValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except CatalogError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return ProductCreatedResponse(
        product_id=row_id,
        message=f"Product added successfully with ID: {row_id}",
    )


@router.patch("/{product_id}", status_code=204)
async def update_product(
    product_id: str,
    payload: ProductUpdateRequest,
    catalog: CatalogStore = Depends(get_catalog),
    identity: Identity = Depends(require_admin),
):
    try:
        await catalog.update_product(product_id, payload.updates)
    except ProductValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except CatalogError as exc:
        status = 404 if str(exc) == "Product not found" else 502
        raise HTTPException(status_code=status, detail=str(exc))
