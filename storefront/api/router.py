from fastapi import APIRouter
from storefront.api.sessions import router as sessions_router
from storefront.api.chat import router as chat_router
from storefront.api.cart import router as cart_router
from storefront.api.catalog import router as catalog_router

router = APIRouter()
router.include_router(sessions_router)
router.include_router(chat_router)
router.include_router(cart_router)
router.include_router(catalog_router)
