import httpx
from fastapi import Depends, Header, HTTPException, Request

from storefront.config import settings
from storefront.services.auth import Identity, static_token
from storefront.services.cart import CartManager
from storefront.services.cart_store import RemoteCartStore
from storefront.services.catalog import CatalogStore
from storefront.services.chat import ChatAssistant
from storefront.services.completions import CompletionClient
from storefront.services.registry import ControllerRegistry


def get_db_path() -> str:
    """Provide the database path to endpoint functions."""
    return settings.SQLITE_DB_PATH


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http


def get_registry(request: Request) -> ControllerRegistry:
    return request.app.state.controllers


def get_catalog(client: httpx.AsyncClient = Depends(get_http_client)) -> CatalogStore:
    return CatalogStore(settings.CATALOG_API_URL, settings.CATALOG_API_TOKEN, client=client)


def get_cart_store(client: httpx.AsyncClient = Depends(get_http_client)) -> RemoteCartStore:
    return RemoteCartStore(settings.CART_FETCH_URL, settings.CART_SYNC_URL, client=client)


def get_completions(client: httpx.AsyncClient = Depends(get_http_client)) -> CompletionClient:
    return CompletionClient(
        settings.OPENAI_API_KEY,
        model=settings.OPENAI_MODEL,
        max_tokens=settings.CHAT_MAX_TOKENS,
        base_url=settings.OPENAI_BASE_URL,
        client=client,
    )


def get_identity(
    authorization: str | None = Header(default=None),
    x_user_id: str | None = Header(default=None),
    x_user_email: str | None = Header(default=None),
) -> Identity | None:
    """Identity of the caller, taken from the identity provider's headers."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    if not x_user_id or not x_user_email:
        return None
    token = authorization.removeprefix("Bearer ").strip()
    return Identity(user_id=x_user_id, email=x_user_email, token_provider=static_token(token))


def require_identity(identity: Identity | None = Depends(get_identity)) -> Identity:
    if identity is None:
        raise HTTPException(status_code=401, detail="Please log in")
    return identity


def require_admin(identity: Identity = Depends(require_identity)) -> Identity:
    admins = {email.lower() for email in settings.ADMIN_EMAILS}
    if admins and identity.email.lower() not in admins:
        raise HTTPException(status_code=403, detail="Admin access required")
    return identity


def check_session_owner(session: dict, identity: Identity | None):
    """A session opened by a signed-in user belongs to that user only."""
    owner = session["user_id"]
    if owner and (identity is None or identity.user_id != owner):
        raise HTTPException(status_code=404, detail="Session not found")


async def get_cart(
    identity: Identity = Depends(require_identity),
    registry: ControllerRegistry = Depends(get_registry),
    store: RemoteCartStore = Depends(get_cart_store),
) -> CartManager:
    return await registry.cart_for(
        identity,
        lambda: CartManager(store, debounce_seconds=settings.CART_SYNC_DEBOUNCE_SECONDS),
    )


def chat_factory(catalog: CatalogStore, completions: CompletionClient):
    return lambda: ChatAssistant(catalog, completions, brand=settings.STORE_NAME)
