import asyncio
import logging
from typing import Callable

from storefront.services.auth import Identity
from storefront.services.cart import CartManager
from storefront.services.chat import ChatAssistant

logger = logging.getLogger(__name__)


class ControllerRegistry:
    """Live controllers of this process: one cart per user, one chat per session."""

    def __init__(self):
        self.carts: dict[str, CartManager] = {}
        self.chats: dict[str, ChatAssistant] = {}
        self._opening: dict[str, asyncio.Future] = {}

    async def cart_for(self, identity: Identity, factory: Callable[[], CartManager]) -> CartManager:
        """The user's cart, loaded from the remote store before anyone sees it."""
        manager = self.carts.get(identity.user_id)
        if manager is None:
            opening = self._opening.get(identity.user_id)
            if opening is None:
                opening = asyncio.ensure_future(self._open_cart(identity, factory))
                self._opening[identity.user_id] = opening
            manager = await asyncio.shield(opening)
        # same user, fresher token
        manager.identity = identity
        return manager

    async def _open_cart(self, identity: Identity, factory: Callable[[], CartManager]) -> CartManager:
        try:
            manager = factory()
            await manager.set_identity(identity)
            self.carts[identity.user_id] = manager
            return manager
        finally:
            self._opening.pop(identity.user_id, None)

    async def drop_cart(self, user_id: str):
        manager = self.carts.pop(user_id, None)
        if manager is not None:
            await manager.set_identity(None)
            await manager.aclose()

    async def chat_for(self, session_id: str, factory: Callable[[], ChatAssistant]) -> ChatAssistant:
        assistant = self.chats.get(session_id)
        if assistant is None:
            assistant = factory()
            self.chats[session_id] = assistant
            await assistant.load_products()
        return assistant

    def drop_chat(self, session_id: str):
        assistant = self.chats.pop(session_id, None)
        if assistant is not None:
            assistant.close()

    async def aclose(self):
        for session_id in list(self.chats):
            self.drop_chat(session_id)
        for manager in self.carts.values():
            await manager.aclose()
        logger.info("Closed %d cart managers", len(self.carts))
        self.carts.clear()
