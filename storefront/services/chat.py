import logging

from storefront.errors import CatalogError, CompletionError
from storefront.models.schemas import AIProduct, ChatMessage, Product
from storefront.services.cart import CartManager
from storefront.services.catalog import CatalogStore
from storefront.services.completions import CompletionClient
from storefront.services.prompts import WELCOME_MESSAGE, Intent, build_prompt

logger = logging.getLogger(__name__)

# Evaluated in order; the first route with any matching word wins.
INTENT_ROUTES: list[tuple[Intent, frozenset[str]]] = [
    (Intent.ORDER_SUPPORT, frozenset({"order", "status", "track", "shipment"})),
    (Intent.CART_RECOVERY, frozenset({"cart", "abandon", "buy", "purchase"})),
    (Intent.SUPPORT, frozenset({"help", "support", "return", "returns"})),
    (Intent.RECOMMENDATION, frozenset({"recommend", "looking", "need", "want"})),
    (Intent.LEAD_GEN, frozenset({"name", "email", "lead", "contact"})),
]

FALLBACK_REPLY = "Sorry, something went wrong."
NO_CATALOG_REPLY = "Sorry, I can't recommend products right now. Please try again later."


def classify_intent(user_input: str) -> Intent:
    words = user_input.lower().split()
    for intent, keywords in INTENT_ROUTES:
        if any(word in keywords for word in words):
            return intent
    return Intent.RECOMMENDATION


def snapshot_products(products: list[Product]) -> list[AIProduct]:
    """Keep only products carrying a name, price, color and size."""
    return [
        AIProduct.from_product(product)
        for product in products
        if product.item_name and product.price and product.color and product.item_size
    ]


class ChatAssistant:
    """Conversation state and completion dispatch for one chat widget.

    States: collapsed, expanded and idle, expanded and sending. Messages are
    append-only. Remote failures never escape ``send``; they become one
    fallback assistant message.
    """

    def __init__(
        self,
        catalog: CatalogStore,
        completions: CompletionClient,
        cart: CartManager | None = None,
        brand: str = "LTRQ",
    ):
        self.catalog = catalog
        self.completions = completions
        self.cart = cart
        self.brand = brand

        self.messages: list[ChatMessage] = []
        self.products: list[AIProduct] = []
        self.is_expanded = False
        self.is_loading = False
        self.is_products_loading = True
        self.show_popup = True
        self.last_intent: Intent | None = None
        self._closed = False

    async def load_products(self):
        self.is_products_loading = True
        try:
            catalog = await self.catalog.fetch_all_products()
            self.products = snapshot_products(catalog)
            if not self.products:
                logger.warning("No valid products found in catalog")
        except CatalogError as exc:
            logger.error("Failed to fetch products for chat: %s", exc)
            self.products = []
        finally:
            self.is_products_loading = False

    def toggle(self):
        self.is_expanded = not self.is_expanded
        if self.is_expanded:
            self.show_popup = False
            if not self.messages:
                self._append(WELCOME_MESSAGE.format(brand=self.brand), is_user=False)
        else:
            self.show_popup = True

    def get_prompt(self, user_input: str) -> str:
        if not user_input.strip() or not self.products:
            return build_prompt(Intent.RECOMMENDATION, self.products, brand=self.brand)
        intent = classify_intent(user_input)
        return build_prompt(intent, self.products, user_input, brand=self.brand)

    def system_prompt(self, user_input: str) -> str:
        prompt = self.get_prompt(user_input)
        if self.cart is not None and self.cart.lines:
            prompt += f"\nCustomer cart: {self.cart.to_external_json()}\n"
        return prompt

    async def send(self, user_input: str) -> ChatMessage | None:
        """Submit a customer message and append exactly one reply.

        Returns the appended assistant message, or None when nothing was sent
        (blank input, or a reply already pending).
        """
        if not user_input.strip() or self.is_loading:
            return None

        history = [{"role": m.role, "content": m.text} for m in self.messages]
        self.last_intent = None
        self._append(user_input, is_user=True)
        self.is_loading = True
        try:
            if self.is_products_loading or not self.products:
                return self._append(NO_CATALOG_REPLY, is_user=False)

            self.last_intent = classify_intent(user_input)
            messages = [
                {"role": "system", "content": self.system_prompt(user_input)},
                *history,
                {"role": "user", "content": user_input},
            ]
            try:
                reply = await self.completions.complete(messages)
            except CompletionError as exc:
                logger.error("Completion error: %s", exc)
                reply = FALLBACK_REPLY
            if self._closed:
                logger.debug("Chat closed before the reply arrived, dropping it")
                return None
            return self._append(reply, is_user=False)
        finally:
            self.is_loading = False

    def close(self):
        self._closed = True

    def _append(self, text: str, is_user: bool) -> ChatMessage:
        message = ChatMessage(text=text, is_user=is_user)
        self.messages.append(message)
        return message
