from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- Catalog schemas ---

class Product(BaseModel):
    """A catalog record as stored remotely (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    row_id: int | str | None = Field(default=None, alias="id")
    item_id: int | str = Field(default=0, alias="itemID")
    item_name: str = Field(default="", alias="itemName")
    price: float = 0
    color: str = ""
    item_size: str = Field(default="", alias="itemSize")
    stock_quantity: int = Field(default=0, alias="stockQuantity")

    description: str | None = None
    material: str | None = None
    dimension: str | None = None
    status: str | None = None
    discount: float | None = None
    is_on_sale: bool | None = Field(default=None, alias="isOnSale")
    category_id: str | None = Field(default=None, alias="categoryID")
    sub_category_id: str | None = Field(default=None, alias="subCategoryID")
    sku: str | None = Field(default=None, alias="SKU")
    average_rating: str | float | None = Field(default=None, alias="averageRating")
    review_count: str | int | None = Field(default=None, alias="reviewCount")
    img_url1: str | None = Field(default=None, alias="imgURL1")
    img_url2: str | None = Field(default=None, alias="imgURL2")
    img_url3: str | None = Field(default=None, alias="imgURL3")


class AIProduct(BaseModel):
    """Simplified product view embedded in chat prompts."""

    model_config = ConfigDict(populate_by_name=True)

    item_name: str = Field(alias="itemName")
    price: float = Field(alias="Price")
    color: str = Field(alias="Color")
    item_size: str = Field(alias="ItemSize")

    @classmethod
    def from_product(cls, product: Product) -> "AIProduct":
        return cls(
            item_name=product.item_name,
            price=product.price,
            color=product.color,
            item_size=product.item_size,
        )


class AICartProduct(AIProduct):
    quantity: int = Field(alias="Quantity")


# --- Cart schemas ---

class CartLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    product: Product
    quantity: int = Field(ge=1)
    size: str
    color: str

    @property
    def product_ref(self):
        return self.product.item_id

    @property
    def key(self) -> tuple:
        return (str(self.product.item_id), self.size, self.color)


class RemoteCart(BaseModel):
    cart: list[CartLine] | None = None


class CartSyncRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cart: list[CartLine]
    user_id: str = Field(alias="userId")
    email: str
    timestamp: datetime = Field(default_factory=utcnow)


# --- Chat schemas ---

class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    is_user: bool
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def role(self) -> str:
        return "user" if self.is_user else "assistant"


# --- Session schemas ---

class CreateSessionResponse(BaseModel):
    session_id: str


class SessionInfo(BaseModel):
    session_id: str
    created_at: str
    message_count: int
    last_active: str


# --- API request/response schemas ---

class SendMessageRequest(BaseModel):
    message: str


class ChatStateResponse(BaseModel):
    session_id: str
    is_expanded: bool
    is_loading: bool
    show_popup: bool
    messages: list[ChatMessage]


class CartLineRequest(BaseModel):
    product_id: int | str
    size: str
    color: str


class AddLineRequest(CartLineRequest):
    quantity: int = 1


class CartResponse(BaseModel):
    lines: list[CartLine]
    total_quantity: int
    total_price: float
    is_loading: bool = False
    error: str | None = None


class ProductUpdateRequest(BaseModel):
    updates: dict[str, Any]


class ProductCreatedResponse(BaseModel):
    product_id: str
    message: str
