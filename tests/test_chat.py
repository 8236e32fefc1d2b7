import json

import httpx
import pytest

from storefront.models.schemas import Product
from storefront.services.cart import CartManager
from storefront.services.catalog import CatalogStore
from storefront.services.chat import (
    FALLBACK_REPLY,
    INTENT_ROUTES,
    NO_CATALOG_REPLY,
    ChatAssistant,
    classify_intent,
    snapshot_products,
)
from storefront.services.completions import CompletionClient
from storefront.services.prompts import Intent

from conftest import ROWS_URL


class FakeCompletionAPI:
    def __init__(self, reply="Try the Slim Fit Shirt in Red!"):
        self.reply = reply
        self.requests = []
        self.status = 200
        self.body = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        if self.body is not None:
            return httpx.Response(self.status, json=self.body)
        return httpx.Response(
            self.status, json={"choices": [{"message": {"role": "assistant", "content": self.reply}}]}
        )


@pytest.fixture
def completion_api():
    return FakeCompletionAPI()


@pytest.fixture
def completions(completion_api):
    client = httpx.AsyncClient(transport=httpx.MockTransport(completion_api.handler))
    return CompletionClient("sk-test", model="gpt-3.5-turbo", max_tokens=150, client=client)


def catalog_for(records=None, status=200):
    def handler(request):
        return httpx.Response(status, json={"results": records or []})
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return CatalogStore(ROWS_URL, "token", client=client)


@pytest.fixture
async def assistant(catalog_records, completions):
    chat = ChatAssistant(catalog_for(catalog_records), completions)
    await chat.load_products()
    return chat


# --- Intent classification ---

@pytest.mark.parametrize(
    "text, intent",
    [
        ("track my order", Intent.ORDER_SUPPORT),
        ("add to cart please", Intent.CART_RECOVERY),
        ("I need help returning this", Intent.SUPPORT),
        ("looking for jeans", Intent.RECOMMENDATION),
        ("what's your email policy", Intent.LEAD_GEN),
        ("my order needs help", Intent.ORDER_SUPPORT),
        ("HELP me buy", Intent.CART_RECOVERY),
        ("hello there", Intent.RECOMMENDATION),
        ("", Intent.RECOMMENDATION),
        ("   ", Intent.RECOMMENDATION),
    ],
)
def test_classify_intent(text, intent):
    assert classify_intent(text) == intent


def test_routes_are_in_priority_order():
    assert [intent for intent, _ in INTENT_ROUTES] == [
        Intent.ORDER_SUPPORT,
        Intent.CART_RECOVERY,
        Intent.SUPPORT,
        Intent.RECOMMENDATION,
        Intent.LEAD_GEN,
    ]


def test_snapshot_drops_incomplete_records(catalog_records):
    products = snapshot_products([Product.model_validate(r) for r in catalog_records])

    assert [p.item_name for p in products] == ["Slim Fit Shirt", "Classic Jeans"]
    assert products[0].model_dump(by_alias=True) == {
        "itemName": "Slim Fit Shirt", "Price": 29.99, "Color": "Red", "ItemSize": "S",
    }


# --- Prompt selection ---

async def test_prompt_embeds_catalog_and_input(assistant):
    prompt = assistant.get_prompt("track my order")

    assert "track orders" in prompt
    assert '"itemName":"Slim Fit Shirt"' in prompt
    assert "Customer query: track my order" in prompt


async def test_blank_input_uses_recommendation_default(assistant):
    prompt = assistant.get_prompt("  ")

    assert "find the perfect products" in prompt
    assert "Customer query: What are you looking for today?" in prompt


async def test_empty_catalog_forces_recommendation(completions):
    chat = ChatAssistant(catalog_for([]), completions)
    await chat.load_products()

    prompt = chat.get_prompt("track my order")
    assert "find the perfect products" in prompt
    assert "following list: []." in prompt


# --- Widget state ---

async def test_first_expand_adds_welcome_once(assistant):
    assert assistant.is_expanded is False
    assistant.toggle()

    assert assistant.is_expanded is True
    assert assistant.show_popup is False
    assert len(assistant.messages) == 1
    assert not assistant.messages[0].is_user

    assistant.toggle()
    assistant.toggle()
    assert len(assistant.messages) == 1


async def test_collapse_keeps_history(assistant):
    assistant.toggle()
    await assistant.send("hello")
    assistant.toggle()

    assert assistant.is_expanded is False
    assert assistant.show_popup is True
    assert len(assistant.messages) == 3


# --- Sending ---

async def test_send_appends_user_then_reply(assistant, completion_api):
    assistant.toggle()
    reply = await assistant.send("looking for jeans")

    assert reply.text == "Try the Slim Fit Shirt in Red!"
    assert [m.is_user for m in assistant.messages] == [False, True, False]
    assert assistant.is_loading is False
    assert assistant.last_intent == Intent.RECOMMENDATION

    request = completion_api.requests[0]
    assert request["model"] == "gpt-3.5-turbo"
    assert request["max_tokens"] == 150
    roles = [m["role"] for m in request["messages"]]
    assert roles == ["system", "assistant", "user"]
    assert request["messages"][-1]["content"] == "looking for jeans"


async def test_history_is_sent_in_order(assistant, completion_api):
    await assistant.send("hello")
    await assistant.send("track my order")

    messages = completion_api.requests[1]["messages"]
    assert [(m["role"], m["content"]) for m in messages[1:]] == [
        ("user", "hello"),
        ("assistant", "Try the Slim Fit Shirt in Red!"),
        ("user", "track my order"),
    ]


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
async def test_blank_input_sends_nothing(assistant, completion_api, text):
    assert await assistant.send(text) is None

    assert assistant.messages == []
    assert completion_api.requests == []


async def test_http_failure_appends_one_fallback(assistant, completion_api):
    completion_api.status = 500
    before = len(assistant.messages)

    reply = await assistant.send("hello")

    assert reply.text == FALLBACK_REPLY
    assert len(assistant.messages) == before + 2
    assert assistant.is_loading is False


async def test_malformed_response_appends_one_fallback(assistant, completion_api):
    completion_api.body = {"choices": []}

    reply = await assistant.send("hello")

    assert reply.text == FALLBACK_REPLY
    assert assistant.is_loading is False


async def test_missing_api_key_appends_fallback(catalog_records, completion_api):
    client = httpx.AsyncClient(transport=httpx.MockTransport(completion_api.handler))
    chat = ChatAssistant(catalog_for(catalog_records), CompletionClient("", client=client))
    await chat.load_products()

    reply = await chat.send("hello")

    assert reply.text == FALLBACK_REPLY
    assert completion_api.requests == []


async def test_no_catalog_replies_without_network(completions, completion_api):
    chat = ChatAssistant(catalog_for(status=500), completions)
    await chat.load_products()

    reply = await chat.send("looking for jeans")

    assert reply.text == NO_CATALOG_REPLY
    assert completion_api.requests == []
    assert chat.is_loading is False


async def test_catalog_still_loading_replies_without_network(catalog_records, completions, completion_api):
    chat = ChatAssistant(catalog_for(catalog_records), completions)

    reply = await chat.send("looking for jeans")

    assert reply.text == NO_CATALOG_REPLY
    assert completion_api.requests == []


async def test_reply_after_close_is_dropped(assistant):
    assistant.close()

    assert await assistant.send("hello") is None
    assert [m.is_user for m in assistant.messages] == [True]
    assert assistant.is_loading is False


async def test_cart_contents_are_added_to_prompt(catalog_records, completions, completion_api,
                                                 cart_store, shirt, clock):
    cart = CartManager(cart_store, clock=clock)
    cart.add_line(shirt, "S", "Red", 2)
    chat = ChatAssistant(catalog_for(catalog_records), completions, cart=cart)
    await chat.load_products()

    await chat.send("add to cart please")

    system = completion_api.requests[0]["messages"][0]["content"]
    assert "recover abandoned carts" in system
    assert 'Customer cart: [{"itemName":"Slim Fit Shirt"' in system
