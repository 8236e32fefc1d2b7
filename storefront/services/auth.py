import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from pydantic import BaseModel, EmailStr, Field, model_validator

from storefront.errors import AuthError

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Awaitable[str]]


@dataclass(frozen=True)
class Identity:
    """An authenticated user, passed explicitly into each controller."""

    user_id: str
    email: str
    token_provider: TokenProvider

    async def get_token(self) -> str:
        """Fetch a fresh bearer token for the next remote call."""
        if not self.user_id or not self.email:
            raise AuthError("User not authenticated or email not available")
        try:
            return await self.token_provider()
        except Exception as exc:
            logger.error("Error fetching ID token: %s", exc)
            raise AuthError("Failed to get ID token") from exc


def static_token(token: str) -> TokenProvider:
    """Token provider for a bearer token the caller already holds."""
    async def provide() -> str:
        return token
    return provide


# --- Form validation ---

class SignInForm(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)


class SignUpForm(SignInForm):
    confirm_password: str = Field(min_length=6)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords must match")
        return self


def describe_sign_in_error(message: str) -> str:
    if "wrong-password" in message:
        return "Incorrect password"
    if "user-not-found" in message:
        return "No user found with this email"
    return "Sign-in failed, please try again"


def describe_sign_up_error(message: str) -> str:
    if "email-already-in-use" in message:
        return "Email already in use"
    return "Sign-up failed, please try again"
