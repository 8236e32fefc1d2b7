from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    OPENAI_API_KEY: str = ""                 # chat replies fall back when empty
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    OPENAI_MODEL: str = "gpt-3.5-turbo"
    CHAT_MAX_TOKENS: int = 150

    CART_SYNC_URL: str = ""
    CART_FETCH_URL: str = ""
    CART_SYNC_DEBOUNCE_SECONDS: float = 0.5

    CATALOG_API_URL: str = ""                # rows endpoint, trailing slash
    CATALOG_API_TOKEN: str = ""

    STORE_NAME: str = "LTRQ"
    ADMIN_EMAILS: list[str] = []
    HTTP_TIMEOUT_SECONDS: float = 15.0
    SQLITE_DB_PATH: str = str(BASE_DIR / "data" / "store.db")
    MAX_CONVERSATION_TURNS: int = 50


settings = Settings()
