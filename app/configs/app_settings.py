from pydantic_settings import BaseSettings
from typing import Optional

# BaseSettings from pydantic-settings pulls values from the system environment first, then the .env file, then the defaults below.


class Settings(BaseSettings):
    # Supabase
    SUPABASE_URL: str
    SUPABASE_KEY: str

    # Clerk webhook secret
    CLERK_WEBHOOK_SECRET: Optional[str] = None

    # Clerk JWT settings
    CLERK_JWKS_URL: str

    # API Settings
    API_V1_STR: str = "/api/v1"

    # Entity store backend: "supabase" for the real database, "memory" for local runs without one
    ENTITY_STORE_BACKEND: str = "supabase"

    # Logging
    LOG_LEVEL: str = "INFO"

    # domains
    CLIENT_DOMAIN: str = "http://localhost:5173"

    class Config:
        # .env is resolved relative to the working directory of the running process.
        # If it does not exist nothing is loaded from it, so production relies on real environment variables only.
        env_file = ".env"
        case_sensitive = True


# module is executed once per process, every "from app.configs.app_settings import settings" shares this instance
settings = Settings()
