from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    DATABASE_URL: str = "sqlite:///./dev.db"
    RESET_DB: bool = False
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8000
    LOG_LEVEL: str = "INFO"
    FRONTEND_ORIGINS: List[str] = ["http://localhost:5173"]

    # pricing
    CURRENCY_PREFIX: str = "RM"
    FREE_DELIVERY_THRESHOLD: float = 50.0
    DELIVERY_FEE: float = 5.0
    TAX_RATE: float = 0.06

    # cart persistence
    CART_TTL_HOURS: int = 24
    CART_PURGE_INTERVAL_SECONDS: int = 3600

    MENU_CACHE_TTL_SECONDS: int = 300
    PAYMENT_MOCK_DELAY_MS: int = 200
    ESTIMATED_DELIVERY_MINUTES: int = 45

    # simulated kitchen feed, for demos without a real backend
    ORDER_SIMULATION_ENABLED: bool = False
    SIM_TICK_SECONDS: int = 5
    SIM_PENDING_SECONDS: int = 2
    SIM_PREPARING_SECONDS: int = 300
    SIM_READY_SECONDS: int = 120
    SIM_DELIVERY_SECONDS: int = 900


settings = Settings()
