# backend/trip_planner/core/config_loader.py

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    OPENAI_API_KEY: str = ""
    GOOGLE_MAPS_API_KEY: str = ""
    JWT_SECRET_KEY: str = "supersecret"
    DB_PATH: str = "data.sqlite3"
    gpt_model: str = "gpt-4o-mini"
    generation_temperature: float = 0.7
    places_page_size: int = 12
    realtime_queue_size: int = 100
    timezone: str = "Asia/Seoul"
    environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
