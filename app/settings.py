# app/settings.py
from __future__ import annotations
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings

from backend.enrich.client import EnrichmentConfig


class Settings(BaseSettings):
    # ----- runtime -----
    LOG_LEVEL: str = Field(default="INFO", alias="LOG_LEVEL")

    # ----- Hugging Face inference API -----
    HUGGING_FACE_API_KEY: Optional[str] = Field(default=None, alias="HUGGING_FACE_API_KEY")
    HF_BASE_URL: str = Field(
        default="https://api-inference.huggingface.co/models",
        alias="HF_BASE_URL",
    )
    HF_SENTIMENT_MODEL: str = Field(
        default="cardiffnlp/twitter-roberta-base-sentiment-latest",
        alias="HF_SENTIMENT_MODEL",
    )
    HF_SUMMARIZATION_MODEL: str = Field(default="facebook/bart-large-cnn", alias="HF_SUMMARIZATION_MODEL")
    HF_TIMEOUT_S: float = Field(default=30.0, alias="HF_TIMEOUT_S")

    # ----- Record store -----
    STORE_BACKEND: str = Field(default="sqlite", alias="STORE_BACKEND")  # sqlite | rest
    DB_PATH: str = Field(default="./comments.sqlite", alias="DB_PATH")
    SUPABASE_URL: Optional[str] = Field(default=None, alias="SUPABASE_URL")
    SUPABASE_SERVICE_ROLE: Optional[str] = Field(default=None, alias="SUPABASE_SERVICE_ROLE")
    SUPABASE_KEY: Optional[str] = Field(default=None, alias="SUPABASE_KEY")  # fallback var

    # ----- Batch scheduling -----
    # on-demand runs (POST /api/process) and post-upload background runs
    ONDEMAND_BATCH_SIZE: int = Field(default=5, alias="ONDEMAND_BATCH_SIZE")
    ONDEMAND_DELAY_S: float = Field(default=1.0, alias="ONDEMAND_DELAY_S")
    BACKGROUND_BATCH_SIZE: int = Field(default=3, alias="BACKGROUND_BATCH_SIZE")
    BACKGROUND_DELAY_S: float = Field(default=2.0, alias="BACKGROUND_DELAY_S")

    # pydantic-settings v2 config
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }

    # ----- Helpers -----
    @property
    def SUPABASE_JWT(self) -> str:
        """Single source of truth for PostgREST auth."""
        return (self.SUPABASE_SERVICE_ROLE or self.SUPABASE_KEY or "").strip()

    def enrichment_config(self) -> EnrichmentConfig:
        return EnrichmentConfig(
            api_key=(self.HUGGING_FACE_API_KEY or "").strip(),
            sentiment_model=self.HF_SENTIMENT_MODEL,
            summarization_model=self.HF_SUMMARIZATION_MODEL,
            base_url=self.HF_BASE_URL.rstrip("/"),
            timeout_s=float(self.HF_TIMEOUT_S),
        )


settings = Settings()
