import os
from typing import List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""
    manifest_path: str = "manifest.toml"
    kv_backend: Optional[Literal["dynamodb", "sqlite", "memory"]] = None
    kv_data_dir: str = "./data"
    kv_table_prefix: str = "sentiment-analysis-kv"
    aws_region: Optional[str] = None
    llm_model: Optional[str] = None
    parameter_prefix: str = "/sentiment-analysis"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    def resolved_kv_backend(self) -> str:
        """DynamoDB inside Lambda, SQLite elsewhere, unless set explicitly."""
        if self.kv_backend:
            return self.kv_backend
        return "dynamodb" if os.getenv("AWS_LAMBDA_FUNCTION_NAME") else "sqlite"


class SentimentAnalysisRequest(BaseModel):
    """Request body for sentiment analysis."""
    sentence: str = Field(
        ...,
        description="Sentence to classify",
        examples=["I am so happy today"],
    )


class SentimentAnalysisResponse(BaseModel):
    """Sentiment label; empty when the model answer could not be parsed."""
    sentiment: Literal["positive", "negative", "neutral", ""]


class HealthResponse(BaseModel):
    status: str
    application: str
    version: str


class StoreListResponse(BaseModel):
    """Stores the explorer may browse."""
    stores: List[str]


class KeyListResponse(BaseModel):
    store: str
    keys: List[str]


class KeyValueEntry(BaseModel):
    """A single entry as shown by the explorer."""
    store: str
    key: str
    value: str
    encoding: Literal["utf-8", "base64"] = "utf-8"


class SetValueRequest(BaseModel):
    """Request body for writing an entry through the explorer."""
    key: str = Field(..., min_length=1)
    value: str
    encoding: Literal["utf-8", "base64"] = "utf-8"
