"""
Sentiment analysis API component.

Mounted under the "/api/..." route:
- POST /api/sentiment-analysis  {"sentence": "..."} -> {"sentiment": "..."}
- anything else under /api      -> 404 "Not found"
"""

import logging

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse

import llm
import sentiment
from components.context import ComponentContext
from kv_store import StoreError
from manifest.errors import ManifestError
from models import SentimentAnalysisRequest, SentimentAnalysisResponse

logger = logging.getLogger(__name__)

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def select_model(context: ComponentContext) -> str:
    """
    Model used for inference: the settings override, else the first granted model.

    Raises:
        ManifestError: If the component has no ai_models or the override is not granted
    """
    granted = context.component.ai_models
    if not granted:
        raise ManifestError(f"Component '{context.component.id}' declares no ai_models")

    model = context.settings.llm_model or granted[0]
    if model not in granted:
        raise ManifestError(
            f"Configured model '{model}' is not in ai_models of component '{context.component.id}'"
        )
    return model


def create_app(context: ComponentContext) -> FastAPI:
    """Build the component's ASGI app."""
    model = select_model(context)
    llm.ensure_api_keys(context.config)
    logger.info(f"Sentiment analysis component using model={model}")

    api = FastAPI(title="Sentiment Analysis", docs_url=None, redoc_url=None, openapi_url=None)

    def run_inference(prompt: str) -> str:
        result = llm.infer(
            model,
            prompt,
            llm.InferencingParams(max_tokens=sentiment.MAX_TOKENS),
            allowed_models=context.component.ai_models,
            system=sentiment.SYSTEM_PROMPT,
        )
        return result.text

    @api.post("/sentiment-analysis", response_model=SentimentAnalysisResponse)
    def perform_sentiment_analysis(request: SentimentAnalysisRequest):
        """Classify a sentence as positive, negative or neutral."""
        try:
            store = context.open_store("default")
            outcome = sentiment.analyze(request.sentence, store, run_inference)
        except llm.InferenceError as e:
            raise HTTPException(status_code=502, detail=f"Inference failed: {str(e)}")
        except StoreError as e:
            logger.error(f"Key-value store error: {e}")
            raise HTTPException(status_code=500, detail=f"Key-value store error: {str(e)}")

        return SentimentAnalysisResponse(sentiment=outcome.sentiment)

    @api.api_route("/{path:path}", methods=ALL_METHODS, include_in_schema=False)
    def not_found(path: str):
        return PlainTextResponse("Not found", status_code=404)

    return api
