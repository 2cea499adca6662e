from __future__ import annotations

import os
import time
from datetime import UTC, datetime
from typing import Any, List, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from divitrack.core.config import SETTINGS
from divitrack.core.schemas import (
    DividendMetadata,
    PayoutFrequency,
    Source,
    dedupe_sources,
    normalize_ticker,
)
from divitrack.utils.logging import get_logger, set_ticker

logger = get_logger("dividend_data")


class MetadataFetchError(Exception):
    pass


class ProviderUnavailable(MetadataFetchError):
    pass


class ApiKeyInvalid(MetadataFetchError):
    pass


class RateLimited(MetadataFetchError):
    pass


class SymbolNotFound(MetadataFetchError):
    pass


class InvalidMetadataResponse(MetadataFetchError):
    pass


_RETRIABLE_CODES = (429, 500, 502, 503, 504)
_KEY_ERROR_MARKER = "Requested entity was not found"

RESPONSE_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "found": types.Schema(type=types.Type.BOOLEAN),
        "name": types.Schema(type=types.Type.STRING),
        "currentPrice": types.Schema(type=types.Type.NUMBER),
        "yield": types.Schema(type=types.Type.NUMBER),
        "annualDividend": types.Schema(type=types.Type.NUMBER),
        "growthRate": types.Schema(type=types.Type.NUMBER),
        "payoutFrequency": types.Schema(
            type=types.Type.STRING,
            enum=["Monthly", "Quarterly", "Annually"],
        ),
    },
    required=["name", "currentPrice", "yield", "annualDividend", "growthRate", "payoutFrequency"],
)


class DividendQuoteResponse(BaseModel):
    """Exact shape the model is asked to return. Anything else is rejected."""

    model_config = ConfigDict(populate_by_name=True)

    found: Optional[bool] = None
    name: str = Field(..., min_length=1)
    current_price: float = Field(..., ge=0, alias="currentPrice")
    yield_pct: float = Field(..., alias="yield")
    annual_dividend: float = Field(..., ge=0, alias="annualDividend")
    growth_rate: float = Field(..., alias="growthRate")
    payout_frequency: PayoutFrequency = Field(..., alias="payoutFrequency")

    @field_validator("payout_frequency", mode="before")
    @classmethod
    def _frequency_case(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().capitalize()
        return v


def build_metadata_prompt(ticker: str) -> str:
    return (
        f"Find current dividend information for the stock ticker: {ticker}.\n"
        "I need:\n"
        "1. Full company name.\n"
        "2. Current stock price.\n"
        "3. Dividend yield (percentage, e.g. 4.5 for 4.5%).\n"
        "4. Annual dividend amount per share.\n"
        "5. 5-year average dividend growth rate (percentage).\n"
        "6. Payout frequency (Monthly, Quarterly, or Annually).\n"
        "If the ticker does not exist, set found to false.\n"
        "Return the data strictly in JSON format."
    )


def extract_sources(response: Any) -> List[Source]:
    """Grounding citations of the first candidate, without blank or repeated URIs."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    grounding = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(grounding, "grounding_chunks", None) or []

    out: List[Source] = []
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        uri = (getattr(web, "uri", None) or "").strip()
        if not uri:
            continue
        out.append(Source(title=getattr(web, "title", None) or "Source", uri=uri))
    return dedupe_sources(out)


def parse_metadata_response(ticker: str, response: Any, *, now: Optional[datetime] = None) -> DividendMetadata:
    sym = normalize_ticker(ticker)
    text = getattr(response, "text", None)
    if not text or not text.strip():
        raise InvalidMetadataResponse(f"Empty response from AI for {sym}")

    try:
        quote = DividendQuoteResponse.model_validate_json(text.strip())
    except ValidationError as e:
        raise InvalidMetadataResponse(f"Malformed dividend data for {sym}: {e.error_count()} error(s)") from e

    if quote.found is False:
        raise SymbolNotFound(f"No dividend data for {sym}")

    return DividendMetadata(
        ticker=sym,
        name=quote.name,
        current_price=quote.current_price,
        yield_pct=quote.yield_pct,
        annual_dividend_per_share=quote.annual_dividend,
        growth_rate_pct=quote.growth_rate,
        payout_frequency=quote.payout_frequency,
        last_updated=now or datetime.now(UTC),
        sources=extract_sources(response),
    )


def _env(key: str) -> Optional[str]:
    v = os.getenv(key)
    return v.strip() if isinstance(v, str) and v.strip() else None


class DividendDataService:
    """
    Dividend metadata lookup through Gemini with Google Search grounding.
    - One structured request per ticker
    - Retries with backoff for rate limits and server errors
    - Strict validation of the returned JSON
    """

    def __init__(
        self,
        client: Optional[Any] = None,
        *,
        model: Optional[str] = None,
        retries: Optional[int] = None,
        timeout_seconds: Optional[int] = None,
    ) -> None:
        self._client = client
        self.model = model or SETTINGS.llm_model
        self.retries = max(1, int(retries or SETTINGS.fetch_retries or 3))
        self.timeout = int(timeout_seconds or SETTINGS.fetch_timeout_seconds or 60)

    def _get_client(self) -> Any:
        if self._client is None:
            api_key = _env("GEMINI_API_KEY") or _env("GOOGLE_API_KEY")
            if not api_key:
                raise ProviderUnavailable("GEMINI_API_KEY not set")
            self._client = genai.Client(
                api_key=api_key,
                http_options=types.HttpOptions(timeout=self.timeout * 1000),
            )
        return self._client

    def fetch(self, ticker: str) -> DividendMetadata:
        sym = normalize_ticker(ticker)
        if not sym:
            raise ValueError("ticker is empty")
        set_ticker(sym)

        response = self._generate_with_retries(build_metadata_prompt(sym))
        data = parse_metadata_response(sym, response)
        logger.info(f"metadata_fetched price={data.current_price} yield={data.yield_pct} sources={len(data.sources)}")
        return data

    def _generate_with_retries(self, prompt: str) -> Any:
        client = self._get_client()
        config = types.GenerateContentConfig(
            tools=[types.Tool(google_search=types.GoogleSearch())],
            response_mime_type="application/json",
            response_schema=RESPONSE_SCHEMA,
            temperature=float(SETTINGS.llm_temperature),
        )

        last_err: Optional[Exception] = None
        for attempt in range(1, self.retries + 1):
            try:
                return client.models.generate_content(model=self.model, contents=prompt, config=config)
            except genai_errors.APIError as e:
                last_err = e
                code = getattr(e, "code", None)
                if code in (401, 403) or _KEY_ERROR_MARKER in str(e):
                    raise ApiKeyInvalid(str(e)) from e
                if code not in _RETRIABLE_CODES:
                    raise MetadataFetchError(f"Gemini request failed: {e}") from e
                logger.warning(f"fetch_retry attempt={attempt} code={code}")
                if attempt < self.retries:
                    time.sleep(min(8.0, 0.8 * (2 ** (attempt - 1))))

        if getattr(last_err, "code", None) == 429:
            raise RateLimited(f"Gemini rate limit reached after {self.retries} attempts") from last_err
        raise MetadataFetchError(f"Gemini request failed after {self.retries} attempts: {last_err}") from last_err
