# Overview: Service-layer client for the generative-text advisory panel (Gemini generateContent over httpx).

"""
Advisory Service

WHY: Free-form business questions are answered by an external text model.
The call is a stateless pass-through: a short summary of the ledger is sent
with the question and the model's text is returned.

FAILURE MODEL:
The service may be unconfigured or unreachable at any time. Every failure
(no API key, transport error, non-2xx status, unexpected payload) is logged
and answered with a fixed apology. Billing and inventory never depend on it.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

FALLBACK_ANSWER = "Sorry, I encountered an error while communicating with the AI service."
EMPTY_ANSWER = "I couldn't generate a response at this time."
FALLBACK_COPY = "Error generating copy."
EMPTY_COPY = "No copy generated."

RECENT_SALES_SAMPLE = 10

SYSTEM_PROMPT = (
    'You are an expert AI Business Consultant for "{shop_name}", a printing and merchandise shop.\n'
    "Your goal is to analyze data and provide actionable, concise, and professional advice.\n"
    "The currency used is Sri Lankan Rupees (Rs.).\n"
    "Current Business Context: Analyzing POS Data"
)

MARKETING_SYSTEM_PROMPT = "You are a creative marketing assistant for a print shop."


class AdvisoryError(Exception):
    """Raised internally when the advisory call cannot produce text."""
    pass


def _rupees(cents: int) -> str:
    return f"Rs. {cents / 100:.2f}"


def build_data_context(sales, products) -> str:
    """Compact ledger summary sent along with every question."""
    sales = sorted(sales, key=lambda s: s.id)
    products = list(products)

    low_stock = [p.name for p in products if p.is_low_stock]
    total_revenue = sum(s.total_cents for s in sales)
    recent = [
        f"{s.created_at.date().isoformat()}: {_rupees(s.total_cents)} ({len(s.lines)} items)"
        for s in sales[-RECENT_SALES_SAMPLE:]
    ]

    return "\n".join([
        f"Total Products: {len(products)}",
        f"Low Stock Items: {', '.join(low_stock) or 'None'}",
        f"Total Revenue: {_rupees(total_revenue)}",
        f"Total Sales Count: {len(sales)}",
        "Recent Transactions Sample:",
        *recent,
    ])


def _extract_text(data: Any) -> str:
    """Concatenate the text parts of the first candidate."""
    if not isinstance(data, dict):
        raise AdvisoryError("Advisory response is not a JSON object")
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""
    content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return ""
    return "".join(str(p.get("text") or "") for p in parts if isinstance(p, dict)).strip()


class AdvisoryClient:
    def __init__(
        self,
        *,
        api_key: str | None,
        model: str,
        api_base: str,
        timeout: float = 20.0,
        shop_name: str = "AR Printers",
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.shop_name = shop_name
        self.transport = transport

    @classmethod
    def from_config(cls, config, *, shop_name: str = "AR Printers", transport=None) -> "AdvisoryClient":
        return cls(
            api_key=config.get("GEMINI_API_KEY"),
            model=config.get("ADVISORY_MODEL", "gemini-3-flash-preview"),
            api_base=config.get("ADVISORY_API_BASE", "https://generativelanguage.googleapis.com/v1beta"),
            timeout=float(config.get("ADVISORY_TIMEOUT_SECONDS", 20)),
            shop_name=shop_name,
            transport=transport,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def endpoint(self) -> str:
        return f"{self.api_base}/models/{self.model}:generateContent"

    def _generate(self, system_instruction: str, prompt: str) -> str:
        if not self.is_configured:
            raise AdvisoryError("Advisory API key is not configured")

        body = {
            "systemInstruction": {"parts": [{"text": system_instruction}]},
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        }
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}

        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            response = client.post(self.endpoint, json=body, headers=headers)
            response.raise_for_status()
            return _extract_text(response.json())

    def analyze_business_data(self, sales, products, query: str) -> str:
        prompt = f"Data Context: {build_data_context(sales, products)}\n\nUser Question: {query}"
        try:
            text = self._generate(SYSTEM_PROMPT.format(shop_name=self.shop_name), prompt)
        except AdvisoryError as exc:
            logger.warning("Advisory query unavailable: %s", exc)
            return FALLBACK_ANSWER
        except (httpx.HTTPError, ValueError) as exc:
            logger.exception("Advisory query failed: %s", exc)
            return FALLBACK_ANSWER
        return text or EMPTY_ANSWER

    def generate_marketing_copy(self, product_name: str) -> str:
        prompt = (
            f'Write a catchy social media post for our product: "{product_name}". '
            "Keep it under 50 words. Use emojis."
        )
        try:
            text = self._generate(MARKETING_SYSTEM_PROMPT, prompt)
        except AdvisoryError as exc:
            logger.warning("Marketing copy unavailable: %s", exc)
            return FALLBACK_COPY
        except (httpx.HTTPError, ValueError) as exc:
            logger.exception("Marketing copy request failed: %s", exc)
            return FALLBACK_COPY
        return text or EMPTY_COPY
