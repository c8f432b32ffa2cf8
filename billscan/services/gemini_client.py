"""Client for extracting bill data from receipt images with Gemini."""

import base64
import logging
from typing import Any, Dict, Optional
import httpx

from billscan.config.settings import GeminiSettings
from billscan.services.results import ErrorKind, Failure, Ok, Result

logger = logging.getLogger(__name__)

# Upstream bodies can be large; only this much goes into a Failure's detail.
MAX_ERROR_BODY_CHARS = 2000


def build_extraction_prompt() -> str:
    """Generate the prompt for bill extraction."""

    return """
Extract the following fields from this bill image and return them in JSON format. The structure should match this example:
{
    "vendor": "string",
    "date": "yyyy-MM-ddTHH:mm:ssZ",
    "totalAmount": number,
    "paymentMethod": "string or null",
    "lineItems": [
        {
            "itemName": "string",
            "quantity": number,
            "unitPrice": number,
            "totalPrice": number
        }
    ]
}

Fields to extract:
- vendor: The name of the vendor or store.
- date: The date on the bill in ISO 8601 UTC format (yyyy-MM-ddTHH:mm:ssZ). If the time is missing, use 00:00:00. If the timezone is missing, assume UTC.
- totalAmount: The final total amount due (numeric, e.g., 500.00).
- paymentMethod: The payment method used (e.g., Credit Card, Cash). If not found, use null.
- lineItems: An array of items, each with itemName, quantity, unitPrice, and totalPrice. If line items are not clearly separable or present, return an empty array [].

If a top-level field (vendor, date, totalAmount) cannot be reliably extracted, return null for that field's value (except for lineItems which should be []).

IMPORTANT: Return ONLY the JSON object, without any surrounding text, comments, or markdown formatting like ```json ... ```.
"""


def build_payload(image_bytes: bytes, mime_type: str) -> Dict[str, Any]:
    """Build the generateContent request body with the prompt and inline image."""
    base64_image = base64.b64encode(image_bytes).decode("utf-8")
    return {
        "contents": [
            {
                "parts": [
                    {"text": build_extraction_prompt()},
                    {
                        "inlineData": {
                            "mimeType": mime_type,
                            "data": base64_image,
                        }
                    },
                ]
            }
        ]
    }


class GeminiBillExtractor:
    """Sends receipt images to the Gemini generateContent endpoint."""

    def __init__(self, settings: GeminiSettings, client: Optional[httpx.AsyncClient] = None):
        self._settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.timeout_seconds)

    async def aclose(self) -> None:
        """Close the HTTP client if this extractor created it."""
        if self._owns_client:
            await self._client.aclose()

    async def extract(self, image_bytes: bytes, mime_type: str) -> Result[str]:
        """
        Send one image to Gemini and return the raw response body.

        Args:
            image_bytes: Receipt image bytes
            mime_type: MIME type of the image (image/jpeg or image/png)

        Returns:
            Ok with the unmodified response envelope text, or an UpstreamError Failure
        """
        payload = build_payload(image_bytes, mime_type)

        logger.info(f"Sending {len(image_bytes)} byte {mime_type} image to Gemini endpoint: {self._settings.endpoint}")

        try:
            response = await self._client.post(
                self._settings.endpoint,
                params={"key": self._settings.api_key},
                json=payload,
                timeout=self._settings.timeout_seconds,
            )
        except httpx.TimeoutException as e:
            logger.error(f"Gemini API request timed out after {self._settings.timeout_seconds}s: {type(e).__name__}")
            return Failure(
                ErrorKind.UPSTREAM,
                "The extraction service timed out",
                detail=type(e).__name__,
            )
        except httpx.HTTPError as e:
            # str(e) may contain the request URL, which carries the API key
            logger.error(f"Failed to connect to Gemini API: {type(e).__name__}")
            return Failure(
                ErrorKind.UPSTREAM,
                "Failed to connect to the extraction service",
                detail=type(e).__name__,
            )

        if not response.is_success:
            body = response.text[:MAX_ERROR_BODY_CHARS]
            logger.error(f"Gemini API request failed with status code {response.status_code}. Response: {body}")
            return Failure(
                ErrorKind.UPSTREAM,
                f"The extraction service returned status {response.status_code}",
                detail=body,
                status_code=response.status_code,
            )

        logger.info("Received successful response from Gemini")
        logger.debug(f"Gemini raw response preview: {response.text[:200]}...")
        return Ok(response.text)
