import json
import logging
import os

from agents import Agent, Runner

from app.errors import EmptyResponse, MissingCredential, TransportFailure
from app.receipt.base import RECEIPT_SCHEMA

logger = logging.getLogger("bridgepay")

DEFAULT_MODEL = "gpt-4o"

INSTRUCTIONS = f"""\
You are a receipt and payment QR parser. Given an image, extract the payment details.

Return a single JSON object matching this schema, and nothing else:
{json.dumps(RECEIPT_SCHEMA, indent=2)}

Rules:
- merchantName: the business name as printed
- country: the country of the merchant, inferred from address, phone prefix or currency if not printed
- currencyCode: ISO 4217 code (e.g. "SGD", "EUR")
- subtotal, tax, total: plain numbers without currency symbols or thousands separators
- If a value is missing, provide your best estimate; omit it only if there is no basis for one"""


class OpenAIReceiptExtractor:
    """Receipt extraction using OpenAI Agents SDK with GPT-4o vision.

    Returns the raw model text; parsing and validation happen downstream.
    """

    def __init__(self, model: str | None = None):
        self.agent = Agent(
            name="Receipt Scanner",
            instructions=INSTRUCTIONS,
            model=model or DEFAULT_MODEL,
        )

    async def extract(self, image_b64: str, content_type: str) -> str:
        if not os.getenv("OPENAI_API_KEY"):
            raise MissingCredential()

        media_type = content_type or "image/jpeg"
        try:
            result = await Runner.run(
                self.agent,
                input=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "input_text", "text": "Extract the payment details from this receipt."},
                            {"type": "input_image", "image_url": f"data:{media_type};base64,{image_b64}"},
                        ],
                    }
                ],
            )
        except Exception as e:
            raise TransportFailure(f"Receipt extraction call failed: {e}") from e

        text = result.final_output
        if not isinstance(text, str) or not text.strip():
            raise EmptyResponse()
        return text
