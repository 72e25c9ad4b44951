"""Feature Description Generator — drafts a short post description from a title.

Invariants:
    - Output is the model's text, stripped; an empty completion is an AIServiceError
    - All API failures surface as AIServiceError (infrastructure/anthropic_client.py)
"""

import logging

from ideabox.config import Settings
from ideabox.core.errors import AIServiceError
from ideabox.infrastructure.anthropic_client import ResilientAnthropicClient

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a product manager helping to write concise feature descriptions. "
    "Write a clear, concise, and well-structured description of the feature "
    "based on the title provided."
)
MAX_TOKENS = 500
TEMPERATURE = 0.7


def user_prompt(title: str) -> str:
    return f"Please write a concise description for this feature within 50 words: {title}"


class FeatureDescriptionGenerator:
    def __init__(self, client: ResilientAnthropicClient, model: str):
        self.client = client
        self.model = model

    @classmethod
    def from_settings(cls, settings: Settings) -> "FeatureDescriptionGenerator":
        client = ResilientAnthropicClient(
            api_key=settings.anthropic_api_key,
            max_retries=settings.anthropic_max_retries,
            base_delay_ms=settings.anthropic_base_delay_ms,
            max_delay_ms=settings.anthropic_max_delay_ms,
            timeout_seconds=settings.anthropic_timeout_seconds,
        )
        return cls(client, settings.anthropic_model)

    async def generate(self, title: str) -> str:
        response = await self.client.create_message(
            model=self.model,
            max_tokens=MAX_TOKENS,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": user_prompt(title)}],
            temperature=TEMPERATURE,
        )
        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        ).strip()
        if not text:
            raise AIServiceError("Empty completion", "empty_response")
        return text
