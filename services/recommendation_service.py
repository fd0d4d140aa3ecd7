"""
Recommendation Service - AI care KPIs and veterinary chat via OpenAI
"""

import json
import logging
from typing import Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

logger = logging.getLogger(__name__)

RECOMMENDATIONS_PROMPT = """You are a professional and empathetic pet veterinarian. Determine care KPIs from the details about a user's cat.

The KPIs you are required to output are:
- How many food bowls should be given to the cat? Maximum: 3, Minimum: 1, Interval: 0.1
- How many treats should be given to the cat? Maximum: 5, Minimum: 0, Interval: 0.5
- How much playtime should be given to the cat? Maximum: 60 minutes, Minimum: 0, Interval: 1 minute

Take into account the cat's age, gender, weight, target weight, breed, activity level and medical history.

Return only a JSON object with the keys food_bowls, treats and playtime.
Sample output: {"food_bowls": 2, "treats": 1, "playtime": 50}"""

CHAT_PROMPT = """You are a professional and empathetic pet veterinarian giving advice about the user's cat.
- Keep a warm, respectful tone and give clear, evidence-based advice.
- When the user describes a symptom, ask one focused follow-up question at a time to narrow things down.
- Once you have enough detail, give your opinion and stop asking follow-ups.
- If the conversation drifts, steer it back to the cat's health.
- For complex or serious cases, advise an in-person visit to a veterinarian.
- Never disclose that you are a chatbot.

Here are the details about the cat: {cat_details}.
Please respond in {language} language; all conversation should be in {language} language."""

# (minimum, maximum, step)
KPI_RANGES = {
    "food_bowls": (1.0, 3.0, 0.1),
    "treats": (0.0, 5.0, 0.5),
    "playtime": (0, 60, 1),
}


class RecommendationError(Exception):
    """Raised when the model cannot produce usable recommendations."""


class ChatError(Exception):
    """Raised when a chat completion fails."""


def clamp_kpi(key: str, value) -> Optional[float]:
    """Clamp value into the KPI range and snap it to the KPI interval."""
    if value is None:
        return None
    low, high, step = KPI_RANGES[key]
    number = min(max(float(value), low), high)
    snapped = round(round(number / step) * step, 1)
    if key == "playtime":
        return int(snapped)
    return snapped


class RecommendationService:
    """Service for OpenAI-backed cat care recommendations and chat."""

    def __init__(self, client: Optional[AsyncOpenAI], model: str = "gpt-4o-mini"):
        self.client = client
        self.model = model

    @classmethod
    def from_settings(cls, settings) -> "RecommendationService":
        if not settings.openai_api_key:
            logger.warning("OPENAI_API_KEY not set - recommendations and chat are unavailable")
            return cls(None, settings.openai_model)
        return cls(AsyncOpenAI(api_key=settings.openai_api_key), settings.openai_model)

    async def get_recommendations(self, cat_profile: Dict) -> Dict:
        """
        Ask the model for food_bowls, treats and playtime for one cat.

        Raises:
            RecommendationError: if the client is missing, the call fails or the
                response is not the expected JSON object
        """
        if self.client is None:
            raise RecommendationError("OpenAI API key is not configured")

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": RECOMMENDATIONS_PROMPT},
                    {
                        "role": "user",
                        "content": f"Provide recommendations for a cat with the following details: {json.dumps(cat_profile, default=str)}",
                    },
                ],
                max_tokens=500,
                response_format={"type": "json_object"},
            )
            data = json.loads(response.choices[0].message.content)
        except OpenAIError as e:
            logger.error(f"OpenAI recommendations failed: {e}", exc_info=True)
            raise RecommendationError("Failed to get AI recommendations") from e
        except (json.JSONDecodeError, TypeError, IndexError) as e:
            logger.error(f"OpenAI returned an unreadable recommendation payload: {e}")
            raise RecommendationError("Failed to get AI recommendations") from e

        if not isinstance(data, dict) or not all(key in data for key in KPI_RANGES):
            logger.error(f"OpenAI returned invalid recommendation structure: {data}")
            raise RecommendationError("Failed to get AI recommendations")

        try:
            return {key: clamp_kpi(key, data[key]) for key in KPI_RANGES}
        except (TypeError, ValueError) as e:
            raise RecommendationError("Failed to get AI recommendations") from e

    async def chat(self, cat_details: Dict, messages: List[Dict], language: str = "en") -> str:
        """
        Continue a veterinary chat about one cat.

        Raises:
            ChatError: if the client is missing or the call fails
        """
        if self.client is None:
            raise ChatError("OpenAI API key is not configured")

        system = CHAT_PROMPT.format(cat_details=json.dumps(cat_details, default=str), language=language)
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "system", "content": system}, *messages],
            )
            return response.choices[0].message.content
        except OpenAIError as e:
            logger.error(f"OpenAI chat failed: {e}", exc_info=True)
            raise ChatError("Failed to send messages to OpenAI") from e

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.close()
