"""Conversational weather assistant with a city-switching tool call."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from .exceptions import ModelServiceError, RateLimitedError
from .genai import ContentTurn, FunctionDeclaration, GenerativeModelClient, ModelRequest
from .models import ChatMessage, ChatReply, WeatherSnapshot
from .resilience import BOUNDED_POLICY, RetryPolicy, Sleep, call_with_retry

UPDATE_CITY_TOOL = FunctionDeclaration(
    name="update_city_dashboard",
    description="Update the main dashboard to show weather for a specific city.",
    parameters={
        "type": "OBJECT",
        "properties": {
            "city": {
                "type": "STRING",
                "description": "The name of the city to display weather for.",
            },
        },
        "required": ["city"],
    },
)

HEAVY_TRAFFIC_REPLY = (
    "I'm experiencing heavy traffic (API Quota Reached). "
    "Please wait a moment before asking again."
)
GENERIC_ERROR_REPLY = "I encountered an error. Please try again later."


def build_system_instruction(weather: WeatherSnapshot | None) -> str:
    context = (
        f"Current context: {weather.city}, {weather.temp:g}°C, {weather.condition}.\n"
        if weather is not None
        else ""
    )
    return (
        "You are SkyCast AI, a weather expert.\n"
        f"{context}"
        "Be concise. Use the tool to update the dashboard if the user wants to see "
        "weather for another city."
    )


class WeatherAssistant:
    """Answers chat turns; surfaces a city name when the model calls the dashboard tool."""

    def __init__(
        self,
        client: GenerativeModelClient,
        *,
        logger: logging.Logger,
        model: str,
        policy: RetryPolicy = BOUNDED_POLICY,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.client = client
        self.logger = logger
        self.model = model
        self.policy = policy
        self._sleep = sleep

    async def reply(
        self,
        history: Sequence[ChatMessage],
        weather: WeatherSnapshot | None = None,
    ) -> ChatReply:
        request = ModelRequest(
            model=self.model,
            contents=[
                ContentTurn(
                    role="model" if message.role == "assistant" else "user",
                    text=message.content,
                )
                for message in history
            ],
            system_instruction=build_system_instruction(weather),
            function_declarations=[UPDATE_CITY_TOOL],
        )
        try:
            response = await call_with_retry(
                lambda: self.client.generate(request),
                self.policy,
                logger=self.logger,
                context="Assistant reply",
                sleep=self._sleep,
            )
        except RateLimitedError as exc:
            self.logger.warning("Assistant rate limited: %s", exc)
            return ChatReply(text=HEAVY_TRAFFIC_REPLY)
        except ModelServiceError as exc:
            self.logger.error("Assistant call failed: %s", exc)
            return ChatReply(text=GENERIC_ERROR_REPLY)

        city_to_update: str | None = None
        for call in response.function_calls:
            if call.name != UPDATE_CITY_TOOL.name:
                continue
            city = call.args.get("city")
            if isinstance(city, str) and city.strip():
                city_to_update = city.strip()
            break

        text = response.text
        if not text:
            text = (
                f"Searching for {city_to_update}..."
                if city_to_update
                else "I'm analyzing the data..."
            )
        return ChatReply(text=text, sources=response.sources, city_to_update=city_to_update)
