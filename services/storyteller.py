"""
Story writer behind the /api/create-draft endpoint.

Builds the storyteller prompt from the customer's title, genre and notes and
asks the Gemini generateContent REST endpoint for a 500-700 word story.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from core.exceptions import CollaboratorError, StoryGenerationError
from core.http_client import CollaboratorClient
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

# Returned when the model answers without any text
FALLBACK_STORY = "Our AI storyteller is dreaming. Please try again in a moment."

PROMPT_TEMPLATE = """\
You are a master storyteller. Write a compelling short story in the {genre} genre, titled "{title}".
Base the story on these user-provided details:
---
{prompt_text}
---
The story must be well-structured with a clear beginning, middle, and a satisfying end. \
Aim for a word count between 500 and 700 words.{length_hint}"""


def build_prompt(title: str, genre: str, prompt_text: str, page_range: str = "") -> str:
    """Storyteller prompt for one draft."""
    length_hint = ""
    if page_range:
        length_hint = f" The finished book will have about {page_range} pages."
    return PROMPT_TEMPLATE.format(
        genre=genre, title=title, prompt_text=prompt_text, length_hint=length_hint
    )


def extract_story_text(response: Dict[str, Any]) -> Optional[str]:
    """First candidate's text from a generateContent response, if any."""
    try:
        text = response["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) and text.strip() else None


class Storyteller:
    """Gemini-backed story writer."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        api_base: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout_seconds: float = 30.0,
        http: Optional[requests.Session] = None
    ):
        self.api_key = api_key
        self.model = model
        self._client = CollaboratorClient(
            api_base, "gemini", timeout_seconds=timeout_seconds, http=http, logger=logger
        )

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "Storyteller":
        """Build from a Flask app.config mapping."""
        return cls(
            api_key=config.get("GEMINI_API_KEY", ""),
            model=config.get("GEMINI_MODEL", "gemini-2.0-flash"),
            api_base=config.get(
                "GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta"
            ),
            timeout_seconds=float(config.get("COLLABORATOR_TIMEOUT_SECONDS", 30.0)),
        )

    def write_story(
        self,
        title: str,
        genre: str,
        prompt_text: str,
        page_range: str = ""
    ) -> str:
        """
        Generate a story.

        Returns:
            Story text, or FALLBACK_STORY when the model returned no text

        Raises:
            StoryGenerationError: If the API key is missing or the call fails
        """
        if not self.api_key:
            raise StoryGenerationError(details={"cause": "GEMINI_API_KEY is not set"})

        prompt = build_prompt(title, genre, prompt_text, page_range)
        body = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}

        try:
            response = self._client.post(
                f"models/{self.model}:generateContent",
                json=body,
                headers={"x-goog-api-key": self.api_key},
            )
        except CollaboratorError as e:
            logger.error(f"Gemini request failed: {e}")
            raise StoryGenerationError(
                status_code=e.status_code, details={"cause": e.message}
            ) from e

        text = extract_story_text(response)
        if text is None:
            logger.warning("Gemini returned no candidate text, using fallback story")
            return FALLBACK_STORY

        return text
