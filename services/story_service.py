"""
Draft submission adapter.

Sends the draft (scalar fields plus the cover image) to the story-generation
service as one multipart POST and returns the generated story.

Every failure mode (network error, timeout, non-2xx status, malformed body,
unreadable cover image) surfaces as a single StoryGenerationError carrying the
same user-facing message. The draft itself is only read, never modified.

Wire contract:
    POST {STORY_SERVICE_URL}/create-draft
        form:  title, genre, promptText, pageRange
        file:  coverImage
    200 -> {"story": "...", "coverImageFilename": "..."}
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from core.exceptions import CollaboratorError, DraftValidationError, StoryGenerationError
from core.http_client import CollaboratorClient
from models.order import OrderDraft, GeneratedStory
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


class StoryService:
    """Client for the story-generation collaborator."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 30.0,
        http: Optional[requests.Session] = None
    ):
        self._client = CollaboratorClient(
            base_url, "story", timeout_seconds=timeout_seconds, http=http, logger=logger
        )

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "StoryService":
        """Build from a Flask app.config mapping."""
        return cls(
            base_url=config["STORY_SERVICE_URL"],
            timeout_seconds=float(config.get("COLLABORATOR_TIMEOUT_SECONDS", 30.0)),
        )

    def generate(self, draft: OrderDraft) -> GeneratedStory:
        """
        Request a story for the draft.

        Args:
            draft: Draft with title, genre, prompt and cover image set

        Returns:
            GeneratedStory with the returned text

        Raises:
            DraftValidationError: If the draft has no cover image
            StoryGenerationError: On any collaborator failure
        """
        cover = draft.cover_image
        if cover is None:
            raise DraftValidationError(["cover image"])

        fields = {
            "title": draft.title,
            "genre": draft.genre,
            "promptText": draft.prompt_text,
            "pageRange": draft.page_range,
        }

        logger.info(f"Requesting story for '{draft.title}' ({draft.genre})")

        try:
            with open(cover.stored_path, "rb") as image:
                upload_name = cover.original_filename or cover.stored_filename
                body = self._client.post(
                    "create-draft",
                    data=fields,
                    files={"coverImage": (upload_name, image, cover.content_type)},
                )
        except OSError as e:
            logger.error(f"Cover image unreadable at {cover.stored_path}: {e}")
            raise StoryGenerationError(details={"cause": f"cover image unreadable: {e}"}) from e
        except CollaboratorError as e:
            raise StoryGenerationError(
                status_code=e.status_code, details={"cause": e.message}
            ) from e

        story = body.get("story")
        if not isinstance(story, str) or not story.strip():
            logger.warning("Story service response had no story text")
            raise StoryGenerationError(details={"cause": "response has no story field"})

        logger.info(f"Story received ({len(story)} chars)")
        return GeneratedStory(
            text=story,
            source_image_reference=body.get("coverImageFilename") or cover.stored_filename,
        )
