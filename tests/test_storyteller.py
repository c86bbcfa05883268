"""Unit tests for the story writer behind /api/create-draft."""

import pytest
import requests
from unittest.mock import MagicMock

from core.exceptions import StoryGenerationError
from services.storyteller import (
    FALLBACK_STORY,
    Storyteller,
    build_prompt,
    extract_story_text,
)

from conftest import http_response


def gemini_response(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.fixture
def http():
    return MagicMock()


@pytest.fixture
def storyteller(http):
    return Storyteller(api_key="key-123", model="gemini-test", api_base="http://gemini.test/v1", http=http)


class TestBuildPrompt:
    """Tests for build_prompt()."""

    def test_includes_draft_fields(self):
        prompt = build_prompt("The Keeper", "Mystery", "A bottle washes up.")

        assert 'titled "The Keeper"' in prompt
        assert "Mystery genre" in prompt
        assert "A bottle washes up." in prompt
        assert "500 and 700 words" in prompt

    def test_page_range_hint(self):
        assert "24-48 pages" in build_prompt("T", "G", "P", "24-48")
        assert "pages" not in build_prompt("T", "G", "P")


class TestExtractStoryText:
    """Tests for extract_story_text()."""

    def test_first_candidate(self):
        assert extract_story_text(gemini_response("Once.")) == "Once."

    @pytest.mark.parametrize("body", [{}, {"candidates": []}, gemini_response("  ")])
    def test_missing(self, body):
        assert extract_story_text(body) is None


class TestStoryteller:
    """Tests for Storyteller.write_story()."""

    def test_write_story(self, storyteller, http):
        http.post.return_value = http_response(200, gemini_response("A tale."))

        assert storyteller.write_story("T", "G", "P") == "A tale."

        args, kwargs = http.post.call_args
        assert args[0] == "http://gemini.test/v1/models/gemini-test:generateContent"
        assert kwargs["headers"] == {"x-goog-api-key": "key-123"}
        assert kwargs["json"]["contents"][0]["parts"][0]["text"].startswith("You are a master storyteller")

    def test_fallback_when_no_text(self, storyteller, http):
        http.post.return_value = http_response(200, {"candidates": []})

        assert storyteller.write_story("T", "G", "P") == FALLBACK_STORY

    def test_api_error(self, storyteller, http):
        http.post.return_value = http_response(403, {"error": {"message": "bad key"}})

        with pytest.raises(StoryGenerationError):
            storyteller.write_story("T", "G", "P")

    def test_timeout(self, storyteller, http):
        http.post.side_effect = requests.Timeout()

        with pytest.raises(StoryGenerationError):
            storyteller.write_story("T", "G", "P")

    def test_missing_key(self, http):
        storyteller = Storyteller(api_key="", http=http)

        with pytest.raises(StoryGenerationError):
            storyteller.write_story("T", "G", "P")

        http.post.assert_not_called()
