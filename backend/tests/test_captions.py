"""Tests for platform caption building.

Tests cover:
- Determinism for the same prompt and interpretation
- Trigger-relevant hashtags
- TikTok hashtag count and length limits
- YouTube title line with the #shorts suffix
"""

import pytest

from backend.models import TriggerType
from backend.pipeline.captions import (
    TIKTOK_HASHTAG_COUNT,
    TIKTOK_TEXT_LIMIT,
    YOUTUBE_DESCRIPTION_LIMIT,
    YOUTUBE_TITLE_LIMIT,
    build_tiktok_caption,
    build_youtube_caption,
    caption_hashtags,
    youtube_title,
)

PROMPT = "Crunchy kinetic sand ASMR"


class TestHashtags:
    """Hashtag selection."""

    def test_trigger_tags_for_sand(self, sand_interpretation):
        """Kinetic sand gets sand hashtags and the mood tag."""
        tags = caption_hashtags(sand_interpretation)
        assert tags[0] == "#asmr"
        assert "#kineticsand" in tags
        assert "#oddlysatisfying" in tags

    @pytest.mark.parametrize("trigger", list(TriggerType))
    def test_no_duplicates(self, sand_interpretation, trigger):
        """Every trigger yields a de-duplicated list."""
        tags = caption_hashtags(sand_interpretation.model_copy(update={"trigger": trigger}))
        assert len(tags) == len(set(tags))

    def test_unknown_mood_has_no_mood_tag(self, sand_interpretation):
        """Moods without a mapping simply add nothing."""
        interp = sand_interpretation.model_copy(update={"visual_mood": "mysterious"})
        assert "#oddlysatisfying" not in caption_hashtags(interp)


class TestTikTokCaption:
    """Short hook plus hashtags."""

    def test_deterministic(self, sand_interpretation):
        """Same inputs give the same caption."""
        assert build_tiktok_caption(PROMPT, sand_interpretation) == build_tiktok_caption(PROMPT, sand_interpretation)

    def test_structure(self, sand_interpretation):
        """Text, blank line, then exactly five hashtags ending in #fyp."""
        caption = build_tiktok_caption(PROMPT, sand_interpretation)
        text, hashtags = caption.split("\n\n")
        assert text.startswith("Crunchy kinetic sand ASMR.")
        assert "6s loop" in text
        tags = hashtags.split()
        assert len(tags) == TIKTOK_HASHTAG_COUNT
        assert tags[-1] == "#fyp"
        assert "#kineticsand" in tags

    def test_long_prompt_truncated(self, sand_interpretation):
        """Very long prompts are cut to the text limit with an ellipsis."""
        caption = build_tiktok_caption("sand " * 200, sand_interpretation)
        text = caption.split("\n\n")[0]
        assert len(text) <= TIKTOK_TEXT_LIMIT
        assert text.endswith("…")


class TestYouTubeCaption:
    """Title line, description and hashtags."""

    def test_title_line(self, sand_interpretation):
        """First line is the title and ends with #shorts."""
        title = youtube_title(build_youtube_caption(PROMPT, sand_interpretation))
        assert title == f"{sand_interpretation.title}: {PROMPT} #shorts"

    def test_long_title_respects_limit(self, sand_interpretation):
        """Title stays under the YouTube limit and keeps its suffix."""
        title = youtube_title(build_youtube_caption("slime " * 60, sand_interpretation))
        assert len(title) <= YOUTUBE_TITLE_LIMIT
        assert title.endswith("#shorts")

    def test_description_content(self, sand_interpretation):
        """Description names the motion, loop length and hashtags."""
        caption = build_youtube_caption(PROMPT, sand_interpretation)
        assert sand_interpretation.motion_description in caption
        assert "6s loop at 24fps" in caption
        assert "#kineticsand" in caption.splitlines()[-1]
        assert len(caption) <= YOUTUBE_DESCRIPTION_LIMIT

    def test_whitespace_collapsed(self, sand_interpretation):
        """Prompt whitespace is normalized in the caption."""
        caption = build_youtube_caption("  crunchy   sand  ", sand_interpretation)
        assert "crunchy sand #shorts" in youtube_title(caption)
