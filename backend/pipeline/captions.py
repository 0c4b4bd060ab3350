"""Platform caption text for TikTok and YouTube Shorts."""
from typing import List

from backend.models import Interpretation, TriggerType
from backend.pipeline.prompt_interpreter import TRIGGER_PROFILES

TIKTOK_TEXT_LIMIT = 150
TIKTOK_HASHTAG_COUNT = 5
YOUTUBE_TITLE_LIMIT = 100
YOUTUBE_DESCRIPTION_LIMIT = 4900  # YouTube max 5000 chars

TRIGGER_HASHTAGS = {
    TriggerType.KINETIC_SAND: ["#kineticsand", "#sandcutting", "#crunchyasmr"],
    TriggerType.SLIME_STRETCH: ["#slime", "#slimeasmr", "#slimestretch"],
    TriggerType.BUBBLE_POUR: ["#bubbles", "#pouring", "#liquidasmr"],
    TriggerType.SOAP_CUTTING: ["#soapcutting", "#soapcarving", "#crunchysoap"],
    TriggerType.RAIN_GLASS: ["#rainsounds", "#rainonglass", "#sleepsounds"],
}

MOOD_HASHTAGS = {
    "calm": "#relaxing",
    "dreamy": "#aesthetic",
    "cozy": "#cozyvibes",
    "crisp": "#oddlysatisfying",
    "energetic": "#satisfyingvideo",
}

CORE_HASHTAGS = ["#asmr", "#satisfying", "#loop", "#nodialogue"]


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit - 1].rstrip() + "…"


def _sentence(prompt: str) -> str:
    text = " ".join(prompt.split())
    if not text:
        return text
    text = text[0].upper() + text[1:]
    return text if text[-1] in ".!?" else text + "."


def caption_hashtags(interpretation: Interpretation) -> List[str]:
    """Ordered, de-duplicated hashtags for an interpretation."""
    tags = ["#asmr"] + TRIGGER_HASHTAGS[interpretation.trigger]
    mood_tag = MOOD_HASHTAGS.get(interpretation.visual_mood)
    if mood_tag:
        tags.append(mood_tag)
    tags.extend(CORE_HASHTAGS)
    return list(dict.fromkeys(tags))


def build_tiktok_caption(prompt: str, interpretation: Interpretation) -> str:
    """Short hook plus five hashtags, TikTok style."""
    label = TRIGGER_PROFILES[interpretation.trigger]["label"].lower()
    text = f"{_sentence(prompt)} Raw {label} sounds on a perfect {interpretation.duration_seconds}s loop 🔁"
    hashtags = caption_hashtags(interpretation)[:TIKTOK_HASHTAG_COUNT - 1] + ["#fyp"]
    return f"{_truncate(text, TIKTOK_TEXT_LIMIT)}\n\n{' '.join(hashtags)}"


def youtube_title(caption: str) -> str:
    """First line of a YouTube caption, used as the video title."""
    return caption.split("\n", 1)[0]


def build_youtube_caption(prompt: str, interpretation: Interpretation) -> str:
    """Title line, description and hashtags for YouTube Shorts."""
    suffix = " #shorts"
    title = _truncate(
        f"{interpretation.title}: {' '.join(prompt.split())}",
        YOUTUBE_TITLE_LIMIT - len(suffix),
    ) + suffix

    label = TRIGGER_PROFILES[interpretation.trigger]["label"].lower()
    lines = [
        title,
        "",
        f"{interpretation.motion_description}.",
        f"Made from the prompt \"{' '.join(prompt.split())}\".",
        "",
        f"🎧 Headphones recommended for the raw {label} sounds, no music, no talking.",
        f"🔁 Seamless {interpretation.duration_seconds}s loop at {interpretation.fps}fps, "
        f"{interpretation.visual_mood} mood.",
        f"🎨 Palette: {', '.join(interpretation.palette)}",
        "",
        " ".join(["#shorts"] + caption_hashtags(interpretation)),
    ]
    return _truncate("\n".join(lines), YOUTUBE_DESCRIPTION_LIMIT)
