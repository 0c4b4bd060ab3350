"""Keyword-based interpretation of ASMR prompts into a generation plan."""
import hashlib
import re
from typing import Dict, List, Optional, Tuple

from backend.models import Interpretation, TriggerType

MIN_DURATION_SECONDS = 6
MAX_DURATION_SECONDS = 15
DEFAULT_FPS = 30
ALLOWED_FPS = (24, 25, 30)

DEFAULT_TRIGGER = TriggerType.SLIME_STRETCH
DEFAULT_MOOD = "calm"

# Keywords are matched against lowercase word tokens; ties resolve in enum order
TRIGGER_KEYWORDS: Dict[TriggerType, Tuple[str, ...]] = {
    TriggerType.KINETIC_SAND: (
        "sand", "kinetic", "crunch", "crunchy", "grain", "grains",
        "sugar", "crumble", "crumbly", "gravel",
    ),
    TriggerType.SLIME_STRETCH: (
        "slime", "stretch", "stretchy", "goo", "gooey", "putty",
        "jelly", "squish", "squishy", "glossy",
    ),
    TriggerType.BUBBLE_POUR: (
        "bubble", "bubbles", "pour", "pouring", "fizz", "fizzy",
        "soda", "foam", "fluid", "liquid", "water",
    ),
    TriggerType.SOAP_CUTTING: (
        "soap", "carve", "carving", "cut", "cutting", "shave",
        "shaving", "slice", "slicing", "scrape", "wax",
    ),
    TriggerType.RAIN_GLASS: (
        "rain", "rainy", "drop", "drops", "droplet", "droplets",
        "glass", "window", "storm", "drizzle",
    ),
}

TRIGGER_PROFILES: Dict[TriggerType, dict] = {
    TriggerType.KINETIC_SAND: {
        "label": "Kinetic Sand",
        "palette": ("#f4d6b0", "#e8a87c", "#c38d9e", "#41b3a3"),
        "duration": 8,
        "cycle_seconds": 2.0,
        "motion": "A blade slices slowly through a layered sand block while grains crumble away",
    },
    TriggerType.SLIME_STRETCH: {
        "label": "Slime Stretch",
        "palette": ("#b8f2e6", "#aed9e0", "#ffa69e", "#5e6472"),
        "duration": 10,
        "cycle_seconds": 5.0,
        "motion": "Glossy slime stretches between two anchors and sinks back into a rounded blob",
    },
    TriggerType.BUBBLE_POUR: {
        "label": "Bubble Pour",
        "palette": ("#caf0f8", "#90e0ef", "#00b4d8", "#0077b6"),
        "duration": 9,
        "cycle_seconds": 3.0,
        "motion": "A smooth stream pours into a glass as bubbles rise and pop at the surface",
    },
    TriggerType.SOAP_CUTTING: {
        "label": "Soap Cutting",
        "palette": ("#fde2e4", "#fad2e1", "#e2ece9", "#bee1e6"),
        "duration": 8,
        "cycle_seconds": 2.0,
        "motion": "A blade shaves thin ribbons off a pastel soap bar that curl as they fall",
    },
    TriggerType.RAIN_GLASS: {
        "label": "Rain on Glass",
        "palette": ("#0b132b", "#1c2541", "#3a506b", "#5bc0be"),
        "duration": 12,
        "cycle_seconds": 4.0,
        "motion": "Rain drops bead on a window pane and slide down leaving soft trails",
    },
}

MOOD_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "calm": ("calm", "relaxing", "relax", "sleep", "soothing", "gentle", "slow", "peaceful"),
    "dreamy": ("dreamy", "iridescent", "ethereal", "holographic", "glitter", "shimmer", "pastel"),
    "cozy": ("cozy", "warm", "autumn", "honey", "candle", "fireplace"),
    "crisp": ("crunchy", "crunch", "crisp", "sharp", "satisfying", "clean"),
    "energetic": ("fast", "energetic", "intense", "loud", "hype", "aggressive"),
}

# Seconds added to the trigger default duration per mood
MOOD_DURATION_OFFSET = {
    "calm": 2,
    "dreamy": 2,
    "cozy": 0,
    "crisp": 0,
    "energetic": -2,
}

NAMED_PALETTES: Dict[str, Tuple[str, ...]] = {
    "iridescent": ("#e0c3fc", "#8ec5fc", "#f9f586", "#96fbc4"),
    "pastel": ("#ffd1dc", "#c1e1c1", "#fdfd96", "#aec6cf"),
    "neon": ("#0d0221", "#ff00c8", "#00f0ff", "#faff00"),
    "ocean": ("#03045e", "#0077b6", "#00b4d8", "#90e0ef"),
    "sunset": ("#355070", "#6d597a", "#e56b6f", "#eaac8b"),
    "forest": ("#1b4332", "#2d6a4f", "#52b788", "#b7e4c7"),
    "midnight": ("#03071e", "#240046", "#5a189a", "#9d4edd"),
    "rose": ("#590d22", "#a4133c", "#ff4d6d", "#ffccd5"),
    "gold": ("#3d2c00", "#b8860b", "#ffd700", "#fff3b0"),
}

PALETTE_KEYWORDS: Dict[str, str] = {
    "iridescent": "iridescent", "holographic": "iridescent", "rainbow": "iridescent", "opal": "iridescent",
    "pastel": "pastel", "candy": "pastel",
    "neon": "neon", "glow": "neon", "glowing": "neon",
    "ocean": "ocean", "blue": "ocean", "sea": "ocean", "aqua": "ocean",
    "sunset": "sunset", "orange": "sunset", "peach": "sunset",
    "forest": "forest", "green": "forest", "mint": "forest", "matcha": "forest",
    "midnight": "midnight", "dark": "midnight", "night": "midnight", "purple": "midnight",
    "rose": "rose", "pink": "rose", "red": "rose", "cherry": "rose",
    "gold": "gold", "golden": "gold", "yellow": "gold",
}

# Runs longer than four digits are not a request and never match
DURATION_PATTERN = re.compile(r"(?<![\d.])(\d{1,4}(?:\.\d{1,3})?)\s*(?:s|sec|secs|second|seconds)\b")
FPS_PATTERN = re.compile(r"(?<![\d.])(\d{1,4})\s*fps\b")
CINEMATIC_WORDS = {"cinematic", "film", "filmic"}


def _tokenize(text: str) -> List[str]:
    return re.findall(r"[a-z0-9]+", text.lower())


def _prompt_seed(prompt: str) -> int:
    normalized = " ".join(_tokenize(prompt))
    return int(hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:8], 16)


def _score(tokens: List[str], keywords: Tuple[str, ...]) -> int:
    return sum(1 for token in tokens if token in keywords)


def classify_trigger(tokens: List[str]) -> TriggerType:
    """Pick the trigger with the most keyword hits, falling back to the default."""
    best, best_score = DEFAULT_TRIGGER, 0
    for trigger in TriggerType:
        score = _score(tokens, TRIGGER_KEYWORDS[trigger])
        if score > best_score:
            best, best_score = trigger, score
    return best


def classify_mood(tokens: List[str]) -> str:
    best, best_score = DEFAULT_MOOD, 0
    for mood, keywords in MOOD_KEYWORDS.items():
        score = _score(tokens, keywords)
        if score > best_score:
            best, best_score = mood, score
    return best


def pick_palette(tokens: List[str], trigger: TriggerType) -> Tuple[str, ...]:
    for token in tokens:
        name = PALETTE_KEYWORDS.get(token)
        if name:
            return NAMED_PALETTES[name]
    return TRIGGER_PROFILES[trigger]["palette"]


def pick_duration(text: str, trigger: TriggerType, mood: str) -> int:
    match = DURATION_PATTERN.search(text)
    if match:
        duration = int(round(float(match.group(1))))
    else:
        duration = TRIGGER_PROFILES[trigger]["duration"] + MOOD_DURATION_OFFSET.get(mood, 0)
    return max(MIN_DURATION_SECONDS, min(MAX_DURATION_SECONDS, duration))


def pick_fps(text: str, tokens: List[str]) -> int:
    match = FPS_PATTERN.search(text)
    if match:
        requested = int(match.group(1))
        if requested in ALLOWED_FPS:
            return requested
    if CINEMATIC_WORDS.intersection(tokens):
        return 24
    return DEFAULT_FPS


def interpret_prompt(prompt: str, seed: Optional[int] = None) -> Interpretation:
    """Interpret a free-text prompt into a structured generation plan.

    Deterministic for identical prompts: classification is keyword based and
    the procedural seed is a hash of the normalized prompt text.

    Args:
        prompt: Non-empty prompt describing the loop.
        seed: Optional explicit seed overriding the prompt hash.

    Returns:
        Interpretation with duration and fps inside the supported bounds.

    Raises:
        ValueError: If the prompt is empty after trimming.
    """
    text = prompt.strip()
    if not text:
        raise ValueError("Prompt is required")

    lowered = text.lower()
    tokens = _tokenize(text)

    trigger = classify_trigger(tokens)
    mood = classify_mood(tokens)
    profile = TRIGGER_PROFILES[trigger]
    duration = pick_duration(lowered, trigger, mood)
    fps = pick_fps(lowered, tokens)
    cycles = max(1, int(round(duration / profile["cycle_seconds"])))

    return Interpretation(
        trigger=trigger,
        title=f"{mood.title()} {profile['label']} Loop",
        visual_mood=mood,
        motion_description=profile["motion"],
        palette=pick_palette(tokens, trigger),
        duration_seconds=duration,
        fps=fps,
        motion_cycles=cycles,
        seed=_prompt_seed(text) if seed is None else seed,
    )
