"""Procedural ASMR audio synthesis with seamless loop points."""
import logging
import math
import wave
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict

import numpy as np

from backend.models import Interpretation, TriggerType
from backend.pipeline.workspace import GenerationPaths

logger = logging.getLogger(__name__)

SAMPLE_RATE = 44100
PEAK_LEVEL = 0.8
CROSSFADE_SECONDS = 0.25

MOOD_PROFILES: Dict[str, dict] = {
    "calm": {"density": 0.7, "brightness": 0.6, "gain": 0.8},
    "dreamy": {"density": 0.8, "brightness": 0.7, "gain": 0.85},
    "cozy": {"density": 0.9, "brightness": 0.5, "gain": 0.9},
    "crisp": {"density": 1.2, "brightness": 1.0, "gain": 1.0},
    "energetic": {"density": 1.5, "brightness": 0.9, "gain": 1.0},
}


@dataclass
class VoiceContext:
    """Parameters shared by every synthesis voice for one run."""
    duration: float
    cycles: int
    sample_rate: int
    density: float
    brightness: float
    rng: np.random.Generator

    @property
    def cycle_seconds(self) -> float:
        return self.duration / self.cycles


def _smooth(signal: np.ndarray, width: int) -> np.ndarray:
    """Moving-average low-pass filter."""
    width = max(1, int(width))
    if width == 1:
        return signal
    return np.convolve(signal, np.ones(width) / width, mode="same")


def _highpass(signal: np.ndarray, width: int) -> np.ndarray:
    return signal - _smooth(signal, width)


def _place(out: np.ndarray, start: int, grain: np.ndarray) -> None:
    """Mix a grain into ``out`` at ``start``, clipping at the buffer edges."""
    if start >= len(out) or start + len(grain) <= 0:
        return
    lo = max(0, start)
    hi = min(len(out), start + len(grain))
    out[lo:hi] += grain[lo - start:hi - start]


def _decay_burst(ctx: VoiceContext, seconds: float, hp_width: int) -> np.ndarray:
    n = max(2, int(seconds * ctx.sample_rate))
    noise = ctx.rng.standard_normal(n)
    envelope = np.exp(-np.linspace(0.0, 6.0, n))
    return _highpass(noise, hp_width) * envelope


def _chirp(ctx: VoiceContext, f0: float, f1: float, seconds: float) -> np.ndarray:
    n = max(2, int(seconds * ctx.sample_rate))
    t = np.arange(n) / ctx.sample_rate
    freq = np.linspace(f0, f1, n)
    phase = 2 * np.pi * np.cumsum(freq) / ctx.sample_rate
    return np.sin(phase) * np.exp(-t * 6.0 / seconds)


def _crunch_voice(t: np.ndarray, ctx: VoiceContext) -> np.ndarray:
    """Granular crunch: dense noise grains while the blade is in the sand."""
    out = 0.04 * _smooth(ctx.rng.standard_normal(len(t)), 12)
    hp_width = 3 if ctx.brightness > 0.8 else 6
    for k in range(ctx.cycles + 1):
        start = (k + 0.25) * ctx.cycle_seconds
        window = 0.5 * ctx.cycle_seconds
        grains = int(220 * ctx.density * window)
        for _ in range(grains):
            u = ctx.rng.random()
            level = math.sin(math.pi * u) * (0.3 + 0.7 * ctx.rng.random())
            burst = _decay_burst(ctx, 0.003 + 0.009 * ctx.rng.random(), hp_width)
            _place(out, int((start + u * window) * ctx.sample_rate), level * burst)
    return out


def _squelch_voice(t: np.ndarray, ctx: VoiceContext) -> np.ndarray:
    """Slime: low wet noise following the stretch, with pops on release."""
    stretch = 0.5 - 0.5 * np.cos(2 * np.pi * ctx.cycles * t / ctx.duration)
    wet = _smooth(ctx.rng.standard_normal(len(t)), 40) * 4.0
    body = np.sin(2 * np.pi * 85.0 * t + 3.0 * np.sin(2 * np.pi * 1.5 * t))
    out = (wet * (0.3 + 0.7 * stretch) + 0.15 * body * stretch) * 0.5
    for k in range(ctx.cycles + 1):
        release = k * ctx.cycle_seconds
        for _ in range(1 + int(3 * ctx.density)):
            at = release + 0.12 * ctx.rng.random()
            pop = _chirp(ctx, 250 + 350 * ctx.rng.random(), 180.0, 0.03)
            _place(out, int(at * ctx.sample_rate), 0.6 * pop)
    return out


def _pour_voice(t: np.ndarray, ctx: VoiceContext) -> np.ndarray:
    """Pouring whoosh with rising bubble chirps."""
    noise = ctx.rng.standard_normal(len(t))
    whoosh = _smooth(noise, 6) - _smooth(noise, 60)
    swell = 0.7 + 0.3 * (0.5 - 0.5 * np.cos(2 * np.pi * ctx.cycles * t / ctx.duration))
    out = whoosh * swell * 0.6
    bubbles = int(6 * ctx.density * ctx.duration)
    for _ in range(bubbles):
        at = ctx.rng.random() * (len(t) / ctx.sample_rate)
        f0 = 300 + 600 * ctx.rng.random()
        pop = _chirp(ctx, f0, f0 * 1.8, 0.04 + 0.05 * ctx.rng.random())
        _place(out, int(at * ctx.sample_rate), (0.3 + 0.5 * ctx.rng.random()) * pop)
    return out


def _scrape_voice(t: np.ndarray, ctx: VoiceContext) -> np.ndarray:
    """Soap: bright scraping strokes with a ridged texture."""
    out = np.zeros(len(t))
    hp_width = 3 if ctx.brightness > 0.8 else 5
    for k in range(ctx.cycles + 1):
        start = (k + 0.1) * ctx.cycle_seconds
        length = 0.8 * ctx.cycle_seconds
        n = int(length * ctx.sample_rate)
        u = np.linspace(0.0, 1.0, n)
        ridges = np.abs(np.sin(2 * np.pi * (40 + 40 * ctx.brightness) * u * length))
        stroke = _highpass(ctx.rng.standard_normal(n), hp_width) * np.sin(np.pi * u) * (0.5 + 0.5 * ridges)
        _place(out, int(start * ctx.sample_rate), stroke)
        _place(out, int(start * ctx.sample_rate), 0.8 * _decay_burst(ctx, 0.01, 2))
    return out


def _drizzle_voice(t: np.ndarray, ctx: VoiceContext) -> np.ndarray:
    """Rain on glass: soft broadband drizzle and droplet ticks."""
    noise = ctx.rng.standard_normal(len(t))
    drizzle = _smooth(noise, 4) * 0.35 + _smooth(noise, 30) * 0.9
    out = drizzle * (0.8 + 0.2 * np.sin(2 * np.pi * ctx.cycles * t / ctx.duration))
    ticks = int(25 * ctx.density * ctx.duration)
    for _ in range(ticks):
        at = ctx.rng.random() * (len(t) / ctx.sample_rate)
        tick = _decay_burst(ctx, 0.002 + 0.003 * ctx.rng.random(), 2)
        _place(out, int(at * ctx.sample_rate), (0.2 + 0.6 * ctx.rng.random()) * tick)
    return out


VOICES: Dict[TriggerType, Callable[[np.ndarray, VoiceContext], np.ndarray]] = {
    TriggerType.KINETIC_SAND: _crunch_voice,
    TriggerType.SLIME_STRETCH: _squelch_voice,
    TriggerType.BUBBLE_POUR: _pour_voice,
    TriggerType.SOAP_CUTTING: _scrape_voice,
    TriggerType.RAIN_GLASS: _drizzle_voice,
}


def loop_crossfade(signal: np.ndarray, length: int) -> np.ndarray:
    """
    Fold the tail past ``length`` back over the head with an equal-power fade.

    The returned buffer ends on ``signal[length - 1]`` and starts on
    ``signal[length]``, so playing it on repeat is sample-continuous.

    Args:
        signal: Rendered audio, longer than ``length``
        length: Number of samples in the loop

    Returns:
        Array of exactly ``length`` samples
    """
    fade = min(len(signal) - length, length)
    if fade <= 0:
        raise ValueError("Signal needs a tail past the loop length to crossfade")
    out = signal[:length].astype(np.float64, copy=True)
    ramp = np.linspace(0.0, 1.0, fade) * (np.pi / 2)
    out[:fade] = signal[:fade] * np.sin(ramp) + signal[length:length + fade] * np.cos(ramp)
    return out


def synthesize_waveform(interpretation: Interpretation, sample_rate: int = SAMPLE_RATE) -> np.ndarray:
    """Synthesize the loop as float samples in [-1, 1]."""
    mood = MOOD_PROFILES.get(interpretation.visual_mood, MOOD_PROFILES["calm"])
    ctx = VoiceContext(
        duration=float(interpretation.duration_seconds),
        cycles=interpretation.motion_cycles,
        sample_rate=sample_rate,
        density=mood["density"],
        brightness=mood["brightness"],
        rng=np.random.default_rng(interpretation.seed),
    )
    length = int(round(interpretation.duration_seconds * sample_rate))
    tail = int(CROSSFADE_SECONDS * sample_rate)
    t = np.arange(length + tail) / sample_rate

    raw = VOICES[interpretation.trigger](t, ctx)
    looped = loop_crossfade(raw, length)
    looped -= looped.mean()
    peak = np.max(np.abs(looped))
    if peak > 0:
        looped = looped / peak * PEAK_LEVEL * mood["gain"]
    return looped


def write_wav(path: Path, samples: np.ndarray, sample_rate: int = SAMPLE_RATE) -> None:
    """Write mono 16-bit PCM."""
    pcm = (np.clip(samples, -1.0, 1.0) * 32767).astype("<i2")
    with wave.open(str(path), "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm.tobytes())


def synthesize_loop_audio(interpretation: Interpretation, paths: GenerationPaths) -> Path:
    """Synthesize the loop audio and write it to ``paths.audio_path``."""
    samples = synthesize_waveform(interpretation)
    paths.audio_path.parent.mkdir(parents=True, exist_ok=True)
    write_wav(paths.audio_path, samples)
    logger.info(
        "Synthesized %.2fs of %s audio into %s",
        len(samples) / SAMPLE_RATE, interpretation.trigger.value, paths.audio_path,
    )
    return paths.audio_path
