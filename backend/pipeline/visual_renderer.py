"""Procedural, loop-perfect frame rendering using Pillow."""
import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

import numpy as np
from PIL import Image, ImageDraw

from backend.models import Interpretation, TriggerType
from backend.pipeline.workspace import GenerationPaths

logger = logging.getLogger(__name__)

FRAME_SIZE = (720, 1280)  # 9:16 vertical
PARTICLE_COUNT = 48
TAU = 2 * math.pi

RGB = Tuple[int, int, int]


@dataclass
class Scene:
    """Static, per-run drawing state derived from an interpretation."""
    width: int
    height: int
    palette: List[RGB]
    cycles: int
    particles: np.ndarray
    background: Image.Image

    @property
    def scale(self) -> float:
        return self.width / FRAME_SIZE[0]


def hex_to_rgb(colour: str) -> RGB:
    value = colour.lstrip("#")
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


def _mix(a: RGB, b: RGB, t: float) -> RGB:
    return tuple(int(round(x + (y - x) * t)) for x, y in zip(a, b))


def _shade(colour: RGB, factor: float) -> RGB:
    return tuple(int(round(c * factor)) for c in colour)


# All motion goes through these helpers. Integer cycle counts make every
# value at phase 1.0 equal to its value at phase 0.0.
def _osc(phase: float, cycles: int, offset: float = 0.0) -> float:
    return math.sin(TAU * (cycles * phase + offset))


def _ease(phase: float, cycles: int, offset: float = 0.0) -> float:
    return 0.5 - 0.5 * math.cos(TAU * (cycles * phase + offset))


def _travel(phase: float, cycles: int, offset: float = 0.0) -> float:
    return (cycles * phase + offset) % 1.0


def _vertical_gradient(size: Tuple[int, int], top: RGB, bottom: RGB) -> Image.Image:
    width, height = size
    ramp = np.linspace(0.0, 1.0, height, dtype=np.float32)[:, None]
    top_arr = np.array(top, dtype=np.float32)
    bottom_arr = np.array(bottom, dtype=np.float32)
    rows = top_arr + (bottom_arr - top_arr) * ramp
    pixels = np.repeat(rows[:, None, :], width, axis=1)
    return Image.fromarray(pixels.round().astype(np.uint8), "RGB")


def build_scene(interpretation: Interpretation, size: Tuple[int, int] = FRAME_SIZE) -> Scene:
    """Precompute palette, background and particle offsets for a run."""
    rng = np.random.default_rng(interpretation.seed)
    palette = [hex_to_rgb(colour) for colour in interpretation.palette]
    background = _vertical_gradient(size, _shade(palette[0], 0.3), _shade(palette[1], 0.15))
    return Scene(
        width=size[0],
        height=size[1],
        palette=palette,
        cycles=interpretation.motion_cycles,
        particles=rng.random((PARTICLE_COUNT, 4)),
        background=background,
    )


def _draw_kinetic_sand(draw: ImageDraw.ImageDraw, scene: Scene, phase: float) -> None:
    w, h, s = scene.width, scene.height, scene.scale
    x0, x1, y0, y1 = 0.18 * w, 0.82 * w, 0.42 * h, 0.78 * h
    layers = scene.palette[1:] + scene.palette[:1]
    band = (y1 - y0) / len(layers)
    for i, colour in enumerate(layers):
        draw.rectangle([x0, y0 + i * band, x1, y0 + (i + 1) * band], fill=colour)

    # Blade descends once per cycle and drifts sideways once per loop
    depth = _ease(phase, scene.cycles)
    blade_x = 0.5 * w + 0.12 * w * _osc(phase, 1)
    blade_tip = y0 - 0.1 * h + depth * (y1 - y0 + 0.1 * h)
    if blade_tip > y0:
        draw.line([blade_x, y0, blade_x, blade_tip], fill=_shade(layers[0], 0.45), width=max(1, int(4 * s)))
    blade_w = 0.035 * w
    draw.rectangle(
        [blade_x - blade_w / 2, blade_tip - 0.32 * h, blade_x + blade_w / 2, blade_tip],
        fill=(214, 220, 228),
        outline=(120, 126, 134),
        width=max(1, int(2 * s)),
    )

    floor = 0.9 * h
    draw.ellipse([0.12 * w, floor - 0.03 * h, 0.88 * w, floor + 0.03 * h], fill=scene.palette[0])
    for i, (u0, u1, u2, u3) in enumerate(scene.particles):
        fall = _travel(phase, scene.cycles, u1)
        side = -1 if u0 < 0.5 else 1
        gx = blade_x + side * (0.02 * w + 0.2 * w * u2 * fall)
        gy = y1 - 0.25 * (y1 - y0) * u3 + fall * (floor - y1)
        r = (3 + 6 * u3) * s * math.sin(math.pi * fall)
        if r >= 0.5:
            draw.ellipse([gx - r, gy - r, gx + r, gy + r], fill=layers[i % len(layers)])


def _draw_slime_stretch(draw: ImageDraw.ImageDraw, scene: Scene, phase: float) -> None:
    w, h, s = scene.width, scene.height, scene.scale
    stretch = _ease(phase, scene.cycles)
    top = 0.32 * h - stretch * 0.14 * h
    bottom = 0.7 * h
    radius = 0.2 * w
    steps = 28
    for k in range(steps):
        u = k / (steps - 1)
        y = top + (bottom - top) * u
        r = radius * (1 - 0.72 * stretch * math.sin(math.pi * u))
        x = 0.5 * w + 0.05 * w * stretch * _osc(phase, scene.cycles, 0.5 * u)
        colour = _mix(scene.palette[1], scene.palette[2 % len(scene.palette)], u)
        draw.ellipse([x - r, y - r, x + r, y + r], fill=colour)

    sheen = 0.5 * w - 0.08 * w + 0.03 * w * _osc(phase, 1)
    draw.ellipse([sheen - 0.04 * w, bottom - 0.1 * h, sheen + 0.02 * w, bottom - 0.06 * h], fill=(245, 250, 252))

    anchor = scene.palette[-1]
    for y in (top - radius * 1.1, bottom + radius * 0.9):
        draw.rounded_rectangle([0.38 * w, y - 0.02 * h, 0.62 * w, y + 0.02 * h], radius=int(12 * s) + 1, fill=anchor)

    for u0, u1, u2, u3 in scene.particles[:16]:
        glow = _ease(phase, 1, u1)
        r = (1.5 + 3 * u2) * s * glow
        if r >= 0.5:
            px, py = 0.3 * w + 0.4 * w * u0, top + (bottom - top) * u3
            draw.ellipse([px - r, py - r, px + r, py + r], fill=_mix(scene.palette[0], (255, 255, 255), glow))


def _draw_bubble_pour(draw: ImageDraw.ImageDraw, scene: Scene, phase: float) -> None:
    w, h, s = scene.width, scene.height, scene.scale
    gx0, gx1, gy0, gy1 = 0.2 * w, 0.8 * w, 0.45 * h, 0.9 * h
    level = 0.56 * h
    liquid = scene.palette[2 % len(scene.palette)]

    wave = [
        (gx0 + (gx1 - gx0) * i / 24, level + 6 * s * math.sin(TAU * (2 * i / 24 + scene.cycles * phase)))
        for i in range(25)
    ]
    draw.polygon(wave + [(gx1, gy1), (gx0, gy1)], fill=liquid)

    stream_x = 0.5 * w + 0.015 * w * _osc(phase, 2 * scene.cycles, 0.25)
    stream_w = 0.035 * w * (1 + 0.25 * _osc(phase, scene.cycles))
    draw.rectangle([stream_x - stream_w / 2, 0.04 * h, stream_x + stream_w / 2, level], fill=_mix(liquid, (255, 255, 255), 0.2))
    splash = 0.05 * w * (1 + 0.3 * _ease(phase, scene.cycles))
    draw.ellipse([stream_x - splash, level - splash * 0.4, stream_x + splash, level + splash * 0.4], fill=_mix(liquid, (255, 255, 255), 0.45))

    ring = scene.palette[-1] if scene.palette[-1] != liquid else (255, 255, 255)
    for u0, u1, u2, u3 in scene.particles:
        rise = _travel(phase, scene.cycles, u1)
        by = gy1 - 0.02 * h - rise * (gy1 - level - 0.02 * h)
        bx = gx0 + 0.05 * w + u0 * (gx1 - gx0 - 0.1 * w) + 0.02 * w * _osc(phase, scene.cycles, u2)
        r = (3 + 11 * u3) * s * math.sin(math.pi * rise)
        if r >= 0.5:
            draw.ellipse([bx - r, by - r, bx + r, by + r], outline=_mix(ring, (255, 255, 255), 0.5), width=max(1, int(2 * s)))

    draw.rectangle([gx0, gy0, gx1, gy1], outline=(230, 240, 245), width=max(1, int(5 * s)))


def _draw_soap_cutting(draw: ImageDraw.ImageDraw, scene: Scene, phase: float) -> None:
    w, h, s = scene.width, scene.height, scene.scale
    x0, x1, y0, y1 = 0.18 * w, 0.82 * w, 0.5 * h, 0.76 * h
    soap = scene.palette[0]
    draw.rounded_rectangle([x0, y0, x1, y1], radius=int(28 * s) + 1, fill=soap)
    grid = _shade(scene.palette[1], 0.85)
    for i in range(1, 6):
        gx = x0 + (x1 - x0) * i / 6
        draw.line([gx, y0 + 0.02 * h, gx, y1 - 0.02 * h], fill=grid, width=max(1, int(3 * s)))

    stroke = _ease(phase, scene.cycles)
    blade_x = x0 - 0.04 * w + stroke * (x1 - x0 + 0.08 * w)
    draw.polygon(
        [(blade_x, y0 - 0.005 * h), (blade_x + 0.12 * w, y0 - 0.09 * h), (blade_x + 0.16 * w, y0 - 0.07 * h), (blade_x + 0.03 * w, y0 + 0.01 * h)],
        fill=(210, 216, 224),
        outline=(110, 116, 124),
    )

    ribbon = scene.palette[2 % len(scene.palette)]
    curl = 30 + 240 * stroke
    for j in range(3):
        r = (0.05 + 0.02 * j) * w
        cx, cy = blade_x - r * 0.6, y0 - r * 0.9
        draw.arc([cx - r, cy - r, cx + r, cy + r], start=90, end=90 + curl, fill=_mix(ribbon, soap, 0.25 * j), width=max(1, int(6 * s)))

    floor = 0.9 * h
    for i, (u0, u1, u2, u3) in enumerate(scene.particles[:24]):
        fall = _travel(phase, scene.cycles, u1)
        fx = x0 + (x1 - x0) * u0
        fy = y1 + fall * (floor - y1)
        r = (4 + 8 * u2) * s * math.sin(math.pi * fall)
        if r >= 1:
            spin = 360 * _travel(phase, scene.cycles, u3)
            draw.arc([fx - r, fy - r, fx + r, fy + r], start=spin, end=spin + 200, fill=scene.palette[(i % (len(scene.palette) - 1)) + 1], width=max(1, int(3 * s)))


def _draw_rain_glass(draw: ImageDraw.ImageDraw, scene: Scene, phase: float) -> None:
    w, h, s = scene.width, scene.height, scene.scale
    bokeh_base = _shade(scene.palette[-1], 0.55)
    for u0, u1, u2, u3 in scene.particles[:12]:
        glow = 0.5 + 0.5 * _ease(phase, 1, u3)
        r = (25 + 45 * u2) * s
        bx, by = u0 * w, u1 * h
        draw.ellipse([bx - r, by - r, bx + r, by + r], fill=_mix(_shade(scene.palette[0], 0.3), bokeh_base, 0.35 * glow))

    drop = _mix(scene.palette[-1], (255, 255, 255), 0.35)
    trail = _mix(scene.palette[-1], scene.palette[0], 0.5)
    for u0, u1, u2, u3 in scene.particles[12:]:
        speed = 1 + int(u2 * 2)
        slide = _travel(phase, speed * scene.cycles, u1)
        dx = u0 * w + 0.01 * w * _osc(phase, scene.cycles, u3)
        dy = -0.06 * h + slide * 1.12 * h
        length = (0.04 + 0.08 * u3) * h
        draw.line([dx, dy - length, dx, dy], fill=trail, width=max(1, int(2 * s)))
        r = (3 + 5 * u3) * s
        draw.ellipse([dx - r, dy - r * 1.3, dx + r, dy + r], fill=drop)

    draw.rectangle([0, 0, w - 1, h - 1], outline=_shade(scene.palette[1], 0.6), width=max(1, int(14 * s)))


DRAW_ROUTINES: Dict[TriggerType, Callable[[ImageDraw.ImageDraw, Scene, float], None]] = {
    TriggerType.KINETIC_SAND: _draw_kinetic_sand,
    TriggerType.SLIME_STRETCH: _draw_slime_stretch,
    TriggerType.BUBBLE_POUR: _draw_bubble_pour,
    TriggerType.SOAP_CUTTING: _draw_soap_cutting,
    TriggerType.RAIN_GLASS: _draw_rain_glass,
}


def render_frame(interpretation: Interpretation, index: int, scene: Scene) -> Image.Image:
    """
    Render one frame of the loop.

    The frame is a function of ``index / frame_count`` only, so index
    ``frame_count`` draws the same picture as index 0.

    Args:
        interpretation: Generation plan selecting the draw routine
        index: Frame index; values past the end wrap around the loop
        scene: Static scene built by :func:`build_scene`

    Returns:
        RGB Pillow image of the scene size
    """
    phase = index / interpretation.frame_count
    image = scene.background.copy()
    draw = ImageDraw.Draw(image)
    DRAW_ROUTINES[interpretation.trigger](draw, scene, phase)
    return image


def frame_delta(a: Image.Image, b: Image.Image) -> float:
    """Mean absolute per-channel difference between two frames (0-255)."""
    first = np.asarray(a, dtype=np.int16)
    second = np.asarray(b, dtype=np.int16)
    return float(np.abs(first - second).mean())


def render_visual_loop(
    interpretation: Interpretation,
    paths: GenerationPaths,
    size: Tuple[int, int] = FRAME_SIZE,
) -> int:
    """
    Write every frame of the loop as a numbered PNG.

    Any write failure propagates; a partially written sequence is never valid.

    Returns:
        Number of frames written
    """
    count = interpretation.frame_count
    scene = build_scene(interpretation, size)
    paths.frames_dir.mkdir(parents=True, exist_ok=True)

    logger.info(
        "Rendering %d frames (%s, %dx%d) into %s",
        count, interpretation.trigger.value, size[0], size[1], paths.frames_dir,
    )
    for index in range(count):
        frame = render_frame(interpretation, index, scene)
        frame.save(paths.frame_path(index), "PNG", compress_level=1)

    return count
