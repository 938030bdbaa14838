"""Pitch-class color palettes.

Both palettes map the 12 pitch classes (C=0 .. B=11) to RGB triples in the
0..255 range. The analysis core only ever looks up ``palette[dominant_note]``.
"""

import colorsys

import numpy as np

from synesthete.config import ColorSystem

NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

# Scriabin's "clavier à lumières" key colors
SCRIABIN = np.array(
    [
        (255, 0, 0),  # C   red
        (143, 0, 255),  # C#  violet
        (255, 255, 0),  # D   yellow
        (183, 70, 139),  # D#  steely purple
        (195, 242, 255),  # E   pearly white-blue
        (171, 0, 52),  # F   dark red
        (127, 139, 253),  # F#  bright blue
        (255, 127, 0),  # G   orange
        (187, 117, 252),  # G#  lilac
        (51, 204, 51),  # A   green
        (169, 103, 124),  # A#  rose steel
        (142, 201, 255),  # B   sky blue
    ],
    dtype=np.float64,
)

# Evenly spaced hues, C at red, walking the circle of semitones
RAINBOW = np.array(
    [tuple(c * 255.0 for c in colorsys.hsv_to_rgb(i / 12.0, 1.0, 1.0)) for i in range(12)],
    dtype=np.float64,
)


def get_palette(system: ColorSystem) -> np.ndarray:
    """Return the (12, 3) RGB table for ``system``."""
    if system == ColorSystem.RAINBOW:
        return RAINBOW
    return SCRIABIN
