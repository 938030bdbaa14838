"""
Per-tick snapshot message exchanged between engine -> renderer.

Fields (all required in a snapshot message):
- tick: int
    - Description: Monotonic analysis tick counter.
    - Range: >= 0
- low, lowMid, mid, high: float
    - Description: Smoothed, frequency-weighted band energies.
    - Range: >= 0.0 (unbounded above, scale depends on the source)
- beat: bool
    - Description: True for exactly the one tick a beat fired on.
- beatIntensity: float
    - Description: Strength of the most recent beat.
    - Range: 0.0 .. 3.0
- dominantNote: int
    - Description: Dominant pitch class, C=0 .. B=11.
- intensity: float
    - Description: Global intensity (bands + loudness + beat + section boost).
    - Range: >= 0.0
- highEnergy: bool
    - Description: True while a high-energy section (chorus, drop) is active.

Validation functions are intentionally minimal and cheap (type checks and simple range checks).
They raise on violations so protocol drift is noticed immediately.
"""

NOTES_LEN = 12
BEAT_INTENSITY_MIN = 0.0
BEAT_INTENSITY_MAX = 3.0

_BAND_KEYS = ("low", "lowMid", "mid", "high")
_FLAG_KEYS = ("beat", "highEnergy")
_REQUIRED_KEYS = {"tick", "beatIntensity", "dominantNote", "intensity", *_BAND_KEYS, *_FLAG_KEYS}


def _is_number(x):
    return isinstance(x, (int, float)) and not isinstance(x, bool)


def _is_int(x):
    return isinstance(x, int) and not isinstance(x, bool)


def is_structurally_valid(msg: dict) -> bool:
    """Fast boolean structural check (no exceptions)."""
    if not isinstance(msg, dict) or set(msg.keys()) != _REQUIRED_KEYS:
        return False
    if not _is_int(msg["tick"]) or not _is_int(msg["dominantNote"]):
        return False
    for k in _FLAG_KEYS:
        if not isinstance(msg[k], bool):
            return False
    for k in (*_BAND_KEYS, "beatIntensity", "intensity"):
        if not _is_number(msg[k]):
            return False
    return True


def validate_message_or_raise(msg: dict) -> None:
    """Validate a snapshot message and raise on any structural or range violation.

    Raises:
        TypeError: if a field has the wrong type
        ValueError: if a field's value is out of range, or keys are missing or unexpected
    """
    if not isinstance(msg, dict):
        raise TypeError("protocol: message must be a dict (JSON object)")

    for k in msg.keys():
        if k not in _REQUIRED_KEYS:
            raise ValueError(f"protocol: unexpected key '{k}'")
    missing = _REQUIRED_KEYS - set(msg.keys())
    if missing:
        raise ValueError(f"protocol: missing keys {sorted(missing)}")

    if not _is_int(msg["tick"]):
        raise TypeError("protocol: 'tick' must be an integer")
    if msg["tick"] < 0:
        raise ValueError(f"protocol: 'tick' must be >= 0: {msg['tick']}")

    for k in _BAND_KEYS + ("intensity",):
        if not _is_number(msg[k]):
            raise TypeError(f"protocol: '{k}' must be numeric")
        if float(msg[k]) < 0.0:
            raise ValueError(f"protocol: '{k}' must be >= 0: {msg[k]}")

    for k in _FLAG_KEYS:
        if not isinstance(msg[k], bool):
            raise TypeError(f"protocol: '{k}' must be a boolean")

    bi = msg["beatIntensity"]
    if not _is_number(bi):
        raise TypeError("protocol: 'beatIntensity' must be numeric")
    if not (BEAT_INTENSITY_MIN <= float(bi) <= BEAT_INTENSITY_MAX):
        raise ValueError(
            f"protocol: 'beatIntensity' out of range ({BEAT_INTENSITY_MIN}..{BEAT_INTENSITY_MAX}): {bi}"
        )

    note = msg["dominantNote"]
    if not _is_int(note):
        raise TypeError("protocol: 'dominantNote' must be an integer")
    if not (0 <= note < NOTES_LEN):
        raise ValueError(f"protocol: 'dominantNote' out of range (0..{NOTES_LEN - 1}): {note}")
