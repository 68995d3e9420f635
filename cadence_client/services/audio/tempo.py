import re
from typing import Optional

from cadence_client.schemas.render import MAX_TARGET_BPM, MIN_TARGET_BPM

BEAT_MODES = ("step", "stride")

_PACE_RE = re.compile(r"^(\d+):([0-5]\d)$")


def parse_pace(pace: str) -> Optional[int]:
    """'8:00' (분/마일) -> 마일당 초. 형식이 틀리면 None"""
    m = _PACE_RE.match(pace.strip())
    if not m:
        return None
    return int(m.group(1)) * 60 + int(m.group(2))


def _apply_beat_mode(bpm: float, beat_mode: str) -> float:
    if beat_mode not in BEAT_MODES:
        raise ValueError(f"beat_mode must be one of {BEAT_MODES}, got {beat_mode!r}")
    # stride: 한 박에 두 걸음
    return bpm if beat_mode == "step" else bpm / 2


def target_bpm_from_cadence(cadence: float, beat_mode: str = "step") -> float:
    if cadence <= 0:
        raise ValueError(f"cadence must be positive, got {cadence}")
    return _apply_beat_mode(float(cadence), beat_mode)


def target_bpm_from_pace(pace: str, beat_mode: str = "step") -> Optional[float]:
    pace_sec = parse_pace(pace)
    if not pace_sec:
        return None

    min_per_mile = pace_sec / 60
    est = 160 + max(0.0, (10 - min_per_mile) * 6)
    est = min(200.0, max(140.0, est))
    return _apply_beat_mode(est, beat_mode)


def validate_target_bpm(bpm: float) -> float:
    if not (MIN_TARGET_BPM <= bpm <= MAX_TARGET_BPM):
        raise ValueError(f"target_bpm out of range ({MIN_TARGET_BPM:.0f}-{MAX_TARGET_BPM:.0f}): {bpm}")
    return float(bpm)
