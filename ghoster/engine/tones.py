from __future__ import annotations

import numpy as np


SAMPLE_RATE = 44100

SHOT_TONE_FREQS_HZ = (800.0, 1200.0)
SHOT_TONE_DURATION_S = 0.15

POWER_UP_STEPS = 8
POWER_UP_RATIO = 1.15
POWER_UP_ATTACK_S = 0.01
POWER_UP_DECAY_S = 0.05
POWER_UP_PEAK = 0.8
POWER_UP_STEP_S = {"Slow": 0.08, "Medium": 0.06, "Fast": 0.04}
PITCH_BASE_HZ = {"low": 220.0, "medium": 440.0, "high": 880.0}


_TONE_CACHE: dict[tuple, np.ndarray] = {}


def _to_int16_stereo(sig: np.ndarray, peak: float) -> np.ndarray:
    peak = float(max(0.0, min(0.95, peak)))
    stereo = np.stack([sig, sig], axis=1) * peak
    return np.clip(stereo * 32767.0, -32768.0, 32767.0).astype(np.int16)


def generate_two_tone_int16_stereo(
    *,
    sample_rate: int = SAMPLE_RATE,
    freqs_hz: tuple[float, float] = SHOT_TONE_FREQS_HZ,
    tone_s: float = SHOT_TONE_DURATION_S,
    peak: float = 0.9,
) -> np.ndarray:
    """Generate the two-tone shot cue as a stereo int16 buffer.

    Two sine tones back to back (low then high), each decaying
    exponentially from full level to -100 dB over its own duration.

    Returns:
        numpy int16 array shaped (n_samples, 2)
    """
    sample_rate = int(max(8000, sample_rate))
    cache_key = ("two_tone", sample_rate, tuple(float(f) for f in freqs_hz), float(tone_s), float(peak))
    cached = _TONE_CACHE.get(cache_key)
    if cached is not None:
        return cached

    n = int(round(tone_s * sample_rate))
    t = np.arange(n, dtype=np.float64) / float(sample_rate)
    # exp(ln(1e-5) * t / T): 1.0 at t=0, 1e-5 at t=T
    env = np.exp(np.log(1e-5) * t / float(tone_s))
    parts = [np.sin(2.0 * np.pi * float(freq) * t) * env for freq in freqs_hz]
    pcm = _to_int16_stereo(np.concatenate(parts), peak)
    _TONE_CACHE[cache_key] = pcm
    return pcm


def generate_power_up_int16_stereo(
    speed: str,
    pitch: str = "medium",
    *,
    sample_rate: int = SAMPLE_RATE,
) -> np.ndarray:
    """Generate the rising split-step "power-up" ramp.

    Eight triangle-wave steps; step ``i`` sounds at ``base * 1.15**i`` with a
    linear attack (10 ms to 0.8) and linear decay (50 ms to silence),
    truncated to the step length for fast ramps.

    Args:
        speed: "Slow", "Medium" or "Fast" (step lengths 80/60/40 ms)
        pitch: "low", "medium" or "high" (base 220/440/880 Hz)
    """
    if speed not in POWER_UP_STEP_S:
        raise ValueError(f"unknown power-up speed {speed!r}")
    step_s = POWER_UP_STEP_S[speed]
    base_hz = PITCH_BASE_HZ.get(pitch, PITCH_BASE_HZ["medium"])
    sample_rate = int(max(8000, sample_rate))

    cache_key = ("power_up", speed, float(base_hz), sample_rate)
    cached = _TONE_CACHE.get(cache_key)
    if cached is not None:
        return cached

    step_n = int(round(step_s * sample_rate))
    t = np.arange(step_n, dtype=np.float64) / float(sample_rate)
    env = np.interp(
        t,
        [0.0, POWER_UP_ATTACK_S, POWER_UP_ATTACK_S + POWER_UP_DECAY_S],
        [0.0, POWER_UP_PEAK, 0.0],
        right=0.0,
    )
    steps = []
    for i in range(POWER_UP_STEPS):
        freq = base_hz * (POWER_UP_RATIO ** i)
        phase = (t * freq) % 1.0
        triangle = 4.0 * np.abs(phase - 0.5) - 1.0
        steps.append(triangle * env)

    # Envelope already carries the 0.8 peak
    pcm = _to_int16_stereo(np.concatenate(steps), 0.95)
    _TONE_CACHE[cache_key] = pcm
    return pcm


def power_up_duration_s(speed: str) -> float:
    """Audible length of the power-up ramp for ``speed``."""
    return POWER_UP_STEPS * POWER_UP_STEP_S[speed]
