"""Engine module for Ghoster: timebase, narration and audio cues."""

from .timebase import Timebase, TimerHandle, ManualTimebase, AsyncioTimebase
from .narrator import (
    Narrator,
    NarrationError,
    VoiceProfile,
    DEFAULT_VOICE,
    Pyttsx3Narrator,
    VirtualNarrator,
)
from .cues import CuePlayer, SplitStepSpeed, POWER_UP_LEAD_SECONDS, resolve_speed
from .audio import ToneOutput, clamp

__all__ = [
    'Timebase', 'TimerHandle', 'ManualTimebase', 'AsyncioTimebase',
    'Narrator', 'NarrationError', 'VoiceProfile', 'DEFAULT_VOICE', 'Pyttsx3Narrator', 'VirtualNarrator',
    'CuePlayer', 'SplitStepSpeed', 'POWER_UP_LEAD_SECONDS', 'resolve_speed',
    'ToneOutput', 'clamp',
]
