"""Ghoster - voice-guided footwork drills (ghosting) with timed audio cues."""

__app_name__ = "Ghoster"
__version__ = "0.1.0"
