# ghoster/engine/audio.py
import logging

import numpy as np
import pygame


def clamp(x, a, b): return max(a, min(b, x))


class ToneOutput:
    """
    Non-blocking playback of synthesized PCM through the pygame mixer.

    - Mixer opened once at 44.1 kHz / 16-bit / stereo / 512-sample buffer
    - Each ``play()`` builds a Sound from the int16 buffer and fires it on a
      free channel; overlapping cues are mixed, never queued
    - If the mixer can't be opened the object stays usable and silent
    """
    def __init__(self, volume: float = 0.8):
        self.logger = logging.getLogger(__name__)
        self.init_ok = False
        self.volume = clamp(volume, 0.0, 1.0)
        self._channels: list = []
        try:
            pygame.mixer.pre_init(44100, -16, 2, 512)
            pygame.mixer.init()
            self.init_ok = True
            self.logger.info("pygame mixer initialized")
        except Exception as e:
            self.logger.error("audio init failed: %s", e)

    # -------- playback -------------------------------------------------------
    def play(self, pcm: np.ndarray) -> bool:
        """Play an int16 (n, 2) buffer. Returns False when nothing was started."""
        if not self.init_ok:
            return False
        try:
            snd = pygame.mixer.Sound(buffer=np.ascontiguousarray(pcm, dtype=np.int16).tobytes())
            snd.set_volume(self.volume)
            chan = snd.play()
        except Exception as e:
            self.logger.warning("tone play error: %s", e)
            return False
        # Drop finished channels so the list doesn't grow over a long workout
        self._channels = [c for c in self._channels if c.get_busy()]
        if chan is not None:
            self._channels.append(chan)
        return True

    def set_volume(self, volume: float):
        self.volume = clamp(volume, 0.0, 1.0)

    def stop(self):
        for chan in self._channels:
            try:
                chan.stop()
            except Exception as e:
                self.logger.debug("channel stop failed: %s", e)
        self._channels = []

    def close(self):
        self.stop()
        if self.init_ok:
            try:
                pygame.mixer.quit()
            except Exception as e:
                self.logger.debug("mixer quit failed: %s", e)
            self.init_ok = False
