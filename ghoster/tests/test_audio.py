"""Unit tests for the pygame tone output."""

import numpy as np
from unittest.mock import MagicMock, patch

from ..engine.audio import ToneOutput, clamp


def test_clamp_basic():
    assert clamp(0.5, 0, 1) == 0.5
    assert clamp(-1, 0, 1) == 0
    assert clamp(2, 0, 1) == 1


@patch("pygame.mixer")
def test_output_init_success(mock_mixer):
    out = ToneOutput()
    assert out.init_ok is True
    mock_mixer.pre_init.assert_called_once_with(44100, -16, 2, 512)


@patch("pygame.mixer")
def test_output_init_failure_stays_silent(mock_mixer):
    mock_mixer.init = MagicMock(side_effect=RuntimeError("no device"))
    out = ToneOutput()
    assert out.init_ok is False
    assert out.play(np.zeros((10, 2), dtype=np.int16)) is False


@patch("pygame.mixer")
def test_play_builds_sound_from_buffer(mock_mixer):
    sound = MagicMock()
    mock_mixer.Sound.return_value = sound
    out = ToneOutput(volume=0.5)
    pcm = np.ones((16, 2), dtype=np.int16)
    assert out.play(pcm) is True
    kwargs = mock_mixer.Sound.call_args.kwargs
    assert kwargs["buffer"] == pcm.tobytes()
    sound.set_volume.assert_called_once_with(0.5)
    sound.play.assert_called_once()


@patch("pygame.mixer")
def test_play_error_is_reported_not_raised(mock_mixer):
    mock_mixer.Sound.side_effect = RuntimeError("bad buffer")
    out = ToneOutput()
    assert out.play(np.zeros((4, 2), dtype=np.int16)) is False


@patch("pygame.mixer")
def test_stop_and_close(mock_mixer):
    channel = MagicMock()
    channel.get_busy.return_value = True
    mock_mixer.Sound.return_value.play.return_value = channel
    out = ToneOutput()
    out.play(np.zeros((4, 2), dtype=np.int16))
    out.stop()
    channel.stop.assert_called_once()
    out.close()
    mock_mixer.quit.assert_called_once()
    assert out.init_ok is False
