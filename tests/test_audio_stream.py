"""Unit tests for the PyAudio input adapter. No audio hardware is touched."""

from unittest.mock import MagicMock, patch

import numpy as np
import pytest

pyaudio = pytest.importorskip("pyaudio")

from spectrum_analyzer.audio_stream import AudioInputStream  # noqa: E402
from spectrum_analyzer.errors import DeviceError  # noqa: E402


def device_info(index=0, name="Mock Microphone", channels=2, rate=48000.0):
    return {
        "index": index,
        "name": name,
        "maxInputChannels": channels,
        "maxOutputChannels": 0,
        "defaultSampleRate": rate,
    }


@pytest.fixture
def mock_pyaudio():
    with patch("spectrum_analyzer.audio_stream.pyaudio.PyAudio") as factory:
        host = MagicMock()
        host.get_default_input_device_info.return_value = device_info()
        host.get_device_info_by_index.side_effect = lambda k: device_info(index=k, name=f"dev{k}")
        host.get_device_count.return_value = 3
        factory.return_value = host
        yield host


class TestOpen:
    def test_uses_default_device_parameters(self, mock_pyaudio):
        ais = AudioInputStream(MagicMock(), CHUNK=512)
        assert ais.get_params() == {"RATE": 48000, "CHUNK": 512, "CHANNELS": 2}
        assert ais.input_device_name == "Mock Microphone"

        kwargs = mock_pyaudio.open.call_args.kwargs
        assert kwargs["format"] == pyaudio.paFloat32
        assert kwargs["channels"] == 2
        assert kwargs["rate"] == 48000
        assert kwargs["frames_per_buffer"] == 512
        assert kwargs["input"] is True
        assert kwargs["stream_callback"] == ais._callback
        mock_pyaudio.open.return_value.start_stream.assert_called_once()

    def test_explicit_device_index(self, mock_pyaudio):
        ais = AudioInputStream(MagicMock(), input_device_index=2)
        assert ais.input_device_index == 2
        assert ais.input_device_name == "dev2"

    def test_no_default_device(self, mock_pyaudio):
        mock_pyaudio.get_default_input_device_info.side_effect = IOError("No Default Input Device Available")
        with pytest.raises(DeviceError):
            AudioInputStream(MagicMock())
        mock_pyaudio.terminate.assert_called_once()

    def test_device_without_input_channels(self, mock_pyaudio):
        mock_pyaudio.get_default_input_device_info.return_value = device_info(channels=0)
        with pytest.raises(DeviceError):
            AudioInputStream(MagicMock())

    def test_stream_open_failure(self, mock_pyaudio):
        mock_pyaudio.open.side_effect = OSError("Invalid sample rate")
        with pytest.raises(DeviceError):
            AudioInputStream(MagicMock())
        mock_pyaudio.terminate.assert_called_once()

    def test_close_releases_stream_and_host(self, mock_pyaudio):
        stream = mock_pyaudio.open.return_value
        stream.is_active.return_value = True
        with AudioInputStream(MagicMock()):
            pass
        stream.stop_stream.assert_called_once()
        stream.close.assert_called_once()
        mock_pyaudio.terminate.assert_called_once()


class TestCallback:
    def test_delivers_float32_copy(self, mock_pyaudio):
        on_frame = MagicMock()
        ais = AudioInputStream(on_frame)
        raw = np.array([0.5, -0.5, 0.25, -0.25], dtype=np.float32)

        result = ais._callback(raw.tobytes(), 2, {}, 0)

        assert result == (None, pyaudio.paContinue)
        frame = on_frame.call_args.args[0]
        assert frame.dtype == np.float32
        np.testing.assert_array_equal(frame, raw)
        assert frame.flags.writeable

    def test_callback_records_status_without_logging(self, mock_pyaudio, caplog):
        ais = AudioInputStream(MagicMock())
        data = np.zeros(4, dtype=np.float32).tobytes()
        caplog.clear()
        with caplog.at_level("DEBUG"):
            ais._callback(data, 2, {}, pyaudio.paInputOverflow)
            ais._callback(data, 2, {}, pyaudio.paInputUnderflow)
            ais._callback(data, 2, {}, 0)
        assert caplog.records == []
        assert ais.callbacks == 3
        assert ais.status_events == 2

    def test_log_status_reports_and_clears(self, mock_pyaudio, caplog):
        ais = AudioInputStream(MagicMock())
        data = np.zeros(4, dtype=np.float32).tobytes()
        ais._callback(data, 2, {}, pyaudio.paInputOverflow)
        ais._callback(data, 2, {}, pyaudio.paInputOverflow)
        with caplog.at_level("WARNING"):
            assert ais.log_status() == pyaudio.paInputOverflow
            assert ais.log_status() == 0
        warnings = [r for r in caplog.records if "input overflow" in r.message]
        assert len(warnings) == 1

    def test_is_active_follows_stream(self, mock_pyaudio):
        stream = mock_pyaudio.open.return_value
        ais = AudioInputStream(MagicMock())
        stream.is_active.return_value = True
        assert ais.is_active() is True
        stream.is_active.return_value = False
        assert ais.is_active() is False
        ais.close()
        assert ais.is_active() is False


def test_list_input_devices_filters_outputs(mock_pyaudio):
    mock_pyaudio.get_device_info_by_index.side_effect = [
        device_info(index=0, channels=2),
        device_info(index=1, channels=0),
        device_info(index=2, channels=1),
    ]
    devices = AudioInputStream.list_input_devices()
    assert [d["index"] for d in devices] == [0, 2]
    mock_pyaudio.terminate.assert_called_once()
