import numpy as np
import pyaudio

from synesthete.config import CHUNK, RATE
from synesthete.engine.spectrum import SpectrumFrame, SpectrumSource, analyse_window
from synesthete.logging_utils import log_event

FORMAT = pyaudio.paFloat32


class LiveSpectrumSource(SpectrumSource):
    def __init__(self, sample_rate: int = RATE, buffer_size: int = CHUNK):
        """Microphone / line-in capture, one FFT window per read."""
        super().__init__(sample_rate, buffer_size)
        self.p = pyaudio.PyAudio()
        self.stream = self.p.open(
            format=FORMAT,
            channels=2,  # stereo, we average below
            rate=int(sample_rate),
            input=True,
            frames_per_buffer=buffer_size,
        )

    def read(self) -> SpectrumFrame:
        """Reads one window and returns its spectrum. Device errors yield a silent frame."""
        try:
            raw_data = self.stream.read(
                self.buffer_size, exception_on_overflow=False
            )  # a dropped frame is better than a delayed frame
        except OSError as e:
            log_event("WARN", "Stream", "Input read failed, sending silence", error=e)
            return self.silent_frame()
        audio_array = np.frombuffer(raw_data, dtype=np.float32)
        mono_signal = (audio_array[0::2] + audio_array[1::2]) / 2.0
        return analyse_window(mono_signal, self.window)

    def close(self) -> None:
        self.stream.stop_stream()
        self.stream.close()
        self.p.terminate()
