import librosa
import numpy as np

from synesthete.config import CHUNK, TARGET_FPS
from synesthete.engine.spectrum import SpectrumFrame, SpectrumSource, analyse_window


class FileSpectrumSource(SpectrumSource):
    def __init__(
        self,
        samples: np.ndarray,
        sample_rate: float,
        buffer_size: int = CHUNK,
        fps: float = TARGET_FPS,
        loop: bool = False,
    ):
        """Steps through a decoded mono signal one tick at a time.

        The read position advances by ``sample_rate / fps`` samples per tick so
        playback time matches wall time at ``fps`` ticks per second. Once the
        signal is exhausted, reads return silent frames (or wrap when ``loop``).
        """
        super().__init__(sample_rate, buffer_size)
        self.samples = np.asarray(samples, dtype=np.float32)
        self.hop = max(1, int(round(self.sample_rate / fps)))
        self.loop = loop
        self.position = 0

    @classmethod
    def from_file(cls, path, buffer_size: int = CHUNK, fps: float = TARGET_FPS, loop: bool = False):
        """Decode ``path`` at its native rate, mixed down to mono."""
        y, sr = librosa.load(path, sr=None, mono=True)
        return cls(y, sr, buffer_size=buffer_size, fps=fps, loop=loop)

    @property
    def finished(self) -> bool:
        return not self.loop and self.position >= len(self.samples)

    def read(self) -> SpectrumFrame:
        if self.position >= len(self.samples):
            if not self.loop or len(self.samples) == 0:
                return self.silent_frame()
            self.position = 0

        chunk = self.samples[self.position : self.position + self.buffer_size]
        if len(chunk) < self.buffer_size:
            chunk = np.pad(chunk, (0, self.buffer_size - len(chunk)))
        self.position += self.hop
        return analyse_window(chunk, self.window)
