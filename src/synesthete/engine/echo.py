import numpy as np

from synesthete.config import ECHO_FRAMES


class EchoMemory:
    def __init__(self, n_bins: int, depth: int = ECHO_FRAMES):
        """Fixed-depth ring buffer of past spectra.

        Slots start zeroed, so lookups further back than the number of stored
        spectra read 0.0 until the ring has been filled once.

        Args:
            n_bins: Number of magnitudes per spectrum.
            depth: Number of spectra kept (the oldest is overwritten).
        """
        self.depth = depth
        self.n_bins = n_bins
        self.frames = np.zeros((depth, n_bins), dtype=np.float64)
        self.cursor = 0  # next slot to write
        self.stored = 0

    def store(self, spectrum) -> None:
        """Copy ``spectrum`` into the oldest slot."""
        self.frames[self.cursor] = spectrum
        self.cursor = (self.cursor + 1) % self.depth
        self.stored = min(self.stored + 1, self.depth)

    def _slot(self, lag: int) -> int:
        # lag 0 is the most recently stored spectrum
        return (self.cursor - 1 - lag) % self.depth

    def get(self, band: int, lag: int) -> float:
        """Magnitude of ``band`` as it was ``lag`` ticks ago (lag taken modulo depth)."""
        return float(self.frames[self._slot(lag), band])

    def frame(self, lag: int) -> np.ndarray:
        """The whole spectrum from ``lag`` ticks ago (read-only view)."""
        view = self.frames[self._slot(lag)].view()
        view.flags.writeable = False
        return view

    def echo_value(self, band: int, decay: float) -> float:
        """Harmonic-decay weighted sum of the past ``depth - 1`` magnitudes of ``band``."""
        return float(sum(self.get(band, j) / (j * decay) for j in range(1, self.depth)))

    def echo_values(self, decay: float, start: int = 0, stop: int | None = None) -> np.ndarray:
        """Vectorised :meth:`echo_value` for every bin in ``[start, stop)``."""
        stop = self.n_bins if stop is None else stop
        total = np.zeros(stop - start, dtype=np.float64)
        for j in range(1, self.depth):
            total += self.frames[self._slot(j), start:stop] / (j * decay)
        return total
