"""Frame pacing: keeps emulated time in step with wall-clock time."""

import sys
import time

WINDOW_TITLE = "Commander X16"
VERSION = "44"
VERSION_NAME = "Milan"

if sys.platform == "darwin":
    MOUSE_GRAB_MSG = " (\u21e7\u2318M to end mouse/keyboard capture)"
else:
    MOUSE_GRAB_MSG = " (Ctrl+M to end mouse/keyboard capture)"

_U32 = 0xFFFFFFFF
_PERF_INTERVAL_MS = 5000


def _ticks_ms():
    return int(time.monotonic() * 1000) & _U32


def window_title(percent=None, mouse_grabbed=False):
    """Build the window title, with a speed percentage when one is given."""
    title = WINDOW_TITLE
    if percent is not None:
        title += f" ({percent}%)"
    if mouse_grabbed:
        title += MOUSE_GRAB_MSG
    return title


class Timing:
    """Throttles the emulation to real time and reports its speed.

    ``clock`` returns milliseconds, ``sleep`` takes seconds, ``set_title``
    receives the new window title and ``log`` receives speed messages.
    """

    def __init__(self, mhz=8, clock=None, sleep=None, set_title=None, log=None):
        self.mhz = mhz
        self._clock = clock if clock is not None else _ticks_ms
        self._sleep = sleep if sleep is not None else time.sleep
        self._set_title = set_title
        self._log = log if log is not None else print
        self.title = WINDOW_TITLE
        self.reset(0)

    def reset(self, clockticks):
        """Start measuring from now and from the CPU cycle count ``clockticks``."""
        self.frames = 0
        self._base = self._clock()
        self._last_perf_update = 0
        self._last_perf_cpu_ticks = 0
        self._clockticks_old = clockticks & _U32
        self.cpu_ticks = 0

    def update(self, clockticks, warp_mode=False, mouse_grabbed=False, log_speed=False):
        """Account for one frame; sleep if the emulation runs ahead.

        Returns how many microseconds the emulation was ahead of real time
        (negative when it is behind).
        """
        self.frames += 1
        clockticks &= _U32
        self.cpu_ticks += (clockticks - self._clockticks_old) & _U32
        self._clockticks_old = clockticks
        ticks = (self._clock() - self._base) & _U32
        diff_time = self.cpu_ticks // self.mhz - ticks * 1000
        if not warp_mode and diff_time > 0:
            self._sleep(diff_time / 1_000_000)

        if (ticks - self._last_perf_update) & _U32 > _PERF_INTERVAL_MS:
            perf = ((self.cpu_ticks - self._last_perf_cpu_ticks)
                    // (self.mhz * 50000)) & _U32
            shown = perf if perf < 100 or warp_mode else None
            self.title = window_title(shown, mouse_grabbed)
            if self._set_title is not None:
                self._set_title(self.title)
            self._last_perf_cpu_ticks = self.cpu_ticks
            self._last_perf_update = ticks

        if log_speed:
            frames_behind = -(diff_time * 6e-5)
            load = int((1 + frames_behind) * 100)
            self._log(f"Load: {min(load, 100)}%")
            if int(frames_behind) > 0:
                self._log(f"Rendering is behind {-int(frames_behind)} frames.")

        return diff_time