"""VERA programmable sound generator: 16 channels of pulse, saw, triangle or noise."""

from dataclasses import dataclass
from enum import IntEnum


class _Waveform(IntEnum):
    PULSE = 0
    SAWTOOTH = 1
    TRIANGLE = 2
    NOISE = 3


_VOLUME = (
    0, 14, 15, 16,
    16, 17, 19, 20, 21, 22, 23, 25, 26, 28, 30, 32,
    33, 35, 38, 40, 42, 45, 47, 50, 53, 57, 60, 64,
    67, 71, 76, 80, 85, 90, 95, 101, 107, 114, 120, 128,
    135, 143, 152, 161, 170, 181, 191, 203, 215, 228, 241, 256,
    271, 287, 304, 322, 341, 362, 383, 406, 430, 456, 483, 512,
)

_NUM_CHANNELS = 16


@dataclass
class _Channel:
    freq: int = 0
    volume: int = 0
    left: bool = False
    right: bool = False
    pulse_width: int = 0
    waveform: int = 0
    noise_value: int = 0
    phase: int = 0

    def waveform_value(self):
        if self.waveform == _Waveform.PULSE:
            return 0 if (self.phase >> 10) > self.pulse_width else 0x3FF
        if self.waveform == _Waveform.SAWTOOTH:
            return self.phase >> 7
        if self.waveform == _Waveform.TRIANGLE:
            if self.phase & 0x10000:
                return ~(self.phase >> 6) & 0x3FF
            return (self.phase >> 6) & 0x3FF
        return self.noise_value


class PSG:
    """The sound generator; render() yields signed stereo frames."""

    def __init__(self):
        self.reset()

    def reset(self):
        self._channels = [_Channel() for _ in range(_NUM_CHANNELS)]
        self._noise_out = 0
        self._noise_state = 1

    def write_register(self, reg, value):
        """Write one of the 64 channel registers (four per channel)."""
        reg &= 0x3F
        channel = self._channels[reg // 4]
        index = reg & 3
        if index == 0:
            channel.freq = (channel.freq & 0xFF00) | value
        elif index == 1:
            channel.freq = (channel.freq & 0x00FF) | (value << 8)
        elif index == 2:
            channel.right = bool(value & 0x80)
            channel.left = bool(value & 0x40)
            channel.volume = _VOLUME[value & 0x3F]
        else:
            channel.pulse_width = value & 0x3F
            channel.waveform = value >> 6

    def _step_noise(self):
        state = self._noise_state
        self._noise_out = ((self._noise_out << 1) | (state & 1)) & 0x3FF
        feedback = ((state >> 1) ^ (state >> 2) ^ (state >> 4) ^ (state >> 15)) & 1
        self._noise_state = ((state << 1) | feedback) & 0xFFFF

    def _frame(self):
        left = 0
        right = 0
        for channel in self._channels:
            # Noise advances once per channel update, as in the hardware.
            self._step_noise()
            if channel.left or channel.right:
                new_phase = (channel.phase + channel.freq) & 0x1FFFF
            else:
                new_phase = 0
            if (channel.phase ^ new_phase) & 0x10000:
                channel.noise_value = self._noise_out
            channel.phase = new_phase

            signed = channel.waveform_value() ^ 0x200
            if signed & 0x200:
                signed -= 0x400
            sample = signed * channel.volume
            if channel.left:
                left += sample
            if channel.right:
                right += sample
        return left, right

    def render(self, num_samples):
        """Produce ``num_samples`` stereo frames as a list of (left, right)."""
        return [self._frame() for _ in range(num_samples)]