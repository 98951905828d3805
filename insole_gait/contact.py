"""
Contact phase detection
=======================

Two-state machine (swing / stance) over summed insole pressure. A stance
interval opens when the sum reaches the threshold and closes when it drops
below; intervals not longer than the debounce are discarded. A timestamp
that runs backwards abandons any open contact and restarts from that
sample, so a clock jump never yields a negative or shortened step.
"""

import logging

from .config import GaitConfig
from .models import StepEvent

__all__ = ['SWING', 'STANCE', 'ContactPhaseDetector', 'detect_steps']

logger = logging.getLogger(__name__)

SWING = 'swing'
STANCE = 'stance'


class ContactPhaseDetector:
    """Streaming stance detector for one limb's time-ordered samples."""

    def __init__(self, threshold=50.0, min_contact_ms=100.0):
        self.threshold = float(threshold)
        self.min_contact_ms = float(min_contact_ms)
        self.reset()

    @classmethod
    def from_config(cls, config):
        return cls(config.contact_threshold, config.min_contact_ms)

    def reset(self):
        self.in_contact = False
        self.contact_start = 0.0
        self.peak_value = 0.0
        self.peak_time = 0.0
        self.last_time = None

    @property
    def phase(self):
        return STANCE if self.in_contact else SWING

    def update(self, sample):
        """
        Advance the state machine by one sample.

        Returns:
        --------
        StepEvent or None
            The step closed by this sample, if any
        """
        t = sample.timestamp
        if self.last_time is not None and t < self.last_time:
            logger.debug("Clock went back from %s to %s, dropping open contact",
                         self.last_time, t)
            self.in_contact = False
        self.last_time = t
        value = sample.pressure_sum

        if not self.in_contact:
            if value >= self.threshold:
                self.in_contact = True
                self.contact_start = t
                self.peak_value = value
                self.peak_time = t
            return None

        if value >= self.threshold:
            if value > self.peak_value:
                self.peak_value = value
                self.peak_time = t
            return None

        self.in_contact = False
        duration = t - self.contact_start
        if duration > self.min_contact_ms:
            return StepEvent(
                limb=sample.limb,
                start_time=self.contact_start,
                end_time=t,
                peak_time=self.peak_time,
                contact_duration_ms=duration,
                peak_force=self.peak_value,
            )
        return None


def detect_steps(samples, config=None):
    """
    Segment a time-ordered single-limb sample list into StepEvents.

    A fresh detector is used for every call, so the result depends only on
    the samples and the thresholds.
    """
    config = config or GaitConfig()
    detector = ContactPhaseDetector.from_config(config)
    steps = []
    for s in samples:
        step = detector.update(s)
        if step is not None:
            steps.append(step)
    return steps
