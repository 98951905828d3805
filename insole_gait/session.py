"""
Live session processing
=======================

Per-limb streaming state (Madgwick attitude, re-zero offset, axis mapping,
contact detector, step counter) owned by an explicit session object, and a
background dispatcher that hands processed samples to slow consumers
(storage, broadcast) without blocking the sensor path.
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .attitude import MadgwickFilter, apply_offset, zero_offset
from .axis_mapping import AxisMapping, normalize_sample
from .config import GaitConfig
from .contact import ContactPhaseDetector
from .models import LIMBS, Sample, StepEvent
from .quaternion import Quaternion

__all__ = ['ProcessedSample', 'LimbState', 'GaitSession', 'SampleDispatcher']

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessedSample:
    """Live output record, tagged with the input's timestamp/limb/device."""
    timestamp: float
    limb: str
    device_id: str
    session_id: Optional[str]
    quaternion: Quaternion
    yaw: float       # rad
    pitch: float     # rad
    roll: float      # rad
    is_step: bool
    step_count: int
    gait_phase: str  # 'stance' or 'swing'
    sample: Sample
    step: Optional[StepEvent] = None

    def orientation(self):
        return {'yaw': self.yaw, 'pitch': self.pitch, 'roll': self.roll,
                'quaternion': self.quaternion.as_dict()}


class LimbState:
    """
    Streaming state for one limb.

    Mutations go through ``lock`` so calibration calls from another thread
    cannot interleave with a sample update.
    """

    def __init__(self, limb, config=None, mapping=None, offset=None):
        self.limb = limb
        self.config = config or GaitConfig()
        self.lock = threading.RLock()
        self.attitude = MadgwickFilter(self.config.madgwick_beta,
                                       self.config.sample_interval_s,
                                       self.config.max_gap_s)
        self.detector = ContactPhaseDetector.from_config(self.config)
        self.mapping = mapping
        self.offset = offset
        self.step_count = 0
        self.last_timestamp = None

    def reset(self, clear_steps=False):
        """Discard orientation and contact history."""
        with self.lock:
            self.attitude.reset()
            self.detector.reset()
            self.last_timestamp = None
            if clear_steps:
                self.step_count = 0

    def set_axis_mapping(self, mapping):
        """Install a new mapping; accumulated orientation is invalid after a remap."""
        with self.lock:
            self.mapping = mapping
            self.reset()
        logger.info("Axis mapping for %s set to %s", self.limb,
                    mapping.to_dict() if mapping else 'identity')

    def rezero(self):
        """Make the current pose read as identity from now on."""
        with self.lock:
            self.offset = zero_offset(self.attitude.orientation())
            return self.offset

    def clear_offset(self):
        with self.lock:
            self.offset = None

    def orientation(self):
        with self.lock:
            return apply_offset(self.offset, self.attitude.orientation())

    def process(self, sample):
        with self.lock:
            body = normalize_sample(sample, self.mapping)

            dt = None
            if self.last_timestamp is not None:
                dt = (body.timestamp - self.last_timestamp) / 1000.0
            self.last_timestamp = body.timestamp

            self.attitude.update(body.gyro, body.accel, dt)
            q = apply_offset(self.offset, self.attitude.orientation())
            yaw, pitch, roll = q.to_euler()

            step = self.detector.update(body)
            if step is not None:
                self.step_count += 1

            return ProcessedSample(
                timestamp=sample.timestamp,
                limb=sample.limb,
                device_id=sample.device_id,
                session_id=sample.session_id,
                quaternion=q,
                yaw=yaw, pitch=pitch, roll=roll,
                is_step=step is not None,
                step_count=self.step_count,
                gait_phase=self.detector.phase,
                sample=body,
                step=step,
            )


class GaitSession:
    """
    One streaming session: a LimbState per limb plus an optional dispatcher.

    Each limb's state should be driven by the task that owns that limb's
    sample stream; the two limbs share nothing.
    """

    def __init__(self, session_id=None, config=None, dispatcher=None):
        self.session_id = session_id
        self.config = config or GaitConfig()
        self.dispatcher = dispatcher
        self.limbs: Dict[str, LimbState] = {limb: LimbState(limb, self.config) for limb in LIMBS}

    def limb(self, name):
        try:
            return self.limbs[name]
        except KeyError:
            raise ValueError(f"Unknown limb '{name}', expected one of {LIMBS}") from None

    def process_sample(self, sample):
        processed = self.limb(sample.limb).process(sample)
        if self.dispatcher is not None:
            self.dispatcher.submit(processed)
        return processed

    def process_samples(self, samples):
        return [self.process_sample(s) for s in samples]

    def set_axis_mapping(self, limb, mapping: Optional[AxisMapping]):
        self.limb(limb).set_axis_mapping(mapping)

    def rezero(self, limb):
        return self.limb(limb).rezero()

    def calibration_state(self, limb):
        """Mapping and offset in plain-dict form for the configuration store."""
        state = self.limb(limb)
        with state.lock:
            return {
                'mapping': state.mapping.to_dict() if state.mapping else None,
                'offset': state.offset.as_dict() if state.offset else None,
            }

    def restore_calibration(self, limb, data):
        state = self.limb(limb)
        mapping = AxisMapping.from_dict(data['mapping']) if data.get('mapping') else None
        offset = None
        if data.get('offset'):
            o = data['offset']
            offset = Quaternion(o['w'], o['x'], o['y'], o['z']).normalized()
        state.set_axis_mapping(mapping)
        with state.lock:
            state.offset = offset


class SampleDispatcher:
    """
    Fire-and-forget fan-out of processed samples to sinks.

    ``submit`` never blocks: when the bounded queue is full the item is
    dropped and counted. Sinks run on a daemon worker thread; a failing sink
    is logged and does not stop the others.
    """

    def __init__(self, sinks=(), maxsize=1000):
        self._queue = queue.Queue(maxsize=maxsize)
        self._sinks: List[Callable] = list(sinks)
        self._thread = None
        self._running = False
        self.dropped = 0

    def add_sink(self, sink):
        self._sinks.append(sink)

    def start(self):
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(target=self._run, name='sample-dispatcher', daemon=True)
        self._thread.start()

    def stop(self, timeout=2.0):
        """
        Drain what is queued, then stop the worker.

        Waits at most ``timeout`` seconds in total. Returns False when items
        were still undelivered at the deadline (a stuck sink).
        """
        if not self._running:
            return True
        deadline = time.monotonic() + timeout
        drained = self._wait_drained(deadline)
        self._running = False
        if self._thread:
            self._thread.join(max(0.0, deadline - time.monotonic()))
        self._thread = None
        if not drained:
            logger.warning("Dispatcher stopped with %d items undelivered",
                           self._queue.unfinished_tasks)
        return drained

    def submit(self, item):
        try:
            self._queue.put_nowait(item)
            return True
        except queue.Full:
            self.dropped += 1
            if self.dropped == 1 or self.dropped % 100 == 0:
                logger.warning("Dispatcher queue full, %d items dropped", self.dropped)
            return False

    def flush(self, timeout=None):
        """Wait until every submitted item has reached the sinks."""
        if not self._running:
            raise RuntimeError("Dispatcher is not running; call start() before flush()")
        if timeout is None:
            self._queue.join()
            return True
        return self._wait_drained(time.monotonic() + timeout)

    def _wait_drained(self, deadline):
        while self._queue.unfinished_tasks:
            if time.monotonic() >= deadline:
                return False
            time.sleep(0.01)
        return True

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()

    def _run(self):
        while self._running:
            try:
                item = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue
            try:
                for sink in self._sinks:
                    try:
                        sink(item)
                    except Exception:
                        logger.exception("Sink %r failed", sink)
            finally:
                self._queue.task_done()
