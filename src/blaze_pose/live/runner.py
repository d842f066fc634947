"""Live frame loop as an explicit state machine.

State flow:
    STARTING -> WAITING_FOR_CAMERA -> RUNNING -> STOPPED | CANCELLED | FAILED

Each call to step() performs at most one frame of work. Cancellation is a
flag checked between steps and leads to the CANCELLED state; it is never
raised through the pipeline. The pipeline and the frame source are closed
on every exit path of run().
"""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum, auto
from typing import Callable, Optional

import numpy as np

from blaze_pose.inference.pipeline import PosePipeline, PoseResult
from blaze_pose.live.camera import FrameSource

logger = logging.getLogger(__name__)


class RunnerState(Enum):
    STARTING = auto()
    WAITING_FOR_CAMERA = auto()
    RUNNING = auto()
    STOPPED = auto()
    CANCELLED = auto()
    FAILED = auto()


TERMINAL_STATES = frozenset({RunnerState.STOPPED, RunnerState.CANCELLED, RunnerState.FAILED})


class LiveRunner:
    """Drives a PosePipeline from a FrameSource, one new frame at a time."""

    def __init__(
        self,
        pipeline: PosePipeline,
        source: FrameSource,
        camera_timeout: float = 5.0,
        on_result: Optional[Callable[[PoseResult], None]] = None,
        max_frames: Optional[int] = None,
        idle_wait: float = 0.005,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize runner.

        Args:
            pipeline: Pipeline to run on each new frame. Owned by the runner.
            source: Frame source. Owned by the runner.
            camera_timeout: Seconds to wait for the first frame before failing.
            on_result: Called with each frame's PoseResult.
            max_frames: Stop after this many processed frames (None = unbounded).
            idle_wait: Seconds to wait when no new frame is available.
            clock: Monotonic time source.
        """
        self.pipeline = pipeline
        self.source = source
        self.camera_timeout = camera_timeout
        self.on_result = on_result
        self.max_frames = max_frames
        self.idle_wait = idle_wait
        self.clock = clock

        self.state = RunnerState.STARTING
        self.error: Optional[BaseException] = None
        self.frames_processed = 0
        self.frames_idle = 0
        self.last_result: Optional[PoseResult] = None

        self._cancel = threading.Event()
        self._wait_started = 0.0
        self._closed = False

    def cancel(self) -> None:
        """Request shutdown. Thread-safe; takes effect at the next step."""
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES

    def _transition(self, new_state: RunnerState) -> None:
        if new_state != self.state:
            logger.debug("Runner %s -> %s", self.state.name, new_state.name)
            self.state = new_state

    def _process(self, frame: np.ndarray) -> None:
        try:
            result = self.pipeline.process(frame)
        except Exception as e:
            logger.exception("Pipeline failed on frame %d", self.frames_processed)
            self.error = e
            self._transition(RunnerState.FAILED)
            return

        self.frames_processed += 1
        self.last_result = result
        if self.on_result is not None:
            self.on_result(result)

        if self.max_frames is not None and self.frames_processed >= self.max_frames:
            self._transition(RunnerState.STOPPED)

    def _idle(self) -> None:
        self.frames_idle += 1
        self._cancel.wait(self.idle_wait)

    def step(self) -> RunnerState:
        """Advance the state machine by one step."""
        if self.done:
            return self.state
        if self._cancel.is_set():
            self._transition(RunnerState.CANCELLED)
            return self.state

        if self.state is RunnerState.STARTING:
            if not self.source.start():
                logger.error("Frame source failed to start")
                self._transition(RunnerState.FAILED)
            else:
                self._wait_started = self.clock()
                self._transition(RunnerState.WAITING_FOR_CAMERA)

        elif self.state is RunnerState.WAITING_FOR_CAMERA:
            frame = self.source.read()
            if frame is not None:
                logger.info("Camera ready, starting live pose detection")
                self._transition(RunnerState.RUNNING)
                self._process(frame)
            elif self.clock() - self._wait_started > self.camera_timeout:
                logger.error(
                    "Camera did not deliver a frame within %.1f seconds", self.camera_timeout
                )
                self._transition(RunnerState.FAILED)
            else:
                self._idle()

        elif self.state is RunnerState.RUNNING:
            frame = self.source.read()
            if frame is not None:
                self._process(frame)
            elif not self.source.is_open:
                logger.info("Frame source closed after %d frames", self.frames_processed)
                self._transition(RunnerState.STOPPED)
            else:
                self._idle()

        return self.state

    def close(self) -> None:
        """Release the pipeline and the frame source. Idempotent."""
        if self._closed:
            return
        self._closed = True
        try:
            self.pipeline.close()
        finally:
            self.source.close()

    def run(self) -> RunnerState:
        """Step until a terminal state, then release resources."""
        try:
            while not self.done:
                self.step()
        except KeyboardInterrupt:
            self._transition(RunnerState.CANCELLED)
        except Exception as e:
            self.error = e
            self._transition(RunnerState.FAILED)
            raise
        finally:
            self.close()

        logger.info(
            "Runner finished in state %s after %d frames", self.state.name, self.frames_processed
        )
        return self.state
