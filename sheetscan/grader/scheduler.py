"""
Scheduling Module
Runs the pipeline off the caller's thread, for live preview frames and for
single captured images
"""
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional
import logging

from .image_buffer import BufferScope, RawFrame
from .processor import Feedback, ScanResult, SheetProcessor

logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_INTERVAL = 0.5


class PreviewScheduler:
    """
    Analyzes preview frames on one dedicated worker thread.

    Frames arriving within ``interval`` seconds of the last accepted frame
    are dropped. Only one frame is ever pending: a newer accepted frame
    replaces a pending one that the worker has not picked up yet. Feedback
    is delivered to ``on_feedback`` from the worker thread.
    """

    def __init__(
        self,
        processor: SheetProcessor,
        on_feedback: Callable[[Feedback], None],
        interval: float = DEFAULT_PREVIEW_INTERVAL,
        clock: Callable[[], float] = time.monotonic
    ):
        self.processor = processor
        self.on_feedback = on_feedback
        self.interval = interval
        self._clock = clock

        self._cond = threading.Condition()
        self._pending: Optional[RawFrame] = None
        self._last_accepted: Optional[float] = None
        self._busy = False
        self._closed = False

        self.dropped = 0
        self.processed = 0

        self._thread = threading.Thread(
            target=self._run, name="preview-analyzer", daemon=True
        )
        self._thread.start()

    def submit(self, frame: RawFrame) -> bool:
        """
        Offer a frame for analysis.

        Returns:
            True if the frame was accepted; the scheduler then owns it.
            False if it was dropped by the debounce interval.
        """
        now = self._clock()
        with self._cond:
            if self._closed:
                return False
            if self._last_accepted is not None and now - self._last_accepted < self.interval:
                self.dropped += 1
                return False

            self._last_accepted = now
            if self._pending is not None:
                self._pending.release()
                self.dropped += 1
            self._pending = frame
            self._cond.notify()
            return True

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no frame is pending or being analyzed."""
        with self._cond:
            return self._cond.wait_for(
                lambda: self._pending is None and not self._busy, timeout
            )

    def close(self, timeout: Optional[float] = None) -> None:
        with self._cond:
            self._closed = True
            if self._pending is not None:
                self._pending.release()
                self._pending = None
            self._cond.notify_all()
        self._thread.join(timeout)

    def _run(self) -> None:
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._pending is not None or self._closed)
                if self._closed:
                    return
                frame, self._pending = self._pending, None
                self._busy = True

            try:
                with BufferScope() as scope:
                    scope.track(frame)
                    feedback = self.processor.analyze_frame(frame)
                self.processed += 1
                self.on_feedback(feedback)
            except Exception:
                logger.exception("Preview feedback delivery failed")
            finally:
                with self._cond:
                    self._busy = False
                    self._cond.notify_all()


class CaptureWorker:
    """
    Runs capture-mode analysis in a background worker.

    Each submitted image yields a Future that resolves exactly once to a
    ScanResult. Runs are neither retried nor cancelled once started.
    """

    def __init__(self, processor: SheetProcessor):
        self.processor = processor
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="capture")

    def submit(self, frame: RawFrame, image_name: str = "") -> "Future[ScanResult]":
        return self._executor.submit(self._analyze_owned, frame, image_name)

    def submit_bytes(
        self,
        data: bytes,
        image_name: str = "",
        rotation_degrees: Optional[int] = None
    ) -> "Future[ScanResult]":
        return self._executor.submit(
            self.processor.process_bytes, data, image_name, rotation_degrees
        )

    def _analyze_owned(self, frame: RawFrame, image_name: str) -> ScanResult:
        with BufferScope() as scope:
            scope.track(frame)
            return self.processor.analyze_image(frame, image_name)

    def close(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "CaptureWorker":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False
