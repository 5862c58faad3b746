"""Transform engine surface and the per-image editing session built on it."""

import dataclasses
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from snapedit.config import config
from snapedit.errors import ErrorKind, TransformError
from snapedit.history import HistoryStack
from snapedit.imaging.transforms import apply_request
from snapedit.imaging.verifier import run_verified
from snapedit.models import ImageBuffer, RotateRequest

log = logging.getLogger(__name__)


def _label_of(request) -> str:
    return getattr(request, "label", type(request).__name__)


@dataclasses.dataclass(frozen=True)
class TransformOutcome:
    """Either a new image or the typed error that prevented it."""
    image: Optional[ImageBuffer] = None
    error: Optional[TransformError] = None

    @classmethod
    def success(cls, image: ImageBuffer) -> "TransformOutcome":
        return cls(image=image)

    @classmethod
    def failure(cls, error: TransformError) -> "TransformOutcome":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error is not None else None

    def unwrap(self) -> ImageBuffer:
        if self.error is not None:
            raise self.error
        return self.image


class TransformEngine:
    """Runs transform requests, optionally behind the immutability guard.

    `execute` raises, `apply` returns a TransformOutcome, `submit` runs `apply`
    on the worker pool. ImmutabilityViolation is never turned into an outcome.
    """

    def __init__(self, max_workers: Optional[int] = None, verify: Optional[bool] = None):
        if max_workers is None:
            max_workers = config.getint("core", "worker_threads", fallback=2)
        if verify is None:
            verify = config.getboolean("core", "verify_immutability", fallback=True)
        self.verify = verify
        self.executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers),
            thread_name_prefix="TransformEngine"
        )
        self._closed = False

    def execute(self, image: ImageBuffer, request) -> ImageBuffer:
        if self.verify:
            return run_verified(_label_of(request), apply_request, image, request)
        return apply_request(image, request)

    def apply(self, image: ImageBuffer, request) -> TransformOutcome:
        try:
            result = self.execute(image, request)
        except TransformError as e:
            log.warning(f"{_label_of(request)} failed on {image.describe()}: [{e.kind.name}] {e}")
            return TransformOutcome.failure(e)
        log.info(f"{_label_of(request)}: {image.describe()} -> {result.describe()}")
        return TransformOutcome.success(result)

    def submit(self, image: ImageBuffer, request) -> "Future[TransformOutcome]":
        return self.run_in_pool(self.apply, image, request)

    def run_in_pool(self, fn: Callable, *args) -> Future:
        if self._closed:
            raise RuntimeError("TransformEngine has been shut down")
        return self.executor.submit(fn, *args)

    def shutdown(self, wait: bool = True):
        if self._closed:
            return
        self._closed = True
        self.executor.shutdown(wait=wait)
        log.debug("TransformEngine shut down")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()
        return False


class EditSession:
    """Edits of one open image: current snapshot, history and the single in-flight call."""

    def __init__(self, engine: Optional[TransformEngine] = None):
        self.engine = engine or TransformEngine()
        self.history = HistoryStack()
        self.generation = 0
        self._pending: Optional[Future] = None
        self._lock = threading.RLock()

    def open(self, image: ImageBuffer, label: str = "Open"):
        """Starts a fresh history for `image`. In-flight results for the old image are dropped."""
        with self._lock:
            self.generation += 1
            self._pending = None
            self.history.reset()
            self.history.add_edit(image, label)
        log.info(f"Opened {image.describe()} (generation {self.generation})")

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._pending is not None and not self._pending.done()

    def current(self) -> Optional[ImageBuffer]:
        return self.history.current()

    def _require_image(self) -> ImageBuffer:
        image = self.current()
        if image is None:
            raise RuntimeError("No image is open")
        return image

    def apply(self, request) -> TransformOutcome:
        with self._lock:
            if self.busy:
                raise RuntimeError("An edit is already in progress")
            image = self._require_image()
            outcome = self.engine.apply(image, request)
            if outcome.ok:
                self.history.add_edit(outcome.image, _label_of(request))
            return outcome

    def submit(self, request) -> "Future[TransformOutcome]":
        """Runs the request on the engine pool; the result is recorded before the future resolves."""
        with self._lock:
            if self.busy:
                raise RuntimeError("An edit is already in progress")
            image = self._require_image()
            future = self.engine.run_in_pool(self._run, image, request, self.generation)
            self._pending = future
            return future

    def _run(self, image: ImageBuffer, request, generation: int) -> TransformOutcome:
        try:
            outcome = self.engine.apply(image, request)
        except BaseException:
            with self._lock:
                if generation == self.generation:
                    self._pending = None
            raise
        with self._lock:
            if generation != self.generation:
                log.debug(f"Discarding stale {_label_of(request)} result (gen {generation} != {self.generation})")
                return outcome
            self._pending = None
            if outcome.ok:
                self.history.add_edit(outcome.image, _label_of(request))
        return outcome

    def undo(self) -> Optional[ImageBuffer]:
        # The pending result was computed from the current entry; moving the pointer would orphan it
        with self._lock:
            if self.busy:
                raise RuntimeError("Cannot undo while an edit is in progress")
            return self.history.undo()

    def redo(self) -> Optional[ImageBuffer]:
        with self._lock:
            if self.busy:
                raise RuntimeError("Cannot redo while an edit is in progress")
            return self.history.redo()

    def can_undo(self) -> bool:
        with self._lock:
            return not self.busy and self.history.can_undo()

    def can_redo(self) -> bool:
        with self._lock:
            return not self.busy and self.history.can_redo()

    def rotate_clockwise(self) -> TransformOutcome:
        return self.apply(RotateRequest(clockwise=True))

    def rotate_counterclockwise(self) -> TransformOutcome:
        return self.apply(RotateRequest(clockwise=False))
