from __future__ import annotations

import concurrent.futures
import time

from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from faceid.config import DETECTION_TIMEOUT_SECONDS
from faceid.errors import DetectionError, DetectionTimeout, MalformedDescriptor
from faceid.face.descriptor import FaceCandidate, build_descriptor
from faceid.face.detector import Detector
from faceid.face.gallery import Gallery
from faceid.face.matcher import EuclideanMatcher, MatcherConfig
from faceid.recognition.scheduler import FrameScheduler, SchedulerConfig, TickOutcome
from faceid.recognition.state import BBox, MatchUpdate, RecognitionConfig, RecognitionStateMachine
from faceid.utils.log import get_logger

logger = get_logger(__name__)

MatchCallback = Callable[[Optional[str], float, Optional[BBox]], None]


@dataclass
class SessionConfig:
    recognition: RecognitionConfig = field(default_factory=RecognitionConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    matcher: MatcherConfig = field(default_factory=MatcherConfig)
    # None/0 calls the detector inline without a bound.
    detection_timeout: Optional[float] = DETECTION_TIMEOUT_SECONDS
    # Reject candidates that lose any component to non-finite filtering.
    strict_descriptors: bool = False


class RecognitionSession:
    """One video session: scheduler -> detector -> descriptor -> matcher -> state.

    The session owns all mutable recognition state. `on_match_update` is
    called with (identity or None, confidence percent, bbox) only when the
    displayed result changes.
    """

    def __init__(
        self,
        detector: Detector,
        gallery: Gallery,
        on_match_update: Optional[MatchCallback] = None,
        config: Optional[SessionConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or SessionConfig()
        self.detector = detector
        self.gallery = gallery
        self.on_match_update = on_match_update
        self.matcher = EuclideanMatcher(self.config.matcher)
        self.state_machine = RecognitionStateMachine(self.config.recognition)
        self.scheduler = FrameScheduler(self.config.scheduler, clock=clock)

        self._executor: Optional[concurrent.futures.ThreadPoolExecutor] = None
        self._pending: Optional[concurrent.futures.Future] = None
        # primary face of the last processed frame; None when no usable face
        self.last_bbox: Optional[BBox] = None

    @property
    def state(self):
        return self.state_machine.state

    def tick(self, frame: Any, now: Optional[float] = None) -> TickOutcome:
        """Offer a frame; runs the pipeline only if the scheduler admits it."""
        return self.scheduler.run(frame, self.process_frame, on_error=self._on_pipeline_error, now=now)

    def process_frame(self, frame: Any) -> Optional[MatchUpdate]:
        """Detect, match and update state for one frame, bypassing the scheduler.

        Raises:
            DetectionError: the detector failed or timed out.
        """
        self.last_bbox = None
        candidates = self._detect(frame)
        if not candidates:
            return self._publish(self.state_machine.clear())

        primary = candidates[0]
        try:
            query = build_descriptor(primary, strict=self.config.strict_descriptors)
        except MalformedDescriptor as e:
            logger.debug(f"主候选人脸不可用: {e}")
            return self._publish(self.state_machine.clear())

        self.last_bbox = primary.bbox
        result = self.matcher.match(query, self.gallery)
        if result is not None:
            logger.debug(
                f"最佳匹配: {result.identity}, 距离: {result.distance:.4f}, 置信度: {result.confidence:.1f}"
            )
        return self._publish(self.state_machine.update(result, bbox=primary.bbox))

    def reset(self) -> None:
        """Back to the initial Unidentified state, e.g. after the camera is reacquired."""
        self.state_machine.reset()
        self.scheduler.reset()
        self.last_bbox = None
        logger.info("识别会话已重置")

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None
        self._pending = None

    def __enter__(self) -> "RecognitionSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _detect(self, frame: Any) -> List[FaceCandidate]:
        timeout = self.config.detection_timeout
        if not timeout:
            try:
                return list(self.detector.estimate_faces(frame) or [])
            except DetectionError:
                raise
            except Exception as e:
                raise DetectionError(f"detector failed: {e}") from e

        if self._pending is not None and not self._pending.done():
            raise DetectionTimeout("previous detector call is still running")
        if self._executor is None:
            self._executor = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="faceid-detector")

        self._pending = self._executor.submit(self.detector.estimate_faces, frame)
        try:
            faces = self._pending.result(timeout=float(timeout))
        except concurrent.futures.TimeoutError as e:
            raise DetectionTimeout(f"detector did not answer within {float(timeout):.2f}s") from e
        except DetectionError:
            raise
        except Exception as e:
            raise DetectionError(f"detector failed: {e}") from e
        return list(faces or [])

    def _on_pipeline_error(self, exc: Exception) -> None:
        self.last_bbox = None
        try:
            self._publish(self.state_machine.clear())
        except Exception as e:
            logger.error(f"识别结果回调失败: {type(e).__name__}: {e}")

    def _publish(self, update: Optional[MatchUpdate]) -> Optional[MatchUpdate]:
        if update is not None and self.on_match_update is not None:
            self.on_match_update(update.identity, update.confidence, update.bbox)
        return update
