from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

from faceid.config import CONFIDENCE_QUANTUM, FACE_MATCH_THRESHOLD
from faceid.face.matcher import MatchResult
from faceid.utils.math import quantize

BBox = Tuple[Tuple[float, float], Tuple[float, float]]


@dataclass
class RecognitionConfig:
    # Accept a match only when distance < threshold (smaller = stricter).
    threshold: float = FACE_MATCH_THRESHOLD
    # Confidence is rounded to this step before it is stored and compared.
    # 0 compares raw floats, which re-emits on every bit of landmark noise.
    confidence_quantum: float = CONFIDENCE_QUANTUM


@dataclass
class RecognitionState:
    current_identity: Optional[str] = None
    current_confidence: float = 0.0
    # (None, 0.0) doubles as "nothing emitted yet": the consumer starts blank.
    last_emitted_identity: Optional[str] = None
    last_emitted_confidence: float = 0.0


@dataclass(frozen=True)
class MatchUpdate:
    """What the presentation layer receives when the shown result changes."""

    identity: Optional[str]
    confidence: float
    bbox: Optional[BBox] = field(default=None, compare=False)


class RecognitionStateMachine:
    """Unidentified / Identified(name, confidence) with emission debouncing.

    `update` and `clear` return a MatchUpdate only when (identity, confidence)
    differs from the last emitted pair, otherwise None. Not thread-safe on its
    own; the scheduler guarantees a single writer.
    """

    def __init__(self, config: Optional[RecognitionConfig] = None):
        self.config = config or RecognitionConfig()
        self.state = RecognitionState()

    @property
    def identified(self) -> bool:
        return self.state.current_identity is not None

    def reset(self) -> None:
        self.state = RecognitionState()

    def update(self, result: Optional[MatchResult], bbox: Optional[BBox] = None) -> Optional[MatchUpdate]:
        if result is None or result.distance >= float(self.config.threshold):
            return self._transition(None, 0.0, bbox)
        confidence = quantize(result.confidence, float(self.config.confidence_quantum))
        return self._transition(result.identity, confidence, bbox)

    def clear(self, bbox: Optional[BBox] = None) -> Optional[MatchUpdate]:
        """Force Unidentified (no usable face, or the frame failed)."""
        return self._transition(None, 0.0, bbox)

    def _transition(self, identity: Optional[str], confidence: float, bbox: Optional[BBox]) -> Optional[MatchUpdate]:
        st = self.state
        st.current_identity = identity
        st.current_confidence = float(confidence)

        if identity == st.last_emitted_identity and st.current_confidence == st.last_emitted_confidence:
            return None

        st.last_emitted_identity = identity
        st.last_emitted_confidence = st.current_confidence
        return MatchUpdate(identity=identity, confidence=st.current_confidence, bbox=bbox)
