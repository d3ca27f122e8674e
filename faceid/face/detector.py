from __future__ import annotations

import io

from contextlib import redirect_stderr, redirect_stdout
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Tuple

import numpy as np

from faceid.face.descriptor import FaceCandidate
from faceid.utils.log import get_logger, suppress_fds

logger = get_logger(__name__)

# 进程内模型缓存：同一配置只初始化一次 FaceAnalysis（例如摄像头重连时重建 session）。
_FACEAPP_CACHE: Dict[Tuple, Any] = {}


class Detector(Protocol):
    """Anything that turns a frame into zero or more face candidates."""

    def estimate_faces(self, frame: np.ndarray) -> List[FaceCandidate]:
        ...


def face_to_candidate(face) -> FaceCandidate:
    """Convert an InsightFace `Face` (bbox, kps, det_score) into a FaceCandidate."""
    x1, y1, x2, y2 = [float(v) for v in np.asarray(face.bbox).reshape(-1)[:4]]
    kps = getattr(face, "kps", None)
    landmarks = [] if kps is None else [(float(p[0]), float(p[1])) for p in np.asarray(kps).reshape(-1, 2)]
    score = getattr(face, "det_score", None)
    return FaceCandidate(
        landmarks=landmarks,
        probability=None if score is None else float(score),
        bbox=((x1, y1), (x2, y2)),
    )


@dataclass
class DetectorConfig:
    model_name: str = "buffalo_l"
    det_size: int = 640
    # 'auto'/'cpu'/'gpu'
    device: str = "auto"


class InsightFaceDetector:
    """InsightFace detection-only wrapper.

    Only the detector module of the model pack is loaded; landmarks are the
    five `kps` points and the probability is `det_score`. Candidates are
    returned in descending score order so the first one is the primary face.
    """

    def __init__(self, config: Optional[DetectorConfig] = None):
        self.config = config or DetectorConfig()
        self.ctx_id = -1
        self._app = None
        self._initialize_model()

    def _resolve_device(self) -> str:
        if self.config.device != "auto":
            return self.config.device
        try:
            import torch

            return "gpu" if torch.cuda.is_available() else "cpu"
        except Exception:
            return "cpu"

    def _initialize_model(self) -> None:
        # 懒加载：测试与纯匹配场景不需要 insightface
        from insightface.app import FaceAnalysis

        device = self._resolve_device()
        if device == "gpu":
            providers = ["CUDAExecutionProvider"]
            self.ctx_id = 0
        else:
            providers = ["CPUExecutionProvider"]
            self.ctx_id = -1

        det_size = (int(self.config.det_size), int(self.config.det_size))
        key = (str(self.config.model_name), tuple(providers), int(self.ctx_id), det_size)
        cached = _FACEAPP_CACHE.get(key)
        if cached is not None:
            self._app = cached
            return

        try:
            with suppress_fds():
                app = FaceAnalysis(
                    name=self.config.model_name,
                    providers=providers,
                    allowed_modules=["detection"],
                )
            buf = io.StringIO()
            with redirect_stdout(buf), redirect_stderr(buf):
                app.prepare(ctx_id=self.ctx_id, det_size=det_size)
        except Exception as e:
            logger.error(f"模型初始化失败: {e}")
            raise

        logger.info(f"已加载 InsightFace 检测模型: {self.config.model_name} ({device}, det_size={det_size})")
        _FACEAPP_CACHE[key] = app
        self._app = app

    def estimate_faces(self, frame: np.ndarray) -> List[FaceCandidate]:
        faces = self._app.get(frame) or []
        faces = sorted(faces, key=lambda f: float(getattr(f, "det_score", 0.0) or 0.0), reverse=True)
        return [face_to_candidate(f) for f in faces]
