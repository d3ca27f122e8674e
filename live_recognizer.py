"""实时人脸识别：摄像头/视频 -> 检测 -> 图库匹配 -> 叠加显示。"""

from __future__ import annotations

import argparse

import cv2

from faceid.config import (
    CONFIDENCE_QUANTUM,
    DETECTION_INTERVAL_SECONDS,
    DETECTION_TIMEOUT_SECONDS,
    FACE_MATCH_THRESHOLD,
)
from faceid.errors import GalleryLoadError
from faceid.face.detector import DetectorConfig, InsightFaceDetector
from faceid.face.gallery import Gallery
from faceid.recognition.scheduler import SchedulerConfig
from faceid.recognition.session import RecognitionSession, SessionConfig
from faceid.recognition.state import RecognitionConfig
from faceid.utils.draw import draw_match_overlay
from faceid.utils.log import get_logger

logger = get_logger(__name__)


def _open_capture(source: str) -> cv2.VideoCapture:
    cap = cv2.VideoCapture(int(source) if source.isdigit() else source)
    if source.isdigit():
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, 640)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, 480)
    return cap


def log_match_update(identity, confidence, bbox):
    if identity is None:
        logger.info("未识别")
    else:
        logger.info(f"识别结果: {identity}, 置信度: {confidence:.1f}%")


def main() -> None:
    parser = argparse.ArgumentParser(description="实时人脸识别：按最近邻描述符匹配图库")
    parser.add_argument("--source", "-s", default="0", help="摄像头编号或视频文件路径（默认 0）")
    parser.add_argument(
        "--gallery", "-g", default="models/student_descriptors.json", help="图库 JSON 文件路径或 http(s) URL"
    )
    parser.add_argument("--threshold", "-t", type=float, default=FACE_MATCH_THRESHOLD, help="匹配距离阈值，越小越严格")
    parser.add_argument("--interval", type=float, default=DETECTION_INTERVAL_SECONDS, help="两次检测的最小间隔（秒）")
    parser.add_argument(
        "--detection-timeout", type=float, default=DETECTION_TIMEOUT_SECONDS, help="单次检测超时（秒），0 表示不限制"
    )
    parser.add_argument(
        "--confidence-quantum", type=float, default=CONFIDENCE_QUANTUM, help="置信度比较粒度，0 表示精确比较"
    )
    parser.add_argument("--strict-descriptors", action="store_true", help="描述符含非有限分量时直接丢弃该人脸")
    parser.add_argument("--det-size", type=int, default=640, help="InsightFace det_size（默认 640）")
    parser.add_argument("--device", type=str, default="auto", choices=["auto", "cpu", "gpu"], help="计算设备")
    parser.add_argument("--no-window", action="store_true", help="不显示窗口，仅输出日志")
    args = parser.parse_args()

    try:
        gallery = Gallery.load(args.gallery)
    except GalleryLoadError as e:
        logger.error(f"加载图库失败: {e}")
        raise SystemExit(1)

    detector = InsightFaceDetector(DetectorConfig(det_size=int(args.det_size), device=str(args.device)))
    config = SessionConfig(
        recognition=RecognitionConfig(threshold=float(args.threshold), confidence_quantum=float(args.confidence_quantum)),
        scheduler=SchedulerConfig(min_interval=float(args.interval)),
        detection_timeout=float(args.detection_timeout) or None,
        strict_descriptors=bool(args.strict_descriptors),
    )

    cap = _open_capture(args.source)
    with RecognitionSession(detector, gallery, on_match_update=log_match_update, config=config) as session:
        try:
            while True:
                ok, frame = cap.read()
                if not ok or frame is None:
                    if not args.source.isdigit():
                        break
                    logger.warning("读取摄像头失败，重新打开")
                    cap.release()
                    cap = _open_capture(args.source)
                    session.reset()
                    continue

                session.tick(frame)

                if args.no_window:
                    continue
                vis = frame.copy()
                # last_bbox is None as soon as the face leaves, even if nothing was emitted
                if session.last_bbox is not None:
                    st = session.state
                    draw_match_overlay(vis, session.last_bbox, st.current_identity, st.current_confidence)
                cv2.imshow("faceid", vis)
                if cv2.waitKey(1) & 0xFF == ord("q"):
                    break
        finally:
            cap.release()
            cv2.destroyAllWindows()


if __name__ == "__main__":
    main()
