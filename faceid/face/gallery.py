from __future__ import annotations

import json

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, List, Union

import numpy as np
import requests

from faceid.config import GALLERY_HTTP_TIMEOUT
from faceid.errors import GalleryLoadError
from faceid.utils.log import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class GalleryEntry:
    identity: str
    descriptor: np.ndarray = field(compare=False, repr=False)

    def to_record(self) -> dict:
        return {"name": self.identity, "descriptor": [float(x) for x in self.descriptor]}


def _is_url(source) -> bool:
    return isinstance(source, str) and source.lower().startswith(("http://", "https://"))


def _parse_descriptor(name: str, values, index: int) -> np.ndarray:
    if not isinstance(values, list):
        raise GalleryLoadError(f"record {index} ({name}): descriptor must be a list")
    # JSON has no NaN, so enrollment tools write null in its place.
    numeric = [v for v in values if isinstance(v, (int, float)) and not isinstance(v, bool)]
    try:
        arr = np.asarray(numeric, dtype=np.float64)
    except (OverflowError, ValueError, TypeError) as e:
        raise GalleryLoadError(f"record {index} ({name}): descriptor is not representable as floats: {e}") from e
    arr = arr[np.isfinite(arr)]
    if arr.size == 0:
        raise GalleryLoadError(f"record {index} ({name}): descriptor has no finite components")
    if arr.size != len(values):
        logger.warning(f"图库条目 {name}: 丢弃 {len(values) - arr.size} 个非有限分量")
    arr.setflags(write=False)
    return arr


def parse_records(data) -> List[GalleryEntry]:
    """Validate decoded `{name, descriptor}[]` JSON and build entries in file order."""
    if not isinstance(data, list):
        raise GalleryLoadError(f"gallery must be a JSON array, got {type(data).__name__}")

    entries: List[GalleryEntry] = []
    for i, rec in enumerate(data):
        if not isinstance(rec, dict):
            raise GalleryLoadError(f"record {i} is not an object")
        name = rec.get("name")
        if not isinstance(name, str) or not name.strip():
            raise GalleryLoadError(f"record {i}: name must be a non-empty string")
        entries.append(GalleryEntry(identity=name, descriptor=_parse_descriptor(name, rec.get("descriptor"), i)))
    return entries


class Gallery:
    """Read-only set of enrolled (identity, descriptor) pairs.

    Loaded once before a session starts. Order is preserved from the source,
    which makes tie-breaking in the matcher deterministic. Duplicate names
    are kept as-is.
    """

    def __init__(self, entries: Iterable[GalleryEntry] = ()):
        self._entries = tuple(entries)

    @property
    def entries(self) -> tuple:
        return self._entries

    @property
    def identities(self) -> List[str]:
        return [e.identity for e in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[GalleryEntry]:
        return iter(self._entries)

    @classmethod
    def from_records(cls, records) -> "Gallery":
        return cls(parse_records(records))

    @classmethod
    def load(cls, source: Union[str, Path], timeout: float = GALLERY_HTTP_TIMEOUT) -> "Gallery":
        """Load a gallery from a JSON file path or an http(s) URL.

        An empty array is a valid (always-unidentified) gallery.

        Raises:
            GalleryLoadError: the source cannot be read or is malformed.
        """
        if _is_url(source):
            try:
                resp = requests.get(str(source), timeout=timeout)
                resp.raise_for_status()
                data = resp.json()
            except requests.RequestException as e:
                raise GalleryLoadError(f"cannot fetch gallery from {source}: {e}") from e
            except ValueError as e:
                raise GalleryLoadError(f"gallery at {source} is not valid JSON: {e}") from e
        else:
            fp = Path(source)
            try:
                with open(fp, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except OSError as e:
                raise GalleryLoadError(f"cannot read gallery file {fp}: {e}") from e
            except ValueError as e:
                raise GalleryLoadError(f"gallery file {fp} is not valid JSON: {e}") from e

        gallery = cls.from_records(data)
        if len(gallery) == 0:
            logger.warning(f"图库为空: {source}，所有人脸都将显示为未识别")
        else:
            logger.info(f"已加载图库: {source}, {len(gallery)} 条")
        return gallery

    def save(self, path: Union[str, Path]) -> Path:
        fp = Path(path)
        fp.parent.mkdir(parents=True, exist_ok=True)
        with open(fp, "w", encoding="utf-8") as f:
            json.dump([e.to_record() for e in self._entries], f, ensure_ascii=False, indent=2)
        return fp
