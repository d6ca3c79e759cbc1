from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from pydantic import ValidationError

from .schemas import StoryPart
from .weaving import WeavingLike, base_key


logger = logging.getLogger(__name__)

SEGMENT_MAX = 100


class StorageError(RuntimeError):
    """Raised by storage handlers when a story part cannot be read or written."""


class StorageHandler(Protocol):
    """
    Where story parts live.

    ``save_story_part(..., increment=True)`` asks the handler to start a new
    revision instead of overwriting the latest one; what that means physically
    is up to the handler.
    """

    async def get_last_story_part(self, weaving_id: WeavingLike) -> Optional[StoryPart]:
        ...

    async def save_story_part(self, weaving_id: WeavingLike, story_part: StoryPart, increment: bool) -> None:
        ...


# -------------------------
# In-memory handler
# -------------------------

class MemoryStorage:
    """Keeps serialized story parts per weaving key in process memory."""

    def __init__(self) -> None:
        self._parts: Dict[str, List[str]] = {}

    async def get_last_story_part(self, weaving_id: WeavingLike) -> Optional[StoryPart]:
        parts = self._parts.get(base_key(weaving_id))
        if not parts:
            return None
        return StoryPart.model_validate_json(parts[-1])

    async def save_story_part(self, weaving_id: WeavingLike, story_part: StoryPart, increment: bool) -> None:
        parts = self._parts.setdefault(base_key(weaving_id), [])
        raw = story_part.model_dump_json()
        if increment or not parts:
            parts.append(raw)
        else:
            parts[-1] = raw

    def revisions(self, weaving_id: WeavingLike) -> List[StoryPart]:
        return [StoryPart.model_validate_json(raw) for raw in self._parts.get(base_key(weaving_id), [])]

    def raw(self, weaving_id: WeavingLike) -> List[str]:
        return list(self._parts.get(base_key(weaving_id), []))


# -------------------------
# JSON file handler
# -------------------------

def _safe_segment(segment: str) -> str:
    """
    Filesystem-safe, one-to-one rendering of a key segment.

    Segments that had to be rewritten get a ``~<hash>`` suffix of the raw text;
    ``~`` never survives cleaning, so rewritten and untouched segments cannot meet.
    """
    cleaned = re.sub(r"[^\w.\-@]+", "_", segment)
    if cleaned in {"", ".", ".."}:
        cleaned = cleaned.replace(".", "_") or "_"
    if cleaned == segment and len(cleaned) <= SEGMENT_MAX:
        return cleaned
    digest = hashlib.sha1(segment.encode("utf-8")).hexdigest()[:12]
    return f"{cleaned[:SEGMENT_MAX]}~{digest}"


def read_json(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8").strip()
    if not text:
        raise ValueError(f"{path.name} is empty.")
    obj = json.loads(text)
    if not isinstance(obj, dict):
        raise ValueError("Story part JSON must be an object.")
    return obj


def atomic_write_json(path: Path, obj: Dict[str, Any]) -> None:
    """Write to a sibling ``.tmp`` file then replace the target."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(obj, ensure_ascii=False, indent=2), encoding="utf-8")
    tmp.replace(path)


class JsonFileStorage:
    """
    One directory per weaving key, one JSON file per story part revision::

        root/<server>/<story>/part_0001.json
        root/<server>/<story>/part_0002.json   # after an increment

    The highest-numbered file is the current part.
    """

    PART_GLOB = "part_*.json"

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def story_dir(self, weaving_id: WeavingLike) -> Path:
        segments = [_safe_segment(s) for s in base_key(weaving_id).split("/")]
        return self.root.joinpath(*segments)

    async def get_last_story_part(self, weaving_id: WeavingLike) -> Optional[StoryPart]:
        return await asyncio.to_thread(self._load_last, weaving_id)

    async def save_story_part(self, weaving_id: WeavingLike, story_part: StoryPart, increment: bool) -> None:
        await asyncio.to_thread(self._save, weaving_id, story_part, increment)

    # -------------------------
    # Internals
    # -------------------------

    def _part_files(self, directory: Path) -> List[Path]:
        if not directory.exists():
            return []
        return sorted(directory.glob(self.PART_GLOB), key=self._part_number)

    @staticmethod
    def _part_number(path: Path) -> int:
        try:
            return int(path.stem.split("_", 1)[1])
        except (IndexError, ValueError):
            return 0

    def _load_last(self, weaving_id: WeavingLike) -> Optional[StoryPart]:
        files = self._part_files(self.story_dir(weaving_id))
        if not files:
            return None
        path = files[-1]
        try:
            data = read_json(path)
            return StoryPart.model_validate(data)
        except (OSError, ValueError, ValidationError) as exc:
            raise StorageError(f"Could not read {path}: {exc}") from exc

    def _save(self, weaving_id: WeavingLike, story_part: StoryPart, increment: bool) -> None:
        directory = self.story_dir(weaving_id)
        try:
            files = self._part_files(directory)
            current = self._part_number(files[-1]) if files else 0
            number = current + 1 if increment or current == 0 else current
            path = directory / f"part_{number:04d}.json"
            atomic_write_json(path, story_part.model_dump(mode="json"))
        except OSError as exc:
            raise StorageError(f"Could not write story part under {directory}: {exc}") from exc
        logger.debug("Wrote %s (increment=%s)", path, increment)


__all__ = [
    "StorageError",
    "StorageHandler",
    "MemoryStorage",
    "JsonFileStorage",
    "read_json",
    "atomic_write_json",
]
