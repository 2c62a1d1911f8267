"""
Named formula presets stored in a JSON file.

The file layout is::

    {
      "version": 1,
      "items": [
        {"id": "...", "name": "Multiply",
         "formula": {"expr": "[rb*rs, gb*gs, bb*bs]"}, "createdAt": 1700000000000}
      ]
    }

Every operation reads the file, modifies it and writes it back. A missing or
empty file is initialised with the default presets; a corrupted one is backed
up next to it and replaced with the defaults. Writes are retried until they
succeed.
"""

import json
import logging
import os
import time
import uuid
from typing import Any, Optional

import numpy as np
from attrs import define, field

from formula_blend.constants import PRESET_FILE_NAME, PRESET_FILE_VERSION
from formula_blend.exceptions import (
    InvalidPresetFile,
    PersistenceWriteFailure,
    PresetNotFound,
)
from formula_blend.retry import RetryPolicy, persistence_write_policy

logger = logging.getLogger(__name__)

DEFAULT_PRESETS = (
    ("Normal", "[rs, gs, bs]"),
    ("Multiply", "[rb*rs, gb*gs, bb*bs]"),
    ("Screen", "[rb + rs - rb*rs, gb + gs - gb*gs, bb + bs - bb*bs]"),
    (
        "Overlay",
        "[rb<0.5?2*rb*rs:1-2*(1-rb)*(1-rs), gb<0.5?2*gb*gs:1-2*(1-gb)*(1-gs), "
        "bb<0.5?2*bb*bs:1-2*(1-bb)*(1-bs)]",
    ),
)


def _now() -> int:
    return int(time.time() * 1000)


def make_id() -> str:
    """Time-ordered preset id: base-36 milliseconds and a random suffix."""
    return "%s_%s" % (np.base_repr(_now(), 36).lower(), uuid.uuid4().hex[:8])


@define
class PresetItem:
    """A named formula."""

    name: str
    expr: str
    id: str = field(factory=make_id)
    created_at: int = field(factory=_now)

    @classmethod
    def from_dict(cls, data: dict) -> "PresetItem":
        return cls(
            name=data["name"],
            expr=data["formula"]["expr"],
            id=data.get("id") or make_id(),
            created_at=int(data.get("createdAt") or _now()),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "formula": {"expr": self.expr},
            "createdAt": self.created_at,
        }


def default_items() -> list[PresetItem]:
    return [PresetItem(name, expr) for name, expr in DEFAULT_PRESETS]


def _is_preset_file(data: Any) -> bool:
    return (
        isinstance(data, dict)
        and bool(data.get("version"))
        and isinstance(data.get("items"), list)
    )


def _parse_items(data: dict) -> list[PresetItem]:
    try:
        return [PresetItem.from_dict(item) for item in data["items"]]
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidPresetFile("Invalid preset item: %s" % e)


class PresetStore:
    """
    Read-modify-write store of preset formulas.

    :param path: JSON file path, or a directory holding ``formulas.json``.
    :param policy: Write retry policy, defaults to
        :py:func:`~formula_blend.retry.persistence_write_policy`.
    """

    def __init__(self, path: str, policy: Optional[RetryPolicy] = None) -> None:
        if os.path.isdir(path):
            path = os.path.join(path, PRESET_FILE_NAME)
        self.path = path
        self.policy = policy or persistence_write_policy()

    def _read(self) -> list[PresetItem]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                content = f.read()
        except FileNotFoundError:
            content = ""

        if not content.strip():
            items = default_items()
            self._write(items)
            return items

        try:
            data = json.loads(content)
            if not _is_preset_file(data):
                raise InvalidPresetFile("Missing version or items")
            return _parse_items(data)
        except ValueError as e:
            logger.warning("Corrupted preset file %s: %s", self.path, e)
            self._backup(content)
            items = default_items()
            self._write(items)
            return items

    def _backup(self, content: str) -> None:
        backup = os.path.join(
            os.path.dirname(os.path.abspath(self.path)),
            "formulas_backup_%d.json" % _now(),
        )
        try:
            with open(backup, "x", encoding="utf-8") as f:
                f.write(content)
            logger.info("Backed up preset file to %s", backup)
        except OSError as e:
            logger.warning("Failed to back up preset file: %s", e)

    def _write_once(self, text: str) -> None:
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                f.write(text)
        except OSError as e:
            raise PersistenceWriteFailure(
                "Failed to write %s: %s" % (self.path, e)
            ) from e

    def _write(self, items: list[PresetItem]) -> None:
        self.policy.call(self._write_once, self._dumps(items))

    def _dumps(self, items: list[PresetItem]) -> str:
        data = {
            "version": PRESET_FILE_VERSION,
            "items": [item.to_dict() for item in items],
        }
        return json.dumps(data, indent=2, ensure_ascii=False)

    def load(self) -> list[PresetItem]:
        return self._read()

    def save(self, name: str, expr: str) -> list[PresetItem]:
        """Append a preset and return all presets."""
        items = self._read()
        items.append(PresetItem(name, expr))
        self._write(items)
        return items

    def delete(self, preset_id: str) -> list[PresetItem]:
        """Remove the preset with ``preset_id`` and return the rest."""
        items = [item for item in self._read() if item.id != preset_id]
        self._write(items)
        return items

    def export_text(self) -> str:
        return self._dumps(self._read())

    def import_text(self, text: str) -> list[PresetItem]:
        """
        Merge presets from an exported document.

        Imported presets get fresh ids and timestamps. Presets with the same
        name and formula collapse into one, the imported copy winning.

        :raises InvalidPresetFile: ``text`` is not a preset document.
        """
        try:
            data = json.loads(text)
        except ValueError as e:
            raise InvalidPresetFile("Invalid JSON: %s" % e)
        if not _is_preset_file(data):
            raise InvalidPresetFile("Missing version or items")
        imported = [
            PresetItem(item.name, item.expr) for item in _parse_items(data)
        ]

        merged: dict[tuple[str, str], PresetItem] = {}
        for item in self._read() + imported:
            key = (item.name, item.expr)
            merged[key] = item
        items = list(merged.values())
        self._write(items)
        return items

    def find(self, name: str) -> PresetItem:
        """
        Return the preset called ``name``.

        :raises PresetNotFound: No preset has that name.
        """
        for item in self._read():
            if item.name == name:
                return item
        raise PresetNotFound("No preset named %r in %s" % (name, self.path))
