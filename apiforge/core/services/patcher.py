"""
Text patcher — literal search/replace on files the generator produced.

All edits are anchored on exact substrings from
``apiforge.core.data.anchors``. Applying the same replacements twice
leaves the file unchanged:

    - an anchor that is no longer present is a no-op
    - a replacement that extends its own anchor (adds a line after it)
      is skipped when the extended text is already there

``.env`` and ``.env.example`` are always edited together so fresh
clones get the same configuration as the working copy.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from apiforge.core.data.anchors import ENV_FILES, MANIFEST_FILE, Replacement
from apiforge.core.errors import FileOperationFailed

logger = logging.getLogger(__name__)


@dataclass
class PatchResult:
    """Outcome of patching one file."""

    path: Path
    status: Literal["applied", "unchanged", "skipped"]
    replaced: int = 0
    reasons: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.status == "applied"


def apply_replacements(content: str, replacements: Iterable[Replacement]) -> tuple[str, int]:
    """Apply literal replacements in order. Returns (content, count applied)."""
    applied = 0
    for search, replace in replacements:
        if search in replace and replace in content:
            continue
        if search not in content:
            continue
        content = content.replace(search, replace)
        applied += 1
    return content, applied


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise FileOperationFailed(path, f"Cannot read file ({e.strerror})") from e


def _write(path: Path, content: str) -> None:
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise FileOperationFailed(path, f"Cannot write file ({e.strerror})") from e


def _missing(path: Path, required: bool) -> PatchResult:
    if required:
        raise FileOperationFailed(path, "Expected file not found")
    logger.debug("Patch skipped, file not found: %s", path)
    return PatchResult(path=path, status="skipped", reasons=["file not found"])


def patch_file(
    path: Path,
    replacements: Iterable[Replacement],
    *,
    required: bool = False,
) -> PatchResult:
    """Apply literal ``(search, replace)`` pairs to one file.

    Args:
        path: File to edit.
        replacements: Ordered pairs; each replaces every occurrence.
        required: Raise ``FileOperationFailed`` instead of skipping
            when the file does not exist.
    """
    if not path.is_file():
        return _missing(path, required)

    original = _read(path)
    content, count = apply_replacements(original, replacements)
    if content == original:
        return PatchResult(path=path, status="unchanged")

    _write(path, content)
    logger.info("Patched %s (%d replacement(s))", path, count)
    return PatchResult(path=path, status="applied", replaced=count)


def regex_edit(
    path: Path,
    edits: Iterable[tuple[str, str]],
    *,
    required: bool = False,
) -> PatchResult:
    """Apply DOTALL regex substitutions to one file.

    Reserved for structural edits that literal anchors cannot express
    (multi-line example blocks in the test configuration). Replacement
    strings are inserted literally.
    """
    if not path.is_file():
        return _missing(path, required)

    original = _read(path)
    content = original
    count = 0
    for pattern, replacement in edits:
        content, n = re.subn(pattern, lambda _m, r=replacement: r, content, flags=re.DOTALL)
        count += n
    if content == original:
        return PatchResult(path=path, status="unchanged")

    _write(path, content)
    logger.info("Rewrote %d block(s) in %s", count, path)
    return PatchResult(path=path, status="applied", replaced=count)


def append_text(path: Path, text: str) -> PatchResult:
    """Append ``text`` unless the file already contains it."""
    if not path.is_file():
        return _missing(path, False)

    original = _read(path)
    if text.strip() and text.strip() in original:
        return PatchResult(path=path, status="unchanged")

    _write(path, original + text)
    return PatchResult(path=path, status="applied", replaced=1)


# ── Environment files ───────────────────────────────────────────


def update_env_files(root: Path, replacements: Iterable[Replacement]) -> list[PatchResult]:
    """Apply the same replacements to ``.env`` and ``.env.example``.

    Either file may be absent; it is skipped without error.
    """
    pairs = list(replacements)
    return [patch_file(root / name, pairs) for name in ENV_FILES]


def append_to_env_files(root: Path, text: str) -> list[PatchResult]:
    """Append ``text`` to ``.env`` and ``.env.example`` (absent files skipped)."""
    return [append_text(root / name, text) for name in ENV_FILES]


# ── Structured manifest (composer.json) ─────────────────────────


def dump_manifest(data: dict[str, Any]) -> str:
    """Serialise a manifest the way composer writes it.

    Four-space indentation, insertion-ordered keys, ``/`` left unescaped.
    """
    return json.dumps(data, indent=4, ensure_ascii=False) + "\n"


def load_manifest(root: Path) -> dict[str, Any]:
    path = root / MANIFEST_FILE
    if not path.is_file():
        raise FileOperationFailed(path, "Manifest not found")
    try:
        data = json.loads(_read(path))
    except json.JSONDecodeError as e:
        raise FileOperationFailed(path, f"Malformed manifest ({e.msg} at line {e.lineno})") from e
    if not isinstance(data, dict):
        raise FileOperationFailed(path, "Manifest is not a JSON object")
    return data


def update_manifest(root: Path, mutate: Callable[[dict[str, Any]], None]) -> dict[str, Any]:
    """Read ``composer.json``, let ``mutate`` edit it in place, write it back."""
    data = load_manifest(root)
    mutate(data)
    _write(root / MANIFEST_FILE, dump_manifest(data))
    logger.debug("Rewrote %s", root / MANIFEST_FILE)
    return data


def add_script(manifest: dict[str, Any], event: str, command: str) -> None:
    """Append ``command`` to ``scripts[event]`` unless already present."""
    scripts = manifest.setdefault("scripts", {})
    entries = scripts.get(event)
    if entries is None:
        entries = []
    elif isinstance(entries, str):
        entries = [entries]
    if command not in entries:
        entries.append(command)
    scripts[event] = entries


def insert_script_after(
    manifest: dict[str, Any],
    event: str,
    anchor: str,
    command: str,
) -> bool:
    """Insert ``command`` right after ``anchor`` in ``scripts[event]``.

    Returns False (and leaves the manifest alone) when the anchor is
    missing. A command already present is not inserted twice.
    """
    entries = manifest.get("scripts", {}).get(event)
    if not isinstance(entries, list) or anchor not in entries:
        return False
    if command not in entries:
        entries.insert(entries.index(anchor) + 1, command)
    return True
