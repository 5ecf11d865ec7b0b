"""Structured-data recovery for free-form oracle output.

Oracle responses are supposed to be pure JSON but routinely arrive wrapped in
prose, fenced in markdown, double-escaped or truncated. Each strategy below is
a pure function of the raw text; the cascade tries them in a fixed order and
stops at the first one that produces a non-empty result.
"""

import json
import re
from collections.abc import Sequence
from typing import Any, ClassVar

from formflow.logging.logger import Log
from formflow.recovery.models import RecoveryResult

DEFAULT_ARRAY_KEYS: tuple[str, ...] = ("fields", "data")
DEFAULT_ITEM_KEY = "label"

_BRACKETED_ARRAY = re.compile(r"\[[\s\S]*\]")
_BRACKETED_OBJECT = re.compile(r"\{[\s\S]*\}")
_FENCED_ARRAY = re.compile(r"```[\w-]*\s*(\[[\s\S]*?\])\s*```")
_FENCED_OBJECT = re.compile(r"```[\w-]*\s*(\{[\s\S]*?\})\s*```")


def _loads(candidate: str) -> Any:
    try:
        return json.loads(candidate)
    except (json.JSONDecodeError, ValueError):
        return None


def _non_empty_list(value: Any) -> list[Any] | None:
    if isinstance(value, list) and value:
        return value
    return None


def _non_empty_dict(value: Any) -> dict[str, Any] | None:
    if isinstance(value, dict) and value:
        return value
    return None


def repair_escapes(text: str) -> str:
    """Undo the double escaping oracles apply to JSON they think is a string."""
    return (
        text.replace('\\"', '"')
        .replace("\\\\", "\\")
        .replace("\\n", "")
        .replace("\\t", "")
        .replace("\\r", "")
    )


def scan_bracketed_array(text: str) -> list[Any] | None:
    """Parse the outermost ``[...]`` substring."""
    match = _BRACKETED_ARRAY.search(text)
    if match is None:
        return None
    return _non_empty_list(_loads(match.group(0)))


def scan_keyed_object(text: str, keys: Sequence[str]) -> list[Any] | None:
    """Parse the outermost ``{...}`` and pull the first non-empty array under ``keys``."""
    match = _BRACKETED_OBJECT.search(text)
    if match is None:
        return None
    parsed = _loads(match.group(0))
    if not isinstance(parsed, dict):
        return None
    for key in keys:
        items = _non_empty_list(parsed.get(key))
        if items is not None:
            return items
    return None


def scan_fenced_array(text: str) -> list[Any] | None:
    """Parse an array inside a fenced code block, with or without a language tag."""
    match = _FENCED_ARRAY.search(text)
    if match is None:
        return None
    return _non_empty_list(_loads(match.group(1)))


def scan_loose_keyed_objects(text: str, keys: Sequence[str]) -> list[Any] | None:
    """Try every flat ``{... "key": [...] ...}`` fragment until one parses."""
    for key in keys:
        pattern = re.compile(
            r"\{[^{}]*\"" + re.escape(key) + r"\"[^{}]*\[[^\]]*\][^{}]*\}"
        )
        for match in pattern.finditer(text):
            parsed = _loads(match.group(0))
            if isinstance(parsed, dict):
                items = _non_empty_list(parsed.get(key))
                if items is not None:
                    return items
    return None


def scan_repaired_array(text: str) -> list[Any] | None:
    """Normalize escape sequences, then retry the bracketed-array scan."""
    repaired = repair_escapes(text)
    if repaired == text:
        return None
    return scan_bracketed_array(repaired)


def reconstruct_items(text: str, item_key: str) -> list[Any] | None:
    """Parse individual ``{... "item_key": "..." ...}`` fragments, dropping bad ones."""
    pattern = re.compile(
        r"\{[^{}]*\"" + re.escape(item_key) + r"\"\s*:\s*\"[^\"]*\"[^{}]*\}"
    )
    items: list[Any] = []
    for match in pattern.finditer(text):
        fragment = match.group(0)
        parsed = _loads(fragment)
        if parsed is None:
            parsed = _loads(repair_escapes(fragment))
        if isinstance(parsed, dict):
            items.append(parsed)
    return items or None


def scan_bracketed_object(text: str) -> dict[str, Any] | None:
    match = _BRACKETED_OBJECT.search(text)
    if match is None:
        return None
    return _non_empty_dict(_loads(match.group(0)))


def scan_fenced_object(text: str) -> dict[str, Any] | None:
    match = _FENCED_OBJECT.search(text)
    if match is None:
        return None
    return _non_empty_dict(_loads(match.group(1)))


def scan_repaired_object(text: str) -> dict[str, Any] | None:
    repaired = repair_escapes(text)
    if repaired == text:
        return None
    return scan_bracketed_object(repaired)


class ResponseRecovery:
    """Runs the ordered strategy cascades.

    Strategies are looked up by attribute name at call time so the order is
    declared in one place and each step can be observed independently.
    """

    ARRAY_STRATEGIES: ClassVar[tuple[str, ...]] = (
        "bracketed_array",
        "keyed_object",
        "fenced_array",
        "loose_keyed_objects",
        "repaired_array",
        "reconstructed_items",
    )
    OBJECT_STRATEGIES: ClassVar[tuple[str, ...]] = (
        "bracketed_object",
        "fenced_object",
        "repaired_object",
    )

    def recover_array(
        self,
        raw_text: str | None,
        *,
        keys: Sequence[str] = DEFAULT_ARRAY_KEYS,
        item_key: str = DEFAULT_ITEM_KEY,
        context: str = "",
    ) -> RecoveryResult:
        """Extract a non-empty JSON array from ``raw_text``.

        Never raises: when every strategy fails the result is an empty list
        with ``success`` False.
        """
        if not raw_text or not isinstance(raw_text, str):
            Log.warning(f"Recovery skipped for {context or 'response'}: empty response")
            return RecoveryResult(payload=[], success=False)

        for name in self.ARRAY_STRATEGIES:
            strategy = getattr(self, f"_strategy_{name}")
            items = strategy(raw_text, keys=keys, item_key=item_key)
            if items:
                Log.debug(f"Recovered {len(items)} items for {context or 'response'} via {name}")
                return RecoveryResult(payload=items, success=True, strategy=name)

        Log.error(
            f"All recovery strategies failed for {context or 'response'}; "
            f"response preview: {raw_text[:200]!r}"
        )
        return RecoveryResult(payload=[], success=False)

    def recover_object(self, raw_text: str | None, *, context: str = "") -> RecoveryResult:
        """Extract a non-empty JSON object from ``raw_text``; payload is None on failure."""
        if not raw_text or not isinstance(raw_text, str):
            Log.warning(f"Recovery skipped for {context or 'response'}: empty response")
            return RecoveryResult(payload=None, success=False)

        for name in self.OBJECT_STRATEGIES:
            strategy = getattr(self, f"_strategy_{name}")
            payload = strategy(raw_text)
            if payload:
                return RecoveryResult(payload=payload, success=True, strategy=name)

        Log.error(
            f"Object recovery failed for {context or 'response'}; "
            f"response preview: {raw_text[:200]!r}"
        )
        return RecoveryResult(payload=None, success=False)

    def _strategy_bracketed_array(
        self, text: str, *, keys: Sequence[str], item_key: str
    ) -> list[Any] | None:
        return scan_bracketed_array(text)

    def _strategy_keyed_object(
        self, text: str, *, keys: Sequence[str], item_key: str
    ) -> list[Any] | None:
        return scan_keyed_object(text, keys)

    def _strategy_fenced_array(
        self, text: str, *, keys: Sequence[str], item_key: str
    ) -> list[Any] | None:
        return scan_fenced_array(text)

    def _strategy_loose_keyed_objects(
        self, text: str, *, keys: Sequence[str], item_key: str
    ) -> list[Any] | None:
        return scan_loose_keyed_objects(text, keys)

    def _strategy_repaired_array(
        self, text: str, *, keys: Sequence[str], item_key: str
    ) -> list[Any] | None:
        return scan_repaired_array(text)

    def _strategy_reconstructed_items(
        self, text: str, *, keys: Sequence[str], item_key: str
    ) -> list[Any] | None:
        return reconstruct_items(text, item_key)

    def _strategy_bracketed_object(self, text: str) -> dict[str, Any] | None:
        return scan_bracketed_object(text)

    def _strategy_fenced_object(self, text: str) -> dict[str, Any] | None:
        return scan_fenced_object(text)

    def _strategy_repaired_object(self, text: str) -> dict[str, Any] | None:
        return scan_repaired_object(text)
