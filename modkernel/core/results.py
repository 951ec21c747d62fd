"""Merging of hook results gathered from several modules."""

import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

logger = logging.getLogger(__name__)

Merged = Optional[Union[List[Any], Dict[Any, Any]]]


class ResultKind(Enum):
    EMPTY = "empty"
    LIST = "list"
    MAP = "map"
    OTHER = "other"


def classify(result: Any) -> ResultKind:
    """Tag a single hook result with its kind."""
    if result is None:
        return ResultKind.EMPTY
    if isinstance(result, (list, tuple)):
        return ResultKind.LIST
    if isinstance(result, dict):
        return ResultKind.MAP
    return ResultKind.OTHER


def merge_result(merged: Merged, result: Any, source: str = "?") -> Merged:
    """
    Fold one hook result into the accumulated value.

    The first non-empty result decides the kind of the merge: lists are
    concatenated in call order, dicts are overlaid with later keys winning.
    Results that do not match the established kind are dropped.

    Args:
        merged: Accumulated value so far (None when nothing merged yet)
        result: Result returned by one module
        source: Module key, used in log messages

    Returns:
        The new accumulated value
    """
    kind = classify(result)
    if kind is ResultKind.EMPTY:
        return merged
    if kind is ResultKind.OTHER:
        logger.warning(f"Ignoring non list/dict result from {source}: {type(result).__name__}")
        return merged

    if merged is None:
        merged = [] if kind is ResultKind.LIST else {}

    if kind is ResultKind.LIST and isinstance(merged, list):
        merged.extend(result)
    elif kind is ResultKind.MAP and isinstance(merged, dict):
        merged.update(result)
    else:
        logger.warning(
            f"Result kind mismatch from {source}: got {kind.value}, "
            f"merging as {classify(merged).value}; result dropped"
        )
    return merged


def merge_results(results: Iterable[Any]) -> Merged:
    """Merge a sequence of results; see ``merge_result``."""
    merged: Merged = None
    for result in results:
        merged = merge_result(merged, result)
    return merged
