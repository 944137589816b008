"""Structural warnings raised while building or traversing a flowline network"""

import logging
import warnings
from collections.abc import Iterable

from hydrofabric_network.schemas.network import (
    CyclePolicy,
    MissingWeightPolicy,
    NetworkConfig,
    NetworkDiagnostics,
)

logger = logging.getLogger(__name__)

MAX_REPORTED_IDS = 10


class NetworkWarning(UserWarning):
    """Base class for non-fatal structural problems in a flowline network"""


class DanglingReferenceWarning(NetworkWarning):
    """A toID does not match any ID in the table"""


class CycleWarning(NetworkWarning):
    """A self-loop or a longer cycle exists in the toID links"""


class DuplicateIdWarning(NetworkWarning):
    """More than one row claims the same ID"""


class MissingWeightWarning(NetworkWarning):
    """A weight (area or length) is missing"""


class UnresolvedOutletWarning(NetworkWarning):
    """A terminal was reached that is not in the known outlet set"""


def _sample(ids: Iterable[int | float]) -> str:
    """Formats a bounded, sorted sample of IDs for a diagnostic message"""
    ordered = sorted(ids)
    shown = ", ".join(str(i) for i in ordered[:MAX_REPORTED_IDS])
    if len(ordered) > MAX_REPORTED_IDS:
        shown += f", ... ({len(ordered) - MAX_REPORTED_IDS} more)"
    return shown


def _emit(message: str, category: type[NetworkWarning], stacklevel: int) -> None:
    logger.warning(message)
    # +2 skips this function and report()
    warnings.warn(message, category, stacklevel=stacklevel + 2)


def report(
    diagnostics: NetworkDiagnostics,
    config: NetworkConfig,
    operation: str,
    stacklevel: int = 2,
    missing_direction: str = "downstream",
) -> None:
    """Reports the diagnostics collected during one call, once per category.

    Parameters
    ----------
    diagnostics : NetworkDiagnostics
        The issues found during the call
    config : NetworkConfig
        The per-call policies
    operation : str
        Name of the calling operation, used as the message prefix
    stacklevel : int, optional
        Stack level relative to the function calling report, as in warnings.warn.
        Public entry points pass the depth that attributes warnings to their caller,
        by default 2
    missing_direction : str, optional
        Where missing weights make results missing, "downstream" for accumulation and
        "upstream" for path length, by default "downstream"

    Raises
    ------
    ValueError
        If a cycle was found with on_cycle="fail" or a missing weight was found with
        on_missing_weight="fail"
    """
    cyclic = diagnostics.self_loops | diagnostics.cycles
    if cyclic and config.on_cycle == CyclePolicy.FAIL:
        raise ValueError(f"{operation}: network contains self-loops or cycles at IDs: {_sample(cyclic)}")
    if diagnostics.missing_weight and config.on_missing_weight == MissingWeightPolicy.FAIL:
        raise ValueError(f"{operation}: missing weight values at IDs: {_sample(diagnostics.missing_weight)}")

    if diagnostics.dangling:
        _emit(
            f"{operation}: {len(diagnostics.dangling)} toID value(s) not found in ID, "
            f"treated as outlets: {_sample(diagnostics.dangling)}",
            DanglingReferenceWarning,
            stacklevel,
        )
    if cyclic:
        _emit(
            f"{operation}: {len(cyclic)} ID(s) are part of a self-loop or cycle and were left undefined: "
            f"{_sample(cyclic)}",
            CycleWarning,
            stacklevel,
        )
    if diagnostics.duplicates:
        _emit(
            f"{operation}: {len(diagnostics.duplicates)} ID(s) are not unique and were left undefined: "
            f"{_sample(diagnostics.duplicates)}",
            DuplicateIdWarning,
            stacklevel,
        )
    if diagnostics.missing_weight and config.on_missing_weight == MissingWeightPolicy.WARN:
        _emit(
            f"{operation}: {len(diagnostics.missing_weight)} missing weight value(s), results "
            f"{missing_direction} of these IDs are missing: {_sample(diagnostics.missing_weight)}",
            MissingWeightWarning,
            stacklevel,
        )
    if diagnostics.unresolved_outlets:
        _emit(
            f"{operation}: {len(diagnostics.unresolved_outlets)} terminal(s) are not in the known "
            f"outlet set: {_sample(diagnostics.unresolved_outlets)}",
            UnresolvedOutletWarning,
            stacklevel,
        )
