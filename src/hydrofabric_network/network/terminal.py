"""Terminal (outlet) resolution for flowline networks"""

import logging
from collections.abc import Iterable
from typing import Any

import pandas as pd
import polars as pl
import rustworkx as rx

from hydrofabric_network.network.diagnostics import report
from hydrofabric_network.network.graph import ID_COL, Network, build_network
from hydrofabric_network.schemas.network import NetworkConfig, NetworkDiagnostics

logger = logging.getLogger(__name__)

_UNRESOLVED = -2
_UNDEFINED = -1


def _terminal_positions(network: Network) -> list[int]:
    """Find the terminal row position of every row.

    Each downstream chain is walked once; every row on the walk is assigned the
    result, so later walks stop as soon as they reach an already resolved row.

    Parameters
    ----------
    network : Network
        The network snapshot

    Returns
    -------
    list[int]
        Row position of each row's terminal, -1 where the row is in or upstream of an
        undefined row (cycle or duplicated ID)
    """
    terminal = [_UNRESOLVED] * len(network)
    for start in range(len(network)):
        if terminal[start] != _UNRESOLVED:
            continue
        path: list[int] = []
        node = start
        while True:
            if terminal[node] != _UNRESOLVED:
                result = terminal[node]
                break
            path.append(node)
            if node in network.undefined:
                result = _UNDEFINED
                break
            if network.downstream[node] == -1:
                result = node
                break
            node = network.downstream[node]
        for visited in path:
            terminal[visited] = result
    return terminal


def _structural_diagnostics(network: Network) -> NetworkDiagnostics:
    """Copy of the network diagnostics without the weight-related entries"""
    return network.diagnostics.model_copy(update={"missing_weight": set()}, deep=True)


def _unresolved_outlets(network: Network, positions: list[int], outlets: Iterable[Any]) -> set[Any]:
    """Terminal IDs reached that are not in the given outlet set"""
    outlet_set = set(outlets)
    return {network.ids[p] for p in set(positions) if p >= 0 and network.ids[p] not in outlet_set}


def _resolve(network: Network, outlets: Iterable[Any] | None, operation: str, stacklevel: int) -> list[int]:
    """Resolve terminal positions and report structural issues once for this call"""
    positions = _terminal_positions(network)
    diagnostics = _structural_diagnostics(network)
    if outlets is not None:
        diagnostics.unresolved_outlets.update(_unresolved_outlets(network, positions, outlets))
    report(diagnostics, network.config, operation, stacklevel=stacklevel + 1)
    return positions


def resolve_terminals(network: Network, known_outlets: Iterable[Any] | None = None) -> dict[Any, Any]:
    """Resolve the terminal (outlet) ID of every node.

    Parameters
    ----------
    network : Network
        The network snapshot
    known_outlets : Iterable[Any] | None, optional
        Explicit outlet IDs. Defaults to the network config's known_outlets. Terminals
        outside this set are reported as unresolved outlets

    Returns
    -------
    dict[Any, Any]
        Mapping of ID -> terminal ID, None where the terminal is undefined
    """
    outlets = known_outlets if known_outlets is not None else network.config.known_outlets
    positions = _resolve(network, outlets, "resolve_terminals", stacklevel=2)
    return {
        node_id: (network.ids[p] if p >= 0 else None)
        for node_id, p in zip(network.ids, positions, strict=True)
    }


def _terminal_series(network: Network, positions: list[int]) -> pd.Series:
    """Terminal IDs aligned with rows, keeping the ID column's numeric representation"""
    values = [network.ids[p] if p >= 0 else None for p in positions]
    dtype = network.id_dtype
    if _UNDEFINED in positions and pd.api.types.is_integer_dtype(dtype):
        dtype = "Int64"
    return pd.Series(values, dtype=dtype, name="terminalID")


def get_terminal(
    table: pd.DataFrame | pl.DataFrame,
    outlets: Iterable[Any] | None = None,
    config: NetworkConfig | None = None,
) -> pd.DataFrame:
    """Get the terminal ID of every row in a node table.

    Parameters
    ----------
    table : pd.DataFrame | pl.DataFrame
        Node table with ID and toID columns
    outlets : Iterable[Any] | None, optional
        Explicit outlet IDs, overriding config.known_outlets. Terminals reached outside
        this set are reported once
    config : NetworkConfig | None, optional
        Per-call settings, by default NetworkConfig()

    Returns
    -------
    pd.DataFrame
        Exactly two columns, ID and terminalID, one row per input row in input order
    """
    config = config or NetworkConfig()
    if outlets is not None:
        config = NetworkConfig(**{**config.model_dump(), "known_outlets": outlets})
    network = build_network(table, config=config)
    positions = _resolve(network, config.known_outlets, "get_terminal", stacklevel=2)

    return pd.DataFrame(
        {
            ID_COL: pd.Series(network.ids, dtype=network.id_dtype),
            "terminalID": _terminal_series(network, positions),
        }
    )


def partition_by_terminal(network: Network) -> dict[Any, list[int]]:
    """Group row positions into independent drainage basins.

    Basins share no downstream node, so each one can be processed on its own.

    Parameters
    ----------
    network : Network
        The network snapshot

    Returns
    -------
    dict[Any, list[int]]
        Mapping of terminal ID -> sorted row positions draining to it. Rows with an
        undefined terminal are not included
    """
    positions = _terminal_positions(network)
    partitions: dict[Any, list[int]] = {}
    for terminal in sorted({p for p in positions if p >= 0}):
        upstream_nodes: set[int] = set(rx.ancestors(network.graph, terminal))
        upstream_nodes.add(terminal)
        partitions[network.ids[terminal]] = sorted(p for p in upstream_nodes if positions[p] == terminal)
    logger.debug(f"partition_by_terminal: {len(partitions)} drainage basins")
    return partitions
