"""Downstream path length: outlet-to-headwater distance propagation"""

import logging
import math
from collections import deque
from typing import Any

import numpy as np
import pandas as pd
import polars as pl

from hydrofabric_network.network.diagnostics import report
from hydrofabric_network.network.graph import ID_COL, Network, build_network
from hydrofabric_network.schemas.network import NetworkConfig, PathlengthOrigin

logger = logging.getLogger(__name__)


def _pathlength_rows(network: Network, lengths: list[float]) -> np.ndarray:
    """Propagate distance-to-outlet from outlets up to headwaters.

    Rows without a downstream node seed the frontier. Each processed row hands its
    value to its upstream contributors, so every row is visited once. Rows on a cycle,
    and everything upstream of one, are never reached and stay NaN.

    Parameters
    ----------
    network : Network
        The network snapshot
    lengths : list[float]
        Length of each row, NaN where missing

    Returns
    -------
    np.ndarray
        Path length of each row in row order
    """
    include_self = network.config.pathlength_from == PathlengthOrigin.UPSTREAM_END
    graph = network.graph
    pathlength = np.full(len(network), np.nan, dtype=np.float64)
    visited = [False] * len(network)

    frontier: deque[int] = deque()
    for node, dn in enumerate(network.downstream):
        if dn == -1 and node not in network.undefined:
            pathlength[node] = lengths[node] if include_self else 0.0
            visited[node] = True
            frontier.append(node)

    while frontier:
        node = frontier.popleft()
        for up in graph.predecessor_indices(node):
            if visited[up]:
                continue
            visited[up] = True
            if up in network.undefined or node in network.undefined:
                pathlength[up] = math.nan
            elif include_self:
                pathlength[up] = lengths[up] + pathlength[node]
            else:
                pathlength[up] = pathlength[node] + lengths[node]
            frontier.append(up)

    return pathlength


def _row_lengths(network: Network, operation: str) -> list[float]:
    if network.weights is None:
        raise ValueError(f"{operation} requires a network built with a length column")
    return network.weights


def downstream_path_length(network: Network) -> dict[Any, float]:
    """Compute the cumulative channel length from every node to its outlet.

    With the default pathlength_from="upstream_end" a node's path length is its own
    length plus the path length of the node it drains into. With "downstream_end" it
    is measured from the node's downstream end, so nodes draining to an outlet are 0.

    Parameters
    ----------
    network : Network
        The network snapshot, built with the length column as its weight

    Returns
    -------
    dict[Any, float]
        Mapping of ID -> path length, NaN where undefined or upstream of a missing length

    Raises
    ------
    ValueError
        If the network was built without a weight column, or a configured "fail"
        policy is triggered
    """
    lengths = _row_lengths(network, "downstream_path_length")
    report(network.diagnostics, network.config, "downstream_path_length", missing_direction="upstream")
    return dict(zip(network.ids, _pathlength_rows(network, lengths).tolist(), strict=True))


def get_pathlength(table: pd.DataFrame | pl.DataFrame, config: NetworkConfig | None = None) -> pd.DataFrame:
    """Get the downstream path length of every row in a node table.

    Parameters
    ----------
    table : pd.DataFrame | pl.DataFrame
        Node table with ID, toID and length columns
    config : NetworkConfig | None, optional
        Per-call settings, by default NetworkConfig()

    Returns
    -------
    pd.DataFrame
        Columns ID and pathlength, one row per input row in input order
    """
    network = build_network(table, weight="length", config=config)
    lengths = _row_lengths(network, "get_pathlength")
    report(network.diagnostics, network.config, "get_pathlength", missing_direction="upstream")
    return pd.DataFrame(
        {
            ID_COL: pd.Series(network.ids, dtype=network.id_dtype),
            "pathlength": _pathlength_rows(network, lengths),
        }
    )
