"""Upstream-to-downstream accumulation: total drainage area and arbolate sum"""

import logging
import math
from collections import deque
from collections.abc import Mapping
from typing import Any

import numpy as np
import pandas as pd
import polars as pl

from hydrofabric_network.network.diagnostics import report
from hydrofabric_network.network.graph import Network, build_network
from hydrofabric_network.network.terminal import _resolve
from hydrofabric_network.schemas.network import NetworkConfig

logger = logging.getLogger(__name__)


def _accumulate_rows(network: Network, weights: list[float]) -> np.ndarray:
    """Accumulate weights from headwaters to outlets.

    A frontier holds rows whose upstream contributors are all finalized. Processing a
    row adds its total into its downstream row and releases the downstream row once
    all of its contributors are in. Rows on a cycle never enter the frontier and stay
    NaN.

    Parameters
    ----------
    network : Network
        The network snapshot
    weights : list[float]
        Weight of each row, NaN where missing

    Returns
    -------
    np.ndarray
        Accumulated value of each row in row order
    """
    graph = network.graph
    totals = np.full(len(network), np.nan, dtype=np.float64)
    upstream_sum = [0.0] * len(network)
    pending = [graph.in_degree(i) for i in range(len(network))]
    frontier = deque(i for i in range(len(network)) if pending[i] == 0)

    while frontier:
        node = frontier.popleft()
        value = math.nan if node in network.undefined else weights[node] + upstream_sum[node]
        totals[node] = value
        for dn in graph.successor_indices(node):
            upstream_sum[dn] += value
            pending[dn] -= 1
            if pending[dn] == 0:
                frontier.append(dn)

    return totals


def _row_weights(network: Network, weights: Mapping[Any, float] | None) -> list[float]:
    if weights is None:
        if network.weights is None:
            raise ValueError("No weights provided and the network was built without a weight column")
        return network.weights
    missing_keys = [node_id for node_id in network.node_indices if node_id not in weights]
    if missing_keys:
        raise ValueError(f"Weights are missing for {len(missing_keys)} ID(s): {sorted(missing_keys)[:10]}")
    return [math.nan if pd.isna(weights[node_id]) else float(weights[node_id]) for node_id in network.ids]


def accumulate(network: Network, weights: Mapping[Any, float] | None = None) -> dict[Any, float]:
    """Accumulate a per-node weight downstream through the network.

    Each node's value is its own weight plus the accumulated values of every node
    draining directly into it.

    Parameters
    ----------
    network : Network
        The network snapshot
    weights : Mapping[Any, float] | None, optional
        Mapping of ID -> weight. Defaults to the weight column the network was built with

    Returns
    -------
    dict[Any, float]
        Mapping of ID -> accumulated value, NaN where undefined or downstream of a
        missing weight

    Raises
    ------
    ValueError
        If no weights are available, a weight is missing from the mapping, or a
        configured "fail" policy is triggered
    """
    row_weights = _row_weights(network, weights)
    diagnostics = network.diagnostics.model_copy(deep=True)
    diagnostics.missing_weight = {
        node_id for node_id, w in zip(network.ids, row_weights, strict=True) if math.isnan(w)
    }
    report(diagnostics, network.config, "accumulate")
    totals = _accumulate_rows(network, row_weights)
    return dict(zip(network.ids, totals.tolist(), strict=True))


def _accumulate_table(
    table: pd.DataFrame | pl.DataFrame, weight: str, config: NetworkConfig | None, operation: str
) -> np.ndarray:
    """Build a network from a table, validate outlets if configured, and accumulate the weight column"""
    network = build_network(table, weight=weight, config=config)
    if network.config.known_outlets is not None:
        # outlet validation reports structural issues; only weight issues remain for this pass
        _resolve(network, network.config.known_outlets, operation, stacklevel=3)
        diagnostics = network.diagnostics.model_copy(
            update={"dangling": set(), "self_loops": set(), "cycles": set(), "duplicates": set()}, deep=True
        )
    else:
        diagnostics = network.diagnostics
    report(diagnostics, network.config, operation, stacklevel=3)
    return _accumulate_rows(network, _row_weights(network, None))


def calculate_total_drainage_area(
    table: pd.DataFrame | pl.DataFrame, config: NetworkConfig | None = None
) -> np.ndarray:
    """Calculates total upstream drainage area.

    Parameters
    ----------
    table : pd.DataFrame | pl.DataFrame
        Node table with ID, toID and area columns
    config : NetworkConfig | None, optional
        Per-call settings, by default NetworkConfig()

    Returns
    -------
    np.ndarray
        Total drainage area of each row, aligned with the input row order
    """
    return _accumulate_table(table, "area", config, "calculate_total_drainage_area")


def calculate_arbolate_sum(
    table: pd.DataFrame | pl.DataFrame, config: NetworkConfig | None = None
) -> np.ndarray:
    """Calculates arbolate sum, the total upstream channel length including the segment itself.

    Parameters
    ----------
    table : pd.DataFrame | pl.DataFrame
        Node table with ID, toID and length columns
    config : NetworkConfig | None, optional
        Per-call settings, by default NetworkConfig()

    Returns
    -------
    np.ndarray
        Arbolate sum of each row, aligned with the input row order
    """
    return _accumulate_table(table, "length", config, "calculate_arbolate_sum")
