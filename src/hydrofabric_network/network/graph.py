"""A file for all graph related internal functions"""

import logging
import math
from typing import Any

import numpy as np
import pandas as pd
import polars as pl
import rustworkx as rx
from pydantic import BaseModel, ConfigDict, Field

from hydrofabric_network.schemas.network import DuplicateIdPolicy, NetworkConfig, NetworkDiagnostics

logger = logging.getLogger(__name__)

ID_COL = "ID"
TO_COL = "toID"

_UNVISITED = 0
_IN_PROGRESS = 1
_DONE = 2


class Network(BaseModel):
    """An immutable snapshot of a flowline network built from a node table.

    Every per-row list is aligned with the input table's row order, and graph node
    indices are row positions.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    ids: list[Any] = Field(description="ID of each row")
    to_ids: list[Any] = Field(description="toID of each row, None where the row is an outlet")
    weights: list[float] | None = Field(
        default=None, description="Weight of each row (area or length), NaN where missing"
    )
    downstream: list[int] = Field(description="Row position of each row's downstream node, -1 for outlets")
    node_indices: dict[Any, int] = Field(description="Mapping of ID -> row position of its first occurrence")
    graph: rx.PyDiGraph = Field(description="Directed graph of ID -> toID edges, node index == row position")
    undefined: set[int] = Field(
        default_factory=set,
        description="Row positions whose results are undefined (cycle members and duplicated IDs)",
    )
    id_dtype: Any = Field(description="dtype of the input ID column")
    config: NetworkConfig = Field(default_factory=NetworkConfig)
    diagnostics: NetworkDiagnostics = Field(default_factory=NetworkDiagnostics)

    def __len__(self) -> int:
        """Number of rows in the network"""
        return len(self.ids)

    def upstream(self, node_id: Any) -> list[Any]:
        """Get the IDs of the immediate upstream contributors of a node.

        Parameters
        ----------
        node_id : Any
            The ID to look up

        Returns
        -------
        list[Any]
            IDs of rows whose toID is node_id, in row order
        """
        if node_id not in self.node_indices:
            return []
        idx = self.node_indices[node_id]
        return [self.ids[i] for i in sorted(self.graph.predecessor_indices(idx))]

    def headwaters(self) -> list[Any]:
        """IDs with no upstream contributors, in row order"""
        return [self.ids[i] for i in self.graph.node_indices() if self.graph.in_degree(i) == 0]


def _as_pandas(table: pd.DataFrame | pl.DataFrame) -> pd.DataFrame:
    if isinstance(table, pl.DataFrame):
        return table.to_pandas()
    return table


def _check_numeric(df: pd.DataFrame, col: str) -> None:
    if pd.api.types.is_bool_dtype(df[col]) or not pd.api.types.is_numeric_dtype(df[col]):
        raise ValueError(f"Column '{col}' must be numeric, found dtype {df[col].dtype}")


def _validate_weight_column(df: pd.DataFrame, weight: str) -> None:
    """A weight column must be numeric and non-negative; missing values are allowed"""
    _check_numeric(df, weight)
    if pl.from_pandas(df[[weight]]).filter(pl.col(weight) < 0).height:
        raise ValueError(f"Column '{weight}' contains negative values")


def _weight_values(table: pd.DataFrame | pl.DataFrame, weight: str) -> list[float]:
    """Validate a weight column and return it as floats, NaN where missing

    Parameters
    ----------
    table : pd.DataFrame | pl.DataFrame
        The node table
    weight : str
        Name of the weight column

    Returns
    -------
    list[float]
        Weight of each row in row order

    Raises
    ------
    ValueError
        If the column is missing, not numeric, or has negative values
    """
    df = _as_pandas(table)
    if weight not in df.columns:
        raise ValueError(f"Node table is missing required columns: {[weight]}")
    _validate_weight_column(df, weight)
    return df[weight].to_numpy(dtype=np.float64, na_value=np.nan).tolist()


def _validate_node_table(df: pd.DataFrame, weight: str | None, config: NetworkConfig) -> None:
    """Validate the input contract before any traversal.

    Parameters
    ----------
    df : pd.DataFrame
        The node table
    weight : str | None
        Name of the weight column, if any
    config : NetworkConfig
        Per-call settings

    Raises
    ------
    ValueError
        If required columns are missing, columns are not numeric, IDs are missing, IDs
        collide with the sentinel, weights are negative, or IDs are not unique and
        on_duplicate_id is "fail"
    """
    required = [ID_COL, TO_COL] + ([weight] if weight else [])
    missing_cols = [col for col in required if col not in df.columns]
    if missing_cols:
        raise ValueError(f"Node table is missing required columns: {missing_cols}")

    for col in (ID_COL, TO_COL):
        _check_numeric(df, col)
    if weight:
        _validate_weight_column(df, weight)

    nodes = pl.from_pandas(df[[ID_COL, TO_COL]])

    null_ids = nodes.filter(pl.col(ID_COL).is_null()).height
    if null_ids:
        raise ValueError(f"Column '{ID_COL}' contains {null_ids} missing identifier(s)")

    if nodes.filter(pl.col(ID_COL) == config.sentinel).height:
        raise ValueError(f"Column '{ID_COL}' contains the outlet sentinel value {config.sentinel}")

    if config.on_duplicate_id == DuplicateIdPolicy.FAIL:
        duplicated = nodes.filter(pl.col(ID_COL).is_duplicated())[ID_COL].unique().to_list()
        if duplicated:
            raise ValueError(
                f"Column '{ID_COL}' is not unique, duplicated identifiers: {sorted(duplicated)[:10]}"
            )


def _is_outlet_value(value: Any, sentinel: int | float) -> bool:
    if pd.isna(value):
        return True
    return bool(value == sentinel)


def _find_cycles(downstream: list[int]) -> set[int]:
    """Find row positions that are members of a cycle of length > 1.

    Walks each downstream chain iteratively, marking rows in-progress while on the
    current walk. Reaching an in-progress row closes a cycle.

    Parameters
    ----------
    downstream : list[int]
        Row position of each row's downstream node, -1 for outlets

    Returns
    -------
    set[int]
        Row positions on a cycle
    """
    state = [_UNVISITED] * len(downstream)
    cyclic: set[int] = set()
    for start in range(len(downstream)):
        if state[start] != _UNVISITED:
            continue
        path: list[int] = []
        node = start
        while node != -1 and state[node] == _UNVISITED:
            state[node] = _IN_PROGRESS
            path.append(node)
            node = downstream[node]
        if node != -1 and state[node] == _IN_PROGRESS:
            cyclic.update(path[path.index(node) :])
        for visited in path:
            state[visited] = _DONE
    return cyclic


def _build_rustworkx_object(ids: list[Any], downstream: list[int]) -> rx.PyDiGraph:
    """Build a RustWorkX directed graph with one node per row.

    Parameters
    ----------
    ids : list[Any]
        ID of each row, stored as node data
    downstream : list[int]
        Row position of each row's downstream node, -1 for outlets

    Returns
    -------
    rx.PyDiGraph
        The graph, with node index == row position and edges pointing downstream
    """
    graph = rx.PyDiGraph(check_cycle=False)
    graph.add_nodes_from(ids)
    graph.add_edges_from_no_data([(i, dn) for i, dn in enumerate(downstream) if dn != -1])
    return graph


def build_network(
    table: pd.DataFrame | pl.DataFrame,
    weight: str | None = None,
    config: NetworkConfig | None = None,
) -> Network:
    """Builds a network snapshot from a node table.

    Parameters
    ----------
    table : pd.DataFrame | pl.DataFrame
        Node table with ID and toID columns and, optionally, a weight column
    weight : str | None, optional
        Name of the weight column (e.g. "area" or "length"), by default None
    config : NetworkConfig | None, optional
        Per-call settings, by default NetworkConfig()

    Returns
    -------
    Network
        The network with self-loops, cycles, dangling references and duplicated IDs
        recorded in its diagnostics

    Raises
    ------
    ValueError
        If the node table violates the input contract
    """
    config = config or NetworkConfig()
    df = _as_pandas(table)
    _validate_node_table(df, weight, config)

    ids: list[Any] = df[ID_COL].tolist()
    raw_to_ids: list[Any] = df[TO_COL].tolist()
    to_ids = [None if _is_outlet_value(to, config.sentinel) else to for to in raw_to_ids]

    diagnostics = NetworkDiagnostics()
    node_indices: dict[Any, int] = {}
    undefined: set[int] = set()
    for idx, node_id in enumerate(ids):
        if node_id in node_indices:
            diagnostics.duplicates.add(node_id)
            undefined.add(idx)
            undefined.add(node_indices[node_id])
        else:
            node_indices[node_id] = idx

    downstream: list[int] = []
    for idx, (node_id, to_id) in enumerate(zip(ids, to_ids, strict=True)):
        if to_id is None:
            downstream.append(-1)
        elif to_id == node_id:
            diagnostics.self_loops.add(node_id)
            undefined.add(idx)
            downstream.append(-1)
        elif to_id not in node_indices:
            diagnostics.dangling.add(to_id)
            downstream.append(-1)
        else:
            downstream.append(node_indices[to_id])

    cyclic = _find_cycles(downstream)
    diagnostics.cycles.update(ids[i] for i in cyclic)
    undefined |= cyclic

    weights: list[float] | None = None
    if weight is not None:
        weights = df[weight].to_numpy(dtype=np.float64, na_value=np.nan).tolist()
        diagnostics.missing_weight.update(
            node_id for node_id, w in zip(ids, weights, strict=True) if math.isnan(w)
        )

    graph = _build_rustworkx_object(ids, downstream)
    logger.debug(
        f"build_network: {len(ids)} nodes, {graph.num_edges()} edges, "
        f"{len(diagnostics.dangling)} dangling references, {len(undefined)} undefined nodes"
    )

    return Network(
        ids=ids,
        to_ids=to_ids,
        weights=weights,
        downstream=downstream,
        node_indices=node_indices,
        graph=graph,
        undefined=undefined,
        id_dtype=df[ID_COL].dtype,
        config=config,
        diagnostics=diagnostics,
    )
