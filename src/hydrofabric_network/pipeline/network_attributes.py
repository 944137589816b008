"""Contains all code for attaching network attributes to a flowline table"""

import logging
import math
from pathlib import Path

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from hydrofabric_network.config import NetworkRunConfig
from hydrofabric_network.network.accumulate import _accumulate_rows
from hydrofabric_network.network.diagnostics import report
from hydrofabric_network.network.graph import ID_COL, TO_COL, _weight_values, build_network
from hydrofabric_network.network.pathlength import _pathlength_rows
from hydrofabric_network.network.terminal import _terminal_positions, _terminal_series, _unresolved_outlets
from hydrofabric_network.schemas.network import NetworkAttributes

logger = logging.getLogger(__name__)


def _node_table(flowlines: pd.DataFrame, cfg: NetworkRunConfig) -> pd.DataFrame:
    """Select and rename source columns to the engine's ID/toID/area/length schema"""
    renames = {cfg.id_col: ID_COL, cfg.to_col: TO_COL}
    if cfg.area_col is not None:
        renames[cfg.area_col] = "area"
    if cfg.length_col is not None:
        renames[cfg.length_col] = "length"

    missing = [col for col in renames if col not in flowlines.columns]
    if missing:
        raise ValueError(f"Flowline table is missing configured columns: {missing}")

    return pd.DataFrame(flowlines[list(renames)]).rename(columns=renames).reset_index(drop=True)


def compute_network_attributes(flowlines: pd.DataFrame, cfg: NetworkRunConfig) -> pd.DataFrame:
    """Compute network attributes and attach them to a copy of the flowline table.

    The network is built once and its structural issues are reported once for the
    whole call, covering all four attributes.

    Parameters
    ----------
    flowlines : pd.DataFrame
        The flowline table, with the source columns named in the config
    cfg : NetworkRunConfig
        The run configuration

    Returns
    -------
    pd.DataFrame
        A copy of the flowlines with totdasqkm, arbolatesu, terminalid and pathlength
        appended, in input row order. Attributes whose source column is not configured
        are left missing

    Raises
    ------
    ValueError
        If the table violates the node table contract or a configured "fail" policy
        is triggered
    """
    nodes = _node_table(flowlines, cfg)
    network = build_network(nodes, weight="area" if cfg.area_col is not None else None, config=cfg.network)
    lengths = _weight_values(nodes, "length") if cfg.length_col is not None else None

    diagnostics = network.diagnostics.model_copy(deep=True)
    if lengths is not None:
        diagnostics.missing_weight.update(
            node_id for node_id, length in zip(network.ids, lengths, strict=True) if math.isnan(length)
        )
    positions = _terminal_positions(network)
    if network.config.known_outlets is not None:
        diagnostics.unresolved_outlets = _unresolved_outlets(network, positions, network.config.known_outlets)
    report(
        diagnostics,
        network.config,
        "compute_network_attributes",
        missing_direction="downstream (drainage area, arbolate sum) or upstream (path length)",
    )

    attributes = pd.DataFrame(index=nodes.index, columns=NetworkAttributes.columns(), dtype="float64")
    if network.weights is not None:
        logger.info("network_attributes: Calculating total drainage area")
        attributes["totdasqkm"] = _accumulate_rows(network, network.weights)

    logger.info("network_attributes: Resolving terminal flowlines")
    attributes["terminalid"] = _terminal_series(network, positions)

    if lengths is not None:
        logger.info("network_attributes: Calculating arbolate sum and path length")
        attributes["arbolatesu"] = _accumulate_rows(network, lengths)
        attributes["pathlength"] = _pathlength_rows(network, lengths)

    attributes.index = flowlines.index
    source = flowlines.drop(columns=NetworkAttributes.columns(), errors="ignore")
    return pd.concat([source, attributes], axis=1)


def read_flowlines(path: Path) -> pd.DataFrame:
    """Read a flowline table from parquet, or CSV when the suffix is .csv

    Parameters
    ----------
    path : Path
        The input file

    Returns
    -------
    pd.DataFrame
        The flowline table
    """
    if path.suffix.lower() == ".csv":
        return pd.read_csv(path)
    return pq.read_table(path).to_pandas()


def write_network_attributes(flowlines: pd.DataFrame, path: Path) -> Path:
    """Write an attributed flowline table to parquet, replacing an existing file

    Parameters
    ----------
    flowlines : pd.DataFrame
        The attributed flowline table
    path : Path
        The output file

    Returns
    -------
    Path
        The written file
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.unlink(missing_ok=True)
    pq.write_table(pa.Table.from_pandas(flowlines, preserve_index=False), path)
    logger.info(f"network_attributes: wrote {len(flowlines)} flowlines to {path}")
    return path
