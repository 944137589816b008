"""Geometry adapters: flowline end nodes and digitized flow direction"""

import logging
from typing import Any

import geopandas as gpd
import pandas as pd
import shapely
from shapely.errors import GEOSException
from shapely.geometry.base import BaseGeometry
from tqdm import tqdm

from hydrofabric_network.network.graph import ID_COL, TO_COL

logger = logging.getLogger(__name__)

_POSITIONS = {"start": 0, "end": -1}


def _line_part(geom: BaseGeometry | None, index: int) -> BaseGeometry | None:
    """First or last part of a multi-part line, the line itself otherwise"""
    if geom is not None and geom.geom_type == "MultiLineString":
        return geom.geoms[index]
    return geom


def get_node(flowlines: gpd.GeoDataFrame | gpd.GeoSeries, position: str = "end") -> gpd.GeoDataFrame:
    """Get the start or end node of every flowline.

    Parameters
    ----------
    flowlines : gpd.GeoDataFrame | gpd.GeoSeries
        One or more line features
    position : str, optional
        Either "start" or "end", by default "end"

    Returns
    -------
    gpd.GeoDataFrame
        One point per input feature, with the input index and CRS. For multi-part lines
        the start of the first part or the end of the last part is used

    Raises
    ------
    ValueError
        If position is not "start" or "end"
    """
    if position not in _POSITIONS:
        raise ValueError(f"position must be 'start' or 'end', got '{position}'")
    index = _POSITIONS[position]
    geoms = flowlines.geometry
    parts = [_line_part(geom, index) for geom in geoms]
    points = shapely.get_point(parts, index)
    return gpd.GeoDataFrame(geometry=gpd.GeoSeries(points, index=geoms.index, crs=geoms.crs))


def _end_point(geom: BaseGeometry, position: str) -> BaseGeometry:
    index = _POSITIONS[position]
    return shapely.get_point(_line_part(geom, index), index)


def _fix_segment(
    node_id: Any,
    geom: BaseGeometry | None,
    to_id: Any,
    network: gpd.GeoDataFrame,
    id_col: str,
    to_col: str,
    sentinel: int | float,
) -> BaseGeometry | None:
    """Check one segment's geometry against its neighbors, reversing it if needed.

    Failures are logged and the geometry is returned unchanged.
    """
    try:
        if geom is None:
            raise ValueError("missing geometry")
        rows = int((network[id_col] == node_id).sum())
        if rows != 1:
            raise ValueError(f"ID is not unique ({rows} rows)")

        if pd.isna(to_id) or to_id == sentinel:
            check_line = network[network[to_col] == node_id]
            check_position = "start"
        else:
            check_line = network[network[id_col] == to_id]
            check_position = "end"

        if check_line.empty:
            raise ValueError("no neighboring segment to check against")

        node = _end_point(geom, check_position)
        check_geom = check_line.geometry.iloc[0]
        if node is None or check_geom is None:
            raise ValueError("missing geometry")

        if check_geom.intersects(node):
            return geom
        return shapely.reverse(geom)
    except (GEOSException, IndexError, KeyError, TypeError, ValueError) as e:
        logger.warning(f"unable to determine flow direction for segment {node_id}: {e}")
        return geom


def fix_flowdir(
    node_id: Any,
    network: gpd.GeoDataFrame,
    id_col: str = ID_COL,
    to_col: str = TO_COL,
    sentinel: int | float = 0,
) -> gpd.GeoSeries:
    """Reverse a flowline if it is not digitized in the direction of flow.

    A segment with a downstream neighbor must end on that neighbor. An outlet segment
    must start on one of its upstream neighbors. Any failure to make this check,
    including an ID shared by more than one row, is logged and the geometry is
    returned unchanged.

    Parameters
    ----------
    node_id : Any
        The ID of the flowline to check
    network : gpd.GeoDataFrame
        The entire network, with ID and toID columns
    id_col : str, optional
        Name of the ID column, by default "ID"
    to_col : str, optional
        Name of the toID column, by default "toID"
    sentinel : int | float, optional
        toID value meaning "no downstream", by default 0

    Returns
    -------
    gpd.GeoSeries
        The geometry of the flowline, reversed if needed
    """
    segment = network[network[id_col] == node_id]
    if segment.empty:
        logger.warning(
            f"unable to determine flow direction for segment {node_id}: segment not found in network"
        )
        return segment.geometry.copy()
    fixed = [
        _fix_segment(node_id, geom, to_id, network, id_col, to_col, sentinel)
        for geom, to_id in zip(segment.geometry, segment[to_col], strict=True)
    ]
    return gpd.GeoSeries(fixed, index=segment.index, crs=segment.crs)


def fix_all_flowdirs(
    network: gpd.GeoDataFrame,
    id_col: str = ID_COL,
    to_col: str = TO_COL,
    sentinel: int | float = 0,
) -> gpd.GeoSeries:
    """Check and fix the flow direction of every flowline in a network.

    Each row is checked on its own geometry, so rows sharing an ID are left unchanged
    rather than taking another row's geometry.

    Parameters
    ----------
    network : gpd.GeoDataFrame
        The entire network, with ID and toID columns
    id_col : str, optional
        Name of the ID column, by default "ID"
    to_col : str, optional
        Name of the toID column, by default "toID"
    sentinel : int | float, optional
        toID value meaning "no downstream", by default 0

    Returns
    -------
    gpd.GeoSeries
        A new geometry series aligned with the network. The input is not modified
    """
    rows = zip(network[id_col], network.geometry, network[to_col], strict=True)
    fixed = [
        _fix_segment(node_id, geom, to_id, network, id_col, to_col, sentinel)
        for node_id, geom, to_id in tqdm(rows, total=len(network), desc="Fixing flow direction")
    ]
    return gpd.GeoSeries(fixed, index=network.index, crs=network.crs)
