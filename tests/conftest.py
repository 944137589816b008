"""Shared fixtures for network attribute tests."""

import warnings
from collections.abc import Iterator
from pathlib import Path

import geopandas as gpd
import numpy as np
import pandas as pd
import pytest
from pyprojroot import here
from shapely.geometry import LineString

from hydrofabric_network.network.diagnostics import NetworkWarning


def reference_accumulation(df: pd.DataFrame, weight: str) -> np.ndarray:
    """Brute-force accumulation: walk every node's chain and add its weight to each node visited."""
    position = {node_id: i for i, node_id in enumerate(df["ID"])}
    totals = np.zeros(len(df))
    for i, (w, to_id) in enumerate(zip(df[weight], df["toID"], strict=True)):
        totals[i] += w
        while to_id in position:
            totals[position[to_id]] += w
            to_id = df["toID"].iloc[position[to_id]]
    return totals


def network_warnings(record: pytest.WarningsRecorder) -> list[warnings.WarningMessage]:
    """The NetworkWarning entries of a pytest.warns record, ignoring warnings from other libraries."""
    return [w for w in record if issubclass(w.category, NetworkWarning)]


def reference_pathlength(df: pd.DataFrame) -> np.ndarray:
    """Brute-force path length: sum lengths along each chain, outlet end first."""
    position = {node_id: i for i, node_id in enumerate(df["ID"])}
    result = np.zeros(len(df))
    for i in range(len(df)):
        chain = [i]
        to_id = df["toID"].iloc[i]
        while to_id in position:
            chain.append(position[to_id])
            to_id = df["toID"].iloc[position[to_id]]
        total = 0.0
        for j in reversed(chain):
            total = df["length"].iloc[j] + total
        result[i] = total
    return result


@pytest.fixture
def no_network_warnings() -> Iterator[None]:
    """Turns any NetworkWarning into an error for the duration of the test."""
    with warnings.catch_warnings():
        warnings.simplefilter("error", NetworkWarning)
        yield


@pytest.fixture
def linear_chain() -> pd.DataFrame:
    """1 -> 2 -> 3 -> outlet, lengths 2, 3, 5."""
    return pd.DataFrame({"ID": [1, 2, 3], "toID": [2, 3, 0], "length": [2.0, 3.0, 5.0]})


@pytest.fixture
def confluence() -> pd.DataFrame:
    """1, 2 -> 3 -> outlet, areas 4, 6, 1."""
    return pd.DataFrame({"ID": [1, 2, 3], "toID": [3, 3, 0], "area": [4.0, 6.0, 1.0]})


@pytest.fixture
def two_basins() -> pd.DataFrame:
    """Two independent basins listed out of topological order.

    Basin 30:  10, 11 -> 20 -> 30
    Basin 50:  40 -> 50
    """
    return pd.DataFrame(
        {
            "ID": [30, 10, 50, 20, 11, 40],
            "toID": [0, 20, 0, 30, 20, 50],
            "area": [1.0, 2.0, 3.0, 4.0, 5.0, 6.0],
            "length": [0.5, 1.0, 1.5, 2.0, 2.5, 3.0],
        }
    )


@pytest.fixture
def cyclic_network() -> pd.DataFrame:
    """1 -> 2 <-> 3 cycle next to a healthy basin 5 -> 4."""
    return pd.DataFrame(
        {
            "ID": [1, 2, 3, 4, 5],
            "toID": [2, 3, 2, 0, 4],
            "area": [1.0, 1.0, 1.0, 1.0, 1.0],
            "length": [1.0, 1.0, 1.0, 1.0, 1.0],
        }
    )


@pytest.fixture
def reference_network() -> pd.DataFrame:
    """A random dendritic forest of 300 nodes in shuffled row order.

    Each node drains to a node with a larger index or to the outlet sentinel, so the
    network is guaranteed acyclic.
    """
    rng = np.random.default_rng(42)
    n = 300
    ids = np.arange(1001, 1001 + n)
    to_ids = np.zeros(n, dtype=np.int64)
    for i in range(n - 1):
        if rng.random() > 0.05:
            to_ids[i] = ids[rng.integers(i + 1, min(i + 6, n))]
    df = pd.DataFrame(
        {
            "ID": ids,
            "toID": to_ids,
            "area": np.round(rng.uniform(0.01, 25.0, n), 4),
            "length": np.round(rng.uniform(0.05, 8.0, n), 3),
        }
    )
    return df.sample(frac=1.0, random_state=7).reset_index(drop=True)


@pytest.fixture
def flowlines_gdf() -> gpd.GeoDataFrame:
    """1 -> 2 -> outlet, digitized in the direction of flow."""
    return gpd.GeoDataFrame(
        {
            "ID": [1, 2],
            "toID": [2, 0],
            "geometry": [LineString([(0, 0), (1, 1)]), LineString([(1, 1), (2, 2)])],
        },
        crs="EPSG:5070",
    )


@pytest.fixture
def sample_config_yaml() -> Path:
    return here() / "tests/data/sample_config.yaml"
