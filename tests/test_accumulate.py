"""Tests for drainage area and arbolate sum accumulation"""

import math

import numpy as np
import pandas as pd
import pytest
from conftest import network_warnings, reference_accumulation

from hydrofabric_network.network.accumulate import (
    accumulate,
    calculate_arbolate_sum,
    calculate_total_drainage_area,
)
from hydrofabric_network.network.diagnostics import (
    CycleWarning,
    DanglingReferenceWarning,
    DuplicateIdWarning,
    MissingWeightWarning,
    NetworkWarning,
    UnresolvedOutletWarning,
)
from hydrofabric_network.network.graph import build_network
from hydrofabric_network.schemas.network import NetworkConfig


class TestAccumulate:
    """Tests for the generic accumulate primitive."""

    def test_confluence(self, confluence: pd.DataFrame, no_network_warnings: None) -> None:
        """Test two headwaters meeting at one node."""
        network = build_network(confluence, weight="area")

        assert accumulate(network) == {1: 4.0, 2: 6.0, 3: 11.0}

    def test_own_weight_plus_upstream(self, reference_network: pd.DataFrame) -> None:
        """Test that every node equals its weight plus the totals of its direct contributors."""
        network = build_network(reference_network, weight="area")
        totals = accumulate(network)
        weights = dict(zip(reference_network["ID"], reference_network["area"], strict=True))

        for node_id, total in totals.items():
            upstream = sum(totals[up] for up in network.upstream(node_id))
            assert total == pytest.approx(weights[node_id] + upstream, abs=1e-9)

    def test_headwaters_equal_own_weight(self, reference_network: pd.DataFrame) -> None:
        network = build_network(reference_network, weight="length")
        totals = accumulate(network)
        weights = dict(zip(reference_network["ID"], reference_network["length"], strict=True))

        for node_id in network.headwaters():
            assert totals[node_id] == weights[node_id]

    def test_explicit_weights_mapping(self, confluence: pd.DataFrame) -> None:
        """Test accumulating a mapping of weights over a network built without a weight column."""
        network = build_network(confluence[["ID", "toID"]])

        assert accumulate(network, {1: 1.0, 2: 1.0, 3: 1.0}) == {1: 1.0, 2: 1.0, 3: 3.0}

    def test_requires_weights(self, confluence: pd.DataFrame) -> None:
        network = build_network(confluence[["ID", "toID"]])

        with pytest.raises(ValueError, match="No weights"):
            accumulate(network)

    def test_incomplete_weights_mapping(self, confluence: pd.DataFrame) -> None:
        network = build_network(confluence[["ID", "toID"]])

        with pytest.raises(ValueError, match="missing for 1"):
            accumulate(network, {1: 1.0, 2: 1.0})

    def test_cycle_does_not_block_rest(self, cyclic_network: pd.DataFrame) -> None:
        """Test that cycle members are undefined while the rest of the network is computed."""
        network = build_network(cyclic_network, weight="area")

        with pytest.warns(CycleWarning):
            totals = accumulate(network)

        assert totals[1] == 1.0
        assert math.isnan(totals[2])
        assert math.isnan(totals[3])
        assert totals[4] == 2.0
        assert totals[5] == 1.0


class TestCalculateTotalDrainageArea:
    """Tests for the drainage area table operation."""

    def test_confluence(self, confluence: pd.DataFrame, no_network_warnings: None) -> None:
        result = calculate_total_drainage_area(confluence)

        np.testing.assert_array_equal(result, [4.0, 6.0, 11.0])

    def test_row_order_preserved(self, two_basins: pd.DataFrame) -> None:
        """Test that results are aligned to input rows, not traversal order."""
        result = calculate_total_drainage_area(two_basins)

        np.testing.assert_array_equal(result, [12.0, 2.0, 9.0, 11.0, 5.0, 6.0])

    def test_row_order_independent(self, two_basins: pd.DataFrame) -> None:
        """Test that shuffling rows shuffles results the same way."""
        shuffled = two_basins.sample(frac=1.0, random_state=3).reset_index(drop=True)
        original = dict(zip(two_basins["ID"], calculate_total_drainage_area(two_basins), strict=True))
        reordered = dict(zip(shuffled["ID"], calculate_total_drainage_area(shuffled), strict=True))

        assert original == reordered
        assert len(calculate_total_drainage_area(shuffled)) == len(shuffled)

    def test_matches_reference(self, reference_network: pd.DataFrame) -> None:
        """Test against a brute-force reference within accumulation tolerance."""
        result = calculate_total_drainage_area(reference_network)
        expected = reference_accumulation(reference_network, "area")

        assert np.mean(np.abs(result - expected)) < 1e-3
        assert np.max(np.abs(result - expected)) < 1e-2

    def test_single_missing_area_warns_once(self) -> None:
        """Test that one missing area gives one warning and only affects downstream nodes."""
        df = pd.DataFrame(
            {
                "ID": [1, 2, 3, 4, 5],
                "toID": [3, 3, 4, 0, 0],
                "area": [1.0, np.nan, 1.0, 1.0, 7.0],
            }
        )

        with pytest.warns(MissingWeightWarning) as record:
            result = calculate_total_drainage_area(df)

        assert [w.category for w in network_warnings(record)] == [MissingWeightWarning]
        assert "downstream" in str(network_warnings(record)[0].message)
        assert result[0] == 1.0
        assert np.isnan(result[1:4]).all()
        assert result[4] == 7.0

    def test_missing_area_ignore_policy(self, no_network_warnings: None) -> None:
        df = pd.DataFrame({"ID": [1, 2], "toID": [2, 0], "area": [np.nan, 1.0]})
        result = calculate_total_drainage_area(df, NetworkConfig(on_missing_weight="ignore"))

        assert np.isnan(result).all()

    def test_missing_area_fail_policy(self) -> None:
        df = pd.DataFrame({"ID": [1, 2], "toID": [2, 0], "area": [np.nan, 1.0]})

        with pytest.raises(ValueError, match="missing weight"):
            calculate_total_drainage_area(df, NetworkConfig(on_missing_weight="fail"))

    def test_duplicate_ids_undefined_downstream(self) -> None:
        """Test that duplicated IDs poison their own rows and everything downstream."""
        df = pd.DataFrame({"ID": [1, 2, 2, 3], "toID": [2, 3, 0, 0], "area": [1.0, 1.0, 1.0, 1.0]})

        with pytest.warns(DuplicateIdWarning):
            result = calculate_total_drainage_area(df, NetworkConfig(on_duplicate_id="warn"))

        assert result[0] == 1.0
        assert np.isnan(result[1:]).all()

    def test_known_outlets_validation(self, two_basins: pd.DataFrame) -> None:
        """Test that a configured outlet set is checked before accumulating."""
        with pytest.warns(UnresolvedOutletWarning, match="50"):
            result = calculate_total_drainage_area(two_basins, NetworkConfig(known_outlets=[30]))

        np.testing.assert_array_equal(result, [12.0, 2.0, 9.0, 11.0, 5.0, 6.0])


class TestCalculateArbolateSum:
    """Tests for the arbolate sum table operation."""

    def test_linear_chain(self, linear_chain: pd.DataFrame, no_network_warnings: None) -> None:
        result = calculate_arbolate_sum(linear_chain)

        np.testing.assert_array_equal(result, [2.0, 5.0, 10.0])

    def test_matches_reference(self, reference_network: pd.DataFrame) -> None:
        result = calculate_arbolate_sum(reference_network)
        expected = reference_accumulation(reference_network, "length")

        assert np.mean(np.abs(result - expected)) < 1e-3
        assert np.max(np.abs(result - expected)) < 1e-2

    def test_does_not_mutate_input(self, linear_chain: pd.DataFrame) -> None:
        before = linear_chain.copy()
        calculate_arbolate_sum(linear_chain)

        pd.testing.assert_frame_equal(linear_chain, before)


class TestWarningLocation:
    """Tests that diagnostics point at the calling line, not at library internals."""

    def test_accumulate(self) -> None:
        network = build_network(pd.DataFrame({"ID": [1, 2], "toID": [2, 99], "area": [1.0, 1.0]}), "area")

        with pytest.warns(DanglingReferenceWarning) as record:
            accumulate(network)

        assert network_warnings(record)[0].filename == __file__

    def test_table_form(self) -> None:
        df = pd.DataFrame({"ID": [1, 2], "toID": [2, 99], "length": [1.0, np.nan]})

        with pytest.warns(NetworkWarning) as record:
            calculate_arbolate_sum(df)

        found = network_warnings(record)
        assert [w.category for w in found] == [DanglingReferenceWarning, MissingWeightWarning]
        assert all(w.filename == __file__ for w in found)

    def test_table_form_with_known_outlets(self) -> None:
        df = pd.DataFrame({"ID": [1, 2], "toID": [2, 0], "area": [1.0, np.nan]})

        with pytest.warns(NetworkWarning) as record:
            calculate_total_drainage_area(df, NetworkConfig(known_outlets=[1]))

        found = network_warnings(record)
        assert [w.category for w in found] == [UnresolvedOutletWarning, MissingWeightWarning]
        assert all(w.filename == __file__ for w in found)
