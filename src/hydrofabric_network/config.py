"""A pydantic basemodel for setting network attribute run defaults"""

from pathlib import Path
from typing import Self

import yaml
from pydantic import BaseModel, Field, model_validator
from pyprojroot import here

from hydrofabric_network._version import __version__
from hydrofabric_network.schemas.network import NetworkConfig


class NetworkRunConfig(BaseModel):
    """A config validation class for computing network attributes from a flowline table"""

    input_path: Path = Field(
        default=here() / "data/flowlines.parquet",
        description="Flowline table to read. Parquet, or CSV when the suffix is .csv",
    )

    output_dir: Path = Field(
        default=here() / "data/",
        description="The directory for the attributed flowline table",
    )

    output_name: Path = Field(
        default=f"network_attributes_{__version__}.parquet", description="The output file name"
    )

    output_file_path: Path = Field(
        default_factory=lambda data: data["output_dir"] / data["output_name"],
        description="The full output file path",
    )

    id_col: str = Field(default="COMID", description="Source column holding the flowline ID")

    to_col: str = Field(default="toCOMID", description="Source column holding the downstream flowline ID")

    area_col: str | None = Field(
        default="AreaSqKM", description="Source column holding the catchment area. None skips drainage area"
    )

    length_col: str | None = Field(
        default="LENGTHKM",
        description="Source column holding the flowline length. None skips arbolate sum and path length",
    )

    network: NetworkConfig = Field(
        default=NetworkConfig(), description="Policies applied to every network computation"
    )

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """An internal method to read a config from a YAML file

        Parameters
        ----------
        path : str | Path
            The path to the provided YAML file

        Returns
        -------
        NetworkRunConfig
            A configuration object validated
        """
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    @model_validator(mode="after")
    def check_distinct_columns(self) -> Self:
        """Source columns must not collide, since they are renamed to the engine schema"""
        columns = [c for c in (self.id_col, self.to_col, self.area_col, self.length_col) if c is not None]
        if len(columns) != len(set(columns)):
            raise ValueError(f"Source columns must be distinct, got {columns}")
        return self
