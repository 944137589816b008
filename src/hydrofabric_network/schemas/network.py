"""A file to host all network schemas and per-call settings"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MissingWeightPolicy(StrEnum):
    """What to do when a node has a missing weight

    Attributes
    ----------
    WARN : str
        Emit one warning per call and continue with missing values downstream
    IGNORE : str
        Continue with missing values downstream, no warning
    FAIL : str
        Raise a ValueError
    """

    WARN = "warn"
    IGNORE = "ignore"
    FAIL = "fail"


class CyclePolicy(StrEnum):
    """What to do when a cycle or self-loop is found

    Attributes
    ----------
    WARN : str
        Emit one warning per call and report missing values for cyclic nodes
    FAIL : str
        Raise a ValueError
    """

    WARN = "warn"
    FAIL = "fail"


class DuplicateIdPolicy(StrEnum):
    """What to do when more than one row claims the same ID

    Attributes
    ----------
    FAIL : str
        Raise a ValueError before any traversal
    WARN : str
        Emit one warning per call and report missing values for the duplicated rows
    """

    FAIL = "fail"
    WARN = "warn"


class PathlengthOrigin(StrEnum):
    """Where along a segment its path length is measured from

    Attributes
    ----------
    UPSTREAM_END : str
        The segment's own length is included
    DOWNSTREAM_END : str
        Distance from the segment's downstream end (NHDPlus Pathlength)
    """

    UPSTREAM_END = "upstream_end"
    DOWNSTREAM_END = "downstream_end"


class NetworkConfig(BaseModel):
    """Settings that apply to a single network computation"""

    model_config = ConfigDict(frozen=True)

    on_missing_weight: MissingWeightPolicy = Field(
        default=MissingWeightPolicy.WARN,
        description="Behaviour when a weight (area or length) is missing",
    )
    on_cycle: CyclePolicy = Field(
        default=CyclePolicy.WARN,
        description="Behaviour when self-loops or cycles are found in the toID links",
    )
    on_duplicate_id: DuplicateIdPolicy = Field(
        default=DuplicateIdPolicy.FAIL,
        description="Behaviour when the ID column is not unique",
    )
    known_outlets: frozenset[int | float] | None = Field(
        default=None,
        description="Explicit set of outlet IDs. Terminals outside this set are reported as unresolved",
    )
    sentinel: int | float = Field(
        default=0,
        description="toID value meaning 'no downstream'. Missing toIDs are always treated as outlets",
    )
    pathlength_from: PathlengthOrigin = Field(
        default=PathlengthOrigin.UPSTREAM_END,
        description="Whether path length includes the segment's own length",
    )

    @field_validator("known_outlets", mode="before")
    @classmethod
    def _coerce_outlets(cls, value: object) -> object:
        """Accept any iterable of IDs (lists, numpy arrays, pandas Series) for the outlet set"""
        if value is None:
            return value
        # numpy scalars are unwrapped so pydantic sees plain int/float
        return frozenset(v.item() if hasattr(v, "item") else v for v in value)  # type: ignore[attr-defined]


class NetworkDiagnostics(BaseModel):
    """A Pydantic BaseModel Container for structural issues found during one call"""

    dangling: set[int | float] = Field(
        default_factory=set,
        description="toID values that do not match any ID in the table. Treated as implicit outlets",
    )
    self_loops: set[int | float] = Field(
        default_factory=set,
        description="IDs whose toID is themselves",
    )
    cycles: set[int | float] = Field(
        default_factory=set,
        description="IDs that are reachable from themselves by following toID more than once",
    )
    duplicates: set[int | float] = Field(
        default_factory=set,
        description="IDs claimed by more than one row",
    )
    missing_weight: set[int | float] = Field(
        default_factory=set,
        description="IDs with a missing weight value",
    )
    unresolved_outlets: set[int | float] = Field(
        default_factory=set,
        description="Terminal IDs reached that are not in the configured known_outlets",
    )


class NetworkAttributes:
    """The schema for the attributes appended by the network pipeline"""

    @classmethod
    def columns(cls) -> list[str]:
        """Returns the columns associated with this schema

        Returns
        -------
        list[str]
            The schema columns
        """
        return ["totdasqkm", "arbolatesu", "terminalid", "pathlength"]

