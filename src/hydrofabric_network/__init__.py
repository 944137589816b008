from ._version import __version__
from .config import NetworkRunConfig
from .network.accumulate import accumulate, calculate_arbolate_sum, calculate_total_drainage_area
from .network.diagnostics import (
    CycleWarning,
    DanglingReferenceWarning,
    DuplicateIdWarning,
    MissingWeightWarning,
    NetworkWarning,
    UnresolvedOutletWarning,
)
from .network.geometry import fix_all_flowdirs, fix_flowdir, get_node
from .network.graph import Network, build_network
from .network.pathlength import downstream_path_length, get_pathlength
from .network.terminal import get_terminal, partition_by_terminal, resolve_terminals
from .pipeline.network_attributes import compute_network_attributes
from .schemas.network import (
    CyclePolicy,
    DuplicateIdPolicy,
    MissingWeightPolicy,
    NetworkConfig,
    PathlengthOrigin,
)

__all__ = [
    "__version__",
    "NetworkRunConfig",
    "NetworkConfig",
    "MissingWeightPolicy",
    "CyclePolicy",
    "DuplicateIdPolicy",
    "PathlengthOrigin",
    "Network",
    "build_network",
    "accumulate",
    "calculate_total_drainage_area",
    "calculate_arbolate_sum",
    "resolve_terminals",
    "get_terminal",
    "partition_by_terminal",
    "downstream_path_length",
    "get_pathlength",
    "get_node",
    "fix_flowdir",
    "fix_all_flowdirs",
    "compute_network_attributes",
    "NetworkWarning",
    "DanglingReferenceWarning",
    "CycleWarning",
    "DuplicateIdWarning",
    "MissingWeightWarning",
    "UnresolvedOutletWarning",
]
