from .node import CubeNode, CubeTree
from .cost import (
    CostEvaluator,
    WeightFunction,
    get_weight_function,
    linear_weight,
    log_weight,
    ratio_deviation,
    slice_delta,
    sqrt_weight,
)
from .builder import (
    HierarchyBuilder,
    ParentPolicy,
    build_hierarchy,
    highest_index_parent,
    lowest_index_parent,
)
from .search import ScoredNode, SummarySearch, summarize

__all__ = [
    "CubeNode",
    "CubeTree",
    "CostEvaluator",
    "WeightFunction",
    "get_weight_function",
    "linear_weight",
    "log_weight",
    "ratio_deviation",
    "slice_delta",
    "sqrt_weight",
    "HierarchyBuilder",
    "ParentPolicy",
    "build_hierarchy",
    "highest_index_parent",
    "lowest_index_parent",
    "ScoredNode",
    "SummarySearch",
    "summarize",
]
