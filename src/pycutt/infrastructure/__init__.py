from ._buffers import classify, element_width, raw_pointer, same_element_type, validate
from ._cutt import CuTT, get_default_engine, set_default_engine
from ._plan import PlanState, TransposePlan

__all__ = [
    "classify",
    "element_width",
    "raw_pointer",
    "same_element_type",
    "validate",
    "CuTT",
    "get_default_engine",
    "set_default_engine",
    "PlanState",
    "TransposePlan",
]
