from ._control_path import create_path_builder
from ._once import RunOnce

__all__ = ["create_path_builder", "RunOnce"]
