from .transpose_reference import ReferenceTransposeEngine, transpose_reference

__all__ = ["ReferenceTransposeEngine", "transpose_reference"]
