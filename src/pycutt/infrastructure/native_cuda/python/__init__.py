from ._native_loader import load_cutt_native
from .cutt_ctypes import CuttEngine, CuttLib

__all__ = ["load_cutt_native", "CuttEngine", "CuttLib"]
