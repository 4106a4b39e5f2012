"""
cuTT native shared library loader.

This module centralizes the logic for locating and loading the cuTT shared
library through `ctypes`, including platform-specific filename conventions
and Windows DLL dependency handling.

Resolution policy
-----------------
Unless an explicit `lib_path` is given, candidates are tried in order:

1. The `CUTT_LIBRARY` environment variable (exact path).
2. The platform library name next to this module
   (`cutt.dll` / `libcutt.dylib` / `libcutt.so`).
3. The system search path via `ctypes.util.find_library("cutt")`.

The first candidate that loads wins. If none does, `OSError` lists every
candidate together with the reason it was rejected.

Windows-specific considerations
-------------------------------
On Windows (Python 3.8+), dependent DLL discovery is restricted. The loader
registers the library's own directory and `<CUDA_PATH>/bin` (when the
`CUDA_PATH` environment variable is set) through `os.add_dll_directory`.
The registration handles are retained on the returned library object so
the directories stay registered for its lifetime.

Scope
-----
The loader only guarantees that the library is located and loaded once per
process. Symbol binding lives in `cutt_ctypes`.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import os
import sys
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

CUTT_LIBRARY_ENV = "CUTT_LIBRARY"


def _platform_lib_name() -> str:
    """
    Return the platform-specific filename of the cuTT shared library.

    Notes
    -----
    - Windows:  cutt.dll
    - macOS:    libcutt.dylib
    - Linux:    libcutt.so
    """
    if sys.platform.startswith("win"):
        return "cutt.dll"
    if sys.platform == "darwin":
        return "libcutt.dylib"
    return "libcutt.so"


def _candidate_paths() -> List[str]:
    candidates: List[str] = []

    env_path = os.environ.get(CUTT_LIBRARY_ENV, "")
    if env_path:
        candidates.append(env_path)

    candidates.append(str(Path(__file__).resolve().parent / _platform_lib_name()))

    found = ctypes.util.find_library("cutt")
    if found:
        candidates.append(found)
    return candidates


@lru_cache(maxsize=1)
def load_cutt_native(lib_path: Optional[str] = None) -> ctypes.CDLL:
    """
    Load the cuTT shared library via ctypes.

    Parameters
    ----------
    lib_path : Optional[str]
        Path to a specific library file. If provided, it always wins and no
        search occurs.

    Returns
    -------
    ctypes.CDLL
        A loaded ctypes handle to the cuTT library.

    Raises
    ------
    FileNotFoundError
        If `lib_path` is provided but the file does not exist.
    OSError
        If none of the candidate libraries can be loaded.
    """
    if lib_path is not None:
        return _load_cdll_with_windows_dirs(Path(lib_path).resolve())

    errors: list[str] = []
    for candidate in _candidate_paths():
        p = Path(candidate)
        # bare sonames from find_library are resolved by the dynamic loader
        if p.is_absolute() and not p.exists():
            errors.append(f"- {p} (missing)")
            continue
        try:
            return _load_cdll_with_windows_dirs(p)
        except Exception as e:
            errors.append(f"- {p} (failed to load: {e})")

    raise OSError("Failed to load the cuTT native library. Tried:\n" + "\n".join(errors))


def _add_dll_directory(dir_path: str, handles: list) -> None:
    if not dir_path or not os.path.isdir(dir_path):
        return
    try:
        handles.append(os.add_dll_directory(dir_path))
    except OSError as e:
        raise OSError(
            f"add_dll_directory failed for dir={dir_path!r} len={len(dir_path)} "
            f"winerror={getattr(e, 'winerror', None)} "
            f"strerror={getattr(e, 'strerror', None)!r}"
        ) from e


def _load_cdll_with_windows_dirs(lib_path: Path) -> ctypes.CDLL:
    if lib_path.is_absolute() and not lib_path.exists():
        raise FileNotFoundError(f"Native library not found: {lib_path}")

    handles: list = []
    if sys.platform.startswith("win") and hasattr(os, "add_dll_directory"):
        if lib_path.is_absolute():
            _add_dll_directory(str(lib_path.parent), handles)
        cuda_path = os.environ.get("CUDA_PATH", "")
        if cuda_path:
            _add_dll_directory(os.path.join(cuda_path, "bin"), handles)

    lib_str = str(lib_path)
    try:
        lib = ctypes.CDLL(lib_str)
    except OSError as e:
        raise OSError(
            f"ctypes.CDLL failed for lib={lib_str!r} "
            f"errno={getattr(e, 'errno', None)} "
            f"strerror={getattr(e, 'strerror', None)!r}"
        ) from e

    setattr(lib, "_cutt_dll_dir_handles", handles)
    return lib
