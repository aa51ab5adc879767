from __future__ import annotations

from importlib import import_module
from typing import Any


def import_string(dotted_path: str) -> Any:
    """
    Import "package.module:attr" (or "package.module.attr") and return attr.

    Raises ImportError if the module or attribute cannot be found.
    """
    if ":" in dotted_path:
        module_path, _, attr = dotted_path.partition(":")
    else:
        module_path, _, attr = dotted_path.rpartition(".")
    if not module_path or not attr:
        raise ImportError(f"{dotted_path!r} is not a valid import path")

    module = import_module(module_path)
    try:
        return getattr(module, attr)
    except AttributeError as e:
        raise ImportError(f"Module {module_path!r} has no attribute {attr!r}") from e
