"""Pluggable recognition engines.

An engine implements one or more named tasks; today the only task is
``"image_to_text"`` (identifier text from a binarized photo). Engines are
registered lazily as ``(module, function)`` pairs so an engine whose
library is missing only fails when it is actually selected.

The Tesseract adapter ships with the package. Other engines can be
installed as plugins exposing the ``inventory.engines`` entry-point group;
importing the entry point must call :func:`register_task`.
"""

from importlib import import_module, metadata
from typing import Any, Dict, List, Tuple

ENTRY_POINT_GROUP = "inventory.engines"

# task -> engine name -> (module path, function name)
_REGISTRY: Dict[str, Dict[str, Tuple[str, str]]] = {}


def register_task(task: str, engine: str, module: str, func: str) -> None:
    """Declare that ``module.func`` implements ``task`` for ``engine``.

    Registering the same engine twice replaces the earlier entry.
    """
    _REGISTRY.setdefault(task, {})[engine] = (module, func)


def available_engines(task: str) -> List[str]:
    """Names of the engines registered for ``task``, sorted."""
    return sorted(_REGISTRY.get(task, {}))


def _load_plugins() -> None:
    for ep in metadata.entry_points().select(group=ENTRY_POINT_GROUP):
        ep.load()


def dispatch(task: str, *args: Any, engine: str = "tesseract", **kwargs: Any) -> Any:
    """Call the ``engine`` implementation of ``task`` with the given arguments.

    Raises
    ------
    ValueError
        No engine of that name is registered for the task.
    """
    engines = _REGISTRY.get(task)
    if not engines:
        raise ValueError(f"No engines registered for task '{task}'")
    if engine not in engines:
        raise ValueError(
            f"Engine '{engine}' not registered for '{task}' "
            f"(registered: {', '.join(sorted(engines))})"
        )
    module_name, func_name = engines[engine]
    return getattr(import_module(module_name), func_name)(*args, **kwargs)


from . import tesseract  # noqa: E402, F401  registers the built-in engine

_load_plugins()

__all__ = ["ENTRY_POINT_GROUP", "dispatch", "register_task", "available_engines"]
