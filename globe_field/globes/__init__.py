"""Globe registry, discovery, and construction.

Provides the :class:`GlobeRegistry` class for managing projection
variants, plus module-level convenience functions :func:`build_globe`
and :func:`list_projections`.

Built-in variants are auto-discovered from Python modules in the
``globe_field.globes`` package.  Any :class:`Globe` subclass with a
non-empty ``name`` that is *defined* in such a module is registered.

**Adding a new built-in projection:**

1. Create a new ``.py`` file under ``globe_field/globes/``.
2. Subclass :class:`Globe`, set ``name`` and implement
   ``new_projection``.  Override ``center``, ``scale_extent``,
   ``locate``, ``define_mask`` or ``define_map`` only where the variant
   differs from the defaults.
3. The registry picks it up on next import.
"""

from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil
from typing import Iterator, Type

from globe_field.errors import UnknownProjection
from globe_field.globes.base import Bounds, Globe, Manipulator, MapDefinition, View

logger = logging.getLogger(__name__)

__all__ = [
    "Bounds",
    "Globe",
    "GlobeRegistry",
    "Manipulator",
    "MapDefinition",
    "View",
    "build_globe",
    "list_projections",
]


class GlobeRegistry:
    """Registry mapping projection names to :class:`Globe` subclasses.

    Parameters
    ----------
    auto_discover : bool
        If ``True`` (default), discover built-in variants from the
        ``globe_field.globes`` package on first access.
    """

    def __init__(self, *, auto_discover: bool = True) -> None:
        self._globes: dict[str, Type[Globe]] = {}
        self._auto_discover = auto_discover
        self._discovered = False

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, globe_type: Type[Globe]) -> Type[Globe]:
        """Register a globe variant under its ``name``.

        Returns the class unchanged so this can be used as a decorator.

        Raises
        ------
        TypeError
            If *globe_type* is not a :class:`Globe` subclass.
        ValueError
            If the variant has no ``name``.
        """
        if not (inspect.isclass(globe_type) and issubclass(globe_type, Globe)):
            raise TypeError(f"Expected a Globe subclass, got {globe_type!r}")
        if not globe_type.name or not globe_type.name.strip():
            raise ValueError(f"{globe_type.__name__} must define a non-empty 'name'")
        self._globes[globe_type.name] = globe_type
        return globe_type

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, name: str) -> Type[Globe]:
        """Return the globe class registered as *name*.

        Raises
        ------
        UnknownProjection
            If no variant with the given name is registered.
        """
        self._ensure_discovered()
        try:
            return self._globes[name]
        except KeyError:
            raise UnknownProjection(name, self._globes) from None

    def build(self, name: str, view: View) -> Globe:
        """Construct a new globe of variant *name* fitted to *view*."""
        return self.get(name)(view)

    def list_projections(self) -> list[str]:
        """Return a sorted list of all registered projection names."""
        self._ensure_discovered()
        return sorted(self._globes)

    def __len__(self) -> int:
        self._ensure_discovered()
        return len(self._globes)

    def __iter__(self) -> Iterator[str]:
        self._ensure_discovered()
        return iter(sorted(self._globes))

    def __contains__(self, name: object) -> bool:
        self._ensure_discovered()
        return name in self._globes

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def discover_builtin(self) -> None:
        """Scan ``globe_field.globes`` for modules defining Globe variants.

        A module that fails to import is logged and skipped so that one
        broken variant does not take the others down with it.
        """
        import globe_field.globes as _pkg

        for module_info in pkgutil.iter_modules(_pkg.__path__):
            if module_info.name == "base":
                continue
            module_name = f"globe_field.globes.{module_info.name}"
            try:
                mod = importlib.import_module(module_name)
            except Exception:  # noqa: BLE001
                logger.warning("Skipping globe module %s", module_name, exc_info=True)
                continue

            for _attr_name, attr in inspect.getmembers(mod, inspect.isclass):
                if (
                    issubclass(attr, Globe)
                    and attr.__module__ == mod.__name__
                    and attr.name
                ):
                    self._globes[attr.name] = attr

        self._discovered = True

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _ensure_discovered(self) -> None:
        if self._auto_discover and not self._discovered:
            self.discover_builtin()


# ======================================================================
# Module-level singleton and convenience functions
# ======================================================================

_registry = GlobeRegistry()


def build_globe(name: str, view: View) -> Globe:
    """Build a globe of the named projection, fitted and centered in *view*.

    Raises
    ------
    UnknownProjection
        If *name* is not a registered projection.
    """
    return _registry.build(name, view)


def list_projections() -> list[str]:
    """Return a sorted list of all available projection names."""
    return _registry.list_projections()
