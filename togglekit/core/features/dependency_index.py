"""
Feature Dependency Index.

Loads a static "feature -> [required features]" configuration and builds:

- forward:  feature -> transitive closure of everything it requires
- inverse:  feature -> every feature whose closure contains it

Config file (YAML):

    feature_dependency:
      advanced_reports: [reports]
      reports: [dashboard]

Usage:
    index = DependencyIndex.from_file("config/features.yml")
    index.dependencies_for("advanced_reports")   # {"reports", "dashboard"}
    index.dependents_of("dashboard")             # {"reports", "advanced_reports"}

A process-wide index is available through get_dependency_index(); it is
built once under a lock and only rebuilt by reload_dependency_index().
"""

import threading
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import structlog
import yaml

from togglekit.core.config import settings
from togglekit.core.exceptions import ConfigurationError, DependencyCycleError

logger = structlog.get_logger()


@dataclass(frozen=True)
class DependencyIndex:
    """Immutable forward/inverse dependency maps."""

    forward: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    inverse: Mapping[str, frozenset[str]] = field(default_factory=dict)

    # ============================================================
    # CONSTRUCTION
    # ============================================================

    @classmethod
    def empty(cls) -> "DependencyIndex":
        return cls(forward=MappingProxyType({}), inverse=MappingProxyType({}))

    @classmethod
    def from_mapping(cls, direct: Mapping[str, Any]) -> "DependencyIndex":
        """
        Build the index from direct dependencies.

        Raises:
            ConfigurationError: values are not lists of identifiers
            DependencyCycleError: a feature (transitively) requires itself
        """
        direct = _normalize(direct)

        forward: dict[str, tuple[str, ...]] = {}
        for key in direct:
            _expand(key, direct, forward, [])

        # Only features that appear as a dependency somewhere get an entry
        inverse: dict[str, frozenset[str]] = {}
        for dependency in {dep for closure in forward.values() for dep in closure}:
            inverse[dependency] = frozenset(
                key for key, closure in forward.items() if dependency in closure
            )

        return cls(
            forward=MappingProxyType({k: v for k, v in forward.items() if k in direct}),
            inverse=MappingProxyType(inverse),
        )

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        key: str | None = None,
    ) -> "DependencyIndex":
        """
        Build the index from a YAML file.

        A missing file yields an empty index. When `key` is present at the
        top level of the document its value is used, otherwise the whole
        document is treated as the mapping.
        """
        path = Path(path)
        key = key or settings.features.dependency_key

        if not path.exists():
            logger.info("feature_dependencies_missing", path=str(path))
            return cls.empty()

        try:
            with path.open() as fh:
                document = yaml.safe_load(fh) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Error parsing feature dependencies file {path}: {e}"
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Could not read feature dependencies file {path}: {e}"
            ) from e

        if not isinstance(document, dict):
            raise ConfigurationError(
                f"Feature dependencies file {path} must contain a mapping"
            )

        direct = document[key] if key in document else document
        index = cls.from_mapping(direct or {})
        logger.info(
            "feature_dependencies_loaded",
            path=str(path),
            features=len(index.forward),
        )
        return index

    # ============================================================
    # QUERIES
    # ============================================================

    def dependencies_for(self, identifier: str) -> frozenset[str]:
        """Everything `identifier` requires, directly or transitively."""
        return frozenset(self.forward.get(str(identifier), ()))

    def ordered_dependencies_for(self, identifier: str) -> tuple[str, ...]:
        """Same as dependencies_for, in expansion order."""
        return self.forward.get(str(identifier), ())

    def dependents_of(self, identifier: str) -> frozenset[str]:
        """Every feature that requires `identifier`, directly or transitively."""
        return self.inverse.get(str(identifier), frozenset())

    def has_dependencies(self, identifier: str) -> bool:
        return bool(self.forward.get(str(identifier)))


# ============================================================
# CLOSURE HELPERS
# ============================================================

def _normalize(direct: Mapping[str, Any]) -> dict[str, list[str]]:
    if not isinstance(direct, Mapping):
        raise ConfigurationError("Feature dependencies must be a mapping")

    normalized: dict[str, list[str]] = {}
    for key, deps in direct.items():
        if deps is None:
            deps = []
        elif isinstance(deps, str):
            deps = [deps]
        elif not isinstance(deps, (list, tuple)):
            raise ConfigurationError(
                f"Dependencies of '{key}' must be a list, got {type(deps).__name__}"
            )
        normalized[str(key)] = [str(dep) for dep in deps]
    return normalized


def _expand(
    identifier: str,
    direct: dict[str, list[str]],
    resolved: dict[str, tuple[str, ...]],
    path: list[str],
) -> tuple[str, ...]:
    """Depth-first closure with memoization; `path` is the active chain."""
    if identifier in resolved:
        return resolved[identifier]
    if identifier in path:
        raise DependencyCycleError(path[path.index(identifier):] + [identifier])

    path.append(identifier)
    closure: list[str] = []
    for dep in direct.get(identifier, []):
        if dep not in closure:
            closure.append(dep)
        for inherited in _expand(dep, direct, resolved, path):
            if inherited not in closure:
                closure.append(inherited)
    path.pop()

    resolved[identifier] = tuple(closure)
    return resolved[identifier]


# ============================================================
# PROCESS-WIDE INDEX
# ============================================================

_index: DependencyIndex | None = None
_index_lock = threading.Lock()


def load_dependency_index(path: str | Path | None = None) -> DependencyIndex:
    """
    Build the process-wide index once.

    Later calls return the cached index regardless of `path`.
    """
    global _index
    if _index is not None:
        return _index
    with _index_lock:
        if _index is None:
            _index = DependencyIndex.from_file(path or settings.features.dependency_file)
    return _index


def get_dependency_index() -> DependencyIndex:
    """Get the process-wide index, loading it from settings on first use."""
    return load_dependency_index()


def reload_dependency_index(
    path: str | Path | None = None,
    mapping: Mapping[str, Any] | None = None,
) -> DependencyIndex:
    """Rebuild the process-wide index from a file or an in-memory mapping."""
    global _index
    with _index_lock:
        if mapping is not None:
            _index = DependencyIndex.from_mapping(mapping)
        else:
            _index = DependencyIndex.from_file(path or settings.features.dependency_file)
    return _index
