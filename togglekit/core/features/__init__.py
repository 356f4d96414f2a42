"""
Feature Toggle System.

Features are assigned to host models ("assignables") through a polymorphic
feature_assignments table:
- Dependency index (feature -> transitive prerequisites, and the inverse)
- Per-assignable add/remove/has checks, direct and effective
- Bulk enable/disable across a population, with scope filters and
  percentage sampling, in one transaction
- Usage analytics per assignable type

Usage Levels:

Level 1 - Register a host model:
    from togglekit.core.features import AssignableMixin, register_assignable

    @register_assignable
    class User(Base, IntegerPKMixin, AssignableMixin):
        __tablename__ = "users"

Level 2 - Per-member checks:
    service = FeatureToggleService(db)
    user_features = service.for_assignable(user)
    await user_features.add_feature("dark_mode")
    await user_features.has_effective_feature("reports")

Level 3 - Bulk rollout:
    await service.bulk_enable("User", ["dark_mode"], group="beta", percentage=25)
    await service.bulk_disable("User", "dark_mode", env="production")

Level 4 - Analytics:
    records = await service.track("dark_mode")
    # [AnalyticsRecord(assignable="User", percentage_enabled="40.0%", ...)]
"""

from .models import (
    Feature,
    FeatureAssignment,
    FeatureStatus,
    derive_identifier,
)

from .interfaces import (
    AnalyticsRecord,
    AssignableCapability,
    AssignableRef,
    FeatureFilters,
    ToggleDirection,
)

from .dependency_index import (
    DependencyIndex,
    get_dependency_index,
    load_dependency_index,
    reload_dependency_index,
)

from .assignable import (
    AssignableMixin,
    FeatureAssignableManager,
    ModelAssignable,
)

from .registry import (
    AssignableRegistry,
    assignables,
    register_assignable,
)

from .resolver import FeatureResolver
from .toggler import BulkToggler, ToggleResult, sample_assignables
from .analytics import FeatureAnalytics, calculate_percentage
from .manager import FeatureManager
from .service import FeatureToggleService

__all__ = [
    # Models
    "Feature",
    "FeatureAssignment",
    "FeatureStatus",
    "derive_identifier",
    # Interfaces
    "AnalyticsRecord",
    "AssignableCapability",
    "AssignableRef",
    "FeatureFilters",
    "ToggleDirection",
    # Dependencies
    "DependencyIndex",
    "get_dependency_index",
    "load_dependency_index",
    "reload_dependency_index",
    # Assignables
    "AssignableMixin",
    "FeatureAssignableManager",
    "ModelAssignable",
    "AssignableRegistry",
    "assignables",
    "register_assignable",
    # Operations
    "FeatureResolver",
    "BulkToggler",
    "ToggleResult",
    "sample_assignables",
    "FeatureAnalytics",
    "calculate_percentage",
    "FeatureManager",
    "FeatureToggleService",
]
