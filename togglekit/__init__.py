"""
Togglekit - feature toggles for SQLAlchemy applications.

Features are assigned to any registered "assignable" model (users,
accounts, ...) and can be enabled or disabled in bulk, with scope filters
and percentage rollouts. See togglekit.core.features for the public API.
"""

__version__ = "0.1.0"

from togglekit.core.features import FeatureToggleService

__all__ = ["FeatureToggleService", "__version__"]
