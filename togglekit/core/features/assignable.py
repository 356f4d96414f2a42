"""
Assignable Query Layer.

- AssignableMixin: marks a host model as able to hold feature assignments
- ModelAssignable: with/without-features population queries for one model
- FeatureAssignableManager: per-member add/remove/clear/has operations
"""

from typing import ClassVar, Iterable, Sequence

from sqlalchemy import Select, and_, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from togglekit.core.exceptions import DependencyMissing

from .dependency_index import DependencyIndex, get_dependency_index
from .interfaces import AssignableCapability, AssignableRef
from .models import Feature, FeatureAssignment, FeatureStatus
from .resolver import FeatureResolver


class AssignableMixin:
    """
    Mixin for host models that can hold features.

    The stored type name defaults to the class name; set
    `__assignable_type__` to keep it stable across renames.

    Usage:
        class User(Base, IntegerPKMixin, AssignableMixin):
            __tablename__ = "users"
    """

    __assignable_type__: ClassVar[str | None] = None

    @classmethod
    def assignable_type(cls) -> str:
        return cls.__assignable_type__ or cls.__name__

    def assignable_ref(self) -> AssignableRef:
        return AssignableRef(kind=self.assignable_type(), id=self.id)


class ModelAssignable(AssignableCapability):
    """Population queries for a SQLAlchemy model mixing in AssignableMixin."""

    def __init__(self, model: type):
        self.model = model
        self.name = model.assignable_type()

    def _join_condition(self, feature_ids: Sequence[int] | None = None):
        clauses = [
            FeatureAssignment.assignable_id == self.model.id,
            FeatureAssignment.assignable_type == self.name,
        ]
        if feature_ids is not None:
            clauses.append(FeatureAssignment.feature_id.in_(list(feature_ids)))
        return and_(*clauses)

    def with_features_query(self, feature_ids: Sequence[int]) -> Select:
        return (
            select(self.model)
            .join(FeatureAssignment, self._join_condition())
            .where(FeatureAssignment.feature_id.in_(list(feature_ids)))
            .distinct()
            .order_by(self.model.id)
        )

    def without_features_query(self, feature_ids: Sequence[int]) -> Select:
        # Anti-join: the feature filter sits in the ON clause so unmatched
        # members survive the LEFT JOIN with a NULL assignment id.
        return (
            select(self.model)
            .outerjoin(FeatureAssignment, self._join_condition(feature_ids))
            .where(FeatureAssignment.id.is_(None))
            .distinct()
            .order_by(self.model.id)
        )

    async def count(self, db: AsyncSession) -> int:
        return await db.scalar(select(func.count()).select_from(self.model)) or 0

    def __repr__(self) -> str:
        return f"<ModelAssignable {self.name}>"


class FeatureAssignableManager:
    """
    Feature operations for one assignable.

    Adding an already-held feature and removing an absent one are no-ops.
    String identifiers are resolved to features and raise FeatureNotFound
    when unknown.

    Usage:
        manager = FeatureAssignableManager(db, user)
        await manager.add_feature("dark_mode")
        await manager.has_direct_feature("dark_mode")     # True
        await manager.has_effective_feature("reports")    # via dependents
    """

    def __init__(
        self,
        db: AsyncSession,
        assignable: AssignableMixin,
        index: DependencyIndex | None = None,
    ):
        self.db = db
        self.assignable = assignable
        self.index = index or get_dependency_index()
        self.resolver = FeatureResolver(db)

    @property
    def ref(self) -> AssignableRef:
        return self.assignable.assignable_ref()

    def _own_assignments(self):
        ref = self.ref
        return and_(
            FeatureAssignment.assignable_type == ref.kind,
            FeatureAssignment.assignable_id == ref.id,
        )

    async def _find_feature(self, feature: Feature | str) -> Feature:
        if isinstance(feature, Feature):
            return feature
        return await self.resolver.get(str(feature))

    # ============================================================
    # QUERIES
    # ============================================================

    async def has_direct_feature(self, feature: Feature | str) -> bool:
        """True when this assignable holds the feature itself, whatever its status."""
        feature = await self._find_feature(feature)
        stmt = select(FeatureAssignment.id).where(
            self._own_assignments(),
            FeatureAssignment.feature_id == feature.id,
        ).limit(1)
        return (await self.db.scalar(stmt)) is not None

    async def has_effective_feature(self, feature: Feature | str) -> bool:
        """
        True when this assignable holds the feature, or any feature that
        depends on it, and that held feature is active.
        """
        feature = await self._find_feature(feature)
        identifiers = sorted({feature.identifier} | self.index.dependents_of(feature.identifier))
        stmt = (
            select(FeatureAssignment.id)
            .join(Feature, Feature.id == FeatureAssignment.feature_id)
            .where(
                self._own_assignments(),
                Feature.identifier.in_(identifiers),
                Feature.status == FeatureStatus.ACTIVE,
            )
            .limit(1)
        )
        return (await self.db.scalar(stmt)) is not None

    async def features(self) -> list[Feature]:
        """Features held directly, in assignment order."""
        stmt = (
            select(Feature)
            .join(FeatureAssignment, FeatureAssignment.feature_id == Feature.id)
            .where(self._own_assignments())
            .order_by(FeatureAssignment.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def missing_dependencies(self, feature: Feature | str) -> list[str]:
        """Configured prerequisites of `feature` this assignable does not hold."""
        feature = await self._find_feature(feature)
        required = self.index.ordered_dependencies_for(feature.identifier)
        if not required:
            return []
        held = {f.identifier for f in await self.features()}
        return [identifier for identifier in required if identifier not in held]

    async def ensure_dependencies(self, feature: Feature | str) -> None:
        """
        Raises:
            DependencyMissing: for the first prerequisite not held
        """
        feature = await self._find_feature(feature)
        missing = await self.missing_dependencies(feature)
        if missing:
            raise DependencyMissing(feature.identifier, missing[0])

    # ============================================================
    # MUTATIONS
    # ============================================================

    async def add_feature(self, feature: Feature | str) -> bool:
        """Assign a feature. Returns False when it was already held."""
        feature = await self._find_feature(feature)
        if await self.has_direct_feature(feature):
            return False

        ref = self.ref
        self.db.add(
            FeatureAssignment(
                feature_id=feature.id,
                assignable_type=ref.kind,
                assignable_id=ref.id,
            )
        )
        await self.db.flush()
        return True

    async def remove_feature(self, feature: Feature | str) -> bool:
        """Unassign a feature. Returns False when it was not held."""
        feature = await self._find_feature(feature)
        stmt = delete(FeatureAssignment).where(
            self._own_assignments(),
            FeatureAssignment.feature_id == feature.id,
        )
        result = await self.db.execute(stmt)
        await self.db.flush()
        return result.rowcount > 0

    async def clear_features(self) -> int:
        """Remove every assignment of this assignable. Returns rows removed."""
        result = await self.db.execute(delete(FeatureAssignment).where(self._own_assignments()))
        await self.db.flush()
        return result.rowcount

    async def add_features(self, features: Iterable[Feature | str]) -> int:
        added = 0
        for feature in features:
            added += await self.add_feature(feature)
        return added

    # Aliases
    enable = add_feature
    disable = remove_feature
    clear = clear_features
    has = has_direct_feature
