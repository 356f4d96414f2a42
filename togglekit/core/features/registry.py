"""
Assignable type registry.

Maps the type names stored in feature_assignments.assignable_type to the
query capability of the host model, so stored strings are never turned
into classes by reflection.

Usage:
    registry = AssignableRegistry()

    @registry.register
    class User(Base, IntegerPKMixin, AssignableMixin):
        __tablename__ = "users"

    registry.get("User").with_features_query([1, 2])
"""

from typing import Any, Callable, Type

from togglekit.core.exceptions import UnknownAssignableType

from .assignable import AssignableMixin, ModelAssignable
from .interfaces import AssignableCapability, AssignableRef


class AssignableRegistry:
    """Registry of assignable types, populated at startup."""

    def __init__(self):
        self._types: dict[str, AssignableCapability] = {}

    # ============================================================
    # REGISTRATION
    # ============================================================

    def register(
        self,
        model: Type[AssignableMixin] | None = None,
        *,
        name: str | None = None,
    ) -> Any:
        """
        Register a model as an assignable type.

        Works as a plain call, a bare decorator or a decorator with a name:

            registry.register(User)

            @registry.register
            class Account(...): ...

            @registry.register(name="Org")
            class Organization(...): ...
        """
        def decorator(model_class: Type[AssignableMixin]) -> Type[AssignableMixin]:
            if name:
                model_class.__assignable_type__ = name
            self.add(ModelAssignable(model_class))
            return model_class

        if model is None:
            return decorator
        return decorator(model)

    def add(self, capability: AssignableCapability) -> AssignableCapability:
        """Register any capability implementation under its name."""
        existing = self._types.get(capability.name)
        if existing is not None and existing is not capability:
            raise ValueError(f"Assignable type '{capability.name}' is already registered")
        self._types[capability.name] = capability
        return capability

    def unregister(self, name: str) -> None:
        self._types.pop(name, None)

    # ============================================================
    # LOOKUP
    # ============================================================

    def get(self, kind: "str | Type[AssignableMixin]") -> AssignableCapability:
        """
        Get the capability for a type name or model class.

        Raises:
            UnknownAssignableType: The type was never registered
        """
        name = kind.assignable_type() if isinstance(kind, type) else str(kind)
        capability = self._types.get(name)
        if capability is None:
            raise UnknownAssignableType(name)
        return capability

    def resolve(self, name: str) -> AssignableCapability | None:
        """Like get(), but returns None for unknown names."""
        return self._types.get(name)

    def ref(self, assignable: AssignableMixin) -> AssignableRef:
        """Build a validated reference to a registered assignable instance."""
        ref = assignable.assignable_ref()
        self.get(ref.kind)
        return ref

    def validate(self, ref: AssignableRef) -> AssignableRef:
        self.get(ref.kind)
        return ref

    def names(self) -> list[str]:
        return list(self._types.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def __len__(self) -> int:
        return len(self._types)


# Default registry for hosts that do not need more than one
assignables = AssignableRegistry()

register_assignable: Callable[..., Any] = assignables.register
