"""
Feature toggle admin routes.
"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from togglekit.core.exceptions import (
    AssignablesNotFound,
    BulkToggleFailed,
    FeatureNotFound,
    UnknownAssignableType,
)
from togglekit.core.features import ToggleDirection

from .dependencies import ToggleService

router = APIRouter()


# ============================================================
# SCHEMAS
# ============================================================

class FeatureResponse(BaseModel):
    """Feature response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    identifier: str
    description: str | None
    group: str | None
    environment: str | None
    tenant_id: str | None
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_feature(cls, feature: Any) -> "FeatureResponse":
        data = feature.to_dict()
        data["status"] = feature.status.name.lower()
        return cls(**data)


class BulkToggleRequest(BaseModel):
    """Bulk enable/disable request."""
    identifiers: list[str] = Field(..., min_length=1)
    group: str | None = None
    role: str | None = None
    environment: str | None = None
    env: str | None = None
    tenant_id: str | None = None
    percentage: float | None = Field(default=None, ge=0, le=100)

    def filters(self) -> dict[str, Any]:
        return self.model_dump(exclude={"identifiers"}, exclude_none=True)


class BulkToggleResponse(BaseModel):
    """What a bulk toggle did."""
    direction: str
    assignable_type: str
    identifiers: list[str]
    candidates: int
    selected: int
    written: int


class DependenciesResponse(BaseModel):
    identifier: str
    requires: list[str]
    required_by: list[str]


# ============================================================
# ENDPOINTS
# ============================================================

@router.get("")
async def list_features(
    service: ToggleService,
    identifiers: list[str] | None = Query(default=None, alias="identifier"),
    group: str | None = None,
    environment: str | None = None,
    tenant_id: str | None = None,
    feature_status: str | None = Query(default=None, alias="status"),
) -> list[FeatureResponse]:
    """List features matching the identifiers and filters."""
    try:
        features = await service.resolve_features(
            identifiers,
            group=group,
            environment=environment,
            tenant_id=tenant_id,
            status=feature_status,
        )
    except (KeyError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid status '{feature_status}'",
        )
    return [FeatureResponse.from_feature(f) for f in features]


@router.post("/bulk/{assignable_type}/{direction}")
async def bulk_toggle(
    assignable_type: str,
    direction: ToggleDirection,
    data: BulkToggleRequest,
    service: ToggleService,
) -> BulkToggleResponse:
    """
    Enable or disable features for a whole assignable population.

    404 when the type or the features are unknown, 409 when nobody is left
    to toggle, 500 when the write was rolled back.
    """
    try:
        if direction is ToggleDirection.ENABLE:
            result = await service.bulk_enable(assignable_type, data.identifiers, **data.filters())
        else:
            result = await service.bulk_disable(assignable_type, data.identifiers, **data.filters())
    except (UnknownAssignableType, FeatureNotFound) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except AssignablesNotFound as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except BulkToggleFailed as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    return BulkToggleResponse(
        direction=result.direction.value,
        assignable_type=result.assignable_type,
        identifiers=result.identifiers,
        candidates=result.candidates,
        selected=result.selected,
        written=result.written,
    )


@router.get("/{identifier}/analytics")
async def feature_analytics(
    identifier: str,
    service: ToggleService,
) -> list[dict[str, Any]]:
    """Usage of one feature per assignable type."""
    return [record.to_dict() for record in await service.track(identifier)]


@router.get("/{identifier}/dependencies")
async def feature_dependencies(
    identifier: str,
    service: ToggleService,
) -> DependenciesResponse:
    """Transitive prerequisites and dependents of a feature."""
    return DependenciesResponse(
        identifier=identifier,
        requires=service.dependencies_for(identifier),
        required_by=service.dependents_of(identifier),
    )
