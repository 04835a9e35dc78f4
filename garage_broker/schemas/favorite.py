from datetime import datetime
from typing import Any

from pydantic import Field

from garage_broker.schemas.booking import CarSummary, OwnerSummary
from garage_broker.schemas.common import CamelModel, PageInfo


class FavoriteCreate(CamelModel):
    garage_id: int = Field(gt=0)
    automobile_id: int = Field(gt=0)


class FavoriteRead(CamelModel):
    id: int
    garage_id: int
    automobile_id: int
    user_id: int | None = None
    liked_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class FavoriteDetail(FavoriteRead):
    car: CarSummary | None = None
    owner: OwnerSummary | None = None
    garage: dict[str, Any] | None = None

    @classmethod
    def from_view(cls, view, **extra: Any) -> "FavoriteDetail":
        return cls(
            **FavoriteRead.model_validate(view.favorite).model_dump(),
            car=CarSummary.model_validate(view.car) if view.car is not None else None,
            owner=OwnerSummary.model_validate(view.owner) if view.owner is not None else None,
            garage=view.garage,
            **extra,
        )


class NearbyFavorite(FavoriteDetail):
    distance_km: float


class FavoritePagination(PageInfo):
    total_favorites: int


class FavoritePage(CamelModel):
    favorites: list[FavoriteDetail]
    pagination: FavoritePagination


class ToggleResponse(CamelModel):
    action: str
    favorite: FavoriteRead


class FavoriteCheckResponse(CamelModel):
    is_favorite: bool
    favorite: FavoriteDetail | None = None
