"""Documents served by the catalog API."""

from pydantic import BaseModel

from garage_broker.schemas.common import CamelModel


class CategoryRead(CamelModel):
    id: int
    name: str


class SubcategoryRead(CamelModel):
    id: int
    name: str
    category_id: int


class GarageRead(CamelModel):
    id: int
    name: str
    address: str | None = None
    phone: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    capacity: int
    is_available: bool
    rating: float | None = None
    category_id: int | None = None
    category: CategoryRead | None = None
    subcategories: list[SubcategoryRead] = []


class ServiceRead(CamelModel):
    id: int
    garage_id: int
    name: str
    price: float | None = None
    duration_minutes: int | None = None


class GarageHitRead(GarageRead):
    distance_km: float | None = None
    services_count: int = 0

    @classmethod
    def from_hit(cls, hit) -> "GarageHitRead":
        return cls(
            **GarageRead.model_validate(hit.garage).model_dump(),
            distance_km=round(hit.distance_km, 3) if hit.distance_km is not None else None,
            services_count=hit.services_count,
        )


# The two lookup documents are the contract CatalogClient decodes.
class GarageDocument(BaseModel):
    garage: GarageRead


class ServiceDocument(BaseModel):
    service: ServiceRead


class SearchResults(CamelModel):
    count: int
    garages: list[GarageHitRead]


class ScopedSearchResults(SearchResults):
    """Results of a category- or subcategory-scoped search, with the scope echoed back."""

    category: CategoryRead | None = None
    subcategory: SubcategoryRead | None = None
