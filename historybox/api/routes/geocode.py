from fastapi import APIRouter, Depends, Query

from historybox.api.deps import get_geocoder
from historybox.schemas.geocode import GeocodeOut, GeocodeResultOut


router = APIRouter(tags=["geocode"])


@router.get("/geocode", response_model=GeocodeOut)
def geocode(
    q: str | None = Query(None),
    limit: int = Query(5),
    geocoder=Depends(get_geocoder),
) -> GeocodeOut:
    results = geocoder.search(q, limit)
    return GeocodeOut(results=[GeocodeResultOut(**vars(r)) for r in results])
