from pydantic import BaseModel


class GeocodeResultOut(BaseModel):
    display_name: str
    lat: float
    lon: float
    boundingbox: list[str] | None = None
    importance: float | None = None
    type: str | None = None


class GeocodeOut(BaseModel):
    results: list[GeocodeResultOut]
