from pydantic import BaseModel


class ChartPoint(BaseModel):
    ts_ms: int
    open: float | None = None
    high: float | None = None
    low: float | None = None
    close: float
    volume: float | None = None


class ChartData(BaseModel):
    symbol: str
    currency: str | None = None
    range: str
    interval: str
    prices: list[ChartPoint]
