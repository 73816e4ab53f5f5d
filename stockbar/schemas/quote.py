from pydantic import BaseModel, ConfigDict


class Quote(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    display_symbol: str
    name: str
    price: float
    previous_close: float
    change: float
    change_pct: float
    currency: str | None = None
    exchange: str | None = None
    market_state: str | None = None
    is_crypto: bool = False
    ts: int


class QuoteError(BaseModel):
    symbol: str
    error: str
