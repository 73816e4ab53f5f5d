from pydantic import BaseModel


class SearchResult(BaseModel):
    symbol: str
    display_symbol: str
    name: str
    exchange: str | None = None
    type: str
    is_crypto: bool = False
