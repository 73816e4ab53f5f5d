import os
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field

_DEFAULT_WATCHLIST = "AAPL,MSFT,BTC-USD"


def _split_symbols(raw: str) -> list[str]:
    return [s.strip() for s in raw.split(",") if s.strip()]


def _default_logo_cache_dir() -> str:
    cache_root = os.getenv("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return str(Path(cache_root) / "stockbar-logos")


class Settings(BaseModel):
    STOCKBAR_WATCHLIST: list[str]
    STOCKBAR_PANEL_STOCKS: list[str] = []
    STOCKBAR_REFRESH_INTERVAL_SEC: int = Field(default=60, ge=5)
    STOCKBAR_HTTP_TIMEOUT_SEC: float = Field(default=10.0, gt=0)
    STOCKBAR_LOGO_CACHE_DIR: Path
    STOCKBAR_LOGO_MIN_BYTES: int = Field(default=500, ge=0)
    STOCKBAR_LOGO_WAIT_SEC: float = Field(default=15.0, gt=0)

    @classmethod
    def from_env(cls) -> "Settings":
        raw_watchlist = os.getenv("STOCKBAR_WATCHLIST", _DEFAULT_WATCHLIST)

        values = {
            "STOCKBAR_WATCHLIST": _split_symbols(raw_watchlist),
            "STOCKBAR_PANEL_STOCKS": _split_symbols(os.getenv("STOCKBAR_PANEL_STOCKS", "")),
            "STOCKBAR_LOGO_CACHE_DIR": os.getenv("STOCKBAR_LOGO_CACHE_DIR") or _default_logo_cache_dir(),
        }
        # unset numeric knobs fall back to the model defaults
        for key in (
            "STOCKBAR_REFRESH_INTERVAL_SEC",
            "STOCKBAR_HTTP_TIMEOUT_SEC",
            "STOCKBAR_LOGO_MIN_BYTES",
            "STOCKBAR_LOGO_WAIT_SEC",
        ):
            raw = os.getenv(key)
            if raw:
                values[key] = raw

        return cls.model_validate(values)

    def tracked_symbols(self) -> list[str]:
        out: list[str] = []
        seen: set[str] = set()
        for symbol in [*self.STOCKBAR_WATCHLIST, *self.STOCKBAR_PANEL_STOCKS]:
            if symbol in seen:
                continue
            seen.add(symbol)
            out.append(symbol)
        return out


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
