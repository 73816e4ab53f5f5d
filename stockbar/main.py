from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from stockbar.api.routes import router
from stockbar.config.settings import get_settings
from stockbar.integrations.image_fetcher import RemoteImageFetcher
from stockbar.integrations.yahoo_rest import YahooFinanceClient
from stockbar.services.logo_cache import LogoCache
from stockbar.services.quote_poller import QuotePoller
from stockbar.services.quote_store import QuoteStore


def _build_api() -> YahooFinanceClient:
    settings = app.state.get_settings()
    return YahooFinanceClient(timeout_sec=settings.STOCKBAR_HTTP_TIMEOUT_SEC)


def _build_logo_cache() -> LogoCache:
    settings = app.state.get_settings()
    return LogoCache(
        settings.STOCKBAR_LOGO_CACHE_DIR,
        image_fetcher=RemoteImageFetcher(
            timeout_sec=settings.STOCKBAR_HTTP_TIMEOUT_SEC,
            min_bytes=settings.STOCKBAR_LOGO_MIN_BYTES,
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    store: QuoteStore = app.state.quote_store
    poller: QuotePoller = app.state.quote_poller

    store.init()
    poller.start()
    try:
        yield
    finally:
        poller.stop()
        store.destroy()
        print("[APP][shutdown] store=destroyed poller=stopped", flush=True)


app = FastAPI(title="Stockbar Quote Service", version="0.1.0", lifespan=lifespan)
app.include_router(router, prefix="/v1")

# NOTE: settings are read lazily so importing the app never touches the environment.
app.state.get_settings = get_settings
app.state.quote_store = QuoteStore(api_factory=_build_api, logo_cache_factory=_build_logo_cache)
app.state.quote_poller = QuotePoller(
    store=app.state.quote_store,
    symbols_provider=lambda: app.state.get_settings().tracked_symbols(),
    interval_sec=lambda: app.state.get_settings().STOCKBAR_REFRESH_INTERVAL_SEC,
)
