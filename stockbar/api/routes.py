from concurrent.futures import TimeoutError as FutureTimeoutError

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import FileResponse

from stockbar.services.logo_sources import get_logo_request
from stockbar.services.quote_store import QuoteStore

router = APIRouter()


def _store(request: Request) -> QuoteStore:
    return request.app.state.quote_store


def _require_initialized(store: QuoteStore) -> None:
    if not store.initialized:
        raise HTTPException(status_code=503, detail='STORE_NOT_INITIALIZED')


@router.get('/quotes')
def list_quotes(request: Request):
    return [q.model_dump() for q in _store(request).list_quotes()]


@router.get('/quotes/{symbol}')
def get_quote(symbol: str, request: Request):
    quote = _store(request).get_quote(symbol)
    if quote is None:
        raise HTTPException(status_code=404, detail='QUOTE_NOT_AVAILABLE')
    return quote.model_dump()


@router.post('/quotes/refresh')
def refresh_quotes(request: Request):
    _require_initialized(_store(request))
    return request.app.state.quote_poller.refresh_once()


@router.get('/logos/{symbol}')
def get_logo(symbol: str, request: Request, name: str | None = None):
    store = _store(request)
    _require_initialized(store)
    logo_cache = store.logo_cache

    if name is None:
        quote = store.get_quote(symbol)
        name = quote.name if quote is not None else None

    future = logo_cache.load_logo(symbol, get_logo_request(symbol, name))
    try:
        handle = future.result(timeout=request.app.state.get_settings().STOCKBAR_LOGO_WAIT_SEC)
    except FutureTimeoutError:
        raise HTTPException(status_code=504, detail='LOGO_PENDING')
    if handle is None or not handle.path.is_file():
        # a concurrent cache clear may have removed the file
        raise HTTPException(status_code=404, detail='LOGO_UNAVAILABLE')
    return FileResponse(handle.path, media_type='image/png')


@router.delete('/logos/cache')
def clear_logo_cache(request: Request):
    store = _store(request)
    _require_initialized(store)
    removed = store.logo_cache.clear_cache()
    return {'cleared': True, 'removed_files': removed}


@router.get('/chart/{symbol}')
def get_chart(
    symbol: str,
    request: Request,
    range: str = Query(default='1mo'),
    interval: str = Query(default='1d'),
):
    store = _store(request)
    _require_initialized(store)
    try:
        chart = store.api.get_chart_data(symbol, range=range, interval=interval)
    except Exception as exc:
        print(f"[QUOTE][chart_error] symbol={symbol} error={exc}", flush=True)
        raise HTTPException(status_code=502, detail='CHART_UNAVAILABLE')
    return chart.model_dump()


@router.get('/search')
def search(request: Request, q: str = Query(min_length=1)):
    store = _store(request)
    _require_initialized(store)
    return [row.model_dump() for row in store.api.search(q)]


@router.get('/metrics')
def get_metrics(request: Request):
    store = _store(request)
    logo_cache = store.logo_cache
    return {
        'store': store.metrics(),
        'logo_cache': logo_cache.metrics() if logo_cache is not None else None,
        'poller': request.app.state.quote_poller.metrics(),
    }
