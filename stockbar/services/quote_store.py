from __future__ import annotations

import threading
from typing import Any, Callable, Optional

from stockbar.schemas.quote import Quote
from stockbar.services.logo_cache import LogoCache

Listener = Callable[[], None]


class QuoteStore:
    """Latest quote per symbol, shared by every view in the process.

    ``set_quote`` notifies all registered listeners synchronously before it
    returns. The quote fetcher and the logo cache are built lazily by
    ``init()`` and released by ``destroy()``; while the store is not
    initialized, reads behave as empty and writes are dropped. Listeners can
    be registered at any time; ``destroy()`` forgets them.
    """

    def __init__(
        self,
        *,
        api_factory: Callable[[], Any],
        logo_cache_factory: Callable[[], LogoCache],
    ) -> None:
        self._api_factory = api_factory
        self._logo_cache_factory = logo_cache_factory
        self._lock = threading.Lock()
        self._quotes: dict[str, Quote] = {}
        self._listeners: set[Listener] = set()
        self.api: Optional[Any] = None
        self.logo_cache: Optional[LogoCache] = None
        self.updates = 0
        self.listener_errors = 0

    @property
    def initialized(self) -> bool:
        return self.api is not None

    def init(self) -> None:
        with self._lock:
            if self.api is not None:
                return
            self.api = self._api_factory()
            self.logo_cache = self._logo_cache_factory()
        print("[QUOTE][store_init]", flush=True)

    def add_listener(self, callback: Listener) -> None:
        with self._lock:
            self._listeners.add(callback)

    def remove_listener(self, callback: Listener) -> None:
        with self._lock:
            self._listeners.discard(callback)

    def set_quote(self, symbol: str, quote: Quote) -> None:
        with self._lock:
            if self.api is None:
                print(f"[QUOTE][set_skip] symbol={symbol} reason=store_not_initialized", flush=True)
                return
            self._quotes[symbol] = quote
            self.updates += 1
            listeners = list(self._listeners)
        self._notify(listeners)

    def _notify(self, listeners: list[Listener]) -> None:
        for callback in listeners:
            try:
                callback()
            except Exception as exc:
                self.listener_errors += 1
                print(f"[QUOTE][listener_error] error={exc}", flush=True)

    def get_quote(self, symbol: str) -> Quote | None:
        with self._lock:
            return self._quotes.get(symbol)

    def list_quotes(self) -> list[Quote]:
        with self._lock:
            return list(self._quotes.values())

    def destroy(self) -> None:
        with self._lock:
            api, logo_cache = self.api, self.logo_cache
            self.api = None
            self.logo_cache = None
            self._quotes.clear()
            self._listeners.clear()

        if logo_cache is not None:
            logo_cache.destroy()
        if api is not None:
            close = getattr(api, "close", None)
            if callable(close):
                close()
            print("[QUOTE][store_destroy]", flush=True)

    def metrics(self) -> dict[str, int | bool]:
        with self._lock:
            return {
                "initialized": self.api is not None,
                "cached_symbols": len(self._quotes),
                "listeners": len(self._listeners),
                "updates": self.updates,
                "listener_errors": self.listener_errors,
            }
