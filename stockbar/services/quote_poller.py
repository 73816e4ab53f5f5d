from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from stockbar.schemas.quote import QuoteError
from stockbar.services.quote_store import QuoteStore


class QuotePoller:
    """Timer side of the store: fetch every tracked symbol, push results in."""

    def __init__(
        self,
        *,
        store: QuoteStore,
        symbols_provider: Callable[[], list[str]],
        interval_sec: float | Callable[[], float] = 60.0,
    ) -> None:
        self.store = store
        self.symbols_provider = symbols_provider
        self.interval_sec = interval_sec
        self.running = False
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self.refresh_count = 0
        self.last_refresh_ts: int | None = None
        self.last_error: str | None = None
        self.last_target_count = 0
        self.last_ok_count = 0
        self.last_error_count = 0

    def _interval(self) -> float:
        if callable(self.interval_sec):
            return float(self.interval_sec())
        return float(self.interval_sec)

    def refresh_once(self) -> dict[str, int]:
        symbols: list[str] = []
        seen: set[str] = set()
        for symbol in self.symbols_provider():
            value = str(symbol).strip()
            if not value or value in seen:
                continue
            seen.add(value)
            symbols.append(value)

        api = self.store.api
        if not symbols or api is None:
            return {"target_count": len(symbols), "ok_count": 0, "error_count": 0}

        ok_count = 0
        error_count = 0
        for result in api.get_many_quotes(symbols):
            if isinstance(result, QuoteError):
                error_count += 1
                print(f"[POLL][quote_error] symbol={result.symbol} error={result.error}", flush=True)
                continue
            self.store.set_quote(result.symbol, result)
            ok_count += 1

        self.refresh_count += 1
        self.last_refresh_ts = int(time.time())
        self.last_target_count = len(symbols)
        self.last_ok_count = ok_count
        self.last_error_count = error_count
        print(
            "[POLL][refresh] "
            f"target_count={len(symbols)} ok_count={ok_count} error_count={error_count}",
            flush=True,
        )
        return {"target_count": len(symbols), "ok_count": ok_count, "error_count": error_count}

    def run_forever(self) -> None:
        self.running = True
        while not self._stop_event.is_set():
            try:
                self.refresh_once()
                self.last_error = None
            except Exception as exc:
                self.last_error = str(exc)
                print(f"[POLL][refresh_error] {self.last_error}", flush=True)
            if self._stop_event.wait(self._interval()):
                break
        self.running = False

    def start(self) -> threading.Thread:
        self._stop_event.clear()
        thread = threading.Thread(target=self.run_forever, daemon=True, name="quote-poller")
        self._thread = thread
        thread.start()
        print("[POLL][poller_start] thread=quote-poller", flush=True)
        return thread

    def stop(self, timeout: float = 1.0) -> None:
        self.running = False
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
        self._thread = None
        print("[POLL][poller_stop] thread=quote-poller", flush=True)

    def metrics(self) -> dict:
        return {
            "running": self.running,
            "refresh_count": self.refresh_count,
            "last_refresh_ts": self.last_refresh_ts,
            "last_error": self.last_error,
            "last_target_count": self.last_target_count,
            "last_ok_count": self.last_ok_count,
            "last_error_count": self.last_error_count,
        }
