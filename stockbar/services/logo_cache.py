from __future__ import annotations

import re
import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Callable, Optional

from stockbar.integrations.image_fetcher import RemoteImageFetcher
from stockbar.schemas.logo import DirectLogoRequest, DomainLogoRequest, LogoHandle
from stockbar.services.byte_store import FileByteStore

LogoCallback = Callable[[Optional[LogoHandle]], None]
Runner = Callable[[Callable[[], None]], None]

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9]")


def _thread_runner(task: Callable[[], None]) -> None:
    threading.Thread(target=task, daemon=True, name="logo-resolve").start()


class _PendingLoad:
    def __init__(self, generation: int) -> None:
        self.generation = generation
        self.callbacks: list[LogoCallback] = []
        self.future: Future = Future()


class LogoCache:
    """Symbol -> icon file, memoized in memory and on disk.

    Concurrent ``load_logo`` calls for the same symbol share one resolution:
    the first call schedules it on ``runner``, later calls only append their
    callback to the pending entry. Candidate sources are tried one after the
    other; the first usable payload is written to ``<cache_dir>/<symbol>.png``.
    A failed resolution is not remembered, so the next call tries again.
    """

    def __init__(
        self,
        cache_dir: Path | str,
        *,
        image_fetcher: Optional[RemoteImageFetcher] = None,
        byte_store: Optional[FileByteStore] = None,
        runner: Optional[Runner] = None,
    ) -> None:
        self.cache_dir = Path(cache_dir)
        self.image_fetcher = image_fetcher or RemoteImageFetcher()
        self.byte_store = byte_store or FileByteStore(self.cache_dir)
        self.runner = runner or _thread_runner

        self._lock = threading.Lock()
        self._memory: dict[str, LogoHandle] = {}
        self._pending: dict[str, _PendingLoad] = {}
        self._generation = 0
        self._destroyed = False

        self.resolutions = 0
        self.fetch_attempts = 0
        self.disk_hits = 0
        self.memory_hits = 0
        self.coalesced = 0

        try:
            self.byte_store.ensure_root()
        except OSError as exc:
            print(f"[LOGO][cache_dir_error] path={self.cache_dir} error={exc}", flush=True)

    def cache_path(self, symbol: str) -> Path:
        return self.cache_dir / f"{_UNSAFE_CHARS.sub('_', symbol)}.png"

    def get_cached(self, symbol: str) -> LogoHandle | None:
        with self._lock:
            return self._memory.get(symbol)

    def is_pending(self, symbol: str) -> bool:
        with self._lock:
            return symbol in self._pending

    def load_logo(
        self,
        symbol: str,
        request: DomainLogoRequest | DirectLogoRequest | None,
        callback: Optional[LogoCallback] = None,
    ) -> Future:
        if request is None or not request.sources:
            return self._complete_now(symbol, None, callback)

        with self._lock:
            handle = None if self._destroyed else self._memory.get(symbol)
            if handle is None and not self._destroyed:
                pending = self._pending.get(symbol)
                if pending is not None:
                    if callback is not None:
                        pending.callbacks.append(callback)
                    self.coalesced += 1
                    return pending.future

                pending = _PendingLoad(self._generation)
                if callback is not None:
                    pending.callbacks.append(callback)
                self._pending[symbol] = pending
                self.resolutions += 1
            else:
                pending = None
                if handle is not None:
                    self.memory_hits += 1

        if pending is None:
            return self._complete_now(symbol, handle, callback)

        urls = request.candidate_urls()
        self.runner(lambda: self._resolve(symbol, urls, pending))
        return pending.future

    def _complete_now(self, symbol: str, handle: LogoHandle | None, callback: Optional[LogoCallback]) -> Future:
        future: Future = Future()
        future.set_result(handle)
        if callback is not None:
            self._invoke(symbol, callback, handle)
        return future

    @staticmethod
    def _invoke(symbol: str, callback: LogoCallback, handle: LogoHandle | None) -> None:
        try:
            callback(handle)
        except Exception as exc:
            print(f"[LOGO][callback_error] symbol={symbol} error={exc}", flush=True)

    def _resolve(self, symbol: str, urls: list[str], pending: _PendingLoad) -> None:
        handle: LogoHandle | None = None
        try:
            handle = self._from_disk(symbol)
            if handle is None:
                handle = self._from_sources(symbol, urls)
        except Exception as exc:
            print(f"[LOGO][resolve_error] symbol={symbol} error={exc}", flush=True)
            handle = None
        finally:
            self._finish(symbol, pending, handle)

    def _from_disk(self, symbol: str) -> LogoHandle | None:
        path = self.cache_path(symbol)
        try:
            if not self.byte_store.exists(path):
                return None
            handle = LogoHandle(symbol=symbol, path=path)
        except Exception as exc:
            print(f"[LOGO][disk_cache_skip] symbol={symbol} path={path} error={exc}", flush=True)
            return None
        with self._lock:
            self.disk_hits += 1
        return handle

    def _from_sources(self, symbol: str, urls: list[str]) -> LogoHandle | None:
        path = self.cache_path(symbol)
        for url in urls:
            fetcher = self.image_fetcher
            if fetcher is None:
                # destroyed mid-flight
                return None
            with self._lock:
                self.fetch_attempts += 1
            try:
                result = fetcher.get(url)
                if not result.ok:
                    print(
                        f"[LOGO][candidate_failed] symbol={symbol} url={url} "
                        f"outcome={result.outcome} reason={result.error}",
                        flush=True,
                    )
                    continue
                self.byte_store.write_all(path, result.content)
                handle = LogoHandle(symbol=symbol, path=path)
            except Exception as exc:
                print(f"[LOGO][candidate_error] symbol={symbol} url={url} error={exc}", flush=True)
                continue
            print(f"[LOGO][resolved] symbol={symbol} url={url} bytes={len(result.content)}", flush=True)
            return handle

        print(f"[LOGO][unavailable] symbol={symbol} tried={len(urls)}", flush=True)
        return None

    def _finish(self, symbol: str, pending: _PendingLoad, handle: LogoHandle | None) -> None:
        with self._lock:
            if self._pending.get(symbol) is not pending:
                # destroy() dropped the bookkeeping; nobody is waiting anymore
                return
            del self._pending[symbol]
            if handle is not None and pending.generation == self._generation:
                self._memory[symbol] = handle
            callbacks = list(pending.callbacks)

        pending.future.set_result(handle)
        for callback in callbacks:
            self._invoke(symbol, callback, handle)

    def clear_cache(self) -> int:
        with self._lock:
            self._memory.clear()
            self._generation += 1

        removed = 0
        for entry in self.byte_store.list_entries(self.cache_dir):
            try:
                self.byte_store.delete(entry)
                removed += 1
            except OSError as exc:
                print(f"[LOGO][clear_error] path={entry} error={exc}", flush=True)
        print(f"[LOGO][cache_cleared] removed={removed}", flush=True)
        return removed

    def destroy(self) -> None:
        with self._lock:
            if self._destroyed:
                return
            self._destroyed = True
            self._memory.clear()
            dropped = list(self._pending.values())
            self._pending.clear()
            fetcher = self.image_fetcher
            self.image_fetcher = None

        for pending in dropped:
            pending.future.cancel()
        if fetcher is not None:
            fetcher.close()

    def metrics(self) -> dict[str, int]:
        with self._lock:
            return {
                "memory_entries": len(self._memory),
                "pending_symbols": len(self._pending),
                "resolutions": self.resolutions,
                "fetch_attempts": self.fetch_attempts,
                "disk_hits": self.disk_hits,
                "memory_hits": self.memory_hits,
                "coalesced": self.coalesced,
            }
