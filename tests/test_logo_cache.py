import tempfile
import threading
import unittest
from pathlib import Path
from unittest.mock import MagicMock

from stockbar.integrations.image_fetcher import ImageFetchResult
from stockbar.schemas.logo import DirectLogoRequest, DomainLogoRequest
from stockbar.services.byte_store import FileByteStore
from stockbar.services.logo_cache import LogoCache

ICON_BYTES = b"\x89PNG" + b"x" * 2000


class DeferredRunner:
    """Queues resolutions so a test decides when they run."""

    def __init__(self) -> None:
        self.tasks = []

    def __call__(self, task) -> None:
        self.tasks.append(task)

    def run_all(self) -> None:
        while self.tasks:
            self.tasks.pop(0)()


class StubImageFetcher:
    def __init__(self, results: dict) -> None:
        self.results = results
        self.calls = []
        self.closed = False

    def get(self, url: str, timeout_sec=None) -> ImageFetchResult:
        self.calls.append(url)
        result = self.results.get(url)
        if isinstance(result, Exception):
            raise result
        if result is None:
            return ImageFetchResult(url=url, outcome="failed", error="connection refused")
        return result

    def close(self) -> None:
        self.closed = True


class CountingByteStore(FileByteStore):
    def __init__(self, root, fail_writes: int = 0) -> None:
        super().__init__(root)
        self.writes = []
        self.fail_writes = fail_writes

    def write_all(self, path, data) -> None:
        self.writes.append(Path(path))
        if self.fail_writes > 0:
            self.fail_writes -= 1
            raise OSError("disk full")
        super().write_all(path, data)


def _ok(url: str) -> ImageFetchResult:
    return ImageFetchResult(url=url, outcome="ok", status_code=200, content=ICON_BYTES)


def _too_small(url: str) -> ImageFetchResult:
    return ImageFetchResult(url=url, outcome="invalid", status_code=200, content=b"tiny", error="payload_too_small")


class LogoCacheTest(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.cache_dir = Path(self._tmp.name) / "logos"
        self.runner = DeferredRunner()

    def tearDown(self):
        self._tmp.cleanup()

    def _make_cache(self, fetcher, byte_store=None) -> LogoCache:
        return LogoCache(
            self.cache_dir,
            image_fetcher=fetcher,
            byte_store=byte_store or CountingByteStore(self.cache_dir),
            runner=self.runner,
        )

    def test_absent_or_empty_request_answers_none_without_io(self):
        fetcher = StubImageFetcher({})
        store = CountingByteStore(self.cache_dir)
        cache = self._make_cache(fetcher, store)
        seen = []

        cache.load_logo("AAPL", None, seen.append)
        future = cache.load_logo("AAPL", DirectLogoRequest(sources=()), seen.append)

        self.assertEqual(seen, [None, None])
        self.assertTrue(future.done())
        self.assertIsNone(future.result())
        self.assertEqual(self.runner.tasks, [])
        self.assertEqual(fetcher.calls, [])
        self.assertEqual(store.writes, [])

    def test_concurrent_loads_for_same_symbol_share_one_resolution(self):
        url = "https://cdn.test/aapl.png"
        fetcher = StubImageFetcher({url: _ok(url)})
        cache = self._make_cache(fetcher)
        request = DirectLogoRequest(sources=(url,))
        first, second = [], []

        f1 = cache.load_logo("AAPL", request, first.append)
        f2 = cache.load_logo("AAPL", request, second.append)

        self.assertIs(f1, f2)
        self.assertTrue(cache.is_pending("AAPL"))
        self.assertEqual(len(self.runner.tasks), 1)
        self.assertEqual(first, [])

        self.runner.run_all()

        self.assertEqual(fetcher.calls, [url])
        self.assertEqual(len(first), 1)
        self.assertEqual(len(second), 1)
        self.assertIsNotNone(first[0])
        self.assertEqual(first[0], second[0])
        self.assertEqual(f1.result(), first[0])
        self.assertFalse(cache.is_pending("AAPL"))
        self.assertEqual(cache.metrics()["coalesced"], 1)

    def test_existing_disk_file_is_used_without_network(self):
        fetcher = StubImageFetcher({})
        cache = self._make_cache(fetcher)
        path = cache.cache_path("MSFT")
        path.write_bytes(b"stale-but-trusted")
        seen = []

        cache.load_logo("MSFT", DomainLogoRequest(domain="microsoft.com", sources=("https://a.test/",)), seen.append)
        self.runner.run_all()

        self.assertEqual(fetcher.calls, [])
        self.assertEqual(len(seen), 1)
        self.assertEqual(seen[0].path, path)
        self.assertEqual(path.read_bytes(), b"stale-but-trusted")
        self.assertEqual(cache.metrics()["disk_hits"], 1)

    def test_candidates_are_tried_in_order_until_one_succeeds(self):
        urls = ["https://a.test/x", "https://b.test/x", "https://c.test/x", "https://d.test/x"]
        fetcher = StubImageFetcher(
            {
                urls[0]: ConnectionError("boom"),
                urls[1]: _too_small(urls[1]),
                urls[2]: _ok(urls[2]),
                urls[3]: _ok(urls[3]),
            }
        )
        store = CountingByteStore(self.cache_dir)
        cache = self._make_cache(fetcher, store)
        seen = []

        cache.load_logo("NVDA", DirectLogoRequest(sources=tuple(urls)), seen.append)
        self.runner.run_all()

        self.assertEqual(fetcher.calls, urls[:3])
        self.assertEqual(store.writes, [cache.cache_path("NVDA")])
        self.assertIsNotNone(seen[0])
        self.assertEqual(seen[0].path.read_bytes(), ICON_BYTES)
        self.assertEqual(cache.metrics()["fetch_attempts"], 3)
        self.assertEqual(cache.metrics()["disk_hits"], 0)

    def test_domain_request_templates_each_source(self):
        fetcher = StubImageFetcher({})
        cache = self._make_cache(fetcher)
        request = DomainLogoRequest(
            domain="apple.com",
            sources=("https://logo.clearbit.com/", "https://icons.duckduckgo.com/ip3/"),
        )

        cache.load_logo("AAPL", request)
        self.runner.run_all()

        self.assertEqual(
            fetcher.calls,
            ["https://logo.clearbit.com/apple.com", "https://icons.duckduckgo.com/ip3/apple.com.ico"],
        )

    def test_all_candidates_failing_yields_none_and_allows_retry(self):
        urls = ("https://a.test/x", "https://b.test/x")
        fetcher = StubImageFetcher({})
        cache = self._make_cache(fetcher)
        seen = []

        cache.load_logo("ZZZZ", DirectLogoRequest(sources=urls), seen.append)
        self.runner.run_all()

        self.assertEqual(seen, [None])
        self.assertEqual(len(fetcher.calls), 2)
        self.assertIsNone(cache.get_cached("ZZZZ"))

        fetcher.results[urls[1]] = _ok(urls[1])
        cache.load_logo("ZZZZ", DirectLogoRequest(sources=urls), seen.append)
        self.assertEqual(len(self.runner.tasks), 1)
        self.runner.run_all()

        self.assertEqual(len(fetcher.calls), 4)
        self.assertIsNotNone(seen[1])

    def test_memory_hit_answers_immediately(self):
        url = "https://cdn.test/btc.png"
        fetcher = StubImageFetcher({url: _ok(url)})
        cache = self._make_cache(fetcher)
        request = DirectLogoRequest(sources=(url,))
        cache.load_logo("BTC-USD", request)
        self.runner.run_all()

        seen = []
        future = cache.load_logo("BTC-USD", request, seen.append)

        self.assertTrue(future.done())
        self.assertEqual(len(seen), 1)
        self.assertEqual(seen[0].path, cache.cache_path("BTC-USD"))
        self.assertEqual(self.runner.tasks, [])
        self.assertEqual(fetcher.calls, [url])

    def test_write_failure_moves_on_to_next_candidate(self):
        urls = ("https://a.test/x", "https://b.test/x")
        fetcher = StubImageFetcher({urls[0]: _ok(urls[0]), urls[1]: _ok(urls[1])})
        store = CountingByteStore(self.cache_dir, fail_writes=1)
        cache = self._make_cache(fetcher, store)
        seen = []

        cache.load_logo("AMD", DirectLogoRequest(sources=urls), seen.append)
        self.runner.run_all()

        self.assertEqual(fetcher.calls, list(urls))
        self.assertEqual(len(store.writes), 2)
        self.assertIsNotNone(seen[0])

    def test_failing_callback_does_not_block_other_callbacks(self):
        url = "https://cdn.test/x.png"
        cache = self._make_cache(StubImageFetcher({url: _ok(url)}))
        request = DirectLogoRequest(sources=(url,))
        seen = []

        def broken(_handle):
            raise RuntimeError("view already gone")

        cache.load_logo("TSLA", request, broken)
        cache.load_logo("TSLA", request, seen.append)
        self.runner.run_all()

        self.assertEqual(len(seen), 1)
        self.assertIsNotNone(seen[0])

    def test_failing_callback_on_immediate_answer_does_not_escape(self):
        url = "https://cdn.test/x.png"
        cache = self._make_cache(StubImageFetcher({url: _ok(url)}))
        request = DirectLogoRequest(sources=(url,))
        cache.load_logo("TSLA", request)
        self.runner.run_all()

        def broken(_handle):
            raise RuntimeError("view already gone")

        hit = cache.load_logo("TSLA", request, broken)
        absent = cache.load_logo("TSLA", None, broken)

        self.assertTrue(hit.done())
        self.assertEqual(hit.result().path, cache.cache_path("TSLA"))
        self.assertTrue(absent.done())
        self.assertIsNone(absent.result())

    def test_clear_cache_mid_flight_delivers_but_does_not_memoize(self):
        url = "https://cdn.test/x.png"
        cache = self._make_cache(StubImageFetcher({url: _ok(url)}))
        seen = []

        cache.load_logo("META", DirectLogoRequest(sources=(url,)), seen.append)
        cache.clear_cache()
        self.runner.run_all()

        self.assertIsNotNone(seen[0])
        self.assertIsNone(cache.get_cached("META"))

    def test_clear_cache_empties_memory_and_disk(self):
        url = "https://cdn.test/x.png"
        cache = self._make_cache(StubImageFetcher({url: _ok(url)}))
        cache.load_logo("META", DirectLogoRequest(sources=(url,)))
        self.runner.run_all()
        self.assertTrue(cache.cache_path("META").exists())

        removed = cache.clear_cache()

        self.assertEqual(removed, 1)
        self.assertIsNone(cache.get_cached("META"))
        self.assertEqual(list(self.cache_dir.iterdir()), [])

    def test_destroy_drops_pending_callbacks_and_keeps_disk_files(self):
        url = "https://cdn.test/x.png"
        fetcher = StubImageFetcher({url: _ok(url)})
        cache = self._make_cache(fetcher)
        cache.cache_path("KEEP").write_bytes(ICON_BYTES)
        seen = []

        future = cache.load_logo("AAPL", DirectLogoRequest(sources=(url,)), seen.append)
        cache.destroy()
        self.runner.run_all()

        self.assertTrue(future.cancelled())
        self.assertEqual(seen, [])
        self.assertTrue(fetcher.closed)
        self.assertTrue(cache.cache_path("KEEP").exists())

        cache.load_logo("AAPL", DirectLogoRequest(sources=(url,)), seen.append)
        self.assertEqual(seen, [None])
        cache.destroy()

    def test_cache_path_replaces_non_alphanumerics(self):
        cache = self._make_cache(StubImageFetcher({}))

        self.assertEqual(cache.cache_path("BRK.B").name, "BRK_B.png")
        self.assertEqual(cache.cache_path("BTC-USD").name, "BTC_USD.png")
        self.assertEqual(cache.cache_path("^GSPC").name, "_GSPC.png")

    def test_default_runner_coalesces_across_threads(self):
        url = "https://cdn.test/slow.png"
        release = threading.Event()
        fetcher = MagicMock()

        def slow_get(requested_url, timeout_sec=None):
            release.wait(2.0)
            return _ok(requested_url)

        fetcher.get.side_effect = slow_get
        cache = LogoCache(self.cache_dir, image_fetcher=fetcher)
        request = DirectLogoRequest(sources=(url,))
        done = threading.Event()
        seen = []

        def collect(handle):
            seen.append(handle)
            if len(seen) == 3:
                done.set()

        for _ in range(3):
            cache.load_logo("SLOW", request, collect)
        release.set()

        self.assertTrue(done.wait(2.0))
        fetcher.get.assert_called_once_with(url)
        self.assertEqual(len({h.path for h in seen}), 1)


if __name__ == "__main__":
    unittest.main()
