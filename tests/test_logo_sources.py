import unittest

from stockbar.schemas.logo import DirectLogoRequest, DomainLogoRequest
from stockbar.services.logo_sources import LOGO_SOURCES, get_logo_request, guess_domain


class LogoSourcesTest(unittest.TestCase):
    def test_crypto_pair_maps_to_direct_icon(self):
        request = get_logo_request("BTC-USD")

        self.assertIsInstance(request, DirectLogoRequest)
        self.assertEqual(request.candidate_urls(), ["https://assets.coingecko.com/coins/images/1/large/bitcoin.png"])

    def test_known_ticker_uses_domain_table(self):
        request = get_logo_request("AAPL", "Something Else Corp")

        self.assertIsInstance(request, DomainLogoRequest)
        self.assertEqual(request.domain, "apple.com")
        self.assertEqual(request.sources, LOGO_SOURCES)
        self.assertEqual(
            request.candidate_urls(),
            [
                "https://www.google.com/s2/favicons?sz=128&domain=apple.com",
                "https://logo.clearbit.com/apple.com",
                "https://icons.duckduckgo.com/ip3/apple.com.ico",
            ],
        )

    def test_unknown_ticker_guesses_domain_from_name(self):
        request = get_logo_request("RDDT", "Reddit, Inc.")

        self.assertEqual(request.domain, "reddit.com")

    def test_late_listed_crypto_icons_are_known(self):
        pepe = get_logo_request("PEPE-USD")
        tezos = get_logo_request("XTZ")

        self.assertIsInstance(pepe, DirectLogoRequest)
        self.assertEqual(pepe.candidate_urls(), ["https://assets.coingecko.com/coins/images/29850/large/pepe-token.jpeg"])
        self.assertEqual(tezos.candidate_urls(), ["https://assets.coingecko.com/coins/images/976/large/Tezos-logo.png"])
        for symbol in ("APT", "ARB", "EOS", "ICP", "SUI", "VET"):
            self.assertIsInstance(get_logo_request(f"{symbol}-USD"), DirectLogoRequest, symbol)

    def test_no_source_when_nothing_is_known(self):
        self.assertIsNone(get_logo_request("XYZQ"))
        self.assertIsNone(get_logo_request("XYZQ", "AB Inc"))

    def test_guess_domain_strips_legal_suffixes(self):
        self.assertEqual(guess_domain("Palantir Technologies Holdings"), "palantirtechnologies.com")
        self.assertEqual(guess_domain("Shopify Ltd."), "shopify.com")
        self.assertIsNone(guess_domain("X"))


if __name__ == "__main__":
    unittest.main()
