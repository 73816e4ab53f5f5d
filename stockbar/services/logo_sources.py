from __future__ import annotations

import re

from stockbar.schemas.logo import DirectLogoRequest, DomainLogoRequest

LOGO_SOURCES = (
    "https://www.google.com/s2/favicons?sz=128&domain=",
    "https://logo.clearbit.com/",
    "https://icons.duckduckgo.com/ip3/",
)

_COINGECKO = "https://assets.coingecko.com/coins/images"

_CRYPTO_ICONS = {
    "BTC": f"{_COINGECKO}/1/large/bitcoin.png",
    "ETH": f"{_COINGECKO}/279/large/ethereum.png",
    "BNB": f"{_COINGECKO}/825/large/bnb-icon2_2x.png",
    "XRP": f"{_COINGECKO}/44/large/xrp-symbol-white-128.png",
    "ADA": f"{_COINGECKO}/975/large/cardano.png",
    "DOGE": f"{_COINGECKO}/5/large/dogecoin.png",
    "SOL": f"{_COINGECKO}/4128/large/solana.png",
    "DOT": f"{_COINGECKO}/12171/large/polkadot.png",
    "MATIC": f"{_COINGECKO}/4713/large/matic-token-icon.png",
    "LTC": f"{_COINGECKO}/2/large/litecoin.png",
    "SHIB": f"{_COINGECKO}/11939/large/shiba.png",
    "TRX": f"{_COINGECKO}/1094/large/tron-logo.png",
    "AVAX": f"{_COINGECKO}/12559/large/Avalanche_Circle_RedWhite_Trans.png",
    "LINK": f"{_COINGECKO}/877/large/chainlink-new-logo.png",
    "ATOM": f"{_COINGECKO}/1481/large/cosmos_hub.png",
    "UNI": f"{_COINGECKO}/12504/large/uniswap-uni.png",
    "XLM": f"{_COINGECKO}/100/large/Stellar_symbol_black_RGB.png",
    "ALGO": f"{_COINGECKO}/4380/large/download.png",
    "FIL": f"{_COINGECKO}/12817/large/filecoin.png",
    "AAVE": f"{_COINGECKO}/12645/large/AAVE.png",
    "XMR": f"{_COINGECKO}/69/large/monero_logo.png",
    "OP": f"{_COINGECKO}/25244/large/Optimism.png",
    "NEAR": f"{_COINGECKO}/10365/large/near.jpg",
    "VET": f"{_COINGECKO}/1167/large/VeChain-Logo-768x725.png",
    "ICP": f"{_COINGECKO}/14495/large/Internet_Computer_logo.png",
    "EOS": f"{_COINGECKO}/738/large/eos-eos-logo.png",
    "XTZ": f"{_COINGECKO}/976/large/Tezos-logo.png",
    "PEPE": f"{_COINGECKO}/29850/large/pepe-token.jpeg",
    "ARB": f"{_COINGECKO}/16547/large/photo_2023-03-29_21.47.00.jpeg",
    "APT": f"{_COINGECKO}/26455/large/aptos_round.png",
    "SUI": f"{_COINGECKO}/26375/large/sui_asset.jpeg",
}

_DOMAINS = {
    "AAPL": "apple.com",
    "GOOGL": "google.com",
    "GOOG": "google.com",
    "MSFT": "microsoft.com",
    "AMZN": "amazon.com",
    "META": "meta.com",
    "TSLA": "tesla.com",
    "NVDA": "nvidia.com",
    "AMD": "amd.com",
    "INTC": "intel.com",
    "NFLX": "netflix.com",
    "DIS": "disney.com",
    "PYPL": "paypal.com",
    "ADBE": "adobe.com",
    "CRM": "salesforce.com",
    "ORCL": "oracle.com",
    "IBM": "ibm.com",
    "CSCO": "cisco.com",
    "QCOM": "qualcomm.com",
    "TXN": "ti.com",
    "AVGO": "broadcom.com",
    "SHOP": "shopify.com",
    "UBER": "uber.com",
    "SPOT": "spotify.com",
    "V": "visa.com",
    "MA": "mastercard.com",
    "JPM": "jpmorganchase.com",
    "BAC": "bankofamerica.com",
    "GS": "goldmansachs.com",
    "WMT": "walmart.com",
    "COST": "costco.com",
    "KO": "coca-cola.com",
    "PEP": "pepsi.com",
    "JNJ": "jnj.com",
    "PFE": "pfizer.com",
    "BA": "boeing.com",
    "XOM": "exxonmobil.com",
    "T": "att.com",
    "VZ": "verizon.com",
    "SPY": "ssga.com",
    "QQQ": "invesco.com",
    "VOO": "vanguard.com",
    "VTI": "vanguard.com",
    "BRK.A": "berkshirehathaway.com",
    "BRK.B": "berkshirehathaway.com",
    "PLTR": "palantir.com",
    "COIN": "coinbase.com",
    "TSM": "tsmc.com",
    "ASML": "asml.com",
    "SAP": "sap.com",
    "IBIT": "blackrock.com",
    "GBTC": "grayscale.com",
    "FBTC": "fidelity.com",
}

_LEGAL_SUFFIX = re.compile(
    r",?\s*(inc\.?|corp\.?|corporation|company|co\.?|ltd\.?|llc|plc|holdings?|group"
    r"|enterprises?|incorporated|limited)$",
    re.IGNORECASE,
)
_NON_ALNUM = re.compile(r"[^a-z0-9]")


def guess_domain(company_name: str) -> str | None:
    clean = _LEGAL_SUFFIX.sub("", company_name.lower()).strip()
    clean = _NON_ALNUM.sub("", clean)
    if len(clean) > 2:
        return f"{clean}.com"
    return None


def get_logo_request(
    symbol: str,
    company_name: str | None = None,
) -> DomainLogoRequest | DirectLogoRequest | None:
    """Pick where a symbol's icon should come from; ``None`` means no known source."""
    crypto_key = symbol[: -len("-USD")] if symbol.endswith("-USD") else symbol
    direct_url = _CRYPTO_ICONS.get(crypto_key)
    if direct_url:
        return DirectLogoRequest(sources=(direct_url,))

    domain = _DOMAINS.get(symbol)
    if domain is None and company_name:
        domain = guess_domain(company_name)
    if domain is None:
        return None
    return DomainLogoRequest(domain=domain, sources=LOGO_SOURCES)
