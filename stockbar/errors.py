class QuotePayloadError(ValueError):
    """Upstream answered, but the body does not carry a usable quote/chart."""
