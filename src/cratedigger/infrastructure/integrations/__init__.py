"""External provider integrations (Discogs, YouTube, Bandcamp)."""

from .discogs_client import DiscogsAuth, DiscogsClient, classify_discogs_error
from .gateway import ApiGateway, ProviderPolicy, build_cache_key, credential_fingerprint
from .storefront import BandcampStorefrontScraper
from .youtube_client import YouTubeClient, build_query, classify_youtube_error, score_match

__all__ = [
    "ApiGateway",
    "BandcampStorefrontScraper",
    "DiscogsAuth",
    "DiscogsClient",
    "ProviderPolicy",
    "YouTubeClient",
    "build_cache_key",
    "build_query",
    "classify_discogs_error",
    "classify_youtube_error",
    "credential_fingerprint",
    "score_match",
]
