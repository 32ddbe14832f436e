"""Domain ports (interfaces) for dependency inversion."""

from abc import ABC, abstractmethod

from cratedigger.domain.entities import Release


class IStorefrontLinkFinder(ABC):
    """Finds the best independent-storefront page for a release.

    Hey future me - the ranking heuristics (search Bandcamp/Juno/..., score results) live
    OUTSIDE this project. We only consume the answer: one URL or nothing.
    """

    @abstractmethod
    async def find_best_storefront(self, user_id: str, release: Release) -> str | None:
        """Return the best storefront album URL for a release, or None."""


class IStorefrontScraper(ABC):
    """Scrapes a storefront album page for per-track embedded videos."""

    @abstractmethod
    async def scrape_track_videos(self, album_url: str) -> list[tuple[str, list[str]]]:
        """Return (storefront track title, [video ids]) pairs for an album page."""


class NullStorefrontLinkFinder(IStorefrontLinkFinder):
    """Link finder used when no storefront collaborator is wired in."""

    async def find_best_storefront(self, user_id: str, release: Release) -> str | None:
        return None


__all__ = ["IStorefrontLinkFinder", "IStorefrontScraper", "NullStorefrontLinkFinder"]
