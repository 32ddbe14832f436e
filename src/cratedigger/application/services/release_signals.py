"""Capture descriptive tags of a release for the recommendation engine."""

from cratedigger.domain.dtos import ReleaseDetail
from cratedigger.domain.entities import Release, ReleaseSignals
from cratedigger.domain.value_objects import TagSet


def build_release_signals(detail: ReleaseDetail, release: Release) -> ReleaseSignals:
    """Turn release detail into tag sets.

    Styles include the genres too (coarse genres are the fallback when a release has no
    styles). Contributors hold both credit names and their roles. Artist and year fall back
    to what the label page listed.
    """
    return ReleaseSignals(
        release_id=release.id,
        user_id=release.user_id,
        primary_artist=detail.primary_artist or release.artist or None,
        styles=TagSet.of([*detail.styles, *detail.genres]),
        genres=TagSet.of(detail.genres),
        contributors=TagSet.of([*detail.contributors, *detail.contributor_roles]),
        companies=TagSet.of(detail.companies),
        formats=TagSet.of(detail.formats),
        country=detail.country,
        year=detail.year or release.year,
    )
