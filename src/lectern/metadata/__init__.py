# ABOUTME: Metadata package for book records, catalog providers, merging, and cover options.
# ABOUTME: Exports the MetadataRecord and CoverCandidate types used throughout Lectern.

from lectern.metadata.merge import merge, merge_all
from lectern.metadata.provider import MetadataProvider, SearchTerms
from lectern.metadata.types import BookFormat, CoverCandidate, CoverSource, MetadataRecord

__all__ = [
    "BookFormat",
    "CoverCandidate",
    "CoverSource",
    "MetadataProvider",
    "MetadataRecord",
    "SearchTerms",
    "merge",
    "merge_all",
]
