# ABOUTME: Field-by-field merge of metadata records from multiple sources.
# ABOUTME: The base record wins wherever it has data; the overlay only fills gaps.

from dataclasses import fields
from functools import reduce

from lectern.metadata.types import MetadataRecord, has_value


def merge(base: MetadataRecord, overlay: MetadataRecord) -> MetadataRecord:
    """Combine two records, keeping every non-empty field of ``base``.

    Fields that are missing or empty in ``base`` are taken from ``overlay``.
    Neither input is modified; a new record is returned.
    """
    values = {}
    for f in fields(MetadataRecord):
        current = getattr(base, f.name)
        values[f.name] = current if has_value(current) else getattr(overlay, f.name)
    return MetadataRecord(**values)


def merge_all(*records: MetadataRecord) -> MetadataRecord:
    """Fold records left to right, earlier records taking precedence."""
    return reduce(merge, records, MetadataRecord())
