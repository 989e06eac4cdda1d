"""
Completion calculator and readiness predicate.

Pure functions over a record (a ProjectRecord or any mapping) and a
BucketCatalog. Nothing here does I/O or raises for sparse record data: a field
that is missing, None, blank or an empty list simply counts as unfilled.
"""
import math
from fractions import Fraction
from typing import Any, Dict, Mapping

from app.foundation.buckets import BucketCatalog, BucketDefinition


def is_filled(value: Any) -> bool:
    """True when a field value counts toward completion.

    None, whitespace-only strings and empty collections are unfilled.
    Numbers (including 0) and booleans are filled.
    """
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) > 0
    return True


def field_value(record: Any, field: str) -> Any:
    """Read one field from a ProjectRecord or a plain mapping."""
    if record is None:
        return None
    getter = getattr(record, 'get', None)
    if getter is not None:
        return getter(field)
    return getattr(record, field, None)


def _round_half_up(value: Fraction) -> int:
    # Matches JS Math.round for the non-negative values used here
    return int(math.floor(value + Fraction(1, 2)))


def bucket_completion(record: Any, bucket: BucketDefinition) -> int:
    """Percent (0-100) of a bucket's fields that are filled."""
    if not bucket.fields:
        return 0
    filled = sum(1 for f in bucket.fields if is_filled(field_value(record, f)))
    return _round_half_up(Fraction(100 * filled, len(bucket.fields)))


def compute_bucket_completions(record: Any, catalog: BucketCatalog) -> Dict[str, int]:
    """bucket_id → percent for every bucket in the catalog."""
    return {bucket.id: bucket_completion(record, bucket) for bucket in catalog}


def overall_completion(bucket_completions: Mapping[str, Any], catalog: BucketCatalog) -> int:
    """
    Weighted overall percent:
        round(100 * Σ(percent_b * weight_b) / Σ(100 * weight_b))

    Buckets absent from bucket_completions count as 0; ids the catalog does
    not know are ignored.
    """
    weighted = Fraction(0)
    total = 0
    for bucket in catalog:
        percent = bucket_completions.get(bucket.id) or 0
        percent = min(max(Fraction(percent), Fraction(0)), Fraction(100))
        weighted += percent * bucket.weight
        total += 100 * bucket.weight

    if total == 0:
        return 0
    return _round_half_up(100 * weighted / total)


def has_minimum_viable_data(record: Any, catalog: BucketCatalog) -> bool:
    """
    Readiness gate: every required field of every top-weight bucket is filled.

    Lower-weight buckets are ignored regardless of their completion.
    """
    for bucket in catalog.required_tier():
        for f in bucket.required_fields:
            if not is_filled(field_value(record, f)):
                return False
    return True


def completion_summary(record: Any, catalog: BucketCatalog) -> Dict[str, Any]:
    """Everything the progress panel needs in one dict."""
    buckets = compute_bucket_completions(record, catalog)
    return {
        'bucket_completion': buckets,
        'overall_completion': overall_completion(buckets, catalog),
        'has_minimum_viable_data': has_minimum_viable_data(record, catalog),
        'missing_required': {
            bucket.id: [f for f in bucket.required_fields if not is_filled(field_value(record, f))]
            for bucket in catalog.required_tier()
        },
    }
