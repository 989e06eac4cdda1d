"""
Bucket catalog — which fields belong to which bucket, and how much each counts.

Weight guide for the default catalog:
  3 = required tier (readiness gate reads these buckets' required fields)
  2 = build (analyzers can help construct)
  1 = enrichment (nice to have)

Catalogs are validated once when constructed; a malformed declaration raises
ConfigurationError so the process fails at startup, not mid-request.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from app.errors import ConfigurationError
from app.foundation.record import FIELD_NAMES


@dataclass(frozen=True)
class BucketDefinition:
    id: str
    name: str
    weight: int
    fields: Tuple[str, ...]
    required_fields: Tuple[str, ...] = ()
    description: str = ''

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'weight': self.weight,
            'fields': list(self.fields),
            'required_fields': list(self.required_fields),
        }


class BucketCatalog:
    """
    Immutable, ordered collection of bucket definitions.

    Usage:
        catalog = BucketCatalog(DEFAULT_BUCKETS)
        catalog.get('core_idea').weight      # 3
        catalog.required_tier()              # buckets with the max weight

    known_fields limits which field names a bucket may reference. Pass None to
    skip that check (test fixtures with synthetic fields).
    """

    def __init__(self, buckets: Iterable[BucketDefinition], known_fields: Optional[Iterable[str]] = FIELD_NAMES):
        self._buckets: Tuple[BucketDefinition, ...] = tuple(buckets)
        self._known_fields = frozenset(known_fields) if known_fields is not None else None
        self._validate()
        self._by_id = {b.id: b for b in self._buckets}

    def _validate(self):
        seen = set()
        for bucket in self._buckets:
            if not bucket.id:
                raise ConfigurationError("Bucket id must be a non-empty string")
            if bucket.id in seen:
                raise ConfigurationError(f"Duplicate bucket id '{bucket.id}'")
            seen.add(bucket.id)

            if isinstance(bucket.weight, bool) or not isinstance(bucket.weight, int) or bucket.weight <= 0:
                raise ConfigurationError(
                    f"Bucket '{bucket.id}' weight must be a positive integer, got {bucket.weight!r}"
                )

            if len(set(bucket.fields)) != len(bucket.fields):
                raise ConfigurationError(f"Bucket '{bucket.id}' lists a field more than once")

            stray = [f for f in bucket.required_fields if f not in bucket.fields]
            if stray:
                raise ConfigurationError(
                    f"Bucket '{bucket.id}' required_fields not in fields: {', '.join(stray)}"
                )

            if self._known_fields is not None:
                unknown = [f for f in bucket.fields if f not in self._known_fields]
                if unknown:
                    raise ConfigurationError(
                        f"Bucket '{bucket.id}' references unknown fields: {', '.join(unknown)}"
                    )

    # ── Lookup ────────────────────────────────────────────────────────

    def __iter__(self) -> Iterator[BucketDefinition]:
        return iter(self._buckets)

    def __len__(self) -> int:
        return len(self._buckets)

    def __contains__(self, bucket_id) -> bool:
        return bucket_id in self._by_id

    def get(self, bucket_id: str) -> BucketDefinition:
        bucket = self._by_id.get(bucket_id)
        if bucket is None:
            raise ConfigurationError(f"Unknown bucket '{bucket_id}'")
        return bucket

    @property
    def ids(self) -> List[str]:
        return [b.id for b in self._buckets]

    @property
    def total_weight(self) -> int:
        return sum(b.weight for b in self._buckets)

    @property
    def max_weight(self) -> int:
        return max((b.weight for b in self._buckets), default=0)

    def required_tier(self) -> List[BucketDefinition]:
        """Buckets whose weight equals the highest weight in the catalog."""
        top = self.max_weight
        return [b for b in self._buckets if b.weight == top]

    def fields_of(self, *bucket_ids: str) -> List[str]:
        """Fields of the named buckets, in declaration order."""
        result = []
        for bucket_id in bucket_ids:
            result.extend(self.get(bucket_id).fields)
        return result

    def to_list(self) -> List[Dict]:
        return [b.to_dict() for b in self._buckets]


# ── Default catalog ──────────────────────────────────────────────────────────

DEFAULT_BUCKETS = (
    BucketDefinition(
        id='core_idea',
        name='Core Idea',
        description='What is it, who is it for, why now?',
        weight=3,
        fields=(
            'idea_name',
            'one_liner',
            'target_audience',
            'problem_statement',
            'problem_urgency',
            'why_now',
            'why_now_driver',
        ),
        required_fields=('idea_name', 'one_liner', 'problem_statement'),
    ),
    BucketDefinition(
        id='value_prop',
        name='Value Proposition',
        description='Problem-solution fit, unique angle',
        weight=3,
        fields=(
            'existing_solutions',
            'differentiation_axis',
            'differentiation_score',
            'secret_sauce',
            'validation_status',
        ),
        required_fields=('secret_sauce', 'validation_status'),
    ),
    BucketDefinition(
        id='market',
        name='Market Reality',
        description='Competition, positioning, timing',
        weight=2,
        fields=('market_size_estimate', 'competitors', 'positioning'),
    ),
    BucketDefinition(
        id='model',
        name='Business Model',
        description='Revenue, pricing, unit economics',
        weight=2,
        fields=('revenue_model', 'pricing_tier', 'customer_type', 'sales_motion'),
        required_fields=('customer_type',),
    ),
    BucketDefinition(
        id='execution',
        name='Execution',
        description='Team, resources, timeline, risks',
        weight=1,
        fields=('team_size', 'funding_status', 'timeline_months', 'biggest_risks'),
    ),
    BucketDefinition(
        id='vision',
        name='Vision & Values',
        description='Long-term direction, principles',
        weight=1,
        fields=('north_star_metric', 'company_values', 'exit_vision'),
    ),
)

DEFAULT_CATALOG = BucketCatalog(DEFAULT_BUCKETS)
