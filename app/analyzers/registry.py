"""
Analyzer registry — every analyzer type, its trigger rule and output mapping.

Declaration order matters: the trigger evaluator reports eligible analyzers in
this order.

To add an analyzer:
  1. Declare an AnalyzerDescriptor in build_default_registry()
  2. Add its phase-2 extraction schema in app/analyzers/executors.py
  3. Add any new project columns to ProjectRecord and app/models/project.py
"""
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from app.analyzers.base import AnalyzerDescriptor, COMPLETED, IN_FLIGHT, has_completed, latest_status
from app.errors import ConfigurationError
from app.foundation.buckets import BucketCatalog, DEFAULT_CATALOG
from app.foundation.completion import field_value, has_minimum_viable_data, is_filled
from app.foundation.record import FIELD_NAMES
from app.services.website import extract_handle


class AnalyzerRegistry:
    """
    Immutable, ordered set of analyzer descriptors.

    Validates at construction: unique types, dependencies that name registered
    analyzers, and output/requirement fields that exist on the project record.
    """

    def __init__(self, descriptors: Iterable[AnalyzerDescriptor], known_fields: Optional[Iterable[str]] = FIELD_NAMES):
        self._descriptors: Tuple[AnalyzerDescriptor, ...] = tuple(descriptors)
        self._by_type = {}
        for d in self._descriptors:
            if not d.type:
                raise ConfigurationError("Analyzer type must be a non-empty string")
            if d.type in self._by_type:
                raise ConfigurationError(f"Duplicate analyzer type '{d.type}'")
            self._by_type[d.type] = d

        fields = frozenset(known_fields) if known_fields is not None else None
        for d in self._descriptors:
            unknown_deps = [dep for dep in d.dependencies if dep not in self._by_type]
            if unknown_deps:
                raise ConfigurationError(
                    f"Analyzer '{d.type}' depends on unknown analyzers: {', '.join(unknown_deps)}"
                )
            if d.type in d.dependencies:
                raise ConfigurationError(f"Analyzer '{d.type}' cannot depend on itself")
            if fields is not None:
                referenced = list(d.output_fields) + [f for f, _ in d.requirements]
                unknown = [f for f in referenced if f not in fields]
                if unknown:
                    raise ConfigurationError(
                        f"Analyzer '{d.type}' references unknown fields: {', '.join(unknown)}"
                    )

    def __iter__(self) -> Iterator[AnalyzerDescriptor]:
        return iter(self._descriptors)

    def __len__(self) -> int:
        return len(self._descriptors)

    def __contains__(self, analyzer_type) -> bool:
        return analyzer_type in self._by_type

    def get(self, analyzer_type: str) -> AnalyzerDescriptor:
        descriptor = self._by_type.get(analyzer_type)
        if descriptor is None:
            raise KeyError(f"Unknown analyzer type: {analyzer_type}")
        return descriptor

    @property
    def types(self) -> List[str]:
        return [d.type for d in self._descriptors]

    def auto_trigger(self) -> List[AnalyzerDescriptor]:
        return [d for d in self._descriptors if d.auto_trigger]


# ── Trigger building blocks ──────────────────────────────────────────────────

def _not_started(analyzer_type: str) -> Callable[[Sequence[Any]], bool]:
    """True unless the type's latest run is in flight or completed."""
    blocked = IN_FLIGHT + (COMPLETED,)

    def check(runs):
        return latest_status(runs, analyzer_type) not in blocked
    return check


def _all_filled(record, *fields) -> bool:
    return all(is_filled(field_value(record, f)) for f in fields)


def _any_filled(record, *fields) -> bool:
    return any(is_filled(field_value(record, f)) for f in fields)


def _non_empty_text(record, *fields) -> bool:
    for f in fields:
        value = field_value(record, f)
        if not isinstance(value, str) or not value.strip():
            return False
    return True


def _score(value) -> Optional[int]:
    """Coerce a model-reported score into the 1-100 column range."""
    if value is None or isinstance(value, bool):
        return None
    try:
        score = int(round(float(value)))
    except (TypeError, ValueError):
        return None
    return min(max(score, 1), 100)


def _string_list(value) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        return [value] if value.strip() else []
    return [str(v) for v in value if v is not None and str(v).strip()]


def _mapper(mapping: Dict[str, Tuple[str, Optional[Callable[[Any], Any]]]]) -> Callable[[Dict[str, Any]], Dict[str, Any]]:
    """
    Build a fields_to_update function from {project_field: (parsed_key, transform)}.

    Keys missing from the parsed output (or transforming to None) are left out,
    so a sparse extraction never blanks an existing project field.
    """
    def fields_to_update(parsed_fields):
        updates = {}
        for project_field, (key, transform) in mapping.items():
            if key not in parsed_fields:
                continue
            value = parsed_fields[key]
            if transform is not None:
                value = transform(value)
            if value is not None:
                updates[project_field] = value
        return updates
    return fields_to_update


def web_scraper_fields_to_update(parsed_fields: Dict[str, Any]) -> Dict[str, Any]:
    """Project updates from a website analysis, including social handles."""
    social = parsed_fields.get('social_urls') or {}
    confidence = parsed_fields.get('confidence')
    updates = {
        'scraped_tagline': parsed_fields.get('tagline') or None,
        'scraped_services': _string_list(parsed_fields.get('services')) or [],
        'scraped_industry': parsed_fields.get('industry') or None,
        # Already capped at fetch time (website.MAX_PAGE_TEXT)
        'scraped_content': parsed_fields.get('content') or '',
        'scrape_confidence': 0.5 if confidence is None else float(confidence),
        'scraped_at': parsed_fields.get('scraped_at'),
        'social_urls': {k: v for k, v in social.items() if v},
        'instagram_handle': extract_handle(social.get('instagram'), 'instagram'),
        'twitter_handle': extract_handle(social.get('twitter'), 'twitter'),
        'facebook_url': social.get('facebook') or None,
        'tiktok_handle': extract_handle(social.get('tiktok'), 'tiktok'),
        'youtube_url': social.get('youtube') or None,
    }
    # linkedin_url is user-entered too; only overwrite when the site links one
    if social.get('linkedin'):
        updates['linkedin_url'] = social['linkedin']
    return updates


# ── Default registry ─────────────────────────────────────────────────────────

SYNTHESIS_SECONDARY_BUCKETS = ('market', 'model')


def build_default_registry(catalog: BucketCatalog = DEFAULT_CATALOG) -> AnalyzerRegistry:
    """Build the production registry. Synthesis reads the catalog's readiness gate."""
    secondary_fields = tuple(catalog.fields_of(*SYNTHESIS_SECONDARY_BUCKETS))

    web_scraper_free = _not_started('web_scraper')
    clarity_free = _not_started('clarity')
    narrative_free = _not_started('narrative')
    voice_free = _not_started('voice')
    synthesis_free = _not_started('synthesis')
    market_free = _not_started('market')
    model_free = _not_started('model')
    risk_free = _not_started('risk')

    def synthesis_trigger(record, runs):
        return (
            has_minimum_viable_data(record, catalog)
            and _any_filled(record, *secondary_fields)
            and has_completed(runs, 'narrative')
            and synthesis_free(runs)
        )

    return AnalyzerRegistry([
        AnalyzerDescriptor(
            type='web_scraper',
            display_name='Website Analyzer',
            description='Scrapes your website to find social links and learn about your business',
            should_trigger=lambda record, runs: _non_empty_text(record, 'website_url') and web_scraper_free(runs),
            fields_to_update=web_scraper_fields_to_update,
            output_fields=(
                'social_urls', 'scraped_tagline', 'scraped_services', 'scraped_industry',
                'scraped_content', 'scrape_confidence', 'scraped_at', 'instagram_handle',
                'twitter_handle', 'facebook_url', 'tiktok_handle', 'youtube_url', 'linkedin_url',
            ),
            requirements=(('website_url', 'Website URL'),),
        ),
        AnalyzerDescriptor(
            type='clarity',
            display_name='Idea Clarity',
            description='Analyzes how clearly your business idea is articulated',
            should_trigger=lambda record, runs: (
                _all_filled(record, 'idea_name', 'problem_statement', 'target_audience') and clarity_free(runs)
            ),
            fields_to_update=_mapper({
                'ai_clarity_score': ('clarity_score', _score),
                'ai_one_liner': ('one_liner', None),
                'ai_implied_assumptions': ('implied_assumptions', _string_list),
            }),
            output_fields=('ai_clarity_score', 'ai_one_liner', 'ai_implied_assumptions'),
            requirements=(
                ('idea_name', 'Idea name'),
                ('problem_statement', 'Problem statement'),
                ('target_audience', 'Target audience'),
            ),
        ),
        AnalyzerDescriptor(
            type='narrative',
            display_name='Brand Narrative',
            description='Analyzes your brand story and positioning',
            should_trigger=lambda record, runs: (
                _non_empty_text(record, 'problem_statement', 'secret_sauce') and narrative_free(runs)
            ),
            fields_to_update=_mapper({
                'ai_summary': ('summary', None),
                'ai_positioning': ('positioning', None),
            }),
            output_fields=('ai_summary', 'ai_positioning'),
            requirements=(
                ('problem_statement', 'Problem statement'),
                ('secret_sauce', 'Secret sauce'),
            ),
        ),
        AnalyzerDescriptor(
            type='voice',
            display_name='Brand Voice',
            description='Analyzes your brand personality and communication style',
            should_trigger=lambda record, runs: (
                _all_filled(record, 'company_values', 'target_audience') and voice_free(runs)
            ),
            fields_to_update=_mapper({
                'ai_voice_traits': ('voice_traits', _string_list),
                'ai_archetype': ('archetype', None),
            }),
            output_fields=('ai_voice_traits', 'ai_archetype'),
            requirements=(
                ('company_values', 'Brand words'),
                ('target_audience', 'Target audience'),
            ),
        ),
        AnalyzerDescriptor(
            type='synthesis',
            display_name='Full Synthesis',
            description='Creates a comprehensive analysis of your business',
            should_trigger=synthesis_trigger,
            fields_to_update=_mapper({
                'ai_viability_score': ('viability_score', _score),
                'ai_summary': ('summary', None),
                'ai_strengths': ('strengths', _string_list),
                'ai_weaknesses': ('weaknesses', _string_list),
                'ai_next_steps': ('next_steps', _string_list),
            }),
            output_fields=('ai_viability_score', 'ai_summary', 'ai_strengths', 'ai_weaknesses', 'ai_next_steps'),
            dependencies=('narrative',),
            requirements=tuple(
                (f, f.replace('_', ' ').capitalize())
                for bucket in catalog.required_tier()
                for f in bucket.required_fields
            ),
        ),
        AnalyzerDescriptor(
            type='market',
            display_name='Market Analysis',
            description='Analyzes market size and competition',
            auto_trigger=False,
            should_trigger=lambda record, runs: (
                _any_filled(record, 'market_size_estimate', 'competitors') and market_free(runs)
            ),
            fields_to_update=_mapper({
                'ai_market_size': ('market_size', None),
                'ai_competitors': ('competitors', _string_list),
            }),
            output_fields=('ai_market_size', 'ai_competitors'),
        ),
        AnalyzerDescriptor(
            type='model',
            display_name='Business Model',
            description='Suggests revenue models and pricing strategies',
            auto_trigger=False,
            should_trigger=lambda record, runs: (
                _any_filled(record, 'revenue_model', 'customer_type') and model_free(runs)
            ),
            fields_to_update=_mapper({
                'ai_suggested_model': ('suggested_model', None),
            }),
            output_fields=('ai_suggested_model',),
        ),
        AnalyzerDescriptor(
            type='risk',
            display_name='Risk Assessment',
            description='Identifies potential risks and challenges',
            auto_trigger=False,
            should_trigger=lambda record, runs: (
                _any_filled(record, 'biggest_risks', 'validation_status') and risk_free(runs)
            ),
            fields_to_update=_mapper({
                'ai_risks': ('risks', None),
            }),
            output_fields=('ai_risks',),
        ),
    ])


DEFAULT_REGISTRY = build_default_registry()
