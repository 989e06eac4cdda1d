"""
ProjectRecord — typed snapshot of a brand foundation project.

One optional attribute per project field. Records are immutable; callers
replace whole fields with updated() and get a new record back.
"""
from dataclasses import dataclass, fields, replace, asdict
from typing import Any, Dict, List, Mapping, Optional


@dataclass(frozen=True)
class ProjectRecord:
    id: Optional[str] = None

    # Meta
    project_name: Optional[str] = None
    website_url: Optional[str] = None
    linkedin_url: Optional[str] = None

    # Core idea
    idea_name: Optional[str] = None
    one_liner: Optional[str] = None
    target_audience: Optional[List[str]] = None
    problem_statement: Optional[str] = None
    problem_urgency: Optional[int] = None
    why_now: Optional[str] = None
    why_now_driver: Optional[str] = None

    # Value proposition
    existing_solutions: Optional[List[str]] = None
    differentiation_axis: Optional[str] = None
    differentiation_score: Optional[int] = None
    secret_sauce: Optional[str] = None
    validation_status: Optional[str] = None

    # Market reality
    market_size_estimate: Optional[str] = None
    competitors: Optional[List[str]] = None
    positioning: Optional[str] = None

    # Business model
    revenue_model: Optional[List[str]] = None
    pricing_tier: Optional[int] = None
    customer_type: Optional[str] = None
    sales_motion: Optional[str] = None

    # Execution
    team_size: Optional[str] = None
    funding_status: Optional[str] = None
    timeline_months: Optional[int] = None
    biggest_risks: Optional[List[str]] = None

    # Vision & values
    north_star_metric: Optional[str] = None
    company_values: Optional[List[str]] = None
    exit_vision: Optional[str] = None

    # Website scrape results
    social_urls: Optional[Dict[str, str]] = None
    scraped_tagline: Optional[str] = None
    scraped_services: Optional[List[str]] = None
    scraped_industry: Optional[str] = None
    scraped_content: Optional[str] = None
    scrape_confidence: Optional[float] = None
    scraped_at: Optional[str] = None
    instagram_handle: Optional[str] = None
    twitter_handle: Optional[str] = None
    facebook_url: Optional[str] = None
    tiktok_handle: Optional[str] = None
    youtube_url: Optional[str] = None

    # Analyzer output
    ai_clarity_score: Optional[int] = None
    ai_one_liner: Optional[str] = None
    ai_implied_assumptions: Optional[List[str]] = None
    ai_viability_score: Optional[int] = None
    ai_summary: Optional[str] = None
    ai_positioning: Optional[str] = None
    ai_next_steps: Optional[List[str]] = None
    ai_market_size: Optional[str] = None
    ai_competitors: Optional[List[str]] = None
    ai_suggested_model: Optional[str] = None
    ai_risks: Optional[Any] = None
    ai_strengths: Optional[List[str]] = None
    ai_weaknesses: Optional[List[str]] = None
    ai_voice_traits: Optional[List[str]] = None
    ai_archetype: Optional[str] = None

    def get(self, name: str, default: Any = None) -> Any:
        """Mapping-style field access; unknown names return default."""
        if name not in FIELD_NAMES:
            return default
        value = getattr(self, name)
        return default if value is None else value

    def updated(self, **changes) -> 'ProjectRecord':
        """Return a copy with whole fields replaced."""
        unknown = sorted(set(changes) - FIELD_NAMES)
        if unknown:
            raise ValueError(f"Unknown project fields: {', '.join(unknown)}")
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'ProjectRecord':
        """Build a record from any mapping, dropping keys that are not fields."""
        known = {k: v for k, v in data.items() if k in FIELD_NAMES or k == 'id'}
        return cls(**known)


# Field names a bucket or analyzer may reference (excludes the id).
FIELD_NAMES = frozenset(f.name for f in fields(ProjectRecord) if f.name != 'id')
