"""
Project model — one row per brand foundation project.

Every ProjectRecord field has a column here; list and dict fields are JSON.
bucket_completion / overall_completion are stored copies of the completion
calculator's output, refreshed on every save.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Float, Text, DateTime, JSON

from app.database import Base
from app.foundation.record import FIELD_NAMES, ProjectRecord


def _now():
    return datetime.now(timezone.utc)


class Project(Base):
    __tablename__ = 'business_projects'

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))

    # Meta
    project_name = Column(Text, nullable=True)
    website_url = Column(Text, nullable=True)
    linkedin_url = Column(Text, nullable=True)

    # Core idea
    idea_name = Column(Text, nullable=True)
    one_liner = Column(Text, nullable=True)
    target_audience = Column(JSON, nullable=True)
    problem_statement = Column(Text, nullable=True)
    problem_urgency = Column(Integer, nullable=True)      # 1-10
    why_now = Column(Text, nullable=True)
    why_now_driver = Column(Text, nullable=True)

    # Value proposition
    existing_solutions = Column(JSON, nullable=True)
    differentiation_axis = Column(Text, nullable=True)
    differentiation_score = Column(Integer, nullable=True)  # 1-10
    secret_sauce = Column(Text, nullable=True)
    validation_status = Column(Text, nullable=True)

    # Market reality
    market_size_estimate = Column(Text, nullable=True)
    competitors = Column(JSON, nullable=True)
    positioning = Column(Text, nullable=True)

    # Business model
    revenue_model = Column(JSON, nullable=True)
    pricing_tier = Column(Integer, nullable=True)
    customer_type = Column(Text, nullable=True)           # b2b/b2c/b2b2c
    sales_motion = Column(Text, nullable=True)

    # Execution
    team_size = Column(Text, nullable=True)
    funding_status = Column(Text, nullable=True)
    timeline_months = Column(Integer, nullable=True)
    biggest_risks = Column(JSON, nullable=True)

    # Vision & values
    north_star_metric = Column(Text, nullable=True)
    company_values = Column(JSON, nullable=True)
    exit_vision = Column(Text, nullable=True)

    # Website scrape
    social_urls = Column(JSON, nullable=True)
    scraped_tagline = Column(Text, nullable=True)
    scraped_services = Column(JSON, nullable=True)
    scraped_industry = Column(Text, nullable=True)
    scraped_content = Column(Text, nullable=True)
    scrape_confidence = Column(Float, nullable=True)
    scraped_at = Column(Text, nullable=True)              # ISO-8601
    instagram_handle = Column(Text, nullable=True)
    twitter_handle = Column(Text, nullable=True)
    facebook_url = Column(Text, nullable=True)
    tiktok_handle = Column(Text, nullable=True)
    youtube_url = Column(Text, nullable=True)

    # Analyzer output
    ai_clarity_score = Column(Integer, nullable=True)     # 1-100
    ai_one_liner = Column(Text, nullable=True)
    ai_implied_assumptions = Column(JSON, nullable=True)
    ai_viability_score = Column(Integer, nullable=True)   # 1-100
    ai_summary = Column(Text, nullable=True)
    ai_positioning = Column(Text, nullable=True)
    ai_next_steps = Column(JSON, nullable=True)
    ai_market_size = Column(Text, nullable=True)
    ai_competitors = Column(JSON, nullable=True)
    ai_suggested_model = Column(Text, nullable=True)
    ai_risks = Column(JSON, nullable=True)
    ai_strengths = Column(JSON, nullable=True)
    ai_weaknesses = Column(JSON, nullable=True)
    ai_voice_traits = Column(JSON, nullable=True)
    ai_archetype = Column(Text, nullable=True)

    # Derived
    bucket_completion = Column(JSON, default=dict)
    overall_completion = Column(Integer, default=0)

    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    def to_record(self) -> ProjectRecord:
        data = {name: getattr(self, name) for name in FIELD_NAMES}
        return ProjectRecord(id=self.id, **data)

    def apply_fields(self, changes: dict):
        """Whole-field replacement. Unknown names raise ValueError."""
        unknown = sorted(set(changes) - FIELD_NAMES)
        if unknown:
            raise ValueError(f"Unknown project fields: {', '.join(unknown)}")
        for name, value in changes.items():
            setattr(self, name, value)

    def to_dict(self) -> dict:
        d = self.to_record().to_dict()
        d.update({
            'bucket_completion': self.bucket_completion or {},
            'overall_completion': self.overall_completion or 0,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        })
        return d
