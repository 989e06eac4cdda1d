"""
Analyzer executors — the LLM work behind each analyzer type.

Every LLM analyzer is two-phase:
  Phase 1  prose analysis of the project's inputs
  Phase 2  function-calling pass that extracts the structured fields

The keys each phase-2 schema produces are the keys the registry's
fields_to_update mappings read.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Type

from app.analyzers.base import AnalysisResult, AnalyzerExecutor
from app.errors import ExecutorError
from app.foundation.completion import field_value, is_filled
from app.services.openai_client import extract_fields, run_analysis
from app.services.website import fetch_website

logger = logging.getLogger('analyzers.executors')


def _tool(name: str, description: str, properties: Dict[str, Any], required: List[str]) -> Dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": name,
            "description": description,
            "parameters": {"type": "object", "properties": properties, "required": required},
        },
    }


_STRING_LIST = {"type": "array", "items": {"type": "string"}}
_SCORE = {"type": "integer", "minimum": 1, "maximum": 100}
_CONFIDENCE = {"type": "number", "description": "Confidence in the analysis from 0 to 1"}


def _format_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ', '.join(str(v) for v in value)
    if isinstance(value, dict):
        return ', '.join(f"{k}: {v}" for k, v in value.items())
    return str(value)


class TwoPhaseExecutor(AnalyzerExecutor):
    """
    Base for LLM analyzers. Subclasses set the prompts, the input fields
    shown to the model and the phase-2 tool schema.
    """
    system_prompt: str = ''
    instructions: str = ''
    input_fields: List[str] = []
    tool_schema: Dict[str, Any] = {}

    def input_snapshot(self, record: Any) -> Dict[str, Any]:
        return {f: field_value(record, f) for f in self.input_fields if is_filled(field_value(record, f))}

    def build_prompt(self, record: Any) -> str:
        snapshot = self.input_snapshot(record)
        lines = [f"- {name.replace('_', ' ')}: {_format_value(value)}" for name, value in snapshot.items()]
        facts = '\n'.join(lines) if lines else '- (nothing provided yet)'
        return f"{self.instructions}\n\nWhat the founder has told us:\n{facts}"

    def run(self, record: Any) -> AnalysisResult:
        try:
            raw = run_analysis(self.system_prompt, self.build_prompt(record))
            parsed = extract_fields(raw, self.tool_schema)
        except ExecutorError:
            raise
        except Exception as e:
            raise ExecutorError(self.analyzer_type, str(e)) from e

        confidence = parsed.get('confidence')
        logger.info("%s analysis complete: fields=%s", self.analyzer_type, sorted(parsed))
        return AnalysisResult(
            raw_analysis=raw,
            parsed_fields=parsed,
            confidence=float(confidence) if isinstance(confidence, (int, float)) else None,
        )


class WebScraperExecutor(AnalyzerExecutor):
    """Fetch the project's website, analyze it, keep its social links."""
    analyzer_type = 'web_scraper'

    system_prompt = ("You are a business analyst who helps extract insights from website content. "
                     "Be specific and use evidence from the content.")
    tool_schema = _tool(
        'save_website_analysis',
        'Save the structured analysis of a website',
        {
            "tagline": {"type": "string", "description": "The main tagline or value proposition, exact text if possible"},
            "services": dict(_STRING_LIST, description="Services or products offered, as mentioned on the site"),
            "industry": {"type": "string", "description": "Business industry or category (SaaS, Agency, E-commerce...)"},
            "target_customer": {"type": "string", "description": "Who the site is selling to"},
            "brand_personality": {"type": "string", "description": "Brand personality traits observed"},
            "confidence": _CONFIDENCE,
        },
        ['tagline', 'services', 'industry', 'confidence'],
    )

    def input_snapshot(self, record: Any) -> Dict[str, Any]:
        return {'website_url': field_value(record, 'website_url')}

    def build_prompt(self, page: Dict[str, Any], record: Any) -> str:
        known = []
        for f in ('project_name', 'idea_name', 'problem_statement'):
            value = field_value(record, f)
            if is_filled(value):
                known.append(f"- {f.replace('_', ' ')}: {value}")
        context = ("We already know this about the project:\n" + '\n'.join(known) + "\n\n") if known else ''
        return (
            f"{context}Analyze this website and tell us what the business does, who it serves, "
            f"its main tagline or value proposition, the services it offers and its industry.\n\n"
            f"URL: {page['url']}\n"
            f"Title: {page.get('title') or 'n/a'}\n"
            f"Description: {page.get('description') or 'n/a'}\n\n"
            f"Page content:\n{page.get('content') or ''}"
        )

    def run(self, record: Any) -> AnalysisResult:
        url = field_value(record, 'website_url')
        if not isinstance(url, str) or not url.strip():
            raise ExecutorError(self.analyzer_type, "No website URL provided")

        try:
            page = fetch_website(url)
            raw = run_analysis(self.system_prompt, self.build_prompt(page, record))
            parsed = extract_fields(raw, self.tool_schema,
                                    instructions="Extract structured data from this website analysis. Use the function provided.")
        except ExecutorError:
            raise
        except Exception as e:
            raise ExecutorError(self.analyzer_type, str(e)) from e

        # Scrape output rides along so fields_to_update stays a pure function of parsed_fields
        parsed['content'] = page.get('content') or ''
        parsed['social_urls'] = page.get('social_urls') or {}
        parsed['scraped_at'] = datetime.now(timezone.utc).isoformat()

        logger.info("Website analysis complete for %s: %d social links", page['url'], len(parsed['social_urls']))
        confidence = parsed.get('confidence')
        return AnalysisResult(
            raw_analysis=raw,
            parsed_fields=parsed,
            confidence=float(confidence) if isinstance(confidence, (int, float)) else None,
        )


class ClarityExecutor(TwoPhaseExecutor):
    analyzer_type = 'clarity'
    system_prompt = ("You're evaluating how clearly a founder has articulated their business idea. "
                     "Be direct and quote their wording when something is vague.")
    instructions = ("Assess the clarity of this idea: is it obvious what it is, who it is for and what "
                    "problem it solves? Suggest a sharper one-liner and list the assumptions the idea "
                    "quietly depends on.")
    input_fields = ['idea_name', 'one_liner', 'problem_statement', 'target_audience', 'why_now']
    tool_schema = _tool(
        'save_clarity_analysis',
        'Save the idea clarity assessment',
        {
            "clarity_score": dict(_SCORE, description="How clearly the idea is articulated, 1-100"),
            "one_liner": {"type": "string", "description": "A sharpened one-sentence description of the idea"},
            "implied_assumptions": dict(_STRING_LIST, description="Assumptions the idea depends on"),
            "confidence": _CONFIDENCE,
        },
        ['clarity_score', 'one_liner', 'implied_assumptions'],
    )


class NarrativeExecutor(TwoPhaseExecutor):
    analyzer_type = 'narrative'
    system_prompt = ("You're a brand strategist shaping a founder's story. Be rigorous: note what is "
                     "genuinely distinctive versus table stakes.")
    instructions = ("Write the brand narrative: the problem, why this founder's approach is different, "
                    "and the positioning that follows from it.")
    input_fields = ['idea_name', 'problem_statement', 'secret_sauce', 'differentiation_axis', 'target_audience']
    tool_schema = _tool(
        'save_narrative_analysis',
        'Save the brand narrative',
        {
            "summary": {"type": "string", "description": "The brand story in 2-4 sentences"},
            "positioning": {"type": "string", "description": "One-sentence positioning statement"},
            "confidence": _CONFIDENCE,
        },
        ['summary', 'positioning'],
    )


class VoiceExecutor(TwoPhaseExecutor):
    analyzer_type = 'voice'
    system_prompt = ("You're identifying a brand's natural voice: tone, personality markers, energy, "
                     "and what it would never say.")
    instructions = ("Describe the brand voice these values and this audience call for, and pick the "
                    "single brand archetype (Hero, Sage, Creator, Caregiver, ...) that fits best.")
    input_fields = ['company_values', 'target_audience', 'idea_name', 'one_liner']
    tool_schema = _tool(
        'save_voice_analysis',
        'Save the brand voice analysis',
        {
            "voice_traits": dict(_STRING_LIST, description="3-6 adjectives describing the voice"),
            "archetype": {"type": "string", "description": "The single best-fit brand archetype"},
            "confidence": _CONFIDENCE,
        },
        ['voice_traits', 'archetype'],
    )


class SynthesisExecutor(TwoPhaseExecutor):
    analyzer_type = 'synthesis'
    system_prompt = ("You're an experienced startup advisor giving an honest overall read of a business "
                     "foundation. Balance encouragement with candor.")
    instructions = ("Synthesize everything below into an overall assessment: viability, strengths, "
                    "weaknesses and the most important next steps.")
    input_fields = [
        'idea_name', 'one_liner', 'problem_statement', 'target_audience', 'secret_sauce',
        'validation_status', 'market_size_estimate', 'competitors', 'positioning',
        'revenue_model', 'pricing_tier', 'customer_type', 'sales_motion', 'ai_positioning',
    ]
    tool_schema = _tool(
        'save_synthesis',
        'Save the full business synthesis',
        {
            "viability_score": dict(_SCORE, description="Overall viability, 1-100"),
            "summary": {"type": "string", "description": "Overall assessment in 3-5 sentences"},
            "strengths": _STRING_LIST,
            "weaknesses": _STRING_LIST,
            "next_steps": dict(_STRING_LIST, description="Most important next steps, in order"),
            "confidence": _CONFIDENCE,
        },
        ['viability_score', 'summary', 'strengths', 'weaknesses', 'next_steps'],
    )


class MarketExecutor(TwoPhaseExecutor):
    analyzer_type = 'market'
    system_prompt = "You're a market analyst sizing opportunities and mapping competition."
    instructions = "Estimate the market size for this idea and list its most relevant competitors."
    input_fields = ['idea_name', 'problem_statement', 'target_audience', 'market_size_estimate', 'competitors']
    tool_schema = _tool(
        'save_market_analysis',
        'Save the market analysis',
        {
            "market_size": {"type": "string", "description": "Market size estimate with reasoning"},
            "competitors": dict(_STRING_LIST, description="Direct and indirect competitors"),
            "confidence": _CONFIDENCE,
        },
        ['market_size', 'competitors'],
    )


class ModelExecutor(TwoPhaseExecutor):
    analyzer_type = 'model'
    system_prompt = "You're a business model strategist focused on revenue and pricing."
    instructions = "Suggest the revenue model and pricing strategy that best fits this business."
    input_fields = ['idea_name', 'target_audience', 'revenue_model', 'pricing_tier', 'customer_type', 'sales_motion']
    tool_schema = _tool(
        'save_model_analysis',
        'Save the business model suggestion',
        {
            "suggested_model": {"type": "string", "description": "Recommended revenue model and pricing"},
            "confidence": _CONFIDENCE,
        },
        ['suggested_model'],
    )


class RiskExecutor(TwoPhaseExecutor):
    analyzer_type = 'risk'
    system_prompt = "You're a risk analyst stress-testing an early-stage business."
    instructions = "Identify the biggest risks to this business, how likely each is, and how to mitigate it."
    input_fields = ['idea_name', 'problem_statement', 'validation_status', 'biggest_risks', 'funding_status', 'team_size']
    tool_schema = _tool(
        'save_risk_analysis',
        'Save the risk assessment',
        {
            "risks": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "risk": {"type": "string"},
                        "severity": {"type": "string", "enum": ["low", "medium", "high"]},
                        "mitigation": {"type": "string"},
                    },
                    "required": ["risk", "severity"],
                },
            },
            "confidence": _CONFIDENCE,
        },
        ['risks'],
    )


# ── Executor registry ─────────────────────────────────────────────────────────

EXECUTORS: Dict[str, Type[AnalyzerExecutor]] = {
    'web_scraper': WebScraperExecutor,
    'clarity': ClarityExecutor,
    'narrative': NarrativeExecutor,
    'voice': VoiceExecutor,
    'synthesis': SynthesisExecutor,
    'market': MarketExecutor,
    'model': ModelExecutor,
    'risk': RiskExecutor,
}


def get_executor(analyzer_type: str) -> AnalyzerExecutor:
    """Look up and instantiate the executor for an analyzer type."""
    executor_cls = EXECUTORS.get(analyzer_type)
    if not executor_cls:
        raise ValueError(f"No executor registered for analyzer '{analyzer_type}'")
    return executor_cls()
