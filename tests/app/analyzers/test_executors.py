"""Tests for app.analyzers.executors — two-phase LLM analyzers and the website analyzer."""
import pytest
from unittest.mock import patch

import requests

from app.analyzers.executors import (
    EXECUTORS,
    ClarityExecutor,
    RiskExecutor,
    WebScraperExecutor,
    get_executor,
)
from app.analyzers.registry import DEFAULT_REGISTRY
from app.errors import ExecutorError
from app.foundation.record import ProjectRecord


@pytest.fixture
def mock_llm():
    with patch('app.analyzers.executors.run_analysis') as analysis, \
         patch('app.analyzers.executors.extract_fields') as extract:
        analysis.return_value = 'The idea is clear but the audience is broad.'
        extract.return_value = {'clarity_score': 72, 'one_liner': 'Hikes for remote teams',
                                'implied_assumptions': ['Remote workers travel'], 'confidence': 0.85}
        yield analysis, extract


class TestExecutorLookup:
    def test_every_registered_analyzer_has_executor(self):
        assert set(EXECUTORS) == set(DEFAULT_REGISTRY.types)

    def test_get_executor_instances(self):
        executor = get_executor('clarity')
        assert isinstance(executor, ClarityExecutor)
        assert executor.analyzer_type == 'clarity'

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="No executor registered for analyzer 'astrology'"):
            get_executor('astrology')

    @pytest.mark.parametrize('analyzer_type', ['clarity', 'narrative', 'voice', 'synthesis', 'market', 'model', 'risk'])
    def test_schema_fills_every_output_field(self, analyzer_type):
        samples = {'string': 'x', 'integer': 50, 'number': 0.5, 'array': ['x']}
        properties = EXECUTORS[analyzer_type].tool_schema['function']['parameters']['properties']
        parsed = {key: samples[prop['type']] for key, prop in properties.items()}

        descriptor = DEFAULT_REGISTRY.get(analyzer_type)
        assert set(descriptor.fields_to_update(parsed)) == set(descriptor.output_fields)


class TestTwoPhaseExecutor:
    def test_run(self, mock_llm, ready_record):
        analysis, extract = mock_llm
        result = ClarityExecutor().run(ready_record)

        assert result.raw_analysis == 'The idea is clear but the audience is broad.'
        assert result.parsed_fields['clarity_score'] == 72
        assert result.confidence == 0.85
        extract.assert_called_once_with(
            'The idea is clear but the audience is broad.', ClarityExecutor.tool_schema,
        )

    def test_prompt_lists_filled_inputs_only(self, mock_llm, ready_record):
        analysis, _ = mock_llm
        ClarityExecutor().run(ready_record)
        system, prompt = analysis.call_args.args
        assert system == ClarityExecutor.system_prompt
        assert '- idea name: TrailMix' in prompt
        assert '- target audience: remote workers' in prompt
        assert 'why now' not in prompt

    def test_prompt_for_empty_record(self):
        prompt = ClarityExecutor().build_prompt(ProjectRecord())
        assert '(nothing provided yet)' in prompt

    def test_input_snapshot(self, ready_record):
        snapshot = ClarityExecutor().input_snapshot(ready_record)
        assert snapshot == {
            'idea_name': 'TrailMix',
            'one_liner': 'Group hiking trips for remote workers',
            'problem_statement': 'Remote workers are isolated and want in-person adventure',
            'target_audience': ['remote workers'],
        }

    def test_missing_confidence(self, mock_llm, ready_record):
        _, extract = mock_llm
        extract.return_value = {'clarity_score': 50}
        assert ClarityExecutor().run(ready_record).confidence is None

    def test_llm_error_wrapped(self, mock_llm, ready_record):
        analysis, _ = mock_llm
        analysis.side_effect = RuntimeError('rate limited')
        with pytest.raises(ExecutorError, match='clarity: rate limited'):
            ClarityExecutor().run(ready_record)

    def test_extraction_error_wrapped(self, mock_llm, ready_record):
        _, extract = mock_llm
        extract.side_effect = ValueError('No tool call in response')
        with pytest.raises(ExecutorError) as exc_info:
            RiskExecutor().run(ready_record)
        assert exc_info.value.analyzer_type == 'risk'


class TestWebScraperExecutor:
    PAGE = {
        'url': 'https://trailmix.co',
        'title': 'TrailMix',
        'description': 'Hikes for remote teams',
        'content': 'Book a group hike with your remote team.',
        'social_urls': {'instagram': 'https://instagram.com/trailmix'},
    }

    def test_run(self, mock_llm):
        analysis, extract = mock_llm
        extract.return_value = {'tagline': 'Get outside together', 'services': ['Group hikes'],
                                'industry': 'Travel', 'confidence': 0.7}
        record = ProjectRecord(website_url='trailmix.co', idea_name='TrailMix')

        with patch('app.analyzers.executors.fetch_website', return_value=dict(self.PAGE)) as fetch:
            result = WebScraperExecutor().run(record)

        fetch.assert_called_once_with('trailmix.co')
        prompt = analysis.call_args.args[1]
        assert 'URL: https://trailmix.co' in prompt
        assert '- idea name: TrailMix' in prompt
        assert 'Book a group hike' in prompt

        parsed = result.parsed_fields
        assert parsed['tagline'] == 'Get outside together'
        assert parsed['content'] == 'Book a group hike with your remote team.'
        assert parsed['social_urls'] == {'instagram': 'https://instagram.com/trailmix'}
        assert parsed['scraped_at']
        assert result.confidence == 0.7

    def test_parsed_output_maps_to_project_fields(self, mock_llm):
        _, extract = mock_llm
        extract.return_value = {'tagline': 'Get outside together', 'services': [], 'industry': 'Travel'}
        with patch('app.analyzers.executors.fetch_website', return_value=dict(self.PAGE)):
            result = WebScraperExecutor().run(ProjectRecord(website_url='trailmix.co'))

        updates = DEFAULT_REGISTRY.get('web_scraper').fields_to_update(result.parsed_fields)
        assert updates['instagram_handle'] == 'trailmix'
        assert updates['scraped_tagline'] == 'Get outside together'
        assert updates['scrape_confidence'] == 0.5

    def test_no_url(self, mock_llm):
        with pytest.raises(ExecutorError, match='No website URL provided'):
            WebScraperExecutor().run(ProjectRecord())

    def test_fetch_error_wrapped(self, mock_llm):
        analysis, _ = mock_llm
        with patch('app.analyzers.executors.fetch_website', side_effect=requests.ConnectionError('dns failure')):
            with pytest.raises(ExecutorError, match='web_scraper: dns failure'):
                WebScraperExecutor().run(ProjectRecord(website_url='nowhere.invalid'))
        analysis.assert_not_called()

    def test_input_snapshot(self):
        assert WebScraperExecutor().input_snapshot(ProjectRecord(website_url='trailmix.co')) == {
            'website_url': 'trailmix.co',
        }
