"""
Centralized configuration: env vars and analyzer constants.

LOG_LEVEL and LOG_FORMAT are read by app.logging_config at call time.
"""
import os


# ── Redis (RQ queue + circuit breaker state) ─────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── Database ─────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///local.db')

# ── OpenAI ────────────────────────────────────────────────────────────────────
OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
OPENAI_MODEL = os.getenv('OPENAI_MODEL', 'gpt-4o-mini')
OPENAI_MAX_TOKENS = int(os.getenv('OPENAI_MAX_TOKENS', '1500'))

# Circuit breaker around the OpenAI API
OPENAI_BREAKER_THRESHOLD = int(os.getenv('OPENAI_BREAKER_THRESHOLD', '5'))
OPENAI_BREAKER_RESET_SECONDS = int(os.getenv('OPENAI_BREAKER_RESET_SECONDS', '60'))

# ── Website fetch (web_scraper analyzer) ─────────────────────────────────────
WEBSITE_FETCH_TIMEOUT = int(os.getenv('WEBSITE_FETCH_TIMEOUT', '15'))

# ── Analyzer runs ────────────────────────────────────────────────────────────
MAX_RETRIES = int(os.getenv('ANALYZER_MAX_RETRIES', '3'))
ANALYZER_JOB_TIMEOUT = int(os.getenv('ANALYZER_JOB_TIMEOUT', '600'))
ANALYZER_QUEUE = 'analyzers'  # RQ queue name

# Why a run was created; stored on analyzer_runs.trigger_reason
TRIGGER_REASONS = [
    'auto',
    'manual',
    'force',
]
