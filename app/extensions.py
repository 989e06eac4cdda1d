"""
Shared client instances — Redis (RQ + circuit breakers) and OpenAI.

Importing this module never raises: redis.from_url() does not connect until
first use, and a missing OPENAI_API_KEY leaves openai_client as None.
"""
import logging
import redis

from app.config import REDIS_URL, OPENAI_API_KEY

logger = logging.getLogger('app.extensions')

# ── Redis ─────────────────────────────────────────────────────────────────────
redis_client = redis.from_url(REDIS_URL, decode_responses=True)

# ── OpenAI ────────────────────────────────────────────────────────────────────
openai_client = None
if OPENAI_API_KEY:
    try:
        from openai import OpenAI
        openai_client = OpenAI(api_key=OPENAI_API_KEY)
        logger.info("OpenAI client initialized successfully")
    except Exception as e:
        logger.error("Error initializing OpenAI client: %s", e)
else:
    logger.warning("OPENAI_API_KEY not set, LLM analyzers will fail until it is")
