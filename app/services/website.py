"""
Website fetch for the web_scraper analyzer — direct HTTP GET + BeautifulSoup.

fetch_website() returns page title, meta description, visible text and any
social profile links it finds. Network and HTTP errors propagate so the
analyzer run is marked failed (and retried).
"""
import logging
import re
from typing import Dict, Optional

import requests
from bs4 import BeautifulSoup

from app.config import WEBSITE_FETCH_TIMEOUT

logger = logging.getLogger('services.website')

USER_AGENT = 'Mozilla/5.0 (compatible; FoundationBot/1.0)'

# Page text kept before the LLM sees it
MAX_PAGE_TEXT = 10000

SOCIAL_PATTERNS = {
    'instagram': re.compile(r'(?:https?://)?(?:www\.)?instagram\.com/([a-zA-Z0-9_.]+)/?', re.I),
    'twitter': re.compile(r'(?:https?://)?(?:www\.)?(?:twitter\.com|x\.com)/([a-zA-Z0-9_]+)/?', re.I),
    'linkedin': re.compile(r'(?:https?://)?(?:www\.)?linkedin\.com/(?:company|in)/([a-zA-Z0-9_-]+)/?', re.I),
    'facebook': re.compile(r'(?:https?://)?(?:www\.)?facebook\.com/([a-zA-Z0-9._-]+)/?', re.I),
    'tiktok': re.compile(r'(?:https?://)?(?:www\.)?tiktok\.com/@([a-zA-Z0-9._]+)/?', re.I),
    'youtube': re.compile(r'(?:https?://)?(?:www\.)?youtube\.com/(?:@|channel/|user/)?([a-zA-Z0-9_-]+)/?', re.I),
}

# Share buttons, not profiles
_SHARE_SEGMENTS = {'share', 'sharer', 'intent', 'sharer.php'}


def normalize_url(url: str) -> str:
    url = (url or '').strip()
    if not re.match(r'^https?://', url, re.I):
        url = f'https://{url}'
    return url


def extract_handle(url: Optional[str], platform: str) -> Optional[str]:
    """Pull the account name out of a social profile URL."""
    pattern = SOCIAL_PATTERNS.get(platform)
    if not url or pattern is None:
        return None
    m = pattern.search(url)
    return m.group(1) if m else None


def find_social_urls(soup: BeautifulSoup) -> Dict[str, str]:
    """First profile link per platform, from <a href> tags."""
    found = {}
    for a in soup.find_all('a', href=True):
        href = a['href'].split('?')[0]
        for platform, pattern in SOCIAL_PATTERNS.items():
            if platform in found:
                continue
            m = pattern.search(href)
            if not m or m.group(1).lower() in _SHARE_SEGMENTS:
                continue
            url = m.group(0)
            found[platform] = url if url.lower().startswith('http') else f'https://{url}'
            logger.debug("Found %s link: %s", platform, found[platform])
    return found


def _meta_description(soup: BeautifulSoup) -> Optional[str]:
    for attrs in ({'name': 'description'}, {'property': 'og:description'}):
        tag = soup.find('meta', attrs=attrs)
        if tag and tag.get('content'):
            return tag['content'].strip()
    return None


def fetch_website(url: str, timeout: int = WEBSITE_FETCH_TIMEOUT) -> Dict:
    """
    Fetch and parse a website.

    Returns {'url', 'title', 'description', 'content', 'social_urls'}.
    Raises requests.RequestException on network or HTTP errors.
    """
    target = normalize_url(url)
    logger.info("Fetching website %s", target)

    resp = requests.get(
        target,
        timeout=timeout,
        allow_redirects=True,
        headers={
            'User-Agent': USER_AGENT,
            'Accept': 'text/html,application/xhtml+xml',
            'Accept-Language': 'en-US,en;q=0.9',
        },
    )
    resp.raise_for_status()

    soup = BeautifulSoup(resp.text, 'html.parser')
    social_urls = find_social_urls(soup)
    title = soup.title.get_text(strip=True) if soup.title else None
    description = _meta_description(soup)

    for tag in soup(['script', 'style', 'noscript']):
        tag.decompose()
    text = soup.get_text(' ', strip=True)
    if len(text) > MAX_PAGE_TEXT:
        text = text[:MAX_PAGE_TEXT] + '...'

    logger.info("Fetched %s: title=%r, %d chars, %d social links",
                target, title, len(text), len(social_urls))
    return {
        'url': target,
        'title': title or None,
        'description': description,
        'content': text,
        'social_urls': social_urls,
    }
