"""
Source URL extraction from provider answers.

Pulls citation-like URLs out of free text so each scan result can point at
where the provider's information came from. Extraction is heuristic and
pure: no network access and no exceptions on malformed input.

Key features:
- Three URL shapes matched in sequence: http(s)://..., www...., bare domain.tld
- Normalization (trailing punctuation stripped, https:// added when missing)
- Rejection of non-production hosts (example.com, localhost, *.test, ...)
- Title inference from the text around each URL
- At most MAX_SOURCES_PER_RESULT references, in discovery order

Example:
    >>> sources = extract_sources(
    ...     'See "The 2025 CRM Buyer Guide" at https://www.g2.com/crm.'
    ... )
    >>> sources[0].url, sources[0].domain, sources[0].title
    ('https://www.g2.com/crm', 'g2.com', 'The 2025 CRM Buyer Guide')
"""

import ipaddress
import re
from collections.abc import Iterable
from dataclasses import dataclass
from urllib.parse import urlsplit

from llm_mention_scanner.config.constants import MAX_SOURCES_PER_RESULT
from llm_mention_scanner.llm_runner.models import SourceHint

# Characters that can never be part of a URL token in prose
_URL_BODY = r"[^\s<>\"'`()\[\]{}|\\^]+"

# Common TLDs accepted for bare domain.tld tokens. Kept short on purpose:
# "Node.js" or "config.yaml" must not turn into sources.
BARE_DOMAIN_TLDS = (
    "com",
    "org",
    "net",
    "io",
    "ai",
    "co",
    "dev",
    "app",
    "edu",
    "gov",
    "info",
    "biz",
    "tech",
    "me",
    "us",
    "uk",
    "de",
    "fr",
    "ca",
    "au",
    "in",
)

HTTP_URL_PATTERN = re.compile(r"https?://" + _URL_BODY, re.IGNORECASE)
WWW_URL_PATTERN = re.compile(r"(?<![\w./@-])www\." + _URL_BODY, re.IGNORECASE)
BARE_DOMAIN_PATTERN = re.compile(
    r"(?<![\w./@-])"
    r"(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+"
    r"(?:" + "|".join(BARE_DOMAIN_TLDS) + r")"
    r"(?![\w-])"
    r"(?:/" + r"[^\s<>\"'`()\[\]{}|\\^]*" + r")?",
    re.IGNORECASE,
)

# Order matters: earlier patterns claim their spans first
URL_PATTERNS = (HTTP_URL_PATTERN, WWW_URL_PATTERN, BARE_DOMAIN_PATTERN)

TRAILING_PUNCTUATION = ".,;:!?)]}>\"'*_’”"

REJECTED_HOSTS = frozenset(["localhost", "example.com", "example.org", "example.net"])
REJECTED_HOST_SUFFIXES = (".local", ".test", ".localhost", ".invalid", ".example")

# Title inference window (characters before and after the URL)
TITLE_WINDOW = 100
MIN_TITLE_LENGTH = 10
MAX_TITLE_LENGTH = 100

TITLE_PATTERNS = (
    re.compile(r"[\"“]([^\"“”\n]+)[\"”]"),
    re.compile(r"\[([^\[\]\n]+)\]"),
    re.compile(r"([A-Z][^.!?:\n]*)"),
)


@dataclass(frozen=True)
class SourceReference:
    """
    A cited source attached to a scan result.

    Attributes:
        url: Normalized absolute URL
        domain: Host without a leading "www."
        title: Inferred or provider-supplied title
        observed_date: When the source was seen (ISO 8601), if known
    """

    url: str
    domain: str
    title: str
    observed_date: str | None = None


def normalize_url(candidate: str) -> str:
    """
    Normalize a raw URL-shaped token.

    Strips trailing punctuation and adds https:// when no scheme is present.

    Examples:
        >>> normalize_url("www.g2.com/crm).")
        'https://www.g2.com/crm'
        >>> normalize_url("capterra.com")
        'https://capterra.com'
    """
    url = candidate.strip().rstrip(TRAILING_PUNCTUATION)
    if not re.match(r"https?://", url, re.IGNORECASE):
        url = f"https://{url}"
    return url


def domain_of(url: str) -> str | None:
    """
    Return the host of a normalized URL without "www.", or None if unparsable.

    Examples:
        >>> domain_of("https://www.G2.com/crm")
        'g2.com'
    """
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return None

    if not host or "." not in host and host != "localhost":
        return None

    return host.removeprefix("www.")


def is_production_host(domain: str) -> bool:
    """
    Tell whether a host looks like a real, publicly reachable site.

    Examples:
        >>> is_production_host("hubspot.com")
        True
        >>> is_production_host("docs.example.com")
        False
    """
    host = domain.lower()

    if host in REJECTED_HOSTS:
        return False

    if any(host.endswith(f".{rejected}") for rejected in REJECTED_HOSTS):
        return False

    if host.endswith(REJECTED_HOST_SUFFIXES):
        return False

    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return True

    return not (address.is_loopback or address.is_private or address.is_unspecified)


def infer_title(text: str, start: int, end: int, domain: str) -> str:
    """
    Guess a human-readable title for the URL at text[start:end].

    Looks in a TITLE_WINDOW-character window before and after the URL for,
    in order: quoted text, [bracketed] text, a capitalized fragment. A title
    must be between MIN_TITLE_LENGTH and MAX_TITLE_LENGTH characters.
    extract_sources() passes text with every URL candidate blanked out.

    Returns:
        Inferred title, or "Content from <domain>" when nothing fits.
    """
    before = text[max(0, start - TITLE_WINDOW) : start]
    after = text[end : end + TITLE_WINDOW]

    for pattern in TITLE_PATTERNS:
        for window in (before, after):
            for match in pattern.finditer(window):
                title = match.group(1).strip(" \t-–—,;")
                if _looks_like_title(title):
                    return title

    return f"Content from {domain}"


def _looks_like_title(title: str) -> bool:
    if not MIN_TITLE_LENGTH <= len(title) <= MAX_TITLE_LENGTH:
        return False
    # A fragment that is itself a URL is not a title
    return not any(pattern.search(title) for pattern in URL_PATTERNS)


def _blank_spans(text: str, spans: Iterable[tuple[int, int]]) -> str:
    """Replace each text[start:end] with newlines, keeping offsets intact."""
    chars = list(text)
    for start, end in spans:
        chars[start:end] = "\n" * (end - start)
    return "".join(chars)


def _find_candidates(text: str) -> list[tuple[int, int, str]]:
    """Return (start, end, raw) URL candidates, pattern by pattern."""
    candidates = []
    masked = text

    for pattern in URL_PATTERNS:
        for match in pattern.finditer(masked):
            candidates.append((match.start(), match.end(), match.group(0)))
        # Blank out claimed spans so later patterns cannot rediscover them
        masked = pattern.sub(lambda m: " " * len(m.group(0)), masked)

    return candidates


def extract_sources(
    text: str, observed_date: str | None = None
) -> list[SourceReference]:
    """
    Extract up to MAX_SOURCES_PER_RESULT source references from free text.

    Args:
        text: Provider answer or follow-up text
        observed_date: Optional ISO 8601 timestamp stamped on each reference

    Returns:
        Deduplicated references in discovery order: all http(s) URLs first,
        then www. URLs, then bare domains. Invalid candidates are skipped.

    Examples:
        >>> [s.url for s in extract_sources("Try capterra.com or localhost:3000")]
        ['https://capterra.com']
    """
    if not text:
        return []

    sources: list[SourceReference] = []
    seen: set[str] = set()

    candidates = _find_candidates(text)
    # Title patterns never cross a newline, so URL text cannot leak into titles
    title_text = _blank_spans(text, ((start, end) for start, end, _ in candidates))

    for start, end, raw in candidates:
        url = normalize_url(raw)
        if url in seen:
            continue

        domain = domain_of(url)
        if domain is None or not is_production_host(domain):
            continue

        seen.add(url)
        sources.append(
            SourceReference(
                url=url,
                domain=domain,
                title=infer_title(title_text, start, end, domain),
                observed_date=observed_date,
            )
        )

        if len(sources) >= MAX_SOURCES_PER_RESULT:
            break

    return sources


def sources_from_hints(
    hints: Iterable[SourceHint], observed_date: str | None = None
) -> list[SourceReference]:
    """
    Convert provider citations into source references.

    Applies the same normalization, validation, dedupe and cap as
    extract_sources(). A provider-supplied title is kept when it is at most
    MAX_TITLE_LENGTH characters; a provider-supplied date wins over
    observed_date.
    """
    sources: list[SourceReference] = []
    seen: set[str] = set()

    for hint in hints:
        if not hint.url or hint.url.isspace():
            continue

        url = normalize_url(hint.url)
        if url in seen:
            continue

        domain = domain_of(url)
        if domain is None or not is_production_host(domain):
            continue

        title = (hint.title or "").strip()
        if not title or len(title) > MAX_TITLE_LENGTH:
            title = f"Content from {domain}"

        seen.add(url)
        sources.append(
            SourceReference(
                url=url,
                domain=domain,
                title=title,
                observed_date=hint.date or observed_date,
            )
        )

        if len(sources) >= MAX_SOURCES_PER_RESULT:
            break

    return sources


def contains_source_urls(text: str) -> bool:
    """Tell whether extract_sources() would find at least one source in text."""
    return bool(extract_sources(text))
