class DatabasePool:
    MIN_SIZE = 2
    MAX_SIZE = 20


class RedisKeys:
    # sha256 of the literal original URL
    CANONICAL_URL = "canonical:{hash}"


class Enrichment:
    MIN_TITLE_LENGTH = 3
    UNKNOWN_SENTINEL = "UNKNOWN"
    MAX_TITLE_LENGTH = 500
    MAX_DESCRIPTION_LENGTH = 1000
    MAX_AUTHOR_LENGTH = 200


class EnrichmentStatus:
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    FALLBACK = "fallback"


class EnrichmentSource:
    PREEXISTING = "preexisting"
    ARTICLE = "article"
    JINA = "jina"
    FIRECRAWL = "firecrawl"
    AI = "ai"
    URL_PATH = "url_path"


REDIRECT_STATUS_CODES: frozenset[int] = frozenset({301, 302, 303, 307, 308})
