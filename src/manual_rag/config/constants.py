"""Fixed constants that are not worth exposing as settings."""

CHUNK_SIZE = 500
CHUNK_OVERLAP = 50

MIN_CHUNK_TOKENS = 10
MAX_CHUNK_TOKENS = 1000
MIN_CHUNK_CHARS = 15

# Upper bound on the length of a line treated as an all-caps section title
MAX_CAPS_HEADER_LENGTH = 100

RRF_K = 60
VECTOR_WEIGHT = 0.7
KEYWORD_WEIGHT = 0.3

DEFAULT_CACHE_TTL_SECONDS = 3600
DEFAULT_METRICS_RETENTION_DAYS = 90

HEURISTIC_IDEAL_LENGTH = 500
EXCERPT_LENGTH = 200

STOPWORDS = frozenset(
    {
        "a", "about", "above", "after", "again", "all", "am", "an", "and", "any",
        "are", "as", "at", "be", "because", "been", "before", "being", "below",
        "between", "both", "but", "by", "can", "could", "did", "do", "does",
        "doing", "down", "during", "each", "few", "for", "from", "further", "had",
        "has", "have", "having", "he", "her", "here", "hers", "him", "his", "how",
        "i", "if", "in", "into", "is", "it", "its", "itself", "me", "more", "most",
        "my", "no", "nor", "not", "of", "off", "on", "once", "only", "or", "other",
        "our", "ours", "out", "over", "own", "same", "she", "should", "so", "some",
        "such", "than", "that", "the", "their", "theirs", "them", "then", "there",
        "these", "they", "this", "those", "through", "to", "too", "under", "until",
        "up", "very", "was", "we", "were", "what", "when", "where", "which",
        "while", "who", "whom", "why", "will", "with", "would", "you", "your",
        "yours",
    }
)
