from .spam import DEFAULT_FORBIDDEN_WORDS, DEFAULT_PATTERNS, SpamClassifier

__all__ = [
    'DEFAULT_FORBIDDEN_WORDS',
    'DEFAULT_PATTERNS',
    'SpamClassifier',
]
