"""
Spam Classification for Support Submissions

Screens canonical submission fields with ordered heuristic rule sets and
returns an accept/reject verdict carrying a reason code.

Rules are evaluated in a fixed order and the first match wins:
1. Forbidden words (case-insensitive substring)
2. Regular expression patterns
3. Name heuristics (only when a name is present)
4. Message length bounds
5. Gibberish name heuristic (optional)

Design Considerations:
- Deterministic and free of side effects apart from the audit log
- Deployment-supplied words and patterns extend the defaults
- Cheapest, most confident checks first for log triage
"""

import logging
import re
from typing import Any, Dict, List, Optional, Pattern

from support_relay.config.settings import SpamSettings
from support_relay.errors import ConfigurationError
from support_relay.models import SpamReason, SpamVerdict

logger = logging.getLogger(__name__)

# Fields concatenated into the text blob, in order
TEXT_FIELDS = ("email", "message", "name", "subject")

DEFAULT_FORBIDDEN_WORDS: List[str] = [
    "casino",
    "gambling",
    "porn",
    "xxx",
    "adult content",
    "nude",
    "sex video",
]

DEFAULT_PATTERNS: List[Pattern] = [
    # Three or more links; each link is consumed whole so "https://www." counts once
    re.compile(r"\A(?=(?:.*?(?:https?://|(?<![/\w])www\.)(?=(\S*))\1){3})", re.IGNORECASE | re.DOTALL),
    # Canned spam phrases
    re.compile(
        r"\b(buy now|click here|act now|limited time|free money|lottery winner|you have won"
        r"|congratulations you|dear friend|make money fast|work from home opportunity"
        r"|double your|triple your|investment opportunity|nigerian prince|wire transfer"
        r"|western union)\b",
        re.IGNORECASE,
    ),
    # Shouting
    re.compile(r"\b[A-Z][A-Z\s]{28,}[A-Z]\b"),
    # Crypto and trading scams
    re.compile(
        r"\b(bitcoin|crypto|btc|ethereum|wallet address|blockchain opportunity|trading bot"
        r"|forex|binary options)\b",
        re.IGNORECASE,
    ),
    # Pharma
    re.compile(
        r"\b(viagra|cialis|pharmacy|prescription|pills|meds online|cheap medications)\b",
        re.IGNORECASE,
    ),
    # SEO
    re.compile(
        r"\b(seo services|link building|backlinks|google ranking|first page"
        r"|search engine optimization)\b",
        re.IGNORECASE,
    ),
    # Throwaway and spam-heavy mail domains
    re.compile(r"@(mail\.ru|yandex\.|qq\.com|163\.com|126\.com)", re.IGNORECASE),
    # Punctuation runs
    re.compile(r"[!$%]{5,}"),
    # Script injection markers
    re.compile(r"<script|<iframe|javascript:|onclick|onerror", re.IGNORECASE),
    # Any character repeated 8 or more times
    re.compile(r"(.)\1{7,}"),
]

URL_IN_NAME = re.compile(r"https?://|www\.|\.(com|net|org|ru|info|biz)\b", re.IGNORECASE)
CONSONANT_RUN = re.compile(r"[bcdfghjklmnpqrstvwxz]{6,}", re.IGNORECASE)
SHORT_ALNUM_WITH_DIGITS = re.compile(r"^(?=.*[a-z])(?=.*\d)[a-z0-9]{4,12}$", re.IGNORECASE)

MAX_NAME_LENGTH = 100


def _compile(pattern: Any) -> Pattern:
    if isinstance(pattern, re.Pattern):
        return pattern
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ConfigurationError(f"Invalid spam pattern {pattern!r}: {e}")


class SpamClassifier:
    """
    Heuristic spam classifier for support form submissions.

    The classifier holds no per-request state; calling classify twice with
    the same input yields the same verdict.
    """

    def __init__(self, settings: Optional[SpamSettings] = None):
        self.settings = settings or SpamSettings()
        self.forbidden_words: List[str] = list(DEFAULT_FORBIDDEN_WORDS)
        self.patterns: List[Pattern] = list(DEFAULT_PATTERNS)

        for word in self.settings.forbidden_words:
            self.add_forbidden_word(word)
        for pattern in self.settings.patterns:
            self.add_pattern(pattern)

        self.audit_logger = logging.getLogger(self.settings.log_channel)

    def add_pattern(self, pattern: Any) -> "SpamClassifier":
        """Append a pattern (string or compiled) after the existing ones."""
        self.patterns.append(_compile(pattern))
        return self

    def add_forbidden_word(self, word: str) -> "SpamClassifier":
        """Append a forbidden word; blank words are ignored."""
        if word and word.strip():
            self.forbidden_words.append(word.strip().lower())
        return self

    @staticmethod
    def _field(submission: Dict[str, Any], key: str) -> str:
        value = submission.get(key)
        if value is None:
            return ""
        return str(value)

    def _text_blob(self, submission: Dict[str, Any]) -> str:
        parts = [self._field(submission, key) for key in TEXT_FIELDS]
        return " ".join(part for part in parts if part)

    def _check_forbidden_words(self, text: str) -> Optional[SpamVerdict]:
        lowered = text.lower()
        for word in self.forbidden_words:
            if word in lowered:
                return SpamVerdict.reject(SpamReason.FORBIDDEN_WORD, word)
        return None

    def _check_patterns(self, text: str) -> Optional[SpamVerdict]:
        for pattern in self.patterns:
            if pattern.search(text):
                return SpamVerdict.reject(SpamReason.PATTERN_MATCH, pattern.pattern)
        return None

    def _check_name(self, name: str) -> Optional[SpamVerdict]:
        if name.isdigit():
            return SpamVerdict.reject(SpamReason.SUSPICIOUS_NAME, "numeric name")
        if URL_IN_NAME.search(name):
            return SpamVerdict.reject(SpamReason.SUSPICIOUS_NAME, "url in name")
        if len(name) > MAX_NAME_LENGTH:
            return SpamVerdict.reject(SpamReason.SUSPICIOUS_NAME, "name too long")
        return None

    def _check_length(self, message: str) -> Optional[SpamVerdict]:
        length = len(message)
        if length < self.settings.min_message_length:
            return SpamVerdict.reject(SpamReason.MESSAGE_TOO_SHORT, f"length={length}")
        if length > self.settings.max_message_length:
            return SpamVerdict.reject(SpamReason.MESSAGE_TOO_LONG, f"length={length}")
        return None

    def _check_gibberish(self, name: str) -> Optional[SpamVerdict]:
        if CONSONANT_RUN.search(name):
            return SpamVerdict.reject(SpamReason.GIBBERISH_NAME, "consonant run")
        if SHORT_ALNUM_WITH_DIGITS.match(name):
            return SpamVerdict.reject(SpamReason.GIBBERISH_NAME, "alphanumeric token")
        return None

    def classify(self,
                 submission: Dict[str, Any],
                 client_ip: Optional[str] = None,
                 user_agent: Optional[str] = None) -> SpamVerdict:
        """
        Classify a mapped submission.

        Args:
            submission: Canonical field mapping (email, message, optional name/subject)
            client_ip: Submitter IP, used only for the audit log
            user_agent: Submitter user agent, used only for the audit log

        Returns:
            SpamVerdict with the first matching reason, or an accepting verdict
        """
        text = self._text_blob(submission)
        name = self._field(submission, "name").strip()
        message = self._field(submission, "message")

        checks = [
            lambda: self._check_forbidden_words(text),
            lambda: self._check_patterns(text),
            lambda: self._check_name(name) if name else None,
            lambda: self._check_length(message),
            lambda: self._check_gibberish(name)
            if name and self.settings.check_gibberish_names else None,
        ]

        for check in checks:
            verdict = check()
            if verdict is not None:
                self._log_rejection(submission, verdict, client_ip, user_agent)
                return verdict

        return SpamVerdict.accept()

    def _log_rejection(self,
                       submission: Dict[str, Any],
                       verdict: SpamVerdict,
                       client_ip: Optional[str],
                       user_agent: Optional[str]) -> None:
        if not self.settings.log_spam:
            return
        email = submission.get("email") or "unknown"
        self.audit_logger.info(
            f"Spam submission blocked: reason={verdict.reason.value} detail={verdict.detail} "
            f"email={email} ip={client_ip or 'unknown'} user_agent={user_agent or 'unknown'}"
        )

