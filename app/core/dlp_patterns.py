import enum
import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from app.config import settings

logger = logging.getLogger(__name__)


class Category(str, enum.Enum):
    """Sensitive data categories"""
    EMAIL = "EMAIL"
    CREDIT_CARD = "CREDIT_CARD"
    PHONE = "PHONE"
    SSN = "SSN"


class PolicyMode(str, enum.Enum):
    """Enforcement mode, ordered from most to least permissive"""
    ALLOW = "allow"
    WARN = "warn"
    BLOCK = "block"

    @property
    def rank(self) -> int:
        return _MODE_RANK[self]

    @classmethod
    def strictest(cls, modes: Iterable["PolicyMode"]) -> "PolicyMode":
        return max(modes, key=lambda m: m.rank, default=cls.ALLOW)


_MODE_RANK = {PolicyMode.ALLOW: 0, PolicyMode.WARN: 1, PolicyMode.BLOCK: 2}


@dataclass(frozen=True)
class DetectionRule:
    category: Category
    pattern: "re.Pattern[str]"
    description: str
    policy: PolicyMode = PolicyMode.WARN


@dataclass(frozen=True)
class SensitiveDataFinding:
    category: Category
    count: int

    def to_dict(self) -> dict:
        return {"type": self.category.value, "count": self.count}


DEFAULT_RULES: Sequence[DetectionRule] = (
    DetectionRule(
        Category.EMAIL,
        re.compile(r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}'),
        "Email Address",
    ),
    DetectionRule(
        Category.CREDIT_CARD,
        re.compile(r'\b(?:\d[ -]*?){13,16}\b'),
        "Credit Card Number",
    ),
    DetectionRule(
        Category.PHONE,
        re.compile(r'\b(?:\+?1[-.]?)?\(?([0-9]{3})\)?[-. ]?([0-9]{3})[-. ]?([0-9]{4})\b'),
        "US Phone Number",
    ),
    DetectionRule(
        Category.SSN,
        re.compile(r'\b\d{3}-\d{2}-\d{4}\b'),
        "Social Security Number",
    ),
)


class DLPPatternMatcher:
    """Counts sensitive data occurrences per category in text files"""

    def __init__(self, rules: Optional[Sequence[DetectionRule]] = None,
                 scannable_extensions: Optional[Sequence[str]] = None):
        self.rules: List[DetectionRule] = list(rules if rules is not None else DEFAULT_RULES)
        extensions = scannable_extensions if scannable_extensions is not None else settings.DLP_SCANNABLE_EXTENSIONS
        self.scannable_extensions = tuple(ext.lower() for ext in extensions)

    def rule_for(self, category: Category) -> Optional[DetectionRule]:
        for rule in self.rules:
            if rule.category == category:
                return rule
        return None

    def is_scannable(self, file_name: str, mime_type: Optional[str]) -> bool:
        """Only plain-text files are scanned"""
        if mime_type and mime_type.lower().startswith("text/"):
            return True
        return (file_name or "").lower().endswith(self.scannable_extensions)

    def scan(self, text: str) -> List[SensitiveDataFinding]:
        """
        Run every rule over the full text.
        Returns one finding per category that matched at least once, in rule order.
        """
        findings = []
        for rule in self.rules:
            count = sum(1 for _ in rule.pattern.finditer(text))
            if count:
                findings.append(SensitiveDataFinding(rule.category, count))
        return findings

    def scan_file(self, data: bytes, file_name: str, mime_type: Optional[str]) -> List[SensitiveDataFinding]:
        """
        Scan raw file bytes. Non-text files and content that is not valid UTF-8
        produce no findings rather than an error.
        """
        if not self.is_scannable(file_name, mime_type):
            return []
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning(f"Could not decode {file_name!r} as text, skipping DLP scan")
            return []
        return self.scan(text)
