"""Prompt validation and content screening.

Prompts are checked before any provider is called:

1. Empty or whitespace-only prompts are rejected.
2. Prompts longer than the configured maximum (1000 characters) are rejected,
   whatever their content.
3. Prompts whose lowercase words are profane (better-profanity word list,
   including leetspeak variants) or hit the image-content denylist are
   rejected, and the offending words are reported back.
4. Accepted prompts may still carry advisory warnings (references to real
   people or trademarks, very short prompts).  Warnings never block.

The checks are deterministic and side-effect free for a given denylist.
"""

import logging
import re
from dataclasses import dataclass, field

from better_profanity import Profanity

logger = logging.getLogger(__name__)

MAX_PROMPT_LENGTH = 1000
MIN_RECOMMENDED_LENGTH = 3

# Terms specific to image generation abuse.
IMAGE_CONTENT_TERMS = frozenset(
    {
        "nude",
        "naked",
        "nsfw",
        "porn",
        "sexual",
        "explicit",
        "adult",
        "violence",
        "gore",
        "blood",
        "weapon",
        "gun",
        "knife",
        "kill",
        "hate",
        "racist",
        "discriminatory",
        "offensive",
        "harassment",
        "drug",
        "illegal",
        "criminal",
        "terrorist",
        "bomb",
        "explosive",
    }
)

BLOCKED_WARNINGS = [
    "Your prompt contains inappropriate content that cannot be used for image generation.",
    "Please modify your prompt to remove offensive, explicit, violent, or illegal content.",
    "We aim to create a safe and positive environment for all users.",
]

REAL_PEOPLE_WARNING = (
    "Consider avoiding references to real people, celebrities, or copyrighted content."
)
SHORT_PROMPT_WARNING = (
    "Very short prompts may not produce good results. Consider adding more details."
)

REAL_PEOPLE_PATTERNS = [
    re.compile(r"real\s+person", re.IGNORECASE),
    re.compile(r"celebrity", re.IGNORECASE),
    re.compile(r"public\s+figure", re.IGNORECASE),
    re.compile(r"copyrighted", re.IGNORECASE),
    re.compile(r"trademarked", re.IGNORECASE),
    re.compile(r"brand\s+logo", re.IGNORECASE),
]

SAFE_PROMPT_SUGGESTIONS = [
    "A beautiful landscape with mountains and a lake",
    "A cute cartoon animal in a forest",
    "Abstract geometric patterns in bright colors",
    "A cozy coffee shop interior with warm lighting",
    "A futuristic city skyline at sunset",
    "A peaceful garden with flowers and butterflies",
    "A minimalist room with modern furniture",
    "A fantasy castle on a floating island",
    "A vintage bicycle in front of a bookstore",
    "A serene beach scene with palm trees",
]

_PUNCTUATION = "\"'.,;:!?()[]{}<>*_-~`"


@dataclass
class PromptValidationResult:
    """Outcome of screening a prompt.

    Attributes:
        is_valid: Whether the prompt may be sent to a provider.
        sanitized_prompt: Stripped prompt text (accepted prompts only).
        warnings: Rejection reasons or advisory notes.
        blocked_terms: Words from the prompt that matched the denylist.
    """

    is_valid: bool
    sanitized_prompt: str | None = None
    warnings: list[str] = field(default_factory=list)
    blocked_terms: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "sanitized_prompt": self.sanitized_prompt,
            "warnings": list(self.warnings),
            "blocked_terms": list(self.blocked_terms),
        }


class PromptSanitizer:
    """Profanity and denylist prompt screen.

    Each sanitizer owns its own ``Profanity`` filter, so configured extra
    terms never leak into the module-level ``better_profanity.profanity``.

    Args:
        extra_terms: Additional words to block on top of the built-in lists.
        max_length: Maximum accepted prompt length in characters.
    """

    def __init__(
        self,
        extra_terms: list[str] | None = None,
        max_length: int = MAX_PROMPT_LENGTH,
    ) -> None:
        self.max_length = max_length
        self._profanity = Profanity()
        self.denylist = frozenset(
            IMAGE_CONTENT_TERMS
            | {term.strip().lower() for term in (extra_terms or []) if term.strip()}
        )

    def is_blocked(self, word: str) -> bool:
        """Return True if a single word is profane or matches the denylist."""
        token = word.lower().strip(_PUNCTUATION)
        if not token:
            return False
        return token in self.denylist or self._profanity.contains_profanity(token)

    def validate(self, prompt: str | None) -> PromptValidationResult:
        """Screen a prompt.

        Args:
            prompt: Raw prompt text from the user.

        Returns:
            PromptValidationResult describing acceptance, warnings and any
            blocked terms.
        """
        if not prompt or not prompt.strip():
            return PromptValidationResult(is_valid=False, warnings=["Prompt cannot be empty"])

        if len(prompt) > self.max_length:
            return PromptValidationResult(
                is_valid=False,
                warnings=[f"Prompt is too long (maximum {self.max_length} characters)"],
            )

        words = [word.strip(_PUNCTUATION) for word in prompt.lower().split()]
        blocked_terms = [word for word in words if self.is_blocked(word)]
        if blocked_terms:
            logger.info(f"Blocked prompt containing {len(blocked_terms)} denylisted term(s)")
            return PromptValidationResult(
                is_valid=False,
                warnings=list(BLOCKED_WARNINGS),
                blocked_terms=blocked_terms,
            )

        warnings: list[str] = []
        if any(pattern.search(prompt) for pattern in REAL_PEOPLE_PATTERNS):
            warnings.append(REAL_PEOPLE_WARNING)

        if len(prompt.strip()) < MIN_RECOMMENDED_LENGTH:
            warnings.append(SHORT_PROMPT_WARNING)

        return PromptValidationResult(
            is_valid=True,
            sanitized_prompt=prompt.strip(),
            warnings=warnings,
        )


_default_sanitizer = PromptSanitizer()


def validate_prompt(prompt: str | None) -> PromptValidationResult:
    """Screen a prompt with the built-in denylist."""
    return _default_sanitizer.validate(prompt)


def safe_prompt_suggestions() -> list[str]:
    """Return example prompts that always pass the screen."""
    return list(SAFE_PROMPT_SUGGESTIONS)
