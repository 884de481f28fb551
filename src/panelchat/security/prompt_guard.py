"""
Prompt Guard - Detect prompt injection and keep LLM inputs bounded.

Two functions:
  detect_injection_attempt() -- Scans for known injection patterns (logs, doesn't block)
  sanitize_for_prompt()      -- Truncation, null byte removal, length enforcement

Reference: OWASP LLM Top 10 (2025) - LLM01: Prompt Injection
"""

import logging
import re

logger = logging.getLogger(__name__)

# Known prompt injection patterns
INJECTION_PATTERNS = [
    r"ignore\s+(all\s+)?previous\s+instructions",
    r"you\s+are\s+now\s+a",
    r"forget\s+(all\s+)?(your|previous)\s+instructions",
    r"<\|im_start\|>",
    r"<\|im_end\|>",
    r"\[INST\]",
    r"\[/INST\]",
    r"<\|system\|>",
    r"override\s+safety",
    r"jailbreak",
]


def detect_injection_attempt(text: str) -> list[str]:
    """
    Detect potential prompt injection patterns in user content.

    Returns list of detected patterns (empty = clean).
    Does NOT block -- logs findings and returns them for the caller to decide.

    Args:
        text: Text to scan (user input, tool output, etc.)

    Returns:
        List of matched pattern descriptions (empty if clean)
    """
    if not text:
        return []

    findings = []

    for pattern in INJECTION_PATTERNS:
        if re.search(pattern, text, re.IGNORECASE):
            findings.append(pattern)

    if findings:
        logger.warning(
            f"[PromptGuard] Detected {len(findings)} potential injection pattern(s) "
            f"in input ({len(text)} chars)"
        )

    return findings


def sanitize_for_prompt(
    content: str,
    max_length: int = 100_000,
    strip_null: bool = True,
) -> str:
    """
    Sanitize content for safe inclusion in LLM prompts.

    - Truncates to max_length (prevents token budget blowout)
    - Strips null bytes (prevents processing errors)
    - Does NOT remove injection patterns (that would alter user content)

    Args:
        content: Raw content to sanitize
        max_length: Maximum character length
        strip_null: Whether to remove null bytes

    Returns:
        Sanitized content string
    """
    if not content:
        return ""

    if strip_null:
        content = content.replace("\x00", "")

    if len(content) > max_length:
        content = content[:max_length] + "\n[TRUNCATED]"
        logger.info(f"[PromptGuard] Content truncated to {max_length} chars")

    return content
