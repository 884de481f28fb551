"""Security utilities -- prompt injection detection and input validation."""
from .prompt_guard import detect_injection_attempt, sanitize_for_prompt
from .validators import (
    ValidationError,
    validate_in_choices,
    validate_length,
    validate_list_size,
)
