"""
Token usage reported by provider calls.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class TokenUsage:
    """Input and output token counts for a single model call."""
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        """Total tokens used (input + output)."""
        return self.input_tokens + self.output_tokens
