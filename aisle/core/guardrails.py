"""
Guardrails: input/output validation around the model.

Layers:
  1. Input validation (length, emptiness)
  2. Output cleanup (length cap, prompt leak logging)
  3. Tool risk assessment (read vs write vs dangerous)
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4000        # Max user message length per turn
MAX_RESPONSE_LENGTH = 8000       # Max reply length shown to the couple

_INJECTION_PATTERNS = [
    r"ignore\s+(all\s+)?previous\s+instructions",
    r"disregard\s+(all\s+)?previous",
    r"<\s*/?\s*extract\s*>",
]

_LEAK_INDICATORS = [
    "current onboarding step:",
    "what we know so far:",
    "onboarding flow:",
]


@dataclass
class GuardrailResult:
    """Result of a guardrail check."""
    allowed: bool
    reason: Optional[str] = None
    modified: Optional[str] = None


def check_input(message: str, tenant_id: str = "") -> GuardrailResult:
    """Validate a user message before it reaches the model."""
    if not message.strip():
        return GuardrailResult(allowed=False, reason="Message is empty.")

    if len(message) > MAX_MESSAGE_LENGTH:
        return GuardrailResult(
            allowed=False,
            reason=f"Message too long ({len(message)} chars). Maximum is {MAX_MESSAGE_LENGTH}.",
        )

    lowered = message.lower()
    for pattern in _INJECTION_PATTERNS:
        if re.search(pattern, lowered):
            # Log only. The extraction block is produced by the model, a user
            # typing the tags cannot inject kernel fields through it.
            logger.warning("Suspicious input from tenant=%s: %s", tenant_id, message[:100])
            break

    return GuardrailResult(allowed=True)


def check_output(reply: str) -> GuardrailResult:
    """Cap the reply length and flag system prompt leakage."""
    lowered = reply.lower()
    for indicator in _LEAK_INDICATORS:
        if indicator in lowered:
            logger.warning("Possible system prompt leak detected in reply")
            break

    if len(reply) > MAX_RESPONSE_LENGTH:
        return GuardrailResult(allowed=True, modified=reply[:MAX_RESPONSE_LENGTH].rstrip())

    return GuardrailResult(allowed=True)


def assess_tool_risk(tool_name: str, tool_risk: str) -> GuardrailResult:
    """Log destructive tool calls. They are allowed, the couple asked for them."""
    if tool_risk == "dangerous":
        logger.warning("Destructive tool invoked: %s", tool_name)
        return GuardrailResult(
            allowed=True,
            reason=f"Tool '{tool_name}' removes data.",
        )
    return GuardrailResult(allowed=True)
