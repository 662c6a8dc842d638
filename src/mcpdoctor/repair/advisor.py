"""AI-powered log analysis using the Claude API."""

from __future__ import annotations

import json
import logging
import re

from mcpdoctor.core.errors import AdvisorError
from mcpdoctor.core.models import AdvisorAnalysis, ErrorKind, ErrorRecord, Fix

logger = logging.getLogger("mcpdoctor.advisor")

SYSTEM_PROMPT = (
    "You are an expert at analyzing MCP server logs and identifying issues. "
    "You provide detailed analysis and suggest fixes in a structured format."
)

# Log excerpts beyond this are truncated from the front; recent lines matter most.
MAX_LOG_CHARS = 60_000

_KIND_ALIASES = {
    "process_error": ErrorKind.UNKNOWN,
    "environment_error": ErrorKind.ENVIRONMENT,
}


class ClaudeAdvisor:
    """Suggests fixes for problems the rule-based strategies cannot handle.

    Every suggestion is returned with ``automatic_fix=False``; the
    advisor's confidence never unlocks unattended application.
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 2000,
    ):
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self._client = None

    def is_available(self) -> bool:
        return bool(self.api_key)

    def _get_client(self):
        """Lazy-initialize the Anthropic client."""
        if self._client is None:
            try:
                import anthropic
            except ImportError:
                raise AdvisorError(
                    "AI analysis requires the anthropic package. "
                    "Install with: pip install mcp-doctor[ai]"
                ) from None
            self._client = anthropic.Anthropic(api_key=self.api_key)
        return self._client

    def analyze_log(self, content: str, known_errors: list[ErrorRecord]) -> AdvisorAnalysis:
        """Ask Claude for fixes for the problems in ``content``."""
        if not self.is_available():
            raise AdvisorError("Claude API key not configured")

        logger.info("Analyzing %d characters of log content with Claude", len(content))
        prompt = self._build_prompt(content, known_errors)
        client = self._get_client()

        try:
            response = client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
            )
        except Exception as e:
            raise AdvisorError(f"Claude API request failed: {e}") from e

        return self._parse_response(response.content[0].text)

    def _build_prompt(self, content: str, known_errors: list[ErrorRecord]) -> str:
        """Build the log-analysis prompt."""
        if len(content) > MAX_LOG_CHARS:
            content = content[-MAX_LOG_CHARS:]

        prompt = f"""Analyze the following MCP server log content and suggest fixes for any issues you identify.

LOG CONTENT:
```
{content}
```
"""
        if known_errors:
            known = "\n".join(
                f"- Type: {e.kind.value}, Message: {e.message}"
                + (f", Server: {e.server.name}" if e.server else "")
                for e in known_errors
            )
            prompt += f"\nKNOWN ERRORS:\n{known}\n"

        kinds = ", ".join(k.value for k in ErrorKind)
        prompt += f"""
Please analyze this log and provide the following in your response:
1. A list of suggested fixes in JSON format
2. A confidence score for each fix (0-100)
3. An explanation of each issue in plain language

Format your response as follows:
```json
{{
  "suggestedFixes": [
    {{
      "type": "string ({kinds})",
      "description": "string",
      "steps": ["string"],
      "confidence": number
    }}
  ],
  "explanation": "string"
}}
```
"""
        return prompt

    def _parse_response(self, text: str) -> AdvisorAnalysis:
        """Parse Claude's reply into an AdvisorAnalysis."""
        match = re.search(r"```json\s*(.*?)\s*```", text, re.DOTALL)
        if not match:
            raise AdvisorError("No JSON found in Claude response")

        try:
            data = json.loads(match.group(1))
        except json.JSONDecodeError as e:
            raise AdvisorError(f"Failed to parse Claude response: {e}") from e

        raw_fixes = data.get("suggestedFixes") or []
        fixes: list[Fix] = []
        scores: list[float] = []

        for raw in raw_fixes:
            if not isinstance(raw, dict) or not raw.get("description"):
                continue
            steps = [str(s) for s in raw.get("steps") or []]
            description = str(raw["description"])
            fixes.append(
                Fix(
                    error=ErrorRecord(
                        kind=_parse_kind(raw.get("type")),
                        message=description,
                        details=steps,
                        fixable=True,
                    ),
                    description=description,
                    changes=[],
                    automatic_fix=False,
                    manual_steps=steps,
                    source="advisor",
                )
            )
            try:
                scores.append(float(raw.get("confidence", 0)))
            except (TypeError, ValueError):
                scores.append(0.0)

        confidence = sum(scores) / len(scores) if scores else 0.0
        return AdvisorAnalysis(
            suggested_fixes=fixes,
            confidence=max(0.0, min(100.0, confidence)),
            explanation=str(data.get("explanation", "")),
        )


def _parse_kind(value) -> ErrorKind:
    if not isinstance(value, str):
        return ErrorKind.UNKNOWN
    value = value.strip().lower()
    if value in _KIND_ALIASES:
        return _KIND_ALIASES[value]
    try:
        return ErrorKind(value)
    except ValueError:
        return ErrorKind.UNKNOWN
