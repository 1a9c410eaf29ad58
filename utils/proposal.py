import json
import logging
from typing import Any, Dict, Optional

from openai import OpenAI

logger = logging.getLogger(__name__)

SYSTEM_PRIMER = "You are an expert construction estimator and proposal writer."

PROPOSAL_PROMPT = """You are a professional contractor. Create a concise customer-facing proposal for {client_name} based on the following estimate. Include a short Scope, Line items (with amounts), Timeline, Payment terms, and a short upsell (control joints / sealant). Keep it polite and easy to read.

Estimate JSON:
{estimate_json}
"""


class ProposalGenerator:
    """Best-effort proposal text from an estimate.

    ``generate`` returns ``None`` instead of raising: missing credentials,
    transport failures and upstream errors are logged and swallowed. The
    request is made at most once and bounded by ``timeout`` seconds.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        model: str = "gpt-4o-mini",
        temperature: float = 0.2,
        max_tokens: int = 600,
        timeout: float = 30.0,
        client: Any = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._client = client

    @property
    def enabled(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def generate(self, estimate: Dict[str, Any], client_name: Optional[str] = None) -> Optional[str]:
        if not self.enabled:
            logger.debug("No OpenAI API key configured; skipping proposal")
            return None
        prompt = PROPOSAL_PROMPT.format(
            client_name=client_name or "Client",
            estimate_json=json.dumps(estimate, indent=2),
        )
        try:
            resp = self._get_client().chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PRIMER},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
            text = resp.choices[0].message.content if resp.choices else None
        except Exception as exc:
            logger.warning("Proposal generation failed: %s", exc, extra={"model": self.model})
            return None
        if not text or not text.strip():
            logger.warning("Proposal generation returned no content", extra={"model": self.model})
            return None
        logger.info(
            "Generated proposal",
            extra={"model": self.model, "input_length": len(prompt), "output_length": len(text)},
        )
        return text

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client
