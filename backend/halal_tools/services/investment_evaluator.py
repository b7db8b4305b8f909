"""
Shariah compliance verdicts for investments via a hosted chat-completion API
"""
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Tuple

import httpx

from halal_tools.core.config import Settings, get_settings
from halal_tools.core.errors import UpstreamUnavailable
from halal_tools.core.logging_config import LoggingConfig
from halal_tools.core.metrics import llm_request_duration_seconds, llm_requests_total

logger = LoggingConfig.get_logger(__name__)

PUBLIC_ERROR = "Failed to evaluate investment using AI."

PROMPT_TEMPLATE = """
You are a qualified Islamic finance expert.

Evaluate the investment below and give your answer in this exact format:

Verdict: Halal / Haram / Mashbooh
Reason: [2-4 sentences explaining why. Be clear, informative, and use Islamic finance terminology like Riba, Gharar, unethical sectors, etc.]

Avoid soft/unclear phrases. Use confident tone. Respond with only those 2 lines and include a newline between them.

Investment Details:
- Name: {name}
- Type: {type}
- Description: {description}
- Riba Involved: {riba}
- Income Nature: {income_nature}
- Industry: {industry}
- Transparency: {transparency}
- Income Source: {income_source}
- Ethical Concerns: {ethics}
"""


@dataclass
class InvestmentDetails:
    name: str
    type: str
    description: Optional[str] = None
    riba: Optional[str] = None
    income_nature: Optional[str] = None
    industry: Optional[str] = None
    transparency: Optional[str] = None
    income_source: Optional[str] = None
    ethics: Optional[str] = None


@dataclass
class Evaluation:
    """Model answer plus the verdict and reason when it followed the format"""
    response: str
    verdict: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_prompt(details: InvestmentDetails) -> str:
    values = {key: value or "N/A" for key, value in asdict(details).items()}
    return PROMPT_TEMPLATE.format(**values)


def parse_verdict(text: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Extract ``Verdict:`` and ``Reason:`` lines from a model answer

    Either value is None when its line is missing.
    """
    verdict = None
    reason = None
    for line in text.splitlines():
        stripped = line.strip()
        lowered = stripped.lower()
        if verdict is None and lowered.startswith("verdict:"):
            verdict = stripped[len("verdict:"):].strip() or None
        elif reason is None and lowered.startswith("reason:"):
            reason = stripped[len("reason:"):].strip() or None
    return verdict, reason


class InvestmentEvaluator:
    """Calls the LLM once per evaluation; nothing is stored"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport

    async def evaluate(self, details: InvestmentDetails) -> Evaluation:
        """
        Ask the model for a Halal / Haram / Mashbooh verdict

        Raises:
            UpstreamUnavailable: Missing API key, HTTP failure or an
                unexpected response shape
        """
        model = self.settings.llm_model
        if not self.settings.together_api_key:
            raise UpstreamUnavailable("TOGETHER_API_KEY is not configured", public_message=PUBLIC_ERROR)

        payload = {
            "model": model,
            "messages": [{"role": "user", "content": build_prompt(details)}],
            "temperature": self.settings.llm_temperature,
        }
        headers = {
            "Authorization": f"Bearer {self.settings.together_api_key}",
            "Content-Type": "application/json",
        }

        start = time.time()
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.llm_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(self.settings.llm_api_url, json=payload, headers=headers)
                response.raise_for_status()
                data = response.json()
            content = data["choices"][0]["message"]["content"]
            if not isinstance(content, str):
                raise TypeError(f"content is {type(content).__name__}")
        except httpx.HTTPStatusError as e:
            llm_requests_total.labels(model=model, status="error").inc()
            logger.error(
                f"LLM API error: {e.response.status_code} - {e.response.text[:500]}",
                extra={"model": model},
            )
            raise UpstreamUnavailable(f"LLM API error: {e.response.status_code}", public_message=PUBLIC_ERROR) from e
        except httpx.HTTPError as e:
            llm_requests_total.labels(model=model, status="error").inc()
            logger.error(f"LLM request failed: {e}", extra={"model": model})
            raise UpstreamUnavailable(f"LLM request failed: {e}", public_message=PUBLIC_ERROR) from e
        except (ValueError, KeyError, IndexError, TypeError) as e:
            llm_requests_total.labels(model=model, status="error").inc()
            logger.error(f"Unexpected LLM response: {e}", extra={"model": model})
            raise UpstreamUnavailable(f"Unexpected LLM response: {e}", public_message=PUBLIC_ERROR) from e
        finally:
            llm_request_duration_seconds.labels(model=model).observe(time.time() - start)

        llm_requests_total.labels(model=model, status="success").inc()
        text = content.strip()
        verdict, reason = parse_verdict(text)
        if verdict is None:
            logger.warning("LLM answer did not contain a verdict line", extra={"model": model})
        return Evaluation(response=text, verdict=verdict, reason=reason)
