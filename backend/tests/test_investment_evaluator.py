"""
Tests for the LLM-backed investment evaluator
"""
import json

import httpx
import pytest

from halal_tools.core.config import get_settings
from halal_tools.core.errors import UpstreamUnavailable
from halal_tools.services.investment_evaluator import (InvestmentDetails,
                                                       InvestmentEvaluator,
                                                       build_prompt,
                                                       parse_verdict)

DETAILS = InvestmentDetails(
    name="Sukuk Fund",
    type="Fixed income",
    riba="No",
    income_nature="Rental",
    industry="Real estate",
    transparency="High",
    income_source="Lease payments",
    ethics="None",
)


def _completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _transport(handler):
    return httpx.MockTransport(handler)


def test_build_prompt_fills_missing_values():
    prompt = build_prompt(DETAILS)
    assert "- Name: Sukuk Fund" in prompt
    assert "- Description: N/A" in prompt
    assert "- Income Nature: Rental" in prompt
    assert "Verdict: Halal / Haram / Mashbooh" in prompt


def test_parse_verdict_two_lines():
    verdict, reason = parse_verdict("Verdict: Halal\n\nReason: Asset-backed, no Riba.")
    assert verdict == "Halal"
    assert reason == "Asset-backed, no Riba."


def test_parse_verdict_is_case_insensitive_and_ignores_noise():
    text = "Sure.\n  VERDICT: Mashbooh  \nreason: Mixed income sources."
    assert parse_verdict(text) == ("Mashbooh", "Mixed income sources.")


def test_parse_verdict_malformed():
    assert parse_verdict("I think it is probably fine.") == (None, None)
    assert parse_verdict("Verdict:\nReason:") == (None, None)


@pytest.mark.asyncio
async def test_evaluate_posts_chat_completion():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["auth"] = request.headers["authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json=_completion("  Verdict: Halal\nReason: Lease income.  "))

    evaluation = await InvestmentEvaluator(transport=_transport(handler)).evaluate(DETAILS)

    assert evaluation.response == "Verdict: Halal\nReason: Lease income."
    assert evaluation.verdict == "Halal"
    assert evaluation.reason == "Lease income."
    assert captured["auth"] == "Bearer test-together-key"
    assert captured["body"]["temperature"] == 0.4
    assert captured["body"]["model"] == get_settings().llm_model
    assert captured["body"]["messages"][0]["role"] == "user"


@pytest.mark.asyncio
async def test_unformatted_answer_returned_as_text():
    def handler(request):
        return httpx.Response(200, json=_completion("It depends on the fund."))

    evaluation = await InvestmentEvaluator(transport=_transport(handler)).evaluate(DETAILS)

    assert evaluation.response == "It depends on the fund."
    assert evaluation.verdict is None
    assert evaluation.reason is None


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(500, json={"error": "boom"}),
    httpx.Response(200, json={"choices": []}),
    httpx.Response(200, json={"unexpected": True}),
    httpx.Response(200, text="not json"),
])
async def test_upstream_errors_raise_unavailable(response):
    evaluator = InvestmentEvaluator(transport=_transport(lambda request: response))

    with pytest.raises(UpstreamUnavailable) as exc_info:
        await evaluator.evaluate(DETAILS)
    assert exc_info.value.detail == "Failed to evaluate investment using AI."
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_network_error_raises_unavailable():
    def handler(request):
        raise httpx.ConnectError("refused")

    with pytest.raises(UpstreamUnavailable):
        await InvestmentEvaluator(transport=_transport(handler)).evaluate(DETAILS)


@pytest.mark.asyncio
async def test_missing_api_key():
    settings = get_settings().model_copy(update={"together_api_key": None})
    with pytest.raises(UpstreamUnavailable):
        await InvestmentEvaluator(settings=settings).evaluate(DETAILS)
