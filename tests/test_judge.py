"""Tests for judge adapters and curator personas."""

import json

import httpx
import pytest

from curation_tournament.core.config import JudgeConfig
from curation_tournament.core.errors import (
    ConfigurationError,
    JudgeError,
    JudgeTimeoutError,
    UnknownCuratorError,
)
from curation_tournament.models import BracketSlot
from curation_tournament.services.judge import (
    CURATORS,
    FakeJudge,
    HTTPJudge,
    create_judge,
    get_curator,
)

A = BracketSlot(work_id="w1", title="Dawn")
B = BracketSlot(work_id="w2", title="Dusk")


class TestCurators:
    """Tests for the built-in personas."""

    def test_weights_sum_to_one(self):
        for profile in CURATORS.values():
            total = sum(profile.weights.model_dump().values())
            assert total == pytest.approx(1.0)

    def test_lookup_is_case_insensitive(self):
        assert get_curator(" SUE ").key == "sue"

    def test_unknown(self):
        with pytest.raises(UnknownCuratorError) as exc_info:
            get_curator("bob")
        assert "nina" in str(exc_info.value)
        assert exc_info.value.action is None


class TestFakeJudge:
    """Tests for the offline judge."""

    async def test_winner_is_seated(self):
        judgment = await FakeJudge().compare(A, B, "nina")
        assert judgment.winner_id in {"w1", "w2"}
        assert judgment.reasoning

    async def test_deterministic(self):
        """Same seed, same answers, regardless of instance."""
        first = [await FakeJudge(seed=3).compare(A, B, c) for c in ("sue", "nina")]
        second = [await FakeJudge(seed=3).compare(A, B, c) for c in ("sue", "nina")]
        assert first == second

    async def test_reasoning_names_winner(self):
        judgment = await FakeJudge().compare(A, B, "sue")
        winner_title = "Dawn" if judgment.winner_id == "w1" else "Dusk"
        assert winner_title in judgment.reasoning

    async def test_counts_calls(self):
        judge = FakeJudge()
        await judge.compare(A, B, "sue")
        await judge.compare(A, B, "sue")
        assert judge.call_count == 2

    async def test_unknown_curator(self):
        with pytest.raises(UnknownCuratorError) as exc_info:
            await FakeJudge().compare(A, B, "bob")
        assert exc_info.value.action == "advance"


class TestHTTPJudge:
    """Tests for the remote judge client."""

    async def test_posts_works_and_persona(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"winner_id": "w2", "reasoning": "moving"})

        judge = HTTPJudge(
            "https://judge.test/compare",
            api_key="secret",
            transport=httpx.MockTransport(handler),
        )
        judgment = await judge.compare(A, B, "nina")
        await judge.close()

        assert judgment.winner_id == "w2"
        assert judgment.reasoning == "moving"
        assert seen["auth"] == "Bearer secret"
        assert seen["body"]["curator"] == "nina"
        assert seen["body"]["persona"]["name"] == "NINA"
        assert seen["body"]["work_a"] == {"work_id": "w1", "title": "Dawn"}

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(503, text="busy"),
            httpx.Response(200, text="not json"),
            httpx.Response(200, json={"reasoning": "no winner"}),
        ],
    )
    async def test_bad_responses_raise_judge_error(self, response):
        judge = HTTPJudge(
            "https://judge.test/compare",
            transport=httpx.MockTransport(lambda _request: response),
        )
        with pytest.raises(JudgeError):
            await judge.compare(A, B, "sue")
        await judge.close()

    async def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        judge = HTTPJudge("https://judge.test/compare", transport=httpx.MockTransport(handler))
        with pytest.raises(JudgeTimeoutError):
            await judge.compare(A, B, "sue")
        await judge.close()


class TestCreateJudge:
    """Tests for the judge factory."""

    def test_fake_by_default(self):
        judge = create_judge(JudgeConfig(seed=9))
        assert isinstance(judge, FakeJudge)
        assert judge.seed == 9

    def test_dry_run_overrides_http(self):
        config = JudgeConfig(kind="http", endpoint="https://judge.test")
        assert isinstance(create_judge(config, dry_run=True), FakeJudge)

    def test_http_requires_endpoint(self):
        with pytest.raises(ConfigurationError, match="endpoint"):
            create_judge(JudgeConfig(kind="http"))

    def test_http_uses_env_key(self, monkeypatch):
        monkeypatch.setenv("CURATION_JUDGE_API_KEY", "from-env")
        judge = create_judge(JudgeConfig(kind="http", endpoint="https://judge.test"))
        assert isinstance(judge, HTTPJudge)
        assert judge.api_key == "from-env"
