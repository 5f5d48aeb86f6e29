import json

import httpx
import pytest

from app.client import (
    CharacterLimitExceeded,
    EvaluationDelayed,
    ProSubscriptionRequired,
    SolutionsClient,
)
from app.client.solutions import (
    FREE_CHAR_LIMIT,
    POLL_INTERVAL_SECONDS,
    POLL_MAX_INTERVAL_SECONDS,
    PRO_CHAR_LIMIT,
    next_poll_delay,
)


class FakeApi:
    """Scripted responses for the solutions endpoints, recording every request."""

    def __init__(self, *, is_pro=False, statuses=("reviewed",)):
        self.is_pro = is_pro
        self.statuses = list(statuses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/api/premium/check":
            return httpx.Response(200, json={"isPro": self.is_pro})

        if path.endswith("/solutions/my"):
            status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
            evaluation = None
            if status == "reviewed":
                evaluation = {"feedback": "ok", "metrics": [], "isCorrect": True}
            return httpx.Response(
                200,
                json={"solution": {"id": 1, "content": "a", "description": "a",
                                   "status": status, "evaluation": evaluation}},
            )

        if path.endswith("/solutions") and request.method == "POST":
            body = json.loads(request.content)
            status = "mentor_review" if body["mentorCheck"] else "pending"
            return httpx.Response(201, json={"success": True, "solutionId": 1, "status": status})

        return httpx.Response(404, json={"detail": "Not Found"})

    def posts(self):
        return [r for r in self.requests if r.method == "POST"]


def make_client(api: FakeApi, **kwargs) -> tuple[SolutionsClient, list[float]]:
    sleeps: list[float] = []
    http = httpx.Client(base_url="http://testserver", transport=httpx.MockTransport(api))
    return SolutionsClient(http=http, sleep=sleeps.append, **kwargs), sleeps


class TestSubmitGates:
    def test_free_user_mentor_check_is_blocked(self):
        api = FakeApi(is_pro=False)
        client, _ = make_client(api)

        with pytest.raises(ProSubscriptionRequired):
            client.submit(7, 1, "Мой ответ", mentor_check=True)

        assert api.posts() == []

    def test_free_character_limit(self):
        api = FakeApi(is_pro=False)
        client, _ = make_client(api)

        with pytest.raises(CharacterLimitExceeded) as exc:
            client.submit(7, 1, "x" * (FREE_CHAR_LIMIT + 1))

        assert exc.value.limit == FREE_CHAR_LIMIT
        assert api.posts() == []

    def test_pro_gets_higher_limit_and_mentor_review(self):
        api = FakeApi(is_pro=True)
        client, _ = make_client(api)

        response = client.submit(7, 1, "x" * (FREE_CHAR_LIMIT + 1), mentor_check=True)

        assert response["status"] == "mentor_review"
        sent = json.loads(api.posts()[0].content)
        assert sent["mentorCheck"] is True
        assert api.posts()[0].url.params["userId"] == "1"

        with pytest.raises(CharacterLimitExceeded):
            client.submit(7, 1, "x" * (PRO_CHAR_LIMIT + 1))

    def test_empty_answer(self):
        client, _ = make_client(FakeApi())
        with pytest.raises(ValueError):
            client.submit(7, 1, "   ")

    def test_submit_sends_payload(self):
        api = FakeApi()
        client, _ = make_client(api)

        response = client.submit(7, 1, "Мой ответ", task_description="Бриф", is_pro=False)

        assert response == {"success": True, "solutionId": 1, "status": "pending"}
        assert json.loads(api.posts()[0].content) == {
            "description": "Мой ответ",
            "taskDescription": "Бриф",
            "mentorCheck": False,
        }
        # plan passed in explicitly, so no premium lookup
        assert all(r.url.path != "/api/premium/check" for r in api.requests)

    def test_premium_check_failure_means_free(self):
        def failing(request):
            return httpx.Response(500)

        http = httpx.Client(base_url="http://testserver", transport=httpx.MockTransport(failing))
        assert SolutionsClient(http=http).check_pro(1) is False


class TestPolling:
    def test_polls_until_reviewed_with_backoff(self):
        api = FakeApi(statuses=["pending", "pending", "pending", "reviewed"])
        client, sleeps = make_client(api)

        solution = client.wait_for_evaluation(7, 1)

        assert solution["status"] == "reviewed"
        assert solution["evaluation"]["isCorrect"] is True
        assert sleeps == [next_poll_delay(0), next_poll_delay(1), next_poll_delay(2)]
        assert sleeps[0] == POLL_INTERVAL_SECONDS
        assert sleeps[0] < sleeps[1] < sleeps[2]

    def test_mentor_review_keeps_polling(self):
        api = FakeApi(statuses=["mentor_review", "reviewed"])
        client, sleeps = make_client(api)

        assert client.wait_for_evaluation(7, 1)["status"] == "reviewed"
        assert len(sleeps) == 1

    def test_failed_stops_polling(self):
        client, sleeps = make_client(FakeApi(statuses=["pending", "failed"]))
        assert client.wait_for_evaluation(7, 1)["status"] == "failed"
        assert len(sleeps) == 1

    def test_gives_up_after_max_attempts(self):
        api = FakeApi(statuses=["pending"])
        client, sleeps = make_client(api, max_attempts=4)

        with pytest.raises(EvaluationDelayed) as exc:
            client.wait_for_evaluation(7, 1)

        assert exc.value.attempts == 4
        assert exc.value.last_solution["status"] == "pending"
        assert len(sleeps) == 3
        gets = [r for r in api.requests if r.url.path.endswith("/solutions/my")]
        assert len(gets) == 4

    def test_delay_is_capped(self):
        assert next_poll_delay(50) == POLL_MAX_INTERVAL_SECONDS

    def test_fixed_interval_without_backoff(self):
        api = FakeApi(statuses=["pending", "pending", "pending", "reviewed"])
        client, sleeps = make_client(api, backoff_factor=1.0)

        assert client.wait_for_evaluation(7, 1)["status"] == "reviewed"
        assert sleeps == [POLL_INTERVAL_SECONDS] * 3

    def test_backoff_factor_below_one_is_rejected(self):
        with pytest.raises(ValueError):
            make_client(FakeApi(), backoff_factor=0.5)
