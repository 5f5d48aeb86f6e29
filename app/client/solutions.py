"""
Solutions Client
Submits task solutions and waits for their evaluation, the way the web client does
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

FREE_CHAR_LIMIT = 1000
PRO_CHAR_LIMIT = 5000

POLL_INTERVAL_SECONDS = 5.0
POLL_BACKOFF_FACTOR = 1.5
POLL_MAX_INTERVAL_SECONDS = 60.0
POLL_MAX_ATTEMPTS = 30

IN_PROGRESS_STATUSES = ("pending", "mentor_review")


class SolutionClientError(Exception):
    pass


class CharacterLimitExceeded(SolutionClientError):
    def __init__(self, length: int, limit: int, is_pro: bool):
        self.length = length
        self.limit = limit
        self.is_pro = is_pro
        super().__init__(f"answer has {length} characters, limit is {limit}")


class ProSubscriptionRequired(SolutionClientError):
    """Mentor review is a PRO feature; show the upgrade prompt instead of submitting."""


class EvaluationDelayed(SolutionClientError):
    def __init__(self, attempts: int, last_solution: Optional[Dict[str, Any]]):
        self.attempts = attempts
        self.last_solution = last_solution
        super().__init__(f"evaluation still not ready after {attempts} checks")


def char_limit_for(is_pro: bool) -> int:
    return PRO_CHAR_LIMIT if is_pro else FREE_CHAR_LIMIT


def next_poll_delay(attempt: int, backoff_factor: float = POLL_BACKOFF_FACTOR) -> float:
    """
    Delay before poll number attempt + 1: 5s, 7.5s, 11.25s ... capped at 60s.
    backoff_factor=1.0 polls at a fixed 5s.
    """
    delay = POLL_INTERVAL_SECONDS * (backoff_factor ** attempt)
    return min(delay, POLL_MAX_INTERVAL_SECONDS)


class SolutionsClient:
    def __init__(
        self,
        base_url: str = "http://localhost:5000",
        *,
        http: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
        max_attempts: int = POLL_MAX_ATTEMPTS,
        backoff_factor: float = POLL_BACKOFF_FACTOR,
    ) -> None:
        if backoff_factor < 1.0:
            raise ValueError("backoff_factor must be >= 1.0")
        self._http = http or httpx.Client(base_url=base_url, timeout=30)
        self._sleep = sleep
        self.max_attempts = max_attempts
        self.backoff_factor = backoff_factor

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "SolutionsClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def check_pro(self, user_id: int) -> bool:
        try:
            response = self._http.get("/api/premium/check", params={"userId": user_id})
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Premium check failed for user {user_id}: {e}")
            return False
        return bool(response.json().get("isPro", False))

    def submit(
        self,
        task_id: int,
        user_id: int,
        description: str,
        *,
        task_description: str = "",
        mentor_check: bool = False,
        is_pro: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """
        Submit an answer. The plan gates run before anything is sent.

        Raises:
            ValueError: empty answer
            CharacterLimitExceeded: answer longer than the plan allows
            ProSubscriptionRequired: mentor review requested on the Free plan
            httpx.HTTPStatusError: the API rejected the request
        """
        if not description.strip():
            raise ValueError("answer is empty")

        if is_pro is None:
            is_pro = self.check_pro(user_id)

        limit = char_limit_for(is_pro)
        if len(description) > limit:
            raise CharacterLimitExceeded(len(description), limit, is_pro)

        if mentor_check and not is_pro:
            raise ProSubscriptionRequired("mentor review is available on PRO")

        response = self._http.post(
            f"/api/tasks/{task_id}/solutions",
            params={"userId": user_id},
            json={
                "description": description,
                "taskDescription": task_description,
                "mentorCheck": mentor_check,
            },
        )
        response.raise_for_status()
        return response.json()

    def get_my_solution(self, task_id: int, user_id: int) -> Optional[Dict[str, Any]]:
        response = self._http.get(
            f"/api/tasks/{task_id}/solutions/my", params={"userId": user_id}
        )
        response.raise_for_status()
        return response.json().get("solution")

    def wait_for_evaluation(self, task_id: int, user_id: int) -> Optional[Dict[str, Any]]:
        """
        Poll the user's solution until it leaves pending/mentor_review.

        Returns the solution once it is reviewed or failed (None if the
        user has no solution). Raises EvaluationDelayed after
        max_attempts checks.
        """
        solution = None
        for attempt in range(self.max_attempts):
            solution = self.get_my_solution(task_id, user_id)
            if solution is None or solution.get("status") not in IN_PROGRESS_STATUSES:
                return solution

            if attempt + 1 < self.max_attempts:
                delay = next_poll_delay(attempt, self.backoff_factor)
                logger.debug(
                    f"Solution {solution.get('id')} is {solution.get('status')}, "
                    f"next check in {delay:.1f}s"
                )
                self._sleep(delay)

        raise EvaluationDelayed(self.max_attempts, solution)
