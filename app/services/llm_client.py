"""
LLM Evaluator
Grades a free-text task solution through an OpenAI-compatible chat-completion API
"""

import json
import logging
import re
from typing import Any

from openai import OpenAI, OpenAIError

from app.core.config import settings
from app.schemas.evaluation import EvaluationResult, MetricEntry

logger = logging.getLogger(__name__)

FALLBACK_FEEDBACK = "Не удалось оценить ответ"

# (key in the model's JSON, label shown to the user)
METRICS: list[tuple[str, str]] = [
    ("understanding", "Понимание задачи"),
    ("solution_quality", "Качество решения"),
    ("argumentation", "Аргументация"),
    ("structure", "Структура ответа"),
]

# mean percentage at which an answer counts as correct when the model omits isCorrect
CORRECT_THRESHOLD = 60

_JSON_BLOCK_RE = re.compile(r"\{[\s\S]*\}")

# Global client cache
_client_instance: OpenAI | None = None


class EvaluationError(Exception):
    pass


class EvaluatorUnavailable(EvaluationError):
    """The chat-completion API could not be reached or returned an error."""


def _get_client() -> OpenAI:
    global _client_instance

    if _client_instance is None:
        if not settings.POLZA_AI_API_KEY:
            raise EvaluatorUnavailable("POLZA_AI_API_KEY is not configured")
        _client_instance = OpenAI(
            api_key=settings.POLZA_AI_API_KEY,
            base_url=settings.LLM_BASE_URL,
            timeout=settings.LLM_TIMEOUT_SECONDS,
            max_retries=0,  # retries belong to the evaluation queue
        )
    return _client_instance


def reset_client() -> None:
    global _client_instance
    _client_instance = None


def grade_for(percentage: int) -> str:
    if percentage >= 85:
        return "Отлично"
    if percentage >= 70:
        return "Хорошо"
    if percentage >= 50:
        return "Удовлетворительно"
    return "Нужно доработать"


def fallback_result() -> EvaluationResult:
    """Neutral record used whenever the model output cannot be turned into metrics."""
    return EvaluationResult(
        feedback=FALLBACK_FEEDBACK,
        metrics=[
            MetricEntry(label=label, percentage=0, grade=grade_for(0))
            for _, label in METRICS
        ],
        is_correct=False,
    )


def build_prompt(task_description: str, solution_description: str) -> str:
    metric_lines = ",\n".join(
        f'    "{key}": <число от 0 до 100, {label.lower()}>' for key, label in METRICS
    )
    return f"""Ты опытный дизайн-ментор. Оцени решение практической задачи по дизайну.

Задача:
{task_description or "(описание задачи не передано)"}

Решение пользователя:
{solution_description}

Оцени решение по четырём критериям по шкале от 0 до 100 и дай краткую обратную связь.

Ответь в формате JSON:
{{
  "isCorrect": <true если решение в целом верное, иначе false>,
  "feedback": "<обратная связь на 2-4 предложения: что получилось и что улучшить>",
  "metrics": {{
{metric_lines}
  }}
}}

Отвечай только JSON, без дополнительного текста."""


def _to_percentage(value: Any) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if number != number:  # NaN
        return 0
    return int(round(min(100.0, max(0.0, number))))


def _coerce_metrics(raw: Any) -> list[MetricEntry]:
    """
    Map whatever the model returned onto the fixed four-metric shape.

    Accepts a dict keyed by metric key or label, or a list of
    {"label"/"key", "percentage"/"score"} objects. Missing metrics score 0.
    """
    values: dict[str, Any] = {}
    if isinstance(raw, dict):
        values = {str(k).strip().lower(): v for k, v in raw.items()}
    elif isinstance(raw, list):
        for item in raw:
            if not isinstance(item, dict):
                continue
            name = item.get("key") or item.get("label")
            if name is None:
                continue
            values[str(name).strip().lower()] = item.get(
                "percentage", item.get("score")
            )

    metrics = []
    for key, label in METRICS:
        value = values.get(key, values.get(label.lower()))
        percentage = _to_percentage(value)
        metrics.append(
            MetricEntry(label=label, percentage=percentage, grade=grade_for(percentage))
        )
    return metrics


def parse_evaluation(content: str) -> EvaluationResult:
    """
    Extract the JSON block from the model's text response.

    Raises:
        ValueError: if there is no {...} block or it is not a JSON object
    """
    match = _JSON_BLOCK_RE.search(content or "")
    if not match:
        raise ValueError("no JSON object in evaluator response")

    parsed = json.loads(match.group(0))
    if not isinstance(parsed, dict):
        raise ValueError("evaluator JSON is not an object")

    metrics = _coerce_metrics(parsed.get("metrics"))
    feedback = str(parsed.get("feedback") or "").strip()

    is_correct = parsed.get("isCorrect")
    if not isinstance(is_correct, bool):
        mean = sum(m.percentage for m in metrics) / len(metrics)
        is_correct = mean >= CORRECT_THRESHOLD

    return EvaluationResult(feedback=feedback, metrics=metrics, is_correct=is_correct)


def request_evaluation(
    task_description: str,
    solution_description: str,
    *,
    client: OpenAI | None = None,
) -> EvaluationResult:
    """
    Grade a solution with a single chat-completion call.

    Args:
        task_description: The task brief shown to the user
        solution_description: The user's free-text answer
        client: OpenAI-compatible client, defaults to the cached one

    Returns:
        EvaluationResult with exactly four metrics. An unparsable response
        yields the fallback record.

    Raises:
        EvaluatorUnavailable: if the API call itself fails (network, auth,
            rate limit, timeout). The queue retries these.
    """
    client = client or _get_client()
    prompt = build_prompt(task_description, solution_description)

    try:
        completion = client.chat.completions.create(
            model=settings.LLM_MODEL,
            messages=[{"role": "user", "content": prompt}],
            temperature=settings.LLM_TEMPERATURE,
        )
    except OpenAIError as e:
        raise EvaluatorUnavailable(f"chat completion failed: {e}") from e

    content = ""
    if completion.choices:
        content = completion.choices[0].message.content or ""

    try:
        result = parse_evaluation(content)
    except ValueError as e:
        logger.warning(f"Could not parse evaluator response: {e}; using fallback")
        return fallback_result()

    logger.info(
        f"Evaluated solution: is_correct={result.is_correct}, "
        f"mean={result.average_percentage}%"
    )
    return result


def evaluate_solution(
    task_description: str,
    solution_description: str,
    *,
    client: OpenAI | None = None,
) -> EvaluationResult:
    """Best-effort evaluation: never raises, returns the fallback record on any failure."""
    try:
        return request_evaluation(
            task_description, solution_description, client=client
        )
    except Exception as e:
        logger.error(f"Error evaluating solution with LLM: {e}", exc_info=True)
        return fallback_result()
