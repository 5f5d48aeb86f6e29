from app.client.solutions import (
    CharacterLimitExceeded,
    EvaluationDelayed,
    ProSubscriptionRequired,
    SolutionsClient,
)

__all__ = [
    "CharacterLimitExceeded",
    "EvaluationDelayed",
    "ProSubscriptionRequired",
    "SolutionsClient",
]
