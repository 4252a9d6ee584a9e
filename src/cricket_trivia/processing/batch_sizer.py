import math
from dataclasses import dataclass


@dataclass(frozen=True)
class BatchBudget:
    """
    Token budget used to size one generation request.
    """
    response_token_budget: int = 4096
    chars_per_token: int = 4
    prompt_overhead_tokens: int = 900
    tokens_per_item: int = 180
    safety_margin: float = 0.8
    hard_cap: int = 10


def estimate_tokens(text: str, chars_per_token: int = 4) -> int:
    if not text:
        return 0
    return math.ceil(len(text) / max(1, chars_per_token))


def compute_batch_size(
    content_tokens: int,
    items_needed: int,
    budget: BatchBudget = BatchBudget(),
) -> int:
    """
    How many questions to request in the next call.

    Always returns a value in [1, min(items_needed, hard_cap)], falling back
    to 1 when the content leaves no room in the budget.
    """
    upper = max(1, min(items_needed, budget.hard_cap))

    available = budget.response_token_budget - max(0, content_tokens) - budget.prompt_overhead_tokens
    if available <= 0:
        return 1

    fits = math.floor(available / max(1, budget.tokens_per_item) * budget.safety_margin)
    return max(1, min(fits, upper))
