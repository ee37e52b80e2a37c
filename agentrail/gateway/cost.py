"""Cost estimation from token usage and a per-model price table."""

from agentrail.gateway.models import CostEstimate, CostTable, CostTableEntry, Usage


def round_cents(value: float) -> float:
    return round(value, 2)


def estimate_cost(usage: Usage | None, model: str, cost_table: CostTable) -> CostEstimate | None:
    """
    Estimate the cost of one call.

    A missing usage report or a model without a price entry yields ``None``
    rather than an error; cost is best-effort bookkeeping.
    """
    if usage is None:
        return None

    entry = cost_table.get(model)
    if entry is None:
        return None

    input_cents = round_cents(usage.input_tokens / 1000 * entry.input_cents_per_1k)
    output_cents = round_cents(usage.output_tokens / 1000 * entry.output_cents_per_1k)
    return CostEstimate(
        input_cents=input_cents,
        output_cents=output_cents,
        total_cents=round_cents(input_cents + output_cents),
        currency=entry.currency,
    )


def default_cost_table() -> CostTable:
    """Prices (cents per 1k tokens) for the models routed by default."""
    prices = {
        "gemini-2.5-flash": (0.075, 0.3),
        "gemini-2.0-flash": (0.1, 0.4),
        "gemini-1.5-flash": (0.075, 0.3),
        "glm-4.7": (0.15, 0.15),
        "glm-4-flash": (0.05, 0.15),
        "glm-4": (0.1, 0.1),
        "glm-4-plus": (0.2, 0.2),
        "glm-4-air": (0.03, 0.03),
        "glm-4-long": (0.1, 0.1),
        "deepseek-chat": (0.14, 0.28),
        "deepseek-reasoner": (0.55, 1.1),
    }
    return {
        model: CostTableEntry(input_cents_per_1k=inp, output_cents_per_1k=out)
        for model, (inp, out) in prices.items()
    }
