from litellm import model_cost


def lookup_pricing(model: str) -> dict | None:
    if model in model_cost:
        return model_cost[model]
    if "/" in model:
        provider, model_name = model.split("/", 1)
        pricing = model_cost.get(model_name)
        if pricing is not None and pricing["litellm_provider"].startswith(provider):
            return pricing
    return None


def compute_model_cost(
    model: str, input: int, output: int, cached_input: int = 0
) -> float | None:
    """
    Dollar cost of a model's token usage from the litellm price table, or None
    when the model isn't priced there.
    """
    pricing = lookup_pricing(model)
    if pricing is None or pricing.get("input_cost_per_token") is None:
        return None

    input_cost = pricing["input_cost_per_token"] * input
    cached_rate = pricing.get("cache_read_input_token_cost")
    if cached_rate is not None:
        input_cost += (cached_rate - pricing["input_cost_per_token"]) * cached_input

    return input_cost + pricing.get("output_cost_per_token", 0) * output


class UsageTracker:
    """Token usage summed over every completion a single contestant requests."""

    def __init__(self) -> None:
        self.requests = 0
        self.input = 0
        self.output = 0
        self.cached_input = 0
        self.total = 0

    def log(
        self, total: int, input: int, output: int, cached_input: int = 0
    ) -> None:
        self.requests += 1
        self.total += total
        self.input += input
        self.output += output
        self.cached_input += cached_input

    def cost(self, model: str) -> float | None:
        if self.requests == 0:
            return None
        return compute_model_cost(model, self.input, self.output, self.cached_input)
