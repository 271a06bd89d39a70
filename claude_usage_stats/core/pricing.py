"""
Pricing calculations and rate management.

Maps a model name and token counts to a USD cost.
"""

import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

# (model, input, output, cache_creation, cache_read) -> USD
CostResolver = Callable[[str, int, int, int, int], float]

_PER_MILLION = Decimal("1000000")


@dataclass(frozen=True)
class ModelPricing:
    """Per-token pricing for a specific model, in USD per million tokens."""
    input: Decimal
    output: Decimal
    cache_write: Decimal
    cache_read: Decimal

    def cost(
        self,
        input_tokens: int,
        output_tokens: int,
        cache_creation_tokens: int,
        cache_read_tokens: int
    ) -> Decimal:
        """Total cost of one request at these rates."""
        return (
            Decimal(input_tokens) * self.input
            + Decimal(output_tokens) * self.output
            + Decimal(cache_creation_tokens) * self.cache_write
            + Decimal(cache_read_tokens) * self.cache_read
        ) / _PER_MILLION


def _rates(input: str, output: str, cache_write: str, cache_read: str) -> ModelPricing:
    return ModelPricing(
        input=Decimal(input),
        output=Decimal(output),
        cache_write=Decimal(cache_write),
        cache_read=Decimal(cache_read)
    )


# Name variants seen in the logs, lowercased with dashes removed
_ALIASES: Dict[str, str] = {
    "claude4opus": "claude-4-opus",
    "claude4sonnet": "claude-4-sonnet",
    "claude4haiku": "claude-4-haiku",
    "claudeopus4": "claude-4-opus",
    "claudesonnet4": "claude-4-sonnet",
    "claudehaiku4": "claude-4-haiku",
    "claudesonnet420250514": "claude-4-sonnet",
    "claudeopus420250514": "claude-4-opus",
    "claudehaiku420250514": "claude-4-haiku",
    "opus4": "claude-4-opus",
    "sonnet4": "claude-4-sonnet",
    "haiku4": "claude-4-haiku",
    "claude3.5sonnet": "claude-3-5-sonnet",
    "claude35sonnet": "claude-3-5-sonnet",
    "claude3sonnet35": "claude-3-5-sonnet",
    "claudesonnet35": "claude-3-5-sonnet",
    "claude3opus": "claude-3-opus",
    "claude3sonnet": "claude-3-sonnet",
    "claude3haiku": "claude-3-haiku",
    "claudeopus3": "claude-3-opus",
    "claudesonnet3": "claude-3-sonnet",
    "claudehaiku3": "claude-3-haiku",
    "gemini2.5pro": "gemini-2.5-pro",
    "gemini25pro": "gemini-2.5-pro",
}


@dataclass(frozen=True)
class PricingTable:
    """Fixed pricing table for supported models."""
    prices: Dict[str, ModelPricing]

    def normalize_model_name(self, model: str) -> str:
        """Map a raw model name onto a pricing table key.

        Tries the alias table first, then an exact key, then keyword
        matching on the model family and generation.
        """
        normalized = model.lower().replace("-", "")
        if normalized in _ALIASES:
            return _ALIASES[normalized]

        if model in self.prices:
            return model

        # Release date suffixes carry digits that confuse generation matching
        model = re.sub(r"-?\d{8}$", "", model.lower())

        if "opus" in model:
            if "4" in model:
                return "claude-4-opus"
            if "3" in model:
                return "claude-3-opus"
        elif "sonnet" in model:
            if "4" in model:
                return "claude-4-sonnet"
            if "3.5" in model or "3-5" in model or "35" in model:
                return "claude-3-5-sonnet"
            if "3" in model:
                return "claude-3-sonnet"
        elif "haiku" in model:
            if "4" in model:
                return "claude-4-haiku"
            if "3" in model:
                return "claude-3-haiku"

        return normalized

    def get_pricing(self, model: str) -> Optional[ModelPricing]:
        """Get pricing for a model.

        Args:
            model: Model identifier as found in the logs

        Returns:
            ModelPricing for the model, or None if it is not priced
        """
        return self.prices.get(self.normalize_model_name(model))


_OPUS = _rates("15.0", "75.0", "18.75", "1.5")
_SONNET = _rates("3.0", "15.0", "3.75", "0.3")
_HAIKU_4 = _rates("1.0", "5.0", "1.25", "0.1")

# Fixed pricing table - no dynamic fetching
PRICING_TABLE = PricingTable({
    "claude-4-opus": _OPUS,
    "claude-4-sonnet": _SONNET,
    "claude-4-haiku": _HAIKU_4,
    "opus-4": _OPUS,
    "sonnet-4": _SONNET,
    "haiku-4": _HAIKU_4,
    "claude-3-5-sonnet": _SONNET,
    "claude-3.5-sonnet": _SONNET,
    "claude-3-opus": _OPUS,
    "claude-3-sonnet": _SONNET,
    "claude-3-haiku": _rates("0.25", "1.25", "0.3", "0.03"),
    "gemini-2.5-pro": _rates("1.25", "10.0", "0.31", "0.25"),
})


def calculate_cost(
    model: str,
    input_tokens: int,
    output_tokens: int,
    cache_creation_tokens: int,
    cache_read_tokens: int
) -> float:
    """Calculate the USD cost of one request.

    Unknown models cost nothing; this function never raises.

    Args:
        model: Model identifier
        input_tokens: Prompt tokens
        output_tokens: Completion tokens
        cache_creation_tokens: Tokens written to the prompt cache
        cache_read_tokens: Tokens read from the prompt cache

    Returns:
        Total cost in USD
    """
    pricing = PRICING_TABLE.get_pricing(model)
    if pricing is None:
        logger.warning(
            "No pricing for model %r, counting as $0 (%d tokens)",
            model, input_tokens + output_tokens + cache_creation_tokens + cache_read_tokens
        )
        return 0.0

    return float(pricing.cost(input_tokens, output_tokens, cache_creation_tokens, cache_read_tokens))
