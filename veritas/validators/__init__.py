"""Domain validators and the shared discrepancy detector."""

from veritas.schemas.validation import Domain
from veritas.validators.base import Validator, build_result
from veritas.validators.discrepancy import (
    DiscrepancyDetector,
    detect_discrepancy,
    spread_percent,
    suggest_action,
)
from veritas.validators.market import MarketDataValidator
from veritas.validators.news import NewsValidator
from veritas.validators.onchain import OnChainValidator
from veritas.validators.social import SocialSentimentValidator


def default_validators() -> dict[Domain, Validator]:
    """One validator per domain."""
    return {
        Domain.MARKET: MarketDataValidator(),
        Domain.SOCIAL: SocialSentimentValidator(),
        Domain.ONCHAIN: OnChainValidator(),
        Domain.NEWS: NewsValidator(),
    }


__all__ = [
    "DiscrepancyDetector",
    "MarketDataValidator",
    "NewsValidator",
    "OnChainValidator",
    "SocialSentimentValidator",
    "Validator",
    "build_result",
    "default_validators",
    "detect_discrepancy",
    "spread_percent",
    "suggest_action",
]
