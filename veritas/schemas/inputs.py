"""
Domain Snapshots — already-fetched data handed to validators.

Veritas never calls external APIs. Callers fetch market quotes, social
metrics, on-chain flows and news, then pass these snapshots in.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# ── Market ─────────────────────────────────────────────────────────────


class PriceQuote(BaseModel):
    """One exchange / aggregator quote."""
    source: str                     # e.g. "CoinMarketCap", "CoinGecko", "Kraken"
    price: float
    volume_24h: float = 0.0


class MarketSnapshot(BaseModel):
    quotes: list[PriceQuote] = Field(default_factory=list)
    expected_sources: int = 3       # How many sources were queried


# ── Social ─────────────────────────────────────────────────────────────


class SentimentReading(BaseModel):
    source: str
    score: float                    # 0-100 (50 = neutral)


class SentimentDistribution(BaseModel):
    positive: float = 0.0
    negative: float = 0.0
    neutral: float = 0.0

    @property
    def total(self) -> float:
        return self.positive + self.negative + self.neutral


class SocialSnapshot(BaseModel):
    """Primary social aggregator reading plus optional corroborating sources."""
    source: str = "LunarCrush"
    mention_count: int = 0
    sentiment_score: float = 0.0    # 0-100
    distribution: Optional[SentimentDistribution] = None
    cross_readings: list[SentimentReading] = Field(default_factory=list)


# ── On-Chain ───────────────────────────────────────────────────────────


class OnChainSnapshot(BaseModel):
    market_volume_24h: float = 0.0          # USD, from market data
    exchange_deposits: float = 0.0          # USD flowing into exchanges
    exchange_withdrawals: float = 0.0       # USD flowing out of exchanges
    transaction_count: Optional[int] = None
    sources: list[str] = Field(default_factory=lambda: ["Blockchain.com", "Etherscan"])

    @property
    def total_flows(self) -> float:
        return self.exchange_deposits + self.exchange_withdrawals

    @property
    def net_flow(self) -> float:
        """Positive = net withdrawals (accumulation)."""
        return self.exchange_withdrawals - self.exchange_deposits


# ── News ───────────────────────────────────────────────────────────────


class NewsArticle(BaseModel):
    source: str
    title: str
    sentiment: str = "neutral"      # bullish | bearish | neutral
    sentiment_score: float = 50.0   # 0-100
    published_at: Optional[datetime] = None


class NewsSnapshot(BaseModel):
    articles: list[NewsArticle] = Field(default_factory=list)
    onchain_net_flow: Optional[float] = None   # Positive = accumulation
