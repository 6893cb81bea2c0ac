"""Data models for pool API responses."""

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from typing import Any, List, Optional, Union

# Timestamps below this value are epoch seconds, anything above is milliseconds
SECONDS_CUTOFF = 10_000_000_000


def to_epoch_ms(ts: Union[int, float, str, None]) -> int:
    """Normalize an epoch timestamp to milliseconds.

    The pool API mixes units across endpoints (``/pool/blocks`` reports
    milliseconds, ``/network/stats`` and the miner lists report seconds),
    so the unit is detected by magnitude.
    """
    if ts is None or ts == "":
        return 0
    value = int(float(ts))
    if 0 < value < SECONDS_CUTOFF:
        value *= 1000
    return value


class ApiModel(BaseModel):
    """Base for API payloads: tolerate unknown fields, allow aliases."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PoolConfig(ApiModel):
    """Pool configuration from /config."""

    min_wallet_payout: Optional[int] = None


class NetworkStats(ApiModel):
    """Network state from /network/stats."""

    difficulty: float = 0
    height: int = 0
    value: int = 0  # Block reward, atomic units
    ts: int = 0

    @field_validator('ts', mode='before')
    @classmethod
    def parse_ts(cls, v):
        return to_epoch_ms(v)

    @computed_field
    @property
    def hashrate(self) -> float:
        """Network hashrate derived from difficulty and the 120s block target."""
        return self.difficulty / 120 if self.difficulty else 0.0


class PoolStatistics(ApiModel):
    """Pool-wide statistics (``pool_statistics`` of /pool/stats)."""

    hashRate: float = 0
    miners: int = 0
    totalBlocksFound: int = 0
    roundHashes: float = 0
    totalPayments: int = 0
    totalMinersPaid: int = 0
    pplnsWindowTime: Optional[float] = None  # seconds


class HashrateSample(ApiModel):
    """One point of a hashrate chart series."""

    ts: int
    hs: float = 0

    @field_validator('ts', mode='before')
    @classmethod
    def parse_ts(cls, v):
        return to_epoch_ms(v)

    @field_validator('hs', mode='before')
    @classmethod
    def parse_hashrate(cls, v):
        return v or 0


class PoolBlock(ApiModel):
    """Block found by the pool (/pool/blocks)."""

    height: int
    ts: int = 0
    value: int = 0
    shares: float = 0
    diff: float = 0
    valid: bool = True
    unlocked: bool = False

    @field_validator('ts', mode='before')
    @classmethod
    def parse_ts(cls, v):
        return to_epoch_ms(v)

    @computed_field
    @property
    def effort(self) -> float:
        """Shares submitted for this block as a percentage of its difficulty."""
        if not self.diff or self.diff <= 0:
            return 0.0
        return self.shares / self.diff * 100


class PoolPayment(ApiModel):
    """Payout batch sent by the pool (/pool/payments)."""

    payees: int = 0
    value: int = 0
    fee: int = 0
    hash: str = ""
    ts: int = 0

    @field_validator('ts', mode='before')
    @classmethod
    def parse_ts(cls, v):
        return to_epoch_ms(v)


class MinerStats(ApiModel):
    """Miner or worker statistics (/miner/{address}/stats[/{worker}])."""

    amtDue: int = 0
    amtPaid: int = 0
    hash: float = 0
    validShares: int = 0
    invalidShares: int = 0
    totalHash: Optional[float] = None
    lts: int = 0  # Last share

    @field_validator('hash', 'amtDue', 'amtPaid', 'validShares', 'invalidShares', mode='before')
    @classmethod
    def parse_missing(cls, v):
        return v or 0

    @field_validator('lts', mode='before')
    @classmethod
    def parse_ts(cls, v):
        return to_epoch_ms(v)


class UserSettings(ApiModel):
    """Per-user settings from /user/{address}."""

    payout_threshold: int = 0
    email_enabled: Optional[int] = None


class MinerPayment(ApiModel):
    """Payment made to the miner (/miner/{address}/payments)."""

    amount: int = 0
    fee: int = 0
    txnHash: str = ""
    ts: int = 0

    @field_validator('ts', mode='before')
    @classmethod
    def parse_ts(cls, v):
        return to_epoch_ms(v)


class BlockPayment(ApiModel):
    """Share of a block reward credited to the miner (/miner/{address}/block_payments)."""

    height: int = 0
    value: int = 0
    value_percent: float = 0
    ts: int = 0
    ts_found: int = 0

    @field_validator('ts', 'ts_found', mode='before')
    @classmethod
    def parse_ts(cls, v):
        return to_epoch_ms(v)


class BoostSummary(ApiModel):
    """Bonus hashrate summary from the boost API."""

    total: List[Any] = Field(default_factory=list)

    @property
    def hashrate(self) -> float:
        """Bonus hashrate in H/s (the API reports KH/s in ``total[1]``)."""
        if len(self.total) < 2:
            raise ValueError("Boost summary has no total hashrate")
        return float(self.total[1]) * 1000


class NormalizedPoint(BaseModel):
    """A chart point: ``x`` is epoch milliseconds."""

    model_config = ConfigDict(frozen=True)

    x: int
    y: float


class SnappedEvent(BaseModel):
    """A block event placed on the hashrate line."""

    model_config = ConfigDict(frozen=True)

    x: int
    y: float
    height: int
    effort: int  # Percent, rounded
