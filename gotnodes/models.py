#!/usr/bin/env python3
"""
GotNodes Data Models
Normalized records returned to dashboard clients
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .exceptions import ValidationError
from .utils import format_avax, format_eth, format_percent, now_ms


class Chain(str, Enum):
    ETHEREUM = "ethereum"
    AVALANCHE = "avalanche"

    @classmethod
    def parse(cls, value: Any) -> "Chain":
        """Accept 'ethereum', 'Ethereum', 'eth', 'avalanche', 'avax'..."""
        text = str(value or "").strip().lower()
        aliases = {"eth": cls.ETHEREUM, "avax": cls.AVALANCHE}
        if text in aliases:
            return aliases[text]
        try:
            return cls(text)
        except ValueError:
            raise ValidationError("missing_or_invalid_chain")

    @property
    def display_name(self) -> str:
        """Chain name as DefiLlama spells it"""
        return self.value.capitalize()

    @property
    def ticker(self) -> str:
        return "ETH" if self is Chain.ETHEREUM else "AVAX"


@dataclass
class ValidatorRecord:
    """Ethereum validator snapshot; balances held in ETH"""
    identifier: str
    validator_id: Optional[Any] = None
    pubkey: Optional[str] = None
    status: Optional[str] = None
    online: Optional[bool] = None  # None = unknown
    balance_eth: Optional[float] = None
    effective_balance_eth: Optional[float] = None
    apy_30d: Optional[float] = None
    roi_30d: Optional[float] = None
    finality: Optional[str] = None
    updated_at: int = field(default_factory=now_ms)
    balance_series: Optional[List[float]] = None
    message: Optional[str] = None

    @classmethod
    def error(cls, identifier: str, message: str) -> "ValidatorRecord":
        return cls(identifier=identifier, validator_id=identifier, status="error", message=message)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "validatorId": self.validator_id,
            "pubkey": self.pubkey,
            "status": self.status,
            "online": self.online,
            "balanceEth": format_eth(self.balance_eth),
            "effectiveBalanceEth": format_eth(self.effective_balance_eth),
            "apy30d": format_percent(self.apy_30d),
            "roi30d": format_percent(self.roi_30d),
            "finality": self.finality,
            "updatedAt": self.updated_at,
        }
        if self.balance_series is not None:
            data["balanceSeries"] = self.balance_series
        if self.message:
            data["message"] = self.message
        return data


@dataclass
class NodeRecord:
    """Avalanche validator node; amounts held in nano-AVAX"""
    node_id: str
    validation_status: Optional[str] = None
    amount_staked: Optional[int] = None
    amount_delegated: Optional[int] = None
    delegator_count: Optional[int] = None
    delegation_fee_pct: Optional[float] = None
    validation_reward: Optional[int] = None
    delegation_reward: Optional[int] = None
    updated_at: int = field(default_factory=now_ms)
    message: Optional[str] = None

    @classmethod
    def error(cls, node_id: str, message: str) -> "NodeRecord":
        return cls(node_id=node_id, validation_status="error", message=message)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "nodeId": self.node_id,
            "validationStatus": self.validation_status,
            "amountStakedAvax": format_avax(self.amount_staked),
            "amountDelegatedAvax": format_avax(self.amount_delegated),
            "delegatorCount": self.delegator_count,
            "delegationFeePct": self.delegation_fee_pct,
            "validationRewardAvax": format_avax(self.validation_reward, digits=4),
            "delegationRewardAvax": format_avax(self.delegation_reward, digits=4),
            "updatedAt": self.updated_at,
        }
        if self.message:
            data["status"] = "error"
            data["message"] = self.message
        return data


@dataclass
class ChainStats:
    """Network-wide staking stats; None marks a field the upstream did not supply"""
    chain: Chain
    source: str
    active_validators: Optional[int] = None
    total_staked: Optional[str] = None
    apr: Optional[float] = None
    entry_queue: Optional[str] = None
    exit_queue: Optional[str] = None
    churn_limit: Optional[str] = None
    updated_at: int = field(default_factory=now_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chain": self.chain.value,
            "activeValidators": self.active_validators,
            "totalStaked": self.total_staked,
            "apr": round(self.apr, 2) if self.apr is not None else None,
            "entryQueue": self.entry_queue,
            "exitQueue": self.exit_queue,
            "churnLimit": self.churn_limit,
            "updatedAt": self.updated_at,
            "source": self.source,
        }


@dataclass
class SeriesPoint:
    t: int  # ms since epoch
    v: float

    def to_dict(self) -> Dict[str, Any]:
        return {"t": self.t, "v": self.v}


@dataclass
class Candle:
    t: int  # Monday 00:00 UTC, ms
    o: float
    h: float
    l: float
    c: float

    def to_dict(self) -> Dict[str, Any]:
        return {"t": self.t, "o": self.o, "h": self.h, "l": self.l, "c": self.c}


@dataclass
class ChartSeries:
    chain: Chain
    tvl: List[SeriesPoint] = field(default_factory=list)
    volume_weekly: List[Candle] = field(default_factory=list)
    source: Dict[str, str] = field(default_factory=dict)
    updated_at: int = field(default_factory=now_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chain": self.chain.value,
            "tvl": [point.to_dict() for point in self.tvl],
            "volumeWeekly": [candle.to_dict() for candle in self.volume_weekly],
            "updatedAt": self.updated_at,
            "source": dict(self.source),
        }
