#!/usr/bin/env python3
"""
DefiLlama Extractor
Chain TVL history, DEX volume series, fees and stablecoin dominance
"""

import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from ..charts import VOLUME_EXTRACTORS, find_volume_series, normalize_series
from ..concurrency import run_branches
from ..exceptions import UpstreamError
from ..models import Chain, SeriesPoint
from ..normalizer import FieldSpec, key_path, normalize
from ..upstream import Candidate, UpstreamClient
from ..utils import now_ms, percent_change, tail, to_num

logger = logging.getLogger(__name__)

FEES_FIELDS = [
    FieldSpec("totalFees24h", [key_path("totalFees24h"), key_path("fees24h")], to_num),
    FieldSpec("totalRevenue24h", [key_path("totalRevenue24h"), key_path("revenue24h")], to_num),
    FieldSpec("change_1d", [key_path("change_1d")], to_num),
]

STABLECOIN_FIELDS = [
    FieldSpec("dominance", [key_path("dominance")], to_num),
    FieldSpec("totalCirculating", [key_path("totalCirculating")], to_num),
]

LARGEST_STABLECOIN_FIELDS = [
    FieldSpec("name", [key_path("name")], str),
    FieldSpec("symbol", [key_path("symbol")], str),
    FieldSpec("circulating", [key_path("circulating")], to_num),
    FieldSpec("dominance", [key_path("dominance")], to_num),
]


def _volume_points(payload: Any) -> List[SeriesPoint]:
    return normalize_series(find_volume_series(payload) or [], VOLUME_EXTRACTORS)


class LlamaExtractor:
    """Handles DefiLlama pro and open API extraction"""

    PRO = "llama_pro"
    OPEN = "llama"

    def __init__(self, client: UpstreamClient, api_key: Optional[str] = None, max_workers: int = 4,
                 cache_ttl: int = 120):
        self.client = client
        self.api_key = api_key
        self.max_workers = max_workers
        self.cache_ttl = cache_ttl
        self.logger = logger

    def _candidates(self, pro_path: str, open_path: str) -> List[Candidate]:
        """Pro host first when a key is configured, then the open API"""
        candidates = []
        if self.api_key:
            candidates.append(Candidate(self.PRO, self.client.url_for(self.PRO, pro_path, self.api_key)))
        candidates.append(Candidate(self.OPEN, self.client.url_for(self.OPEN, open_path)))
        return candidates

    @staticmethod
    def _source(candidate: Candidate, path: str) -> str:
        host = "pro-api.llama.fi" if candidate.provider == "llama_pro" else "api.llama.fi"
        return f"{host} {path}"

    def tvl_history(self, chain: Chain) -> Tuple[List[SeriesPoint], str]:
        """Daily chain TVL, oldest first, with the host that served it"""
        name = quote(chain.display_name)
        candidates = self._candidates(f"/api/v2/historicalChainTvl/{name}", f"/v2/historicalChainTvl/{name}")
        payload, candidate = self.client.first_available(candidates, validate=lambda p: isinstance(p, list))

        points = normalize_series(payload)
        if not points:
            raise UpstreamError(candidate.provider, "tvl series empty")
        return points, self._source(candidate, f"/historicalChainTvl/{chain.display_name}")

    def dex_volume(self, chain: Chain) -> Tuple[List[SeriesPoint], str]:
        """Daily DEX volume, oldest first"""
        name = quote(chain.value)
        candidates = self._candidates(f"/overview/dexs/{name}", f"/overview/dexs/{name}")
        payload, candidate = self.client.first_available(candidates, validate=lambda p: bool(_volume_points(p)))
        return _volume_points(payload), self._source(candidate, f"/overview/dexs/{chain.value}")

    # ------------------------------------------------------------------
    # Chain TVL summary (pro API, edge cached)
    # ------------------------------------------------------------------

    def _pro_get(self, path: str) -> Any:
        url = self.client.url_for(self.PRO, path, self.api_key)
        return self.client.get_json(self.PRO, url, cache_ttl=self.cache_ttl)

    def _fees(self, chain: Chain) -> Tuple[Dict[str, Any], List[float]]:
        raw = self._pro_get(f"/api/overview/fees/{quote(chain.display_name)}")
        fees = normalize(raw, FEES_FIELDS)
        series = []
        chart = raw.get("totalDataChart") if isinstance(raw, dict) else None
        if isinstance(chart, list):
            for row in tail(chart, 30):
                value = to_num(row[1]) if isinstance(row, list) and len(row) > 1 else None
                if value is not None:
                    series.append(value)
        return fees, series

    def _stablecoins(self, chain: Chain) -> Dict[str, Any]:
        raw = self._pro_get(f"/stablecoins/stablecoindominance/{quote(chain.display_name)}")
        stable = normalize(raw, STABLECOIN_FIELDS)
        largest = raw.get("largestStablecoin") if isinstance(raw, dict) else None
        stable["largestStablecoin"] = normalize(largest, LARGEST_STABLECOIN_FIELDS) if isinstance(largest, dict) else None
        return stable

    def tvl_summary(self, chain: Chain) -> Dict[str, Any]:
        """
        Current TVL with 7d/30d change plus fees and stablecoin blocks.

        History is required; fees and stablecoins are independent branches
        that degrade to null.
        """
        outcomes = run_branches({
            "history": lambda: self._pro_get(f"/api/v2/historicalChainTvl/{quote(chain.display_name)}"),
            "fees": lambda: self._fees(chain),
            "stablecoins": lambda: self._stablecoins(chain),
        }, max_workers=self.max_workers)

        history = outcomes["history"].unwrap()
        if not isinstance(history, list):
            raise UpstreamError(self.PRO, "unexpected historicalChainTvl schema")
        values = [point.v for point in normalize_series(history)]

        current = values[-1] if values else None
        change_7d = percent_change(current, values[-8]) if len(values) >= 8 else None
        change_30d = percent_change(current, values[-31]) if len(values) >= 31 else None

        fees, fees_series = None, []
        if outcomes["fees"].ok:
            fees, fees_series = outcomes["fees"].value
        else:
            self.logger.warning(f"DefiLlama fees for {chain.display_name} unavailable: {outcomes['fees'].error}")

        stablecoins = None
        if outcomes["stablecoins"].ok:
            stablecoins = outcomes["stablecoins"].value
        else:
            self.logger.warning(
                f"DefiLlama stablecoins for {chain.display_name} unavailable: {outcomes['stablecoins'].error}")

        return {
            "chain": chain.display_name,
            "tvl": {
                "current": current,
                "change7dPct": change_7d,
                "change30dPct": change_30d,
            },
            "fees": fees,
            "stablecoins": stablecoins,
            "series": {
                "tvl30d": tail(values, 30),
                "fees30d": fees_series,
            },
            "ts": now_ms(),
        }
