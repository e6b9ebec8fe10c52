#!/usr/bin/env python3
"""
Metrics Aggregator
Entry points behind every dashboard endpoint: validator lookups, chain stats,
chain charts and the chain TVL summary
"""

import sys
import logging
from typing import Any, Callable, Dict, Optional

from .assembler import (
    assemble,
    check_identifiers,
    clamp_identifiers,
    is_avax_identifier,
    is_eth_identifier,
)
from .cache import TTLCache
from .charts import to_weekly_candles
from .concurrency import run_branches
from .config import Settings
from .exceptions import UpstreamError
from .extractors import BeaconchainExtractor, GlacierExtractor, LlamaExtractor, ValidatorQueueExtractor
from .extractors.beaconchain_extractor import is_selector_tier_error
from .models import Chain, ChainStats, ChartSeries, NodeRecord, ValidatorRecord
from .upstream import UpstreamClient
from .utils import tail


def setup_logging(level=logging.INFO):
    """Set up logging configuration to stderr only"""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        stream=sys.stderr
    )


logger = logging.getLogger(__name__)

# Points kept per chart series
CHART_POINTS = 180


class MetricsAggregator:
    """Normalizes heterogeneous upstream metrics into the dashboard contract"""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[UpstreamClient] = None):
        self.settings = settings or Settings()
        self.client = client or UpstreamClient(
            timeout=self.settings.timeout,
            cache=TTLCache(default_ttl=self.settings.tvl_cache_ttl),
        )
        if self.client.cache is None:
            self.client.cache = TTLCache(default_ttl=self.settings.tvl_cache_ttl)

        self.beaconchain = BeaconchainExtractor(
            self.client,
            self.settings.beaconchain_api_key,
            max_workers=self.settings.max_workers,
            network=self.settings.network,
        )
        self.glacier = GlacierExtractor(self.client, self.settings.glacier_api_key, network=self.settings.network)
        self.llama = LlamaExtractor(
            self.client,
            self.settings.llama_api_key,
            max_workers=self.settings.max_workers,
            cache_ttl=self.settings.tvl_cache_ttl,
        )
        self.validatorqueue = ValidatorQueueExtractor(self.client)

    # ------------------------------------------------------------------
    # validator-lookup
    # ------------------------------------------------------------------

    def validator_lookup(self, chain: Any, identifiers: Any, include_series: bool = False,
                         window: str = "30d") -> Dict[str, Any]:
        """
        One record per requested identifier, in request order (first 50 only)

        Args:
            chain: ethereum or avalanche
            identifiers: Public keys / indices (Ethereum) or NodeIDs (Avalanche)
            include_series: Attach balance history (Ethereum only)
            window: APY/ROI evaluation window (Ethereum v2 only)
        """
        chain = Chain.parse(chain)
        if chain is Chain.ETHEREUM:
            return self._lookup_ethereum(identifiers, include_series, window)
        return self._lookup_avalanche(identifiers)

    def _lookup_ethereum(self, identifiers: Any, include_series: bool, window: str) -> Dict[str, Any]:
        self.settings.require("beaconchain_api_key")
        requested = clamp_identifiers(identifiers)
        if not requested:
            return {"validators": [], "source": None}

        failures = check_identifiers(requested, is_eth_identifier, "validator identifier")
        valid = list(dict.fromkeys(i for i in requested if i not in failures))

        resolved: Dict[str, ValidatorRecord] = {}
        source = "beaconchain_v2"
        note = None
        if valid:
            try:
                resolved = self.beaconchain.lookup_v2(valid, window)
                if include_series and resolved:
                    self.beaconchain.attach_series(resolved)
            except UpstreamError as e:
                if is_selector_tier_error(e.body or str(e)):
                    note = "Beaconcha v2 selector restricted on this API plan. Served via v1 fallback (no APY/ROI)."
                else:
                    note = "Beaconcha v2 unavailable. Served via v1 fallback (no APY/ROI)."
                logger.info(f"beaconcha.in v2 lookup failed ({e}); falling back to per-validator v1")
                source = "beaconchain_v1"
                resolved, v1_failures = self.beaconchain.lookup_v1_batch(valid, include_series)
                failures.update(v1_failures)

        records = assemble(requested, resolved, failures, ValidatorRecord.error)
        response = {"validators": [record.to_dict() for record in records], "source": source}
        if note:
            response["note"] = note
        return response

    def _lookup_avalanche(self, identifiers: Any) -> Dict[str, Any]:
        self.settings.require("glacier_api_key")
        requested = clamp_identifiers(identifiers)
        if not requested:
            return {"validators": [], "source": None}

        failures = check_identifiers(requested, is_avax_identifier, "node ID")
        valid = list(dict.fromkeys(i for i in requested if i not in failures))

        resolved: Dict[str, NodeRecord] = self.glacier.lookup_validators(valid) if valid else {}
        records = assemble(requested, resolved, failures, NodeRecord.error)
        return {"validators": [record.to_dict() for record in records], "source": GlacierExtractor.PROVIDER}

    # ------------------------------------------------------------------
    # chain-stats
    # ------------------------------------------------------------------

    def chain_stats(self, chain: Any) -> ChainStats:
        """Primary source first, public fallback on any primary failure"""
        chain = Chain.parse(chain)
        if chain is Chain.ETHEREUM:
            self.settings.require("beaconchain_api_key")
            return self._with_fallback(chain, self.beaconchain.network_stats, self.validatorqueue.scrape_stats)

        self.settings.require("glacier_api_key")
        return self._with_fallback(
            chain,
            lambda: self.glacier.network_stats(public=False),
            lambda: self.glacier.network_stats(public=True),
        )

    def _with_fallback(self, chain: Chain, primary: Callable[[], ChainStats],
                       fallback: Callable[[], ChainStats]) -> ChainStats:
        try:
            stats = primary()
            logger.info(f"{chain.value} stats served by {stats.source}")
            return stats
        except UpstreamError as e:
            logger.warning(f"{chain.value} stats primary failed, switching to fallback: {e}")

        # Each path runs once; a fallback failure propagates on its own
        stats = fallback()
        logger.info(f"{chain.value} stats served by fallback {stats.source}")
        return stats

    # ------------------------------------------------------------------
    # chain-charts
    # ------------------------------------------------------------------

    def chain_charts(self, chain: Any) -> ChartSeries:
        """TVL points and weekly volume candles; TVL is required, volume degrades"""
        chain = Chain.parse(chain)
        outcomes = run_branches({
            "tvl": lambda: self.llama.tvl_history(chain),
            "volume": lambda: self.llama.dex_volume(chain),
        }, max_workers=self.settings.max_workers)

        tvl_points, tvl_source = outcomes["tvl"].unwrap()
        tvl_points = tail(tvl_points, CHART_POINTS)

        if outcomes["volume"].ok:
            volume_points, volume_source = outcomes["volume"].value
            candles = to_weekly_candles(tail(volume_points, CHART_POINTS))
        else:
            logger.warning(f"{chain.value} volume series unavailable, candles derived from TVL: "
                           f"{outcomes['volume'].error}")
            candles = to_weekly_candles(tvl_points)
            volume_source = f"tvl weekly ({tvl_source})"

        return ChartSeries(
            chain=chain,
            tvl=tvl_points,
            volume_weekly=candles,
            source={"tvl": tvl_source, "volume": volume_source},
        )

    # ------------------------------------------------------------------
    # chain TVL summary
    # ------------------------------------------------------------------

    def chain_tvl(self, chain: Any) -> Dict[str, Any]:
        chain = Chain.parse(chain)
        self.settings.require("llama_api_key")
        return self.llama.tvl_summary(chain)
