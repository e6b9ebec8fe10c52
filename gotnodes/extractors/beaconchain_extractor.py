#!/usr/bin/env python3
"""
Beaconcha.in Extractor
Ethereum validator lookups (v2 batch, v1 per-validator) and network stats
"""

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from ..assembler import is_eth_index
from ..concurrency import run_branches
from ..exceptions import PartialRecordError, UpstreamError
from ..models import Chain, ChainStats, ValidatorRecord
from ..normalizer import FieldSpec, key_path, normalize
from ..upstream import UpstreamClient
from ..utils import format_amount, gwei_to_eth, to_int, to_num

logger = logging.getLogger(__name__)

# Text beaconcha.in returns when the plan does not allow v2 selectors
SELECTOR_TIER_MARKERS = [
    "validator selector type not allowed",
    "subscription tier",
    "upgrade your subscription",
]

V2_ROW_FIELDS = [
    FieldSpec("validator_id", [key_path("validator", "index"), key_path("index")], to_int),
    FieldSpec("pubkey", [key_path("validator", "public_key"), key_path("validator", "pubkey"), key_path("pubkey")]),
    FieldSpec("status", [key_path("status")]),
    FieldSpec("online", [key_path("online")]),
    FieldSpec("balance_eth", [key_path("balances", "current"), key_path("balance")], gwei_to_eth),
    FieldSpec("effective_balance_eth", [key_path("balances", "effective"), key_path("effective_balance")],
              gwei_to_eth),
]

V2_APY_FIELDS = [
    FieldSpec("apy_30d", [key_path("data", "combined", "apy", "total")], to_num),
    FieldSpec("roi_30d", [key_path("data", "combined", "roi", "total")], to_num),
    FieldSpec("finality", [key_path("data", "finality")], str),
]

V1_VALIDATOR_FIELDS = [
    FieldSpec("validator_id", [key_path("validatorindex"), key_path("index")], to_int),
    FieldSpec("pubkey", [key_path("pubkey")]),
    FieldSpec("status", [key_path("status"), key_path("state")], str),
    FieldSpec("balance_eth", [key_path("balance")], gwei_to_eth),
    FieldSpec("effective_balance_eth", [key_path("effectivebalance"), key_path("effective_balance")], gwei_to_eth),
]

EPOCH_FIELDS = [
    FieldSpec("active_validators", [key_path("data", "validatorscount"), key_path("data", "active_validators")],
              to_int),
    FieldSpec("total_staked_eth", [key_path("data", "totalvalidatorbalance"), key_path("data", "eligibleether")],
              gwei_to_eth),
]

QUEUE_FIELDS = [
    FieldSpec("entering", [key_path("data", "beaconchain_entering")], to_int),
    FieldSpec("exiting", [key_path("data", "beaconchain_exiting")], to_int),
]


def is_selector_tier_error(text: Any) -> bool:
    lowered = str(text or "").lower()
    return any(marker in lowered for marker in SELECTOR_TIER_MARKERS)


def _v1_row(payload: Any) -> Dict[str, Any]:
    """v1 wraps the record in `data`, as an object or a one-item list"""
    data = payload.get("data") if isinstance(payload, dict) else None
    if isinstance(data, list):
        data = data[0] if data and isinstance(data[0], dict) else None
    if isinstance(data, dict):
        return data
    if isinstance(payload, dict):
        return payload
    return {}


def _queue_summary(count: Optional[int]) -> Optional[str]:
    if count is None:
        return None
    return f"{count:,} validators"


class BeaconchainExtractor:
    """Handles beaconcha.in API extraction"""

    PROVIDER = "beaconchain"

    def __init__(self, client: UpstreamClient, api_key: Optional[str] = None, max_workers: int = 4,
                 network: str = "mainnet"):
        self.client = client
        self.api_key = api_key
        self.max_workers = max_workers
        self.network = network
        self.logger = logger

    def _headers(self) -> Dict[str, str]:
        return self.client.headers_for(self.PROVIDER, self.api_key)

    def _url(self, path: str) -> str:
        return self.client.url_for(self.PROVIDER, path)

    def _validator_url(self, identifier: str, suffix: str = "") -> str:
        return self._url(f"/api/v1/validator/{quote(identifier, safe='')}{suffix}")

    # ------------------------------------------------------------------
    # Validator lookup
    # ------------------------------------------------------------------

    def lookup_v2(self, identifiers: List[str], window: str = "30d") -> Dict[str, ValidatorRecord]:
        """
        Batched lookup via the v2 API (overview + APY/ROI issued concurrently)

        Returns:
            Records keyed by the requested identifier that matched them

        Raises:
            UpstreamError: the overview call failed or returned an unexpected shape
        """
        selector = {"validator_identifiers": [int(i) if is_eth_index(i) else i for i in identifiers]}
        overview_body = {
            "chain": self.network,
            "page_size": min(50, max(1, len(identifiers))),
            "cursor": "",
            "validator": selector,
        }
        apy_body = {
            "chain": self.network,
            "validator": selector,
            "range": {"evaluation_window": window},
        }

        outcomes = run_branches({
            "overview": lambda: self.client.post_json(
                self.PROVIDER, self._url("/api/v2/ethereum/validators"), overview_body, headers=self._headers()),
            "apy": lambda: self.client.post_json(
                self.PROVIDER, self._url("/api/v2/ethereum/validators/apy-roi"), apy_body, headers=self._headers()),
        }, max_workers=self.max_workers)

        overview = outcomes["overview"].unwrap()
        rows = overview.get("data") if isinstance(overview, dict) else None
        if not isinstance(rows, list):
            raise UpstreamError(self.PROVIDER, "unexpected v2 overview schema")

        apy_fields = {"apy_30d": None, "roi_30d": None, "finality": None}
        if outcomes["apy"].ok:
            apy_fields = normalize(outcomes["apy"].value, V2_APY_FIELDS)
        else:
            self.logger.warning(f"beaconcha.in v2 APY/ROI unavailable: {outcomes['apy'].error}")

        by_key: Dict[str, ValidatorRecord] = {}
        for row in rows:
            if not isinstance(row, dict):
                continue
            fields = normalize(row, V2_ROW_FIELDS)
            online = fields["online"] if isinstance(fields["online"], bool) else None
            record = ValidatorRecord(
                identifier="",
                validator_id=fields["validator_id"],
                pubkey=fields["pubkey"],
                status=fields["status"],
                online=online,
                balance_eth=fields["balance_eth"],
                effective_balance_eth=fields["effective_balance_eth"],
                **apy_fields,
            )
            if record.validator_id is not None:
                by_key[str(record.validator_id)] = record
            if record.pubkey:
                by_key[str(record.pubkey).lower()] = record

        resolved = {}
        for identifier in identifiers:
            record = by_key.get(identifier.lower())
            if record is not None:
                resolved[identifier] = replace(record, identifier=identifier)

        self.logger.info(f"beaconcha.in v2 resolved {len(resolved)}/{len(identifiers)} validators")
        return resolved

    def lookup_v1(self, identifier: str, include_series: bool = False) -> ValidatorRecord:
        """Per-validator lookup on the plan-friendly v1 API (no APY/ROI, no online flag)"""
        payload = self.client.get_json(self.PROVIDER, self._validator_url(identifier),
                                       headers=self._headers())
        row = _v1_row(payload)
        if not row:
            raise UpstreamError(self.PROVIDER, f"no v1 record for {identifier}")

        fields = normalize(row, V1_VALIDATOR_FIELDS)
        if fields["validator_id"] is None and is_eth_index(identifier):
            fields["validator_id"] = int(identifier)
        if fields["status"] is None:
            fields["status"] = "unknown"

        latest = self._latest_balance(identifier)
        if latest is not None:
            fields["balance_eth"] = latest

        record = ValidatorRecord(identifier=identifier, **fields)
        if include_series:
            record.balance_series = self._optional_series(identifier)
        return record

    def lookup_v1_batch(self, identifiers: List[str],
                        include_series: bool = False) -> Tuple[Dict[str, ValidatorRecord], Dict[str, Exception]]:
        """v1 fan-out; one failing identifier only marks its own record"""
        outcomes = run_branches(
            {identifier: (lambda i=identifier: self.lookup_v1(i, include_series)) for identifier in identifiers},
            max_workers=self.max_workers,
        )

        resolved, failures = {}, {}
        for identifier, outcome in outcomes.items():
            if outcome.ok:
                resolved[identifier] = outcome.value
            else:
                failures[identifier] = PartialRecordError(identifier, str(outcome.error))
        return resolved, failures

    def _latest_balance(self, identifier: str) -> Optional[float]:
        """Newest balance snapshot; not every plan exposes it, so failures are ignored"""
        try:
            payload = self.client.get_json(self.PROVIDER, self._validator_url(identifier, "/balance"),
                                           headers=self._headers())
        except UpstreamError as e:
            self.logger.debug(f"v1 balance for {identifier} unavailable: {e}")
            return None
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            return None
        return gwei_to_eth(data[0].get("balance"))

    def balance_series(self, identifier: str) -> List[float]:
        """Balance history in ETH, oldest first"""
        payload = self.client.get_json(self.PROVIDER,
                                       self._validator_url(identifier, "/balancehistory"),
                                       headers=self._headers())
        rows = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(rows, list):
            raise UpstreamError(self.PROVIDER, "unexpected balance history schema")

        points = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            epoch = to_int(row.get("epoch"))
            balance = gwei_to_eth(row.get("balance"))
            if balance is not None:
                points.append((epoch if epoch is not None else 0, balance))
        points.sort(key=lambda point: point[0])
        return [balance for _, balance in points]

    def _optional_series(self, identifier: str) -> Optional[List[float]]:
        try:
            return self.balance_series(identifier)
        except UpstreamError as e:
            self.logger.warning(f"Balance series for {identifier} unavailable: {e}")
            return None

    def attach_series(self, records: Dict[str, ValidatorRecord]):
        """Fetch balance series for already-resolved records in parallel"""
        outcomes = run_branches(
            {identifier: (lambda i=identifier: self.balance_series(i)) for identifier in records},
            max_workers=self.max_workers,
        )
        for identifier, outcome in outcomes.items():
            if outcome.ok:
                records[identifier].balance_series = outcome.value
            else:
                self.logger.warning(f"Balance series for {identifier} unavailable: {outcome.error}")

    # ------------------------------------------------------------------
    # Network stats
    # ------------------------------------------------------------------

    def network_stats(self) -> ChainStats:
        """
        Ethereum staking stats from the authenticated API.

        The latest-epoch call is required; queue and ETH.STORE APR are
        independent branches whose failure only leaves their fields unknown.
        """
        outcomes = run_branches({
            "epoch": lambda: self.client.get_json(self.PROVIDER, self._url("/api/v1/epoch/latest"),
                                                  headers=self._headers()),
            "queue": lambda: self.client.get_json(self.PROVIDER, self._url("/api/v1/validators/queue"),
                                                  headers=self._headers()),
            "ethstore": lambda: self.client.get_json(self.PROVIDER, self._url("/api/v1/ethstore/latest"),
                                                     headers=self._headers()),
        }, max_workers=self.max_workers)

        epoch = normalize(outcomes["epoch"].unwrap(), EPOCH_FIELDS)
        if epoch["active_validators"] is None and epoch["total_staked_eth"] is None:
            raise UpstreamError(self.PROVIDER, "unexpected epoch schema")

        queue = {"entering": None, "exiting": None}
        if outcomes["queue"].ok:
            queue = normalize(outcomes["queue"].value, QUEUE_FIELDS)
        else:
            self.logger.warning(f"beaconcha.in queue unavailable: {outcomes['queue'].error}")

        apr = None
        if outcomes["ethstore"].ok:
            apr_fraction = to_num(key_path("data", "apr")(outcomes["ethstore"].value))
            apr = apr_fraction * 100 if apr_fraction is not None else None
        else:
            self.logger.warning(f"beaconcha.in ETH.STORE unavailable: {outcomes['ethstore'].error}")

        return ChainStats(
            chain=Chain.ETHEREUM,
            source=self.PROVIDER,
            active_validators=epoch["active_validators"],
            total_staked=format_amount(epoch["total_staked_eth"], "ETH"),
            apr=apr,
            entry_queue=_queue_summary(queue["entering"]),
            exit_queue=_queue_summary(queue["exiting"]),
        )
