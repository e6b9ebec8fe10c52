#!/usr/bin/env python3
"""
Glacier Extractor
Avalanche validator nodes and network stats from the Glacier / Data API
"""

import logging
from typing import Any, Dict, List, Optional

from ..exceptions import UpstreamError
from ..models import Chain, ChainStats, NodeRecord
from ..normalizer import FieldSpec, key_path, normalize
from ..upstream import UpstreamClient
from ..utils import format_avax, nano_avax, to_int, to_num

logger = logging.getLogger(__name__)

NODE_FIELDS = [
    FieldSpec("validation_status", [key_path("validationStatus")]),
    FieldSpec("amount_staked", [key_path("amountStaked")], nano_avax),
    FieldSpec("amount_delegated", [key_path("amountDelegated")], nano_avax),
    FieldSpec("delegator_count", [key_path("delegatorCount")], to_int),
    FieldSpec("delegation_fee_pct", [key_path("delegationFee")], to_num),
    FieldSpec("validation_reward", [key_path("rewards", "validationRewardAmount")], nano_avax),
    FieldSpec("delegation_reward", [key_path("rewards", "delegationRewardAmount")], nano_avax),
]

NETWORK_FIELDS = [
    FieldSpec("active_validators", [key_path("validatorDetails", "validatorCount")], to_int),
    FieldSpec("total_staked", [key_path("validatorDetails", "totalAmountStaked")], nano_avax),
]


class GlacierExtractor:
    """Handles Avalanche Glacier API extraction"""

    PROVIDER = "glacier"
    PUBLIC_PROVIDER = "avax_data_api"

    def __init__(self, client: UpstreamClient, api_key: Optional[str] = None, network: str = "mainnet"):
        self.client = client
        self.api_key = api_key
        self.network = network
        self.logger = logger

    def lookup_validators(self, node_ids: List[str]) -> Dict[str, NodeRecord]:
        """
        Resolve node IDs in one call

        Returns:
            Records keyed by nodeId (only the IDs Glacier returned)

        Raises:
            UpstreamError: provider-wide failure or unexpected response shape
        """
        if not node_ids:
            return {}

        url = self.client.url_for(self.PROVIDER, f"/v1/networks/{self.network}/validators")
        params = {
            "nodeIds": ",".join(node_ids),
            "pageSize": str(min(100, max(1, len(node_ids)))),
        }
        payload = self.client.get_json(self.PROVIDER, url, headers=self.client.headers_for(self.PROVIDER, self.api_key),
                                       params=params)

        rows = payload.get("validators") if isinstance(payload, dict) else None
        if not isinstance(rows, list):
            raise UpstreamError(self.PROVIDER, "unexpected validators schema")

        records = {}
        for row in rows:
            if not isinstance(row, dict) or not row.get("nodeId"):
                continue
            node_id = str(row["nodeId"])
            records[node_id] = NodeRecord(node_id=node_id, **normalize(row, NODE_FIELDS))

        self.logger.info(f"Glacier resolved {len(records)}/{len(node_ids)} nodes")
        return records

    def network_stats(self, public: bool = False) -> ChainStats:
        """
        Network-wide staking stats

        Args:
            public: Use the unauthenticated Data API host instead of Glacier
        """
        provider = self.PUBLIC_PROVIDER if public else self.PROVIDER
        key = None if public else self.api_key
        url = self.client.url_for(provider, f"/v1/networks/{self.network}")
        payload = self.client.get_json(provider, url, headers=self.client.headers_for(provider, key))

        if not isinstance(payload, dict) or not isinstance(payload.get("validatorDetails"), dict):
            raise UpstreamError(provider, "unexpected network details schema")

        fields = normalize(payload, NETWORK_FIELDS)
        total = format_avax(fields["total_staked"])

        # Entry/exit queues and churn have no Avalanche equivalent upstream
        return ChainStats(
            chain=Chain.AVALANCHE,
            source=provider,
            active_validators=fields["active_validators"],
            total_staked=f"{total} AVAX" if total is not None else None,
        )
