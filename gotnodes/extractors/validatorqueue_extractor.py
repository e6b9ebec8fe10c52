#!/usr/bin/env python3
"""
Validator Queue Extractor
Public, unauthenticated Ethereum stats scraped from validatorqueue.com
"""

import logging

from ..exceptions import UpstreamError
from ..models import Chain, ChainStats
from ..normalizer import FieldSpec, normalize, pattern
from ..upstream import UpstreamClient
from ..utils import format_amount, to_int, to_num

logger = logging.getLogger(__name__)

# Section labels that end a free-text queue summary
_NEXT_SECTION = r"(?=\s*(?:Entry Queue|Exit Queue|Churn|Active Validators|Staked|APR|$))"

# Patterns run against whitespace-collapsed page text, most specific first
SCRAPE_FIELDS = [
    FieldSpec("active_validators", [
        pattern(r"Active Validators\s*:?\s*([\d,]+)"),
        pattern(r"([\d,]+)\s+active validators"),
    ], to_int),
    FieldSpec("total_staked_eth", [
        pattern(r"(?:Total\s+)?Staked(?:\s+ETH)?\s*:?\s*([\d,]+(?:\.\d+)?)"),
        pattern(r"([\d,]+(?:\.\d+)?)\s*ETH\s+staked"),
    ], to_num),
    FieldSpec("apr", [
        pattern(r"APR\s*:?\s*([\d.]+)\s*%"),
        pattern(r"([\d.]+)\s*%\s*APR"),
    ], to_num),
    FieldSpec("entry_queue", [
        pattern(r"Entry Queue\s*:?\s*(.{1,80}?)" + _NEXT_SECTION),
        pattern(r"Entry Queue\s*:?\s*([\d,]+\s*(?:validators)?)"),
    ]),
    FieldSpec("exit_queue", [
        pattern(r"Exit Queue\s*:?\s*(.{1,80}?)" + _NEXT_SECTION),
        pattern(r"Exit Queue\s*:?\s*([\d,]+\s*(?:validators)?)"),
    ]),
    FieldSpec("churn_limit", [
        pattern(r"Churn(?: Limit)?\s*:?\s*([\d,]+(?:\.\d+)?\s*(?:validators|ETH)?(?:\s*(?:/|per)\s*(?:epoch|day))?)"),
    ]),
]


class ValidatorQueueExtractor:
    """Handles the validatorqueue.com HTML scrape"""

    PROVIDER = "validatorqueue"

    def __init__(self, client: UpstreamClient):
        self.client = client
        self.logger = logger

    def scrape_stats(self) -> ChainStats:
        """
        Ethereum stats from the public queue page

        Fields the page does not show stay None.

        Raises:
            UpstreamError: page unreachable or none of the fields recognised
        """
        text = self.client.get_text(self.PROVIDER, self.client.url_for(self.PROVIDER, "/"))
        fields = normalize(text, SCRAPE_FIELDS)

        if all(value is None for value in fields.values()):
            raise UpstreamError(self.PROVIDER, "no recognizable stats in page")

        missing = [name for name, value in fields.items() if value is None]
        if missing:
            self.logger.debug(f"validatorqueue.com page missing: {', '.join(missing)}")

        return ChainStats(
            chain=Chain.ETHEREUM,
            source=self.PROVIDER,
            active_validators=fields["active_validators"],
            total_staked=format_amount(fields["total_staked_eth"], "ETH"),
            apr=fields["apr"],
            entry_queue=fields["entry_queue"],
            exit_queue=fields["exit_queue"],
            churn_limit=fields["churn_limit"],
        )
