#!/usr/bin/env python3
"""
Tests for provider extractors against canned upstream payloads
"""

import pytest

from gotnodes.exceptions import UpstreamError
from gotnodes.extractors import BeaconchainExtractor, GlacierExtractor, LlamaExtractor, ValidatorQueueExtractor
from gotnodes.extractors.beaconchain_extractor import is_selector_tier_error
from gotnodes.models import Chain

PUBKEY = "0x" + "a1" * 48

QUEUE_PAGE = """
<html><head><script>window.__STATE__ = {"apr": 0, "Entry Queue": 1};</script></head>
<body>
  <div>Entry Queue</div><div>12,345 validators</div><div>Wait: 3 days, 4 hours</div>
  <div>Exit Queue</div><div>1,024 validators</div><div>Wait: 8 hours</div>
  <div>Churn Limit</div><div>8 validators/epoch</div>
  <div>Active Validators</div><div>1,012,345</div>
  <div>Staked ETH</div><div>34,123,456.78</div>
  <div>APR</div><div>2.94%</div>
</body></html>
"""


class TestValidatorQueueExtractor:
    def test_scrape_all_fields(self, client, stub_session):
        stub_session.add("GET", "validatorqueue.com/", text=QUEUE_PAGE)
        stats = ValidatorQueueExtractor(client).scrape_stats()

        assert stats.source == "validatorqueue"
        assert stats.active_validators == 1012345
        assert stats.total_staked == "34,123,456.78 ETH"
        assert stats.apr == pytest.approx(2.94)
        assert stats.entry_queue == "12,345 validators Wait: 3 days, 4 hours"
        assert stats.exit_queue == "1,024 validators Wait: 8 hours"
        assert stats.churn_limit == "8 validators/epoch"

    def test_missing_fields_stay_none(self, client, stub_session):
        stub_session.add("GET", "validatorqueue.com/", text="<p>Active Validators: 900,000</p>")
        stats = ValidatorQueueExtractor(client).scrape_stats()
        assert stats.active_validators == 900000
        assert stats.apr is None
        assert stats.entry_queue is None
        assert stats.churn_limit is None

    def test_attribute_text_is_not_scraped(self, client, stub_session):
        page = '<img alt="chart > APR 99%" src="x.png"><p>Active Validators 1,000</p>'
        stub_session.add("GET", "validatorqueue.com/", text=page)
        stats = ValidatorQueueExtractor(client).scrape_stats()
        assert stats.active_validators == 1000
        assert stats.apr is None

    def test_unrecognizable_page(self, client, stub_session):
        stub_session.add("GET", "validatorqueue.com/", text="<p>Under maintenance</p>")
        with pytest.raises(UpstreamError):
            ValidatorQueueExtractor(client).scrape_stats()


class TestBeaconchainExtractor:
    @pytest.fixture
    def extractor(self, client):
        return BeaconchainExtractor(client, "bc-key")

    def test_v2_matches_by_index_and_pubkey(self, extractor, stub_session):
        stub_session.add("POST", "/api/v2/ethereum/validators", {"data": [{
            "validator": {"index": 7, "public_key": PUBKEY.upper().replace("0X", "0x")},
            "status": "active_online",
            "online": True,
            "balances": {"current": "32100000000", "effective": "32000000000"},
        }]})
        stub_session.add("POST", "/api/v2/ethereum/validators/apy-roi", {"data": {
            "combined": {"apy": {"total": 3.1}, "roi": {"total": 0.25}},
            "finality": "finalized",
        }})

        resolved = extractor.lookup_v2(["7", PUBKEY, "8"])
        assert set(resolved) == {"7", PUBKEY}
        record = resolved["7"]
        assert record.identifier == "7"
        assert record.validator_id == 7
        assert record.online is True
        assert record.balance_eth == pytest.approx(32.1)
        assert record.apy_30d == pytest.approx(3.1)
        assert record.finality == "finalized"

        overview_call = stub_session.calls_to("/api/v2/ethereum/validators")[0]
        assert overview_call["json"]["validator"]["validator_identifiers"] == [7, PUBKEY, 8]
        assert overview_call["headers"]["Authorization"] == "Bearer bc-key"

    def test_v2_apy_failure_leaves_fields_empty(self, extractor, stub_session):
        stub_session.add("POST", "/api/v2/ethereum/validators", {"data": [{"validator": {"index": 7}}]})
        stub_session.add("POST", "/api/v2/ethereum/validators/apy-roi", status=500, text="boom")
        record = extractor.lookup_v2(["7"])["7"]
        assert record.apy_30d is None
        assert record.roi_30d is None

    def test_v2_schema_error(self, extractor, stub_session):
        stub_session.add("POST", "/api/v2/ethereum/validators", {"data": {"unexpected": True}})
        with pytest.raises(UpstreamError):
            extractor.lookup_v2(["7"])

    def test_v1_lookup_with_series(self, extractor, stub_session):
        stub_session.add("GET", "/api/v1/validator/42", {"data": [{
            "validatorindex": 42,
            "pubkey": PUBKEY,
            "status": "active_online",
            "balance": 32000000000,
            "effectivebalance": 32000000000,
        }]})
        stub_session.add("GET", "/api/v1/validator/42/balance", {"data": [{"balance": 32005000000}]})
        stub_session.add("GET", "/api/v1/validator/42/balancehistory", {"data": [
            {"epoch": 3, "balance": 32003000000},
            {"epoch": 1, "balance": 32001000000},
            {"epoch": 2, "balance": 32002000000},
        ]})

        record = extractor.lookup_v1("42", include_series=True)
        assert record.validator_id == 42
        assert record.balance_eth == pytest.approx(32.005)
        assert record.balance_series == pytest.approx([32.001, 32.002, 32.003])
        assert record.online is None

    def test_v1_status_defaults_to_unknown(self, extractor, stub_session):
        stub_session.add("GET", "/api/v1/validator/5", {"data": {"balance": 1000000000}})
        record = extractor.lookup_v1("5")
        assert record.status == "unknown"
        assert record.validator_id == 5

    def test_v1_pubkey_without_index_keeps_id_empty(self, extractor, stub_session):
        stub_session.add("GET", f"/api/v1/validator/{PUBKEY}", {"data": {"pubkey": PUBKEY, "status": "pending"}})
        record = extractor.lookup_v1(PUBKEY)
        assert record.validator_id is None
        assert record.pubkey == PUBKEY

    def test_v1_identifier_is_escaped_in_path(self, extractor, stub_session):
        with pytest.raises(UpstreamError):
            extractor.lookup_v1("0xab/../../epoch/latest?x=")

        urls = [call["url"] for call in stub_session.calls]
        assert urls[0].endswith("/api/v1/validator/0xab%2F..%2F..%2Fepoch%2Flatest%3Fx%3D")
        assert not any("/epoch/" in url for url in urls)

    def test_network_stats(self, extractor, stub_session):
        stub_session.add("GET", "/api/v1/epoch/latest", {"data": {
            "validatorscount": 1000000,
            "totalvalidatorbalance": 32000000000000000,
        }})
        stub_session.add("GET", "/api/v1/validators/queue", {"data": {
            "beaconchain_entering": 12000,
            "beaconchain_exiting": 300,
        }})
        stub_session.add("GET", "/api/v1/ethstore/latest", {"data": {"apr": 0.0312}})

        stats = extractor.network_stats()
        assert stats.active_validators == 1000000
        assert stats.total_staked == "32,000,000.00 ETH"
        assert stats.apr == pytest.approx(3.12)
        assert stats.entry_queue == "12,000 validators"
        assert stats.exit_queue == "300 validators"
        assert stats.churn_limit is None

    def test_selector_tier_detection(self):
        assert is_selector_tier_error('{"error": "Validator selector type not allowed"}')
        assert not is_selector_tier_error("internal server error")
        assert not is_selector_tier_error(None)


class TestGlacierExtractor:
    def test_lookup_validators(self, client, stub_session):
        stub_session.add("GET", "/v1/networks/mainnet/validators", {"validators": [{
            "nodeId": "NodeID-A",
            "validationStatus": "active",
            "amountStaked": "2000000000000",
            "amountDelegated": "0",
            "delegatorCount": 3,
            "delegationFee": "2.0000",
            "rewards": {"validationRewardAmount": "123456789"},
        }]})

        records = GlacierExtractor(client, "glacier-key").lookup_validators(["NodeID-A", "NodeID-B"])
        assert list(records) == ["NodeID-A"]
        data = records["NodeID-A"].to_dict()
        assert data["amountStakedAvax"] == "2,000.00"
        assert data["amountDelegatedAvax"] == "0.00"
        assert data["delegatorCount"] == 3
        assert data["delegationFeePct"] == 2.0
        assert data["validationRewardAvax"] == "0.1234"
        assert data["delegationRewardAvax"] is None

        call = stub_session.calls[0]
        assert call["params"]["nodeIds"] == "NodeID-A,NodeID-B"
        assert call["headers"]["x-glacier-api-key"] == "glacier-key"

    def test_unexpected_schema(self, client, stub_session):
        stub_session.add("GET", "/v1/networks/mainnet/validators", {"items": []})
        with pytest.raises(UpstreamError):
            GlacierExtractor(client, "glacier-key").lookup_validators(["NodeID-A"])

    def test_public_network_stats_sends_no_key(self, client, stub_session):
        stub_session.add("GET", "data-api.avax.network/v1/networks/mainnet", {"validatorDetails": {
            "validatorCount": 1200,
            "totalAmountStaked": "250000000000000000",
        }})
        stats = GlacierExtractor(client, "glacier-key").network_stats(public=True)
        assert stats.source == "avax_data_api"
        assert stats.total_staked == "250,000,000.00 AVAX"
        assert "x-glacier-api-key" not in stub_session.calls[0]["headers"]


class TestLlamaExtractor:
    def test_pro_host_first_when_keyed(self, client, stub_session):
        stub_session.add("GET", "pro-api.llama.fi/lk/api/v2/historicalChainTvl/Ethereum",
                         [{"date": 1704067200, "tvl": 10}])
        points, source = LlamaExtractor(client, "lk").tvl_history(Chain.ETHEREUM)
        assert source == "pro-api.llama.fi /historicalChainTvl/Ethereum"
        assert points[0].v == 10

    def test_open_host_without_key(self, client, stub_session):
        stub_session.add("GET", "api.llama.fi/v2/historicalChainTvl/Avalanche", [[1704067200, 5]])
        points, source = LlamaExtractor(client).tvl_history(Chain.AVALANCHE)
        assert source == "api.llama.fi /historicalChainTvl/Avalanche"
        assert len(stub_session.calls) == 1

    def test_empty_tvl_series(self, client, stub_session):
        stub_session.add("GET", "api.llama.fi/v2/historicalChainTvl/Ethereum", [])
        with pytest.raises(UpstreamError):
            LlamaExtractor(client).tvl_history(Chain.ETHEREUM)

    def test_dex_volume(self, client, stub_session):
        stub_session.add("GET", "api.llama.fi/overview/dexs/ethereum",
                         {"totalDataChart": [[1704153600, 30], [1704067200, 10]]})
        points, _ = LlamaExtractor(client).dex_volume(Chain.ETHEREUM)
        assert [point.v for point in points] == [10.0, 30.0]
