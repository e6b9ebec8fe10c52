#!/usr/bin/env python3
"""
Basic usage example for the GotNodes library
"""

from gotnodes import GotNodesException, MetricsAggregator, Settings, setup_logging

def main():
    setup_logging()

    # Credentials come from the environment or a .env file
    settings = Settings.from_env()
    aggregator = MetricsAggregator(settings)

    # Network stats with primary/fallback sources
    for chain in ("ethereum", "avalanche"):
        print(f"Fetching {chain} stats...")
        try:
            stats = aggregator.chain_stats(chain)
        except GotNodesException as e:
            print(f"  ERROR {e}")
            continue
        print(f"  Active validators: {stats.active_validators}")
        print(f"  Total staked: {stats.total_staked}")
        print(f"  Source: {stats.source}")

    # Validator lookup by index; unresolved identifiers come back with a message
    print("\nLooking up Ethereum validators...")
    try:
        result = aggregator.validator_lookup("ethereum", ["1", "2"], include_series=False)
        for record in result["validators"]:
            print(f"  {record['validatorId']}: {record['status']} {record['balanceEth']} ETH")
        if result.get("note"):
            print(f"  Note: {result['note']}")
    except GotNodesException as e:
        print(f"  ERROR {e}")

    # Charts need no credentials
    print("\nFetching Avalanche charts...")
    charts = aggregator.chain_charts("avalanche")
    print(f"  {len(charts.tvl)} TVL points, {len(charts.volume_weekly)} weekly candles")
    print(f"  Sources: {charts.source}")

if __name__ == "__main__":
    main()
