#!/usr/bin/env python3
"""
Buy shares in a property: pay in USDC from your wallet, then record the
investment with the marketplace API.

    INVESTOR_PRIVATE_KEY=0x... python invest.py <property-id> <shares>
"""
import argparse
import asyncio
import os
import sys

from marketplace.core.logging import setup_logging
from marketplace.services.wallet import InvestmentClient, InvestmentError, TransferFailed

async def main(property_id: str, shares: int, api_base_url: str) -> int:
    private_key = os.getenv("INVESTOR_PRIVATE_KEY")
    if not private_key:
        print("✗ INVESTOR_PRIVATE_KEY is not set", file=sys.stderr)
        return 2

    client = InvestmentClient(private_key, api_base_url=api_base_url)
    try:
        outcome = await client.invest(property_id, shares)
    except TransferFailed as e:
        print(f"✗ Transfer failed ({e.tx_hash}): {e}", file=sys.stderr)
        return 1
    except InvestmentError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1
    finally:
        await client.aclose()

    if outcome.needs_support:
        print(f"⚠ {outcome.message}")
        return 3
    print(f"✓ {outcome.message} ({outcome.tx_hash})")
    return 0

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("property_id")
    parser.add_argument("shares", type=int)
    parser.add_argument("--api", default=None, help="Marketplace API base URL")
    args = parser.parse_args()
    setup_logging()
    sys.exit(asyncio.run(main(args.property_id, args.shares, args.api)))
