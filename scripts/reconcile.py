#!/usr/bin/env python3
"""Vault Reconciliation Script.

Replays the vault's Deposited/Withdrawn events and checks them against
myBalance() and the asset the vault actually holds.

Usage:
    python scripts/reconcile.py [--vault 0x...] [--token 0x...] [--json]

Options:
    --vault  Vault address (default: VAULT_ADDRESS setting)
    --token  Ledger asset address (default: TOKEN_ADDRESS setting)
    --json   Print the report as JSON

Exits with status 1 when the vault is insolvent or any account mismatches.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dotenv import load_dotenv

from savingsvault.config import get_settings
from savingsvault.reconcile import reconcile_vault
from savingsvault.units import display
from savingsvault.wallet.factory import get_provider

load_dotenv()

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


async def main() -> int:
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Vault Reconciliation")
    parser.add_argument("--vault", type=str, default=settings.vault_address, help="Vault address")
    parser.add_argument("--token", type=str, default=settings.token_address, help="Ledger asset address")
    parser.add_argument("--json", action="store_true", help="Print report as JSON")

    args = parser.parse_args()

    provider = get_provider(settings)

    logger.info("=" * 60)
    logger.info("VAULT RECONCILIATION")
    logger.info("=" * 60)
    logger.info(f"Backend: {settings.chain_backend.value}")

    report = await reconcile_vault(provider, args.token, args.vault)

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        decimals = settings.token_decimals
        symbol = settings.token_symbol
        logger.info("=" * 60)
        logger.info("SUMMARY")
        logger.info("=" * 60)
        logger.info(f"Vault:     {report.vault}")
        logger.info(f"Custodied: {display(report.custodied, decimals)} {symbol}")
        logger.info(f"Tracked:   {display(report.total_tracked, decimals)} {symbol}")
        logger.info(f"Surplus:   {display(max(report.surplus, 0), decimals)} {symbol}")
        logger.info(f"Accounts:  {len(report.accounts)} ({len(report.mismatches)} mismatched)")
        logger.info(f"Status:    {'OK' if report.is_consistent else 'DISCREPANCY'}")

    return 0 if report.is_consistent else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
