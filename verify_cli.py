# verify_cli.py
"""
Console report: treasury address, verdict for one transaction, holdings.

    python verify_cli.py 0x488c...a858 0.01
    python verify_cli.py 0x488c...a858 0.01 --no-balances

Exit code 0 when verified, 1 when not, 2 on a fault.
"""

import argparse
import sys

from erc20_utils import as_decimal, format_amount
from errors import PaymentVerificationError
from payment_service import build_payment_service


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Verify a token payment to the treasury")
    parser.add_argument("tx_hash", help="transaction hash supplied by the payer")
    parser.add_argument("amount", type=as_decimal, help="expected amount in token units, e.g. 0.01")
    parser.add_argument("--no-balances", action="store_true", help="skip the holdings report")
    return parser


def main(argv=None, service_factory=build_payment_service) -> int:
    args = build_parser().parse_args(argv)

    try:
        service = service_factory()
    except PaymentVerificationError as e:
        print(f"❌ Setup failed: {e.message}")
        return 2

    print(f"\n🏦 Treasury Address: {service.treasury_address}")
    print("-> Share this address with your users for payments.\n")

    print(f"🔍 Checking Transaction: {args.tx_hash}...")
    try:
        result = service.verifier.verify(args.tx_hash, args.amount)
    except PaymentVerificationError as e:
        print(f"❌ Verification failed: {type(e).__name__}: {e.message}")
        return 2

    if result.verified:
        print(f"🎉 VERIFIED: {format_amount(args.amount)} received by the treasury")
    elif result.reverted:
        print("❌ Transaction failed or reverted.")
    elif result.observed_amounts:
        seen = ", ".join(format_amount(a) for a in result.observed_amounts)
        print(f"⚠️ MISMATCH: Expected {format_amount(args.amount)}, got {seen}")
    else:
        print("❌ No token transfer to treasury found in this transaction.")

    if not args.no_balances:
        try:
            balances = service.holdings()
        except PaymentVerificationError as e:
            print(f"⚠️ Could not list holdings: {e.message}")
        else:
            print("\n💰 Treasury Holdings:")
            for b in balances:
                print(f"  {b.symbol or b.token}: {format_amount(b.amount)}")

    return 0 if result.verified else 1


if __name__ == "__main__":
    sys.exit(main())
