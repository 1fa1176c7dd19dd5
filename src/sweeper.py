"""Periodic payment intent sweeper.

Expires payment intents that stayed CREATED past the configured threshold.
Not needed for correctness; it keeps abandoned intents from piling up.

Usage:
    python src/sweeper.py                      # run forever, every 5 minutes
    python src/sweeper.py --once               # single sweep, then exit
    python src/sweeper.py --interval 60 --older-than 15
"""

import argparse
import time

import structlog

logger = structlog.get_logger(__name__)


def sweep(domain, older_than_minutes=None) -> int:
    from storefront.payment.expiry import expire_stale_payment_intents

    with domain.domain_context():
        return expire_stale_payment_intents(older_than_minutes=older_than_minutes)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Storefront payment intent sweeper")
    parser.add_argument("--interval", type=int, default=300, help="Seconds between sweeps (default: 300)")
    parser.add_argument("--older-than", type=int, default=None, help="Age threshold in minutes")
    parser.add_argument("--once", action="store_true", help="Run a single sweep and exit")
    args = parser.parse_args(argv)

    from storefront.domain import storefront

    storefront.init()

    while True:
        expired = sweep(storefront, args.older_than)
        logger.info("sweep_finished", expired_count=expired)
        if args.once:
            return expired
        time.sleep(args.interval)


if __name__ == "__main__":
    main()
