"""Protean Engine runner for the checkout domain.

The checkout domain has no event handlers of its own. With
``PROTEAN_ENV=production`` its coupon and checkout session events are written
to the outbox inside each unit of work, and this runner relays them to the
broker for downstream consumers. In the default (sync) configuration there is
nothing for it to do.

Usage:
    python src/server.py
"""

import argparse
import asyncio

from protean.server.engine import Engine


def _get_domain():
    from checkout.domain import checkout

    checkout.init()
    return checkout


async def run():
    await Engine(_get_domain()).run()


def main():
    argparse.ArgumentParser(description="Checkout Engine runner").parse_args()
    asyncio.run(run())


if __name__ == "__main__":
    main()
