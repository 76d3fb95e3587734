# -*- coding: utf-8 -*-
"""
Línea de comandos del exportador

Uso:
  fb-catalog-feed publish [--store ID ...]
  fb-catalog-feed delete-product PRODUCT_ID [--store ID]
  fb-catalog-feed check
"""

import argparse
import json
import logging
import sys

from .models.system_config import SystemConfig
from .services.feed_publisher import FeedPublisher, get_api_client, get_graph_api
from .services.product_events import ProductEventHandler

_logger = logging.getLogger(__name__)


def _publish(config, args):
    publisher = FeedPublisher.from_config(config)

    if args.all_stores:
        summary = publisher.run_scheduled_publish()
        print(json.dumps(summary, indent=2, default=str))
        return 0 if all(r['status'] == 'success' for r in summary.values()) else 1

    store_ids = args.store or [None]
    for store_id in store_ids:
        response = publisher.execute(store_id)
        print(json.dumps({'store': store_id or 'default', 'response': response}, default=str))
    return 0


def _delete_product(config, args):
    handler = ProductEventHandler(config, get_graph_api(config))
    response = handler.on_product_deleted(args.product_id, args.store)
    print(json.dumps(response, default=str))
    return 0


def _check(config, args):
    client = get_api_client(config)
    try:
        healthy = client.health_check()
    finally:
        client.close()

    if healthy:
        print("Product API connection successful")
        return 0
    print("Product API connection failed")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='fb-catalog-feed',
        description='Publish product catalog feeds to Facebook',
    )
    parser.add_argument('--config', default=None,
                        help='Path to the JSON configuration file (default: $FB_FEED_CONFIG or var/config.json)')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])

    subparsers = parser.add_subparsers(dest='command', required=True)

    publish = subparsers.add_parser('publish', help='Generate and upload the product feed')
    stores = publish.add_mutually_exclusive_group()
    stores.add_argument('--store', action='append', help='Store ID (repeatable, default store if omitted)')
    stores.add_argument('--all-stores', action='store_true', help='Publish every configured store')
    publish.set_defaults(func=_publish)

    delete = subparsers.add_parser('delete-product', help='Remove a product from the Facebook catalog')
    delete.add_argument('product_id')
    delete.add_argument('--store', default=None, help='Store ID')
    delete.set_defaults(func=_delete_product)

    check = subparsers.add_parser('check', help='Check the product API connection')
    check.set_defaults(func=_check)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    config = SystemConfig(path=args.config) if args.config else SystemConfig.from_env()

    try:
        return args.func(config, args)
    except Exception as e:
        _logger.error(f"Command '{args.command}' failed: {str(e)}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
