# -*- coding: utf-8 -*-
"""
Fixtures compartidas
"""

import json

import pytest
from unittest.mock import Mock

from fb_catalog_feed.models.system_config import (
    SystemConfig,
    XML_PATH_FACEBOOK_BUSINESS_EXTENSION_ACCESS_TOKEN,
    XML_PATH_FACEBOOK_BUSINESS_EXTENSION_CATALOG_ID,
)
from fb_catalog_feed.services.product_retriever import ProductRetriever


class StubRetriever(ProductRetriever):
    """Retriever con páginas fijas; registra los offsets pedidos"""

    def __init__(self, products, limit, product_type='simple'):
        super().__init__(Mock(), limit=limit)
        self.products = products
        self.product_type = product_type
        self.offsets = []

    def retrieve(self, offset=0):
        self.offsets.append(offset)
        return self.products[offset:offset + self.limit]


def make_config_data():
    return {
        'default_store_id': '1',
        'default': {
            XML_PATH_FACEBOOK_BUSINESS_EXTENSION_CATALOG_ID: 'catalog-123',
            XML_PATH_FACEBOOK_BUSINESS_EXTENSION_ACCESS_TOKEN: 'token-abc',
        },
        'stores': {
            '1': {'code': 'default', 'name': 'Main Store', 'config': {}},
            'uk': {'code': 'uk_en', 'name': 'UK Store', 'config': {}},
        },
    }


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    monkeypatch.delenv('FB_ACCESS_TOKEN', raising=False)
    monkeypatch.delenv('FB_CATALOG_ID', raising=False)
    monkeypatch.delenv('FB_FEED_CONFIG', raising=False)


@pytest.fixture
def system_config():
    return SystemConfig(data=make_config_data())


@pytest.fixture
def file_config(tmp_path):
    path = tmp_path / 'config.json'
    path.write_text(json.dumps(make_config_data()), encoding='utf-8')
    return SystemConfig(path=str(path))
