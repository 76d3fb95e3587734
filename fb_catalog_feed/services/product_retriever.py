# -*- coding: utf-8 -*-
"""
Fuentes de productos para el feed
Cada estrategia entrega páginas de productos; una página vacía indica el final
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any

from .api_client import APIClient

_logger = logging.getLogger(__name__)


class ProductRetriever(ABC):
    """
    Contrato de una estrategia de obtención de productos

    El writer llama a retrieve(offset) avanzando el offset en get_limit()
    hasta recibir una lista vacía.
    """

    product_type: str = ''
    default_limit: int = 100

    def __init__(self, api_client: APIClient, limit: Optional[int] = None):
        self.api_client = api_client
        self.limit = limit or self.default_limit
        self.store_id: Optional[str] = None

    def set_store_id(self, store_id: Optional[str]) -> 'ProductRetriever':
        self.store_id = store_id
        return self

    def get_limit(self) -> int:
        return self.limit

    def _fetch_page(self, offset: int) -> List[Dict[str, Any]]:
        params = {
            'type': self.product_type,
            'skip': offset,
            'limit': self.get_limit(),
        }
        if self.store_id is not None:
            params['store'] = self.store_id

        response = self.api_client.get('/products', params=params)
        if not response or 'items' not in response:
            return []
        return response['items']

    @abstractmethod
    def retrieve(self, offset: int = 0) -> List[Dict[str, Any]]:
        """
        Obtiene una página de productos

        Args:
            offset: Posición del primer producto de la página

        Returns:
            Lista de productos (vacía al agotarse la fuente)
        """


class SimpleProductRetriever(ProductRetriever):
    """Productos simples (sin variantes)"""

    product_type = 'simple'
    default_limit = 2000

    def retrieve(self, offset: int = 0) -> List[Dict[str, Any]]:
        products = self._fetch_page(offset)
        _logger.debug(f"Retrieved {len(products)} simple products (offset={offset})")
        return products


class ConfigurableProductRetriever(ProductRetriever):
    """
    Productos configurables

    Cada variante se exporta como un producto propio con el ID del padre
    en item_group_id. Los campos vacíos de la variante se completan con
    los del padre. Un configurable sin variantes se exporta tal cual.
    """

    product_type = 'configurable'
    default_limit = 200

    INHERITED_FIELDS = ('name', 'description', 'url', 'image', 'images', 'brand',
                        'category', 'google_category', 'condition', 'price')

    def _expand_variants(self, parent: Dict[str, Any]) -> List[Dict[str, Any]]:
        variants = parent.get('variants') or []
        if not variants:
            return [parent]

        products = []
        for variant in variants:
            product = dict(variant)
            for field_name in self.INHERITED_FIELDS:
                if product.get(field_name) in (None, '', []):
                    product[field_name] = parent.get(field_name)
            product['item_group_id'] = parent.get('id')
            products.append(product)
        return products

    def retrieve(self, offset: int = 0) -> List[Dict[str, Any]]:
        parents = self._fetch_page(offset)

        products = []
        for parent in parents:
            products.extend(self._expand_variants(parent))

        _logger.debug(
            f"Retrieved {len(parents)} configurable products "
            f"({len(products)} variants, offset={offset})"
        )
        return products
