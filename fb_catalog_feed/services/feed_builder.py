# -*- coding: utf-8 -*-
"""
Construcción de filas del feed de productos
Convierte un producto en una fila alineada con las columnas del feed
"""

import html
import logging
import re
from collections import OrderedDict
from contextlib import contextmanager
from typing import Optional, Dict, Any, List

from ..models.system_config import SystemConfig, StoreContext, XML_PATH_FACEBOOK_BUSINESS_EXTENSION_CURRENCY

_logger = logging.getLogger(__name__)

UPLOAD_METHOD_FEED_API = 'feed_api'
UPLOAD_METHOD_CATALOG_BATCH_API = 'catalog_batch_api'
UPLOAD_METHODS = (UPLOAD_METHOD_FEED_API, UPLOAD_METHOD_CATALOG_BATCH_API)

ATTR_ID = 'id'
ATTR_TITLE = 'title'
ATTR_DESCRIPTION = 'description'
ATTR_AVAILABILITY = 'availability'
ATTR_INVENTORY = 'inventory'
ATTR_CONDITION = 'condition'
ATTR_PRICE = 'price'
ATTR_SALE_PRICE = 'sale_price'
ATTR_LINK = 'link'
ATTR_IMAGE_LINK = 'image_link'
ATTR_ADDITIONAL_IMAGE_LINK = 'additional_image_link'
ATTR_BRAND = 'brand'
ATTR_GOOGLE_PRODUCT_CATEGORY = 'google_product_category'
ATTR_PRODUCT_TYPE = 'product_type'
ATTR_ITEM_GROUP_ID = 'item_group_id'
ATTR_COLOR = 'color'
ATTR_SIZE = 'size'
ATTR_INTERNAL_LABEL = 'internal_label'

# Límites de longitud de Facebook
TITLE_MAX_LENGTH = 150
DESCRIPTION_MAX_LENGTH = 5000
ADDITIONAL_IMAGES_MAX = 20

_TAG_RE = re.compile(r'<[^>]+>')
_SPACE_RE = re.compile(r'\s+')


class FeedBuilderError(Exception):
    """Uso inválido del builder"""
    pass


def strip_html(value: Optional[str]) -> str:
    """Quita etiquetas HTML y normaliza espacios"""
    if not value:
        return ''
    value = html.unescape(_TAG_RE.sub(' ', str(value)))
    return _SPACE_RE.sub(' ', value).strip()


def truncate(value: str, max_length: int) -> str:
    if len(value) <= max_length:
        return value
    return value[:max_length - 3].rstrip() + '...'


class FeedBuilder:
    """
    Builder de filas del feed

    El store y el método de subida se fijan antes de construir filas;
    durante una escritura (ver writing()) no se pueden cambiar.
    """

    def __init__(self, system_config: SystemConfig):
        self.system_config = system_config
        self.store_id: Optional[str] = None
        self.upload_method = UPLOAD_METHOD_FEED_API
        self._store: Dict[str, Any] = {}
        self._currency = 'USD'
        self._writing = False

    def _check_not_writing(self):
        if self._writing:
            raise FeedBuilderError("Builder state cannot change while a feed is being written")

    def set_store_id(self, store_id: Optional[str]) -> 'FeedBuilder':
        self._check_not_writing()
        self.store_id = store_id
        self._store = self.system_config.get_store(store_id)
        self._currency = self.system_config.get_param(
            XML_PATH_FACEBOOK_BUSINESS_EXTENSION_CURRENCY, store_id, 'USD'
        )
        return self

    def set_store_context(self, context: StoreContext) -> 'FeedBuilder':
        """Fija la tienda desde su configuración ya resuelta (sin releer SystemConfig)"""
        self._check_not_writing()
        self.store_id = context.store_id
        self._store = {'id': context.store_id, 'code': context.store_code, 'name': context.store_name}
        self._currency = context.currency
        return self

    def set_upload_method(self, upload_method: str) -> 'FeedBuilder':
        self._check_not_writing()
        if upload_method not in UPLOAD_METHODS:
            raise FeedBuilderError(f"Unknown upload method: {upload_method}")
        self.upload_method = upload_method
        return self

    @contextmanager
    def writing(self):
        """Bloquea los cambios de estado mientras se escribe un feed"""
        self._writing = True
        try:
            yield self
        finally:
            self._writing = False

    def get_header_fields(self) -> List[str]:
        return [
            ATTR_ID,
            ATTR_TITLE,
            ATTR_DESCRIPTION,
            ATTR_AVAILABILITY,
            ATTR_INVENTORY,
            ATTR_CONDITION,
            ATTR_PRICE,
            ATTR_SALE_PRICE,
            ATTR_LINK,
            ATTR_IMAGE_LINK,
            ATTR_ADDITIONAL_IMAGE_LINK,
            ATTR_BRAND,
            ATTR_GOOGLE_PRODUCT_CATEGORY,
            ATTR_PRODUCT_TYPE,
            ATTR_ITEM_GROUP_ID,
            ATTR_COLOR,
            ATTR_SIZE,
            ATTR_INTERNAL_LABEL,
        ]

    # ========== Normalización de campos ==========
    def _format_price(self, value) -> str:
        if value in (None, ''):
            return ''
        try:
            amount = float(value)
        except (TypeError, ValueError):
            return ''
        if amount <= 0:
            return ''
        return f"{amount:.2f} {self._currency}"

    def _get_availability(self, product: Dict[str, Any]) -> str:
        in_stock = product.get('in_stock')
        if in_stock is None:
            in_stock = (product.get('qty') or 0) > 0
        return 'in stock' if in_stock else 'out of stock'

    def _get_description(self, product: Dict[str, Any]) -> str:
        description = strip_html(product.get('description')) or strip_html(product.get('short_description'))
        # Facebook exige descripción; se usa el título si falta
        if not description:
            description = strip_html(product.get('name'))
        return truncate(description, DESCRIPTION_MAX_LENGTH)

    def _get_additional_images(self, product: Dict[str, Any]) -> str:
        main_image = product.get('image')
        images = [img for img in (product.get('images') or []) if img and img != main_image]
        return ','.join(images[:ADDITIONAL_IMAGES_MAX])

    def build_product_entry(self, product: Dict[str, Any]) -> 'OrderedDict[str, str]':
        """
        Construye la fila de un producto

        Args:
            product: Producto tal como lo entrega el retriever

        Returns:
            OrderedDict con las mismas columnas y orden que get_header_fields()
        """
        sale_price = self._format_price(product.get('sale_price'))
        if sale_price and sale_price == self._format_price(product.get('price')):
            sale_price = ''

        qty = product.get('qty')
        item_group_id = product.get('item_group_id')

        values = {
            ATTR_ID: str(product.get('id', '')),
            ATTR_TITLE: truncate(strip_html(product.get('name')), TITLE_MAX_LENGTH),
            ATTR_DESCRIPTION: self._get_description(product),
            ATTR_AVAILABILITY: self._get_availability(product),
            ATTR_INVENTORY: str(int(qty)) if qty is not None else '',
            ATTR_CONDITION: product.get('condition') or 'new',
            ATTR_PRICE: self._format_price(product.get('price')),
            ATTR_SALE_PRICE: sale_price,
            ATTR_LINK: product.get('url') or '',
            ATTR_IMAGE_LINK: product.get('image') or '',
            ATTR_ADDITIONAL_IMAGE_LINK: self._get_additional_images(product),
            ATTR_BRAND: product.get('brand') or self._store.get('name', ''),
            ATTR_GOOGLE_PRODUCT_CATEGORY: str(product.get('google_category') or ''),
            ATTR_PRODUCT_TYPE: product.get('category') or '',
            ATTR_ITEM_GROUP_ID: str(item_group_id) if item_group_id is not None else '',
            ATTR_COLOR: product.get('color') or '',
            ATTR_SIZE: product.get('size') or '',
            ATTR_INTERNAL_LABEL: f"['{self.upload_method}']",
        }

        return OrderedDict((field_name, values[field_name]) for field_name in self.get_header_fields())
