# -*- coding: utf-8 -*-
"""
Eventos de productos enviados por el sistema de origen
"""

import logging
import time
from typing import Optional

from ..models.publish_log import PublishLog
from ..models.system_config import SystemConfig
from .graph_api import GraphAPIAdapter

_logger = logging.getLogger(__name__)


class ProductEventHandler:
    """
    Punto de entrada para eventos de productos (ej: producto eliminado)

    Puede invocarse desde cualquier fuente de eventos (webhook, cola, CLI).
    """

    def __init__(self, system_config: SystemConfig, graph_api: GraphAPIAdapter,
                 publish_log: Optional[PublishLog] = None):
        self.system_config = system_config
        self.graph_api = graph_api
        self.publish_log = publish_log if publish_log is not None else PublishLog()

    def on_product_deleted(self, product_id, store_id: Optional[str] = None):
        """
        Elimina el producto del catálogo de Facebook

        El retailer_id es el ID del producto (igual que la columna id del feed).

        Args:
            product_id: ID del producto eliminado
            store_id: Tienda

        Returns:
            Respuesta de la Graph API
        """
        start_time = time.time()
        retailer_id = str(product_id)

        try:
            context = self.system_config.get_store_context(store_id)
            self.graph_api.set_debug_mode(context.debug_mode).set_access_token(context.access_token)

            _logger.info(f"Deleting product {retailer_id} from catalog {context.catalog_id}")
            response = self.graph_api.catalog_batch_request(
                context.catalog_id,
                [{'method': 'DELETE', 'retailer_id': retailer_id}],
            )
        except Exception as e:
            self.publish_log.log_error(
                'delete_product',
                message=f"Cannot delete product {retailer_id}: {str(e)}",
                error_details=repr(e),
                store_id=store_id,
                execution_time=time.time() - start_time,
                exc_info=True,
            )
            raise

        self.publish_log.log_success(
            'delete_product',
            message=f"Product {retailer_id} deleted from catalog",
            store_id=store_id,
            response_data=response,
            execution_time=time.time() - start_time,
        )
        return response
