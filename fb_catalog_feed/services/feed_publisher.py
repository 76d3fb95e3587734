# -*- coding: utf-8 -*-
"""
Servicio de publicación del feed de productos
Orquesta: resolver feed -> generar CSV -> subir CSV
"""

import logging
import os
import time
import uuid
from typing import Optional, List, Dict, Any

from ..models.publish_log import PublishLog
from ..models.system_config import SystemConfig, StoreContext
from .api_client import APIClient
from .feed_builder import FeedBuilder, UPLOAD_METHOD_FEED_API
from .feed_identity import FeedIdentityResolver, NoFeedIdentityError
from .feed_writer import FeedWriter, get_feed_file_name
from .graph_api import GraphAPIAdapter, GRAPH_BASE_URL, GRAPH_API_VERSION
from .product_retriever import ProductRetriever, SimpleProductRetriever, ConfigurableProductRetriever

_logger = logging.getLogger(__name__)

STATE_START = 'start'
STATE_RESOLVING_IDENTITY = 'resolving_identity'
STATE_GENERATING_ARTIFACT = 'generating_artifact'
STATE_PUSHING = 'pushing'
STATE_DONE = 'done'
STATE_FAILED = 'failed'

# Etapa -> operación registrada en el log de publicación
STATE_OPERATIONS = {
    STATE_START: 'publish',
    STATE_RESOLVING_IDENTITY: 'resolve_feed',
    STATE_GENERATING_ARTIFACT: 'generate_feed',
    STATE_PUSHING: 'push_feed',
}


def get_api_client(system_config: SystemConfig) -> APIClient:
    """Cliente de la API de productos configurado desde los parámetros del sistema"""
    return APIClient(
        base_url=system_config.get_param('fb_catalog_feed/api/base_url', default='http://mock-api:8000'),
        timeout=int(system_config.get_param('fb_catalog_feed/api/timeout', default='30')),
        max_retries=int(system_config.get_param('fb_catalog_feed/api/max_retries', default='5')),
    )


def get_graph_api(system_config: SystemConfig) -> GraphAPIAdapter:
    """Adaptador de la Graph API configurado desde los parámetros del sistema"""
    return GraphAPIAdapter(
        base_url=system_config.get_param('fb_catalog_feed/graph/base_url', default=GRAPH_BASE_URL),
        api_version=system_config.get_param('fb_catalog_feed/graph/api_version', default=GRAPH_API_VERSION),
        timeout=int(system_config.get_param('fb_catalog_feed/api/timeout', default='30')),
        max_retries=int(system_config.get_param('fb_catalog_feed/graph/max_retries', default='3')),
    )


class FeedPublisher:
    """
    Publica el feed de productos de una tienda en Facebook

    Responsabilidades:
    - Configurar el adaptador de la Graph API por tienda
    - Resolver el feed remoto (sin crear duplicados)
    - Generar el CSV desde cero en cada ejecución
    - Subir el CSV y devolver la respuesta tal cual
    - Registrar cualquier error antes de relanzarlo
    """

    def __init__(self, system_config: SystemConfig, graph_api: GraphAPIAdapter,
                 builder: FeedBuilder, retrievers: List[ProductRetriever],
                 publish_log: Optional[PublishLog] = None, var_dir: str = 'var'):
        self.system_config = system_config
        self.graph_api = graph_api
        self.builder = builder
        self.builder.set_upload_method(UPLOAD_METHOD_FEED_API)
        self.retrievers = retrievers
        self.publish_log = publish_log if publish_log is not None else PublishLog()
        self.var_dir = var_dir
        self.feed_identity = FeedIdentityResolver(system_config, graph_api, self.publish_log)
        self.feed_writer = FeedWriter(retrievers, builder)
        self.state = STATE_START

    @classmethod
    def from_config(cls, system_config: SystemConfig) -> 'FeedPublisher':
        """Construye el publicador con la fuente de productos y la Graph API configuradas"""
        api_client = get_api_client(system_config)
        var_dir = system_config.get_param('fb_catalog_feed/var_dir', default='var')
        log_path = system_config.get_param('fb_catalog_feed/publish_log', default=None)

        return cls(
            system_config=system_config,
            graph_api=get_graph_api(system_config),
            builder=FeedBuilder(system_config),
            retrievers=[
                SimpleProductRetriever(api_client),
                ConfigurableProductRetriever(api_client),
            ],
            publish_log=PublishLog(log_path),
            var_dir=var_dir,
        )

    def _set_state(self, state: str):
        _logger.debug(f"Publish state: {self.state} -> {state}")
        self.state = state

    def generate_product_feed(self, store_id: Optional[str] = None,
                              context: Optional[StoreContext] = None) -> str:
        """
        Genera el CSV de la tienda

        Args:
            store_id: Tienda (None = tienda por defecto)
            context: Configuración ya resuelta de la tienda; si se indica,
                store_id se toma de ella

        Returns:
            str: Ruta absoluta del archivo
        """
        if context is not None:
            store_id = context.store_id
            file_name = get_feed_file_name(context.store_code, context.is_default)
        else:
            store = self.system_config.get_store(store_id)
            file_name = get_feed_file_name(store['code'], self.system_config.is_default_store(store_id))
        return self.feed_writer.generate(self.var_dir, file_name, store_id)

    def execute(self, store_id: Optional[str] = None):
        """
        Publica el feed de una tienda

        Args:
            store_id: Tienda (None = tienda por defecto)

        Returns:
            Respuesta de la Graph API a la subida del feed

        Raises:
            NoFeedIdentityError, ArtifactError, GraphAPIError, ConfigError
        """
        start_time = time.time()
        batch_id = str(uuid.uuid4())
        feed_id = None
        self.state = STATE_START

        _logger.info("=" * 80)
        _logger.info(f"PUBLISHING PRODUCT FEED (store={store_id or 'default'})")
        _logger.info("=" * 80)

        try:
            context = self.system_config.get_store_context(store_id)
            self.builder.set_store_context(context)
            self.graph_api.set_debug_mode(context.debug_mode).set_access_token(context.access_token)

            self._set_state(STATE_RESOLVING_IDENTITY)
            identity = self.feed_identity.resolve(context=context)
            feed_id = identity.feed_id
            if not feed_id:
                raise NoFeedIdentityError('Cannot fetch feed ID')

            self._set_state(STATE_GENERATING_ARTIFACT)
            feed_path = self.generate_product_feed(context=context)

            self._set_state(STATE_PUSHING)
            response = self.graph_api.push_product_feed(feed_id, feed_path)

            self._set_state(STATE_DONE)

        except Exception as e:
            operation = STATE_OPERATIONS.get(self.state, 'publish')
            self._set_state(STATE_FAILED)
            self.publish_log.log_error(
                operation,
                message=f"Feed publishing failed: {str(e)}",
                error_details=repr(e),
                store_id=store_id,
                feed_id=feed_id,
                batch_id=batch_id,
                execution_time=time.time() - start_time,
                exc_info=True,
            )
            raise

        self.publish_log.log_success(
            'publish',
            message=f"Feed {feed_id} uploaded from {os.path.basename(feed_path)}",
            store_id=store_id,
            feed_id=feed_id,
            batch_id=batch_id,
            response_data=response,
            execution_time=time.time() - start_time,
        )
        return response

    def run_scheduled_publish(self, store_ids: Optional[List[Optional[str]]] = None) -> Dict[str, Any]:
        """
        Método llamado por el cron

        Publica cada tienda; el fallo de una tienda no detiene a las demás.

        Args:
            store_ids: Tiendas a publicar (por defecto todas las configuradas,
                o solo la tienda por defecto si no hay ninguna)

        Returns:
            dict: {store: {'status': 'success'|'error', 'response'|'error': ...}}
        """
        if store_ids is None:
            store_ids = self.system_config.get_store_ids() or [None]

        _logger.info(f"Running scheduled feed publishing for {len(store_ids)} store(s)")

        summary = {}
        for store_id in store_ids:
            key = store_id or 'default'
            try:
                summary[key] = {'status': 'success', 'response': self.execute(store_id)}
            except Exception as e:
                _logger.warning(f"Scheduled publishing failed for store {key}: {str(e)}")
                summary[key] = {'status': 'error', 'error': str(e)}

        return summary
