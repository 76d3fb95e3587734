# -*- coding: utf-8 -*-
"""
Resolución del feed remoto de una tienda
Reutiliza el ID guardado, busca por nombre o crea el feed (sin duplicados)
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from ..models.publish_log import PublishLog
from ..models.system_config import SystemConfig, StoreContext, XML_PATH_FACEBOOK_BUSINESS_EXTENSION_FEED_ID
from .graph_api import GraphAPIAdapter

_logger = logging.getLogger(__name__)

FB_FEED_NAME = 'Magento Autogenerated Feed'

MAX_POLL_ATTEMPTS = 5
POLL_INTERVAL = 2


class NoFeedIdentityError(Exception):
    """No se pudo obtener un ID de feed"""
    pass


@dataclass(frozen=True)
class FeedIdentity:
    feed_id: str
    name: str = FB_FEED_NAME


class FeedIdentityResolver:
    """
    Determina el feed contra el que se sube el CSV

    Orden de resolución:
    1. ID guardado en la configuración de la tienda (sin llamadas de red)
    2. Feed existente del catálogo con el nombre FB_FEED_NAME
    3. Feed nuevo, esperando a que la Graph API lo reconozca

    Un ID nuevo se guarda en la configuración para las siguientes ejecuciones.
    """

    def __init__(self, system_config: SystemConfig, graph_api: GraphAPIAdapter,
                 publish_log: Optional[PublishLog] = None):
        self.system_config = system_config
        self.graph_api = graph_api
        self.publish_log = publish_log

    def _find_existing_feed(self, catalog_id: str) -> Optional[str]:
        catalog_feeds = self.graph_api.get_catalog_feeds(catalog_id)
        matching = [feed for feed in catalog_feeds if feed.get('name') == FB_FEED_NAME]

        if matching:
            _logger.info(f"Found existing feed '{FB_FEED_NAME}': {matching[0]['id']}")
            return matching[0]['id']
        return None

    def _wait_for_feed(self, feed_id: str, store_id: Optional[str]) -> bool:
        """
        Espera a que el feed recién creado esté disponible

        Como máximo MAX_POLL_ATTEMPTS consultas separadas por POLL_INTERVAL segundos.

        Returns:
            True si el feed respondió antes de agotar los intentos
        """
        attempts = 0
        while attempts < MAX_POLL_ATTEMPTS:
            if self.graph_api.get_feed(feed_id) is not None:
                _logger.debug(f"Feed {feed_id} is ready (attempt {attempts + 1})")
                return True
            attempts += 1
            time.sleep(POLL_INTERVAL)

        # La Graph API puede tardar en procesar el feed: se continúa igualmente
        message = f"Feed {feed_id} not available after {MAX_POLL_ATTEMPTS} attempts, continuing"
        if self.publish_log is not None:
            self.publish_log.log_warning('resolve_feed', message=message, store_id=store_id, feed_id=feed_id)
        else:
            _logger.warning(message)
        return False

    def resolve(self, store_id: Optional[str] = None,
                context: Optional[StoreContext] = None) -> FeedIdentity:
        """
        Resuelve el feed de la tienda

        Args:
            store_id: Tienda (None = tienda por defecto)
            context: Configuración ya resuelta de la tienda; si se indica,
                store_id se toma de ella

        Returns:
            FeedIdentity

        Raises:
            NoFeedIdentityError: Si no se pudo obtener ni crear un feed
            GraphAPIError: Si falla el listado o la creación de feeds
            ConfigError: Si falta la configuración de la tienda
        """
        if context is None:
            context = self.system_config.get_store_context(store_id)
        store_id = context.store_id

        if context.feed_id:
            return FeedIdentity(feed_id=str(context.feed_id))

        catalog_id = context.catalog_id
        feed_id = self._find_existing_feed(catalog_id)

        if not feed_id:
            feed_id = self.graph_api.create_empty_feed(catalog_id, FB_FEED_NAME)
            if feed_id:
                self._wait_for_feed(feed_id, store_id)

        if not feed_id:
            raise NoFeedIdentityError(f"Cannot fetch feed ID for store {store_id or 'default'}")

        self.system_config.save_config(
            XML_PATH_FACEBOOK_BUSINESS_EXTENSION_FEED_ID, feed_id, store_id
        ).clean_cache()

        return FeedIdentity(feed_id=str(feed_id))
