# -*- coding: utf-8 -*-
"""
Adaptador de la Graph API de Facebook para feeds de catálogo
"""

import json
import logging
import os
from typing import Optional, Dict, Any, List

import requests

from .api_client import APIClient, RemoteAPIError

_logger = logging.getLogger(__name__)

GRAPH_BASE_URL = 'https://graph.facebook.com'
GRAPH_API_VERSION = 'v17.0'


class GraphAPIError(RemoteAPIError):
    """Error devuelto por la Graph API"""
    pass


class GraphAPIAdapter(APIClient):
    """
    Operaciones de la Graph API usadas por el exportador

    - Listar / crear feeds de un catálogo
    - Consultar un feed (readiness)
    - Subir el CSV del feed
    - Peticiones batch al catálogo (ej: borrado de productos)

    El access token y el modo debug se configuran una vez por ejecución,
    antes de cualquier llamada.
    """

    error_class = GraphAPIError

    def __init__(self, base_url: str = GRAPH_BASE_URL, api_version: str = GRAPH_API_VERSION,
                 timeout: int = 30, max_retries: int = 3):
        super().__init__(f"{base_url.rstrip('/')}/{api_version}", timeout=timeout, max_retries=max_retries)
        self.api_version = api_version
        self.access_token: Optional[str] = None
        self.debug_mode = False

    def set_access_token(self, access_token: str) -> 'GraphAPIAdapter':
        self.access_token = access_token
        return self

    def set_debug_mode(self, debug_mode: bool) -> 'GraphAPIAdapter':
        self.debug_mode = bool(debug_mode)
        return self

    def _prepare_request(self, kwargs: Dict[str, Any]) -> Dict[str, Any]:
        if not self.access_token:
            raise GraphAPIError("Access token is not set")

        params = dict(kwargs.get('params') or {})
        params['access_token'] = self.access_token
        kwargs['params'] = params
        return kwargs

    def _error_from_response(self, response: requests.Response) -> RemoteAPIError:
        try:
            payload = response.json()
        except ValueError:
            payload = None

        error = payload.get('error') if isinstance(payload, dict) else None
        if isinstance(error, dict):
            message = (f"Graph API error {response.status_code}: {error.get('message')} "
                       f"(type={error.get('type')}, code={error.get('code')}, "
                       f"fbtrace_id={error.get('fbtrace_id')})")
        else:
            message = f"Graph API error {response.status_code}: {response.text}"

        return GraphAPIError(message, status_code=response.status_code, payload=payload)

    def _make_request(self, method: str, endpoint: str, **kwargs) -> Optional[Dict[str, Any]]:
        if self.debug_mode:
            _logger.info(f"Graph API request: {method} {endpoint} "
                         f"params={kwargs.get('params')} data={kwargs.get('data')}")

        response = super()._make_request(method, endpoint, **kwargs)

        if self.debug_mode:
            _logger.info(f"Graph API response: {response}")

        return response

    # ========== Feeds ==========
    def get_catalog_feeds(self, catalog_id: str) -> List[Dict[str, Any]]:
        """
        Lista los feeds del catálogo (sigue la paginación de la Graph API)

        Returns:
            Lista de {'id': ..., 'name': ...}
        """
        feeds = []
        params = {'fields': 'id,name', 'limit': 100}

        while True:
            response = self._make_request('GET', f'/{catalog_id}/product_feeds', params=params) or {}
            feeds.extend(response.get('data', []))

            after = response.get('paging', {}).get('cursors', {}).get('after')
            if not after or not response.get('paging', {}).get('next'):
                break
            params = dict(params, after=after)

        _logger.debug(f"Catalog {catalog_id} has {len(feeds)} feeds")
        return feeds

    def create_empty_feed(self, catalog_id: str, name: str) -> Optional[str]:
        """
        Crea un feed vacío en el catálogo

        Returns:
            ID del feed creado
        """
        response = self._make_request('POST', f'/{catalog_id}/product_feeds', data={'name': name}) or {}
        feed_id = response.get('id')

        _logger.info(f"Created feed '{name}' in catalog {catalog_id}: {feed_id}")
        return feed_id

    def get_feed(self, feed_id: str) -> Optional[Dict[str, Any]]:
        """
        Consulta un feed

        Returns:
            Datos del feed ({} si la respuesta no trae cuerpo JSON),
            o None si la Graph API todavía no lo reconoce
        """
        try:
            response = self._make_request('GET', f'/{feed_id}')
        except GraphAPIError as e:
            _logger.debug(f"Feed {feed_id} is not available yet: {e}")
            return None
        return response if response is not None else {}

    def push_product_feed(self, feed_id: str, feed_path: str) -> Optional[Dict[str, Any]]:
        """
        Sube el archivo CSV al feed

        Args:
            feed_id: ID del feed remoto
            feed_path: Ruta absoluta del CSV generado

        Returns:
            Respuesta de la Graph API (ej: {'id': <upload session id>})
        """
        _logger.info(f"Uploading {feed_path} to feed {feed_id}")

        with open(feed_path, 'rb') as fh:
            return self._make_request(
                'POST',
                f'/{feed_id}/uploads',
                files={'file': (os.path.basename(feed_path), fh, 'text/csv')},
            )

    # ========== Catálogo ==========
    def catalog_batch_request(self, catalog_id: str, requests_data: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """
        Envía una petición batch al catálogo

        Args:
            requests_data: Lista de operaciones (ej: {'method': 'DELETE', 'retailer_id': '123'})
        """
        return self._make_request(
            'POST',
            f'/{catalog_id}/batch',
            data={'requests': json.dumps(requests_data)},
        )
