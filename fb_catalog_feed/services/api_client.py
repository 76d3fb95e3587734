# -*- coding: utf-8 -*-
"""
Cliente HTTP para las APIs remotas (API de productos y Graph API)
Incluye reintentos con backoff exponencial y manejo de errores
"""

import requests
import time
import logging
from typing import Optional, Dict, Any

_logger = logging.getLogger(__name__)


class RemoteAPIError(Exception):
    """Error de red o de la API remota"""

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class APIClient:
    """
    Cliente HTTP para comunicación con APIs remotas

    Características:
    - Reintentos automáticos con backoff exponencial
    - Timeout configurable
    - Logging estructurado
    - Manejo de errores HTTP
    """

    error_class = RemoteAPIError
    user_agent = 'FBCatalogFeed/1.0'

    def __init__(self, base_url: str, timeout: int = 30, max_retries: int = 5):
        """
        Args:
            base_url: URL base de la API (ej: http://mock-api:8000)
            timeout: Timeout en segundos para cada petición
            max_retries: Número máximo de intentos
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_retries = max_retries
        self.session = requests.Session()

        # Content-Type lo define requests según el cuerpo (json / multipart)
        self.session.headers.update({
            'Accept': 'application/json',
            'User-Agent': self.user_agent,
        })

        _logger.info(f"{self.__class__.__name__} initialized: {base_url} "
                     f"(timeout={timeout}s, retries={max_retries})")

    def _calculate_backoff(self, attempt: int) -> float:
        """
        Backoff exponencial: 2^(attempt-1) segundos, máximo 60

        Intento 1: 1s, Intento 2: 2s, Intento 3: 4s, Intento 4: 8s, etc.
        """
        return min(2 ** (attempt - 1), 60)

    def _should_retry(self, response: requests.Response, attempt: int) -> bool:
        """Reintenta en 5xx, 429 y 408 mientras queden intentos"""
        if attempt >= self.max_retries:
            return False

        if 500 <= response.status_code < 600:
            return True

        return response.status_code in (408, 429)

    def _build_url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _prepare_request(self, kwargs: Dict[str, Any]) -> Dict[str, Any]:
        """Punto de extensión para agregar parámetros comunes (ej: access_token)"""
        return kwargs

    def _error_from_response(self, response: requests.Response) -> RemoteAPIError:
        message = f"Client error: {response.status_code} - {response.text}"
        return self.error_class(message, status_code=response.status_code)

    @staticmethod
    def _rewind_files(kwargs: Dict[str, Any]):
        # Los archivos de un multipart se consumen en cada intento
        for value in (kwargs.get('files') or {}).values():
            file_obj = value[1] if isinstance(value, tuple) else value
            if hasattr(file_obj, 'seek'):
                file_obj.seek(0)

    def _make_request(self, method: str, endpoint: str, **kwargs) -> Optional[Dict[str, Any]]:
        """
        Realiza una petición HTTP con reintentos

        Args:
            method: Método HTTP (GET, POST, DELETE)
            endpoint: Endpoint de la API (ej: /products)
            **kwargs: Argumentos adicionales para requests (params, json, data, files)

        Returns:
            Diccionario con la respuesta JSON o None si no hay cuerpo JSON

        Raises:
            RemoteAPIError: Si la petición falla después de todos los reintentos
        """
        url = self._build_url(endpoint)
        kwargs = self._prepare_request(kwargs)
        attempt = 0
        last_exception = None

        while attempt < self.max_retries:
            attempt += 1
            self._rewind_files(kwargs)

            try:
                _logger.debug(f"[Attempt {attempt}/{self.max_retries}] {method} {url}")

                response = self.session.request(
                    method=method,
                    url=url,
                    timeout=self.timeout,
                    **kwargs
                )

                _logger.debug(
                    f"Response: {response.status_code} "
                    f"(time: {response.elapsed.total_seconds():.2f}s)"
                )

                if 200 <= response.status_code < 300:
                    try:
                        return response.json()
                    except ValueError:
                        if response.status_code != 204:
                            _logger.warning(f"Invalid JSON response from {url}")
                        return None

                if self._should_retry(response, attempt):
                    backoff = self._calculate_backoff(attempt)
                    _logger.warning(
                        f"Request failed with status {response.status_code}, "
                        f"retrying in {backoff}s... (attempt {attempt}/{self.max_retries})"
                    )
                    time.sleep(backoff)
                    continue

                error = self._error_from_response(response)
                _logger.error(str(error))
                raise error

            except requests.exceptions.Timeout as e:
                last_exception = e
                _logger.warning(f"Request timeout, retrying... (attempt {attempt}/{self.max_retries})")

            except requests.exceptions.ConnectionError as e:
                last_exception = e
                _logger.warning(f"Connection error, retrying... (attempt {attempt}/{self.max_retries})")

            except requests.exceptions.RequestException as e:
                last_exception = e
                _logger.error(f"Request exception: {str(e)}")

            if attempt < self.max_retries:
                time.sleep(self._calculate_backoff(attempt))

        error_msg = f"Request failed after {self.max_retries} attempts"
        if last_exception:
            error_msg += f": {str(last_exception)}"

        _logger.error(error_msg)
        raise self.error_class(error_msg)

    def get(self, endpoint: str, params: Optional[Dict] = None) -> Optional[Dict[str, Any]]:
        return self._make_request('GET', endpoint, params=params)

    def post(self, endpoint: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._make_request('POST', endpoint, json=data)

    def delete(self, endpoint: str) -> Optional[Dict[str, Any]]:
        return self._make_request('DELETE', endpoint)

    def health_check(self) -> bool:
        """
        Verifica que la API esté disponible

        Returns:
            True si la API responde correctamente
        """
        try:
            response = self.get('/health')
            return response is not None and response.get('status') == 'healthy'
        except RemoteAPIError:
            return False

    def close(self):
        """Cierra la sesión HTTP"""
        self.session.close()
        _logger.info(f"{self.__class__.__name__} session closed")
