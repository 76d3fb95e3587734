# -*- coding: utf-8 -*-
"""
Configuración por tienda (store scope) del exportador de feeds
Los valores de una tienda heredan del scope por defecto
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Optional, Dict, Any, List

_logger = logging.getLogger(__name__)

DEFAULT_SCOPE = 'default'

XML_PATH_FACEBOOK_BUSINESS_EXTENSION_FEED_ID = 'facebook/catalog_management/feed_id'
XML_PATH_FACEBOOK_BUSINESS_EXTENSION_CATALOG_ID = 'facebook/business_extension/catalog_id'
XML_PATH_FACEBOOK_BUSINESS_EXTENSION_ACCESS_TOKEN = 'facebook/business_extension/access_token'
XML_PATH_FACEBOOK_BUSINESS_EXTENSION_DEBUG_MODE = 'facebook/debug/debug_mode'
XML_PATH_FACEBOOK_BUSINESS_EXTENSION_CURRENCY = 'facebook/catalog_management/currency'

# Variables de entorno que sobreescriben el scope por defecto
ENV_OVERRIDES = {
    'FB_ACCESS_TOKEN': XML_PATH_FACEBOOK_BUSINESS_EXTENSION_ACCESS_TOKEN,
    'FB_CATALOG_ID': XML_PATH_FACEBOOK_BUSINESS_EXTENSION_CATALOG_ID,
}
_ENV_BY_PATH = {path: env_name for env_name, path in ENV_OVERRIDES.items()}


class ConfigError(Exception):
    """Configuración faltante o inválida"""
    pass


@dataclass(frozen=True)
class StoreContext:
    """
    Configuración de una tienda resuelta una sola vez por ejecución

    Se pasa explícitamente a cada componente del pipeline en lugar
    de consultar la configuración global en cada paso.
    """
    store_id: Optional[str]
    store_code: str
    store_name: str
    is_default: bool
    catalog_id: str
    access_token: str
    debug_mode: bool = False
    feed_id: Optional[str] = None
    currency: str = 'USD'


def _to_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


class SystemConfig:
    """
    Almacén de configuración con scopes por tienda

    Formato del archivo JSON:

        {
            "default_store_id": "1",
            "default": {"facebook/business_extension/catalog_id": "123", ...},
            "stores": {
                "1": {"code": "default", "name": "Main Store", "config": {...}},
                "2": {"code": "uk_en", "name": "UK Store", "config": {...}}
            }
        }

    Sin ruta, la configuración vive solo en memoria (útil en tests).
    """

    def __init__(self, path: Optional[str] = None, data: Optional[Dict[str, Any]] = None):
        self.path = path
        self._raw = data
        self._cache: Dict[tuple, Any] = {}

        _logger.debug(f"SystemConfig initialized (path={path})")

    @classmethod
    def from_env(cls) -> 'SystemConfig':
        """Crea la configuración desde FB_FEED_CONFIG (por defecto var/config.json)"""
        return cls(path=os.environ.get('FB_FEED_CONFIG', os.path.join('var', 'config.json')))

    # ========== Carga y persistencia ==========
    def _load(self) -> Dict[str, Any]:
        if self._raw is None:
            if self.path and os.path.exists(self.path):
                with open(self.path, 'r', encoding='utf-8') as fh:
                    self._raw = json.load(fh)
                _logger.debug(f"Configuration loaded from {self.path}")
            else:
                self._raw = {}

        self._raw.setdefault(DEFAULT_SCOPE, {})
        self._raw.setdefault('stores', {})

        return self._raw

    def _persist(self):
        if not self.path:
            return

        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(self.path, 'w', encoding='utf-8') as fh:
            json.dump(self._raw, fh, indent=2, sort_keys=True)

    def _scope(self, store_id: Optional[str]) -> Dict[str, Any]:
        data = self._load()
        if store_id is None:
            return data[DEFAULT_SCOPE]

        store = data['stores'].get(str(store_id))
        if store is None:
            raise ConfigError(f"Unknown store: {store_id}")
        return store.setdefault('config', {})

    # ========== Lectura / escritura de parámetros ==========
    def get_param(self, path: str, store_id: Optional[str] = None, default=None):
        """
        Obtiene un parámetro respetando la herencia de scopes

        Args:
            path: Ruta del parámetro (ej: facebook/catalog_management/feed_id)
            store_id: Tienda (None = tienda por defecto)
            default: Valor si no está definido en ningún scope

        Returns:
            Valor del parámetro
        """
        cache_key = (path, store_id)
        if cache_key in self._cache:
            return self._cache[cache_key]

        value = self._scope(store_id).get(path) if store_id is not None else None
        if value is None and path in _ENV_BY_PATH:
            value = os.environ.get(_ENV_BY_PATH[path]) or None
        if value is None:
            value = self._load()[DEFAULT_SCOPE].get(path)
        if value is None:
            value = default

        self._cache[cache_key] = value
        return value

    def save_config(self, path: str, value, store_id: Optional[str] = None) -> 'SystemConfig':
        """
        Guarda un parámetro en el scope de la tienda y lo persiste

        Returns:
            self, para encadenar clean_cache()
        """
        self._scope(store_id)[path] = value
        self._persist()

        _logger.info(f"Config saved: {path} (store={store_id or DEFAULT_SCOPE})")
        return self

    def clean_cache(self) -> 'SystemConfig':
        """Invalida los valores resueltos; se recargan en la siguiente lectura"""
        self._cache.clear()
        if self.path:
            self._raw = None
        _logger.debug("Config cache cleaned")
        return self

    # ========== Atajos ==========
    def get_feed_id(self, store_id: Optional[str] = None) -> Optional[str]:
        return self.get_param(XML_PATH_FACEBOOK_BUSINESS_EXTENSION_FEED_ID, store_id)

    def get_catalog_id(self, store_id: Optional[str] = None) -> Optional[str]:
        return self.get_param(XML_PATH_FACEBOOK_BUSINESS_EXTENSION_CATALOG_ID, store_id)

    def get_access_token(self, store_id: Optional[str] = None) -> Optional[str]:
        return self.get_param(XML_PATH_FACEBOOK_BUSINESS_EXTENSION_ACCESS_TOKEN, store_id)

    def is_debug_mode(self, store_id: Optional[str] = None) -> bool:
        return _to_bool(self.get_param(XML_PATH_FACEBOOK_BUSINESS_EXTENSION_DEBUG_MODE, store_id))

    # ========== Tiendas ==========
    def get_default_store_id(self) -> Optional[str]:
        default_store_id = self._load().get('default_store_id')
        return str(default_store_id) if default_store_id is not None else None

    def get_store_ids(self) -> List[str]:
        return sorted(self._load()['stores'].keys())

    def get_store(self, store_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Datos de la tienda (code, name)

        Para store_id None se usa la tienda por defecto, si existe.
        """
        data = self._load()
        lookup_id = store_id if store_id is not None else self.get_default_store_id()

        if lookup_id is None:
            return {'id': None, 'code': DEFAULT_SCOPE, 'name': ''}

        store = data['stores'].get(str(lookup_id))
        if store is None:
            raise ConfigError(f"Unknown store: {lookup_id}")

        return {
            'id': str(lookup_id),
            'code': store.get('code', str(lookup_id)),
            'name': store.get('name', ''),
        }

    def is_default_store(self, store_id: Optional[str]) -> bool:
        return store_id is None or str(store_id) == self.get_default_store_id()

    def get_store_context(self, store_id: Optional[str] = None) -> StoreContext:
        """
        Resuelve la configuración completa de una tienda

        Raises:
            ConfigError: Si falta catalog_id o access_token
        """
        store = self.get_store(store_id)

        catalog_id = self.get_catalog_id(store_id)
        if not catalog_id:
            raise ConfigError(f"Catalog ID is not configured for store {store_id or DEFAULT_SCOPE}")

        access_token = self.get_access_token(store_id)
        if not access_token:
            raise ConfigError(f"Access token is not configured for store {store_id or DEFAULT_SCOPE}")

        return StoreContext(
            store_id=store_id,
            store_code=store['code'],
            store_name=store['name'],
            is_default=self.is_default_store(store_id),
            catalog_id=str(catalog_id),
            access_token=access_token,
            debug_mode=self.is_debug_mode(store_id),
            feed_id=self.get_feed_id(store_id),
            currency=self.get_param(XML_PATH_FACEBOOK_BUSINESS_EXTENSION_CURRENCY, store_id, 'USD'),
        )
