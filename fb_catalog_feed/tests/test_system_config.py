# -*- coding: utf-8 -*-
"""
Tests para SystemConfig
Verifica herencia de scopes, persistencia y caché
"""

import json

import pytest

from fb_catalog_feed.models.system_config import (
    SystemConfig,
    ConfigError,
    XML_PATH_FACEBOOK_BUSINESS_EXTENSION_FEED_ID,
    XML_PATH_FACEBOOK_BUSINESS_EXTENSION_CATALOG_ID,
    XML_PATH_FACEBOOK_BUSINESS_EXTENSION_DEBUG_MODE,
)


class TestSystemConfig:
    """Test suite para SystemConfig"""

    def test_store_inherits_default_scope(self, system_config):
        """Test: Una tienda sin valor propio usa el del scope por defecto"""
        assert system_config.get_catalog_id('uk') == 'catalog-123'
        assert system_config.get_access_token(None) == 'token-abc'

    def test_store_value_overrides_default(self, system_config):
        """Test: El valor de la tienda tiene prioridad"""
        system_config.save_config(XML_PATH_FACEBOOK_BUSINESS_EXTENSION_CATALOG_ID, 'catalog-uk', 'uk')
        system_config.clean_cache()

        assert system_config.get_catalog_id('uk') == 'catalog-uk'
        assert system_config.get_catalog_id(None) == 'catalog-123'

    def test_cache_until_clean(self, system_config):
        """Test: Los valores leídos quedan en caché hasta clean_cache()"""
        assert system_config.get_feed_id('uk') is None

        system_config.save_config(XML_PATH_FACEBOOK_BUSINESS_EXTENSION_FEED_ID, 'feed-1', 'uk')
        assert system_config.get_feed_id('uk') is None

        system_config.clean_cache()
        assert system_config.get_feed_id('uk') == 'feed-1'

    def test_save_config_persists_to_file(self, file_config):
        """Test: save_config escribe el archivo JSON"""
        file_config.save_config(XML_PATH_FACEBOOK_BUSINESS_EXTENSION_FEED_ID, 'feed-42', None).clean_cache()

        with open(file_config.path, encoding='utf-8') as fh:
            data = json.load(fh)

        assert data['default'][XML_PATH_FACEBOOK_BUSINESS_EXTENSION_FEED_ID] == 'feed-42'
        assert file_config.get_feed_id(None) == 'feed-42'

    def test_missing_file_starts_empty(self, tmp_path):
        """Test: Sin archivo la configuración está vacía"""
        config = SystemConfig(path=str(tmp_path / 'missing.json'))

        assert config.get_feed_id() is None
        assert config.get_store_ids() == []

    def test_env_overrides_default_scope(self, monkeypatch):
        """Test: FB_ACCESS_TOKEN y FB_CATALOG_ID sobreescriben el scope por defecto"""
        monkeypatch.setenv('FB_ACCESS_TOKEN', 'env-token')
        monkeypatch.setenv('FB_CATALOG_ID', 'env-catalog')

        config = SystemConfig(data={})

        assert config.get_access_token() == 'env-token'
        assert config.get_catalog_id() == 'env-catalog'

    def test_debug_mode_parsing(self, system_config):
        """Test: El modo debug acepta booleanos y strings"""
        assert system_config.is_debug_mode() is False

        system_config.save_config(XML_PATH_FACEBOOK_BUSINESS_EXTENSION_DEBUG_MODE, '1', 'uk').clean_cache()

        assert system_config.is_debug_mode('uk') is True
        assert system_config.is_debug_mode(None) is False

    def test_unknown_store_raises(self, system_config):
        """Test: Una tienda desconocida es un error de configuración"""
        with pytest.raises(ConfigError):
            system_config.get_catalog_id('missing')

    def test_store_context(self, system_config):
        """Test: El contexto de tienda se resuelve completo"""
        context = system_config.get_store_context('uk')

        assert context.store_id == 'uk'
        assert context.store_code == 'uk_en'
        assert context.store_name == 'UK Store'
        assert context.is_default is False
        assert context.catalog_id == 'catalog-123'
        assert context.access_token == 'token-abc'
        assert context.feed_id is None
        assert context.currency == 'USD'

    def test_default_store_context(self, system_config):
        """Test: store_id None y el ID de la tienda por defecto son la tienda por defecto"""
        assert system_config.get_store_context(None).is_default is True
        assert system_config.get_store_context('1').is_default is True
        assert system_config.get_store(None)['code'] == 'default'

    def test_store_context_requires_access_token(self):
        """Test: Falta el access token"""
        config = SystemConfig(data={'default': {XML_PATH_FACEBOOK_BUSINESS_EXTENSION_CATALOG_ID: 'c1'}})

        with pytest.raises(ConfigError) as exc_info:
            config.get_store_context()

        assert 'Access token' in str(exc_info.value)
