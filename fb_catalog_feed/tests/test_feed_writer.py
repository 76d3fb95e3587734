# -*- coding: utf-8 -*-
"""
Tests para FeedWriter y FeedFile
Verifica paginación, orden de estrategias, nombres de archivo y liberación del lock
"""

import csv

import pytest
from unittest.mock import patch

from conftest import StubRetriever
from fb_catalog_feed.services.feed_builder import FeedBuilder
from fb_catalog_feed.services.feed_writer import (
    ArtifactError,
    FeedFile,
    FeedWriter,
    get_feed_file_name,
)


def _products(start, count):
    return [{'id': i, 'name': f'Product {i}', 'price': 10 + i, 'qty': 1} for i in range(start, start + count)]


def _read_rows(path):
    with open(path, encoding='utf-8', newline='') as fh:
        return list(csv.reader(fh))


class TestFeedFileName:
    """Test suite para nombres de archivo por tienda"""

    def test_default_store_has_no_suffix(self):
        """Test: La tienda por defecto no lleva sufijo"""
        assert get_feed_file_name('default', is_default=True) == 'facebook_products.csv'

    def test_other_store_uses_store_code(self):
        """Test: Otras tiendas llevan el código de tienda"""
        assert get_feed_file_name('uk_en', is_default=False) == 'facebook_products_uk_en.csv'


class TestFeedWriter:
    """Test suite para FeedWriter"""

    @pytest.fixture(autouse=True)
    def setup_writer(self, system_config, tmp_path):
        self.builder = FeedBuilder(system_config)
        self.builder.set_store_id(None)
        self.var_dir = str(tmp_path / 'var')

    def test_pagination_and_row_count(self):
        """Test: Se recorre cada estrategia hasta una página vacía"""
        simple = StubRetriever(_products(1, 5), limit=2)
        configurable = StubRetriever(_products(100, 3), limit=50, product_type='configurable')
        writer = FeedWriter([simple, configurable], self.builder)

        path = writer.generate(self.var_dir, 'facebook_products.csv')
        rows = _read_rows(path)

        assert simple.offsets == [0, 2, 4, 6]
        assert configurable.offsets == [0, 50]
        assert rows[0] == self.builder.get_header_fields()
        assert len(rows) == 1 + 8
        assert all(len(row) == len(rows[0]) for row in rows)

    def test_write_file_returns_total(self, tmp_path):
        """Test: write_file devuelve el número de productos"""
        writer = FeedWriter([StubRetriever(_products(1, 7), limit=3)], self.builder)

        with FeedFile(str(tmp_path / 'feed.csv')) as stream:
            stream.lock()
            total = writer.write_file(stream, store_id='uk')

        assert total == 7

    def test_store_id_passed_to_retrievers(self):
        """Test: Cada retriever recibe la tienda"""
        retriever = StubRetriever([], limit=10)
        FeedWriter([retriever], self.builder).generate(self.var_dir, 'feed.csv', store_id='uk')

        assert retriever.store_id == 'uk'

    def test_end_to_end_simple_then_configurable(self):
        """Test: 2 simples (página de 2) + 1 configurable (página de 50)"""
        simple = StubRetriever([{'id': 1, 'name': 'A'}, {'id': 2, 'name': 'B'}], limit=2)
        configurable = StubRetriever([{'id': 3, 'name': 'C'}], limit=50, product_type='configurable')
        writer = FeedWriter([simple, configurable], self.builder)

        path = writer.generate(self.var_dir, 'facebook_products.csv')
        rows = _read_rows(path)

        assert len(rows) == 4
        assert [row[0] for row in rows[1:]] == ['1', '2', '3']

    def test_regenerated_from_scratch(self):
        """Test: Cada generación reemplaza el archivo anterior"""
        FeedWriter([StubRetriever(_products(1, 5), limit=10)], self.builder).generate(self.var_dir, 'feed.csv')
        path = FeedWriter([StubRetriever(_products(1, 1), limit=10)], self.builder).generate(self.var_dir, 'feed.csv')

        assert len(_read_rows(path)) == 2

    def test_lock_released_when_write_fails(self):
        """Test: Si la escritura falla el lock se libera antes de propagar el error"""
        writer = FeedWriter([StubRetriever(_products(1, 5), limit=2)], self.builder)

        with patch.object(self.builder, 'build_product_entry', side_effect=[
            self.builder.build_product_entry({'id': 1}),
            RuntimeError('broken product'),
        ]):
            with pytest.raises(RuntimeError):
                writer.generate(self.var_dir, 'facebook_products.csv')

        # Un nuevo lock exclusivo no bloqueante debe obtenerse sin error
        path = f'{self.var_dir}/export/facebook_products.csv'
        with FeedFile(path) as stream:
            stream.lock()
            assert stream.locked is True

        # El builder también queda desbloqueado
        self.builder.set_store_id('uk')

    def test_locked_file_raises_artifact_error(self, tmp_path):
        """Test: Un archivo con lock de otro escritor no se puede escribir"""
        path = str(tmp_path / 'feed.csv')

        with FeedFile(path) as first:
            first.lock()
            with FeedFile(path) as second:
                with pytest.raises(ArtifactError):
                    second.lock()

    def test_filesystem_error_wrapped(self, tmp_path):
        """Test: Los errores del sistema de archivos se convierten en ArtifactError"""
        blocker = tmp_path / 'var'
        blocker.write_text('not a directory', encoding='utf-8')
        writer = FeedWriter([StubRetriever([], limit=1)], self.builder)

        with pytest.raises(ArtifactError) as exc_info:
            writer.generate(str(blocker), 'feed.csv')

        assert isinstance(exc_info.value.__cause__, OSError)
