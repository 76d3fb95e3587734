# -*- coding: utf-8 -*-
"""
Escritura del feed CSV
Los productos se escriben a medida que se obtienen (sin cargar el catálogo en memoria)
"""

import csv
import fcntl
import logging
import os
from typing import Optional, List, Iterable

from .feed_builder import FeedBuilder
from .product_retriever import ProductRetriever

_logger = logging.getLogger(__name__)

FEED_FILE_NAME = 'facebook_products%s.csv'
EXPORT_DIR = 'export'


class ArtifactError(Exception):
    """Error de sistema de archivos al generar el feed"""
    pass


def get_feed_file_name(store_code: Optional[str] = None, is_default: bool = True) -> str:
    """
    Nombre del archivo del feed

    La tienda por defecto no lleva sufijo; las demás llevan _<store_code>.
    """
    suffix = '' if is_default or not store_code else f'_{store_code}'
    return FEED_FILE_NAME % suffix


class FeedFile:
    """
    Archivo CSV del feed con lock exclusivo (advisory, fcntl.flock)

    Uso:
        with FeedFile(path) as stream:
            stream.lock()
            stream.write_csv([...])
            stream.unlock()
    """

    def __init__(self, path: str):
        self.path = path
        self._handle = None
        self._writer = None
        self.locked = False

    def open(self) -> 'FeedFile':
        # 'a+' no trunca: el contenido se vacía solo después de obtener el lock
        self._handle = open(self.path, 'a+', encoding='utf-8', newline='')
        self._writer = csv.writer(self._handle)
        return self

    def lock(self):
        """
        Obtiene el lock exclusivo y vacía el archivo

        Raises:
            ArtifactError: Si otro proceso tiene el lock
        """
        try:
            fcntl.flock(self._handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError as e:
            raise ArtifactError(f"Feed file is locked by another process: {self.path}") from e

        self.locked = True
        self._handle.seek(0)
        self._handle.truncate()
        _logger.debug(f"Lock acquired: {self.path}")

    def unlock(self):
        if not self.locked:
            return
        self._handle.flush()
        fcntl.flock(self._handle.fileno(), fcntl.LOCK_UN)
        self.locked = False
        _logger.debug(f"Lock released: {self.path}")

    def write_csv(self, row: Iterable[str]):
        self._writer.writerow(row)

    def close(self):
        if self._handle is None:
            return
        self.unlock()
        self._handle.close()
        self._handle = None

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class FeedWriter:
    """
    Escribe el feed: cabecera y luego cada estrategia de productos en orden

    Las estrategias se recorren completas una tras otra
    (simples antes que configurables).
    """

    def __init__(self, retrievers: List[ProductRetriever], builder: FeedBuilder):
        self.retrievers = retrievers
        self.builder = builder

    def write_file(self, stream: FeedFile, store_id: Optional[str] = None) -> int:
        """
        Escribe cabecera y productos en el stream

        Args:
            stream: Archivo de destino (ya abierto y con lock)
            store_id: Tienda

        Returns:
            int: Número de productos escritos
        """
        total = 0

        with self.builder.writing():
            stream.write_csv(self.builder.get_header_fields())

            for retriever in self.retrievers:
                retriever.set_store_id(store_id)
                offset = 0
                limit = retriever.get_limit()

                while True:
                    products = retriever.retrieve(offset)
                    offset += limit
                    if not products:
                        break

                    for product in products:
                        entry = list(self.builder.build_product_entry(product).values())
                        stream.write_csv(entry)
                        total += 1

        _logger.debug(f"Generated feed with {total} products.")
        return total

    def generate(self, var_dir: str, file_name: str, store_id: Optional[str] = None) -> str:
        """
        Genera el archivo del feed en <var_dir>/export/<file_name>

        El lock se libera siempre, también si la escritura falla.

        Returns:
            str: Ruta absoluta del archivo generado

        Raises:
            ArtifactError: Si falla el sistema de archivos
        """
        export_dir = os.path.join(var_dir, EXPORT_DIR)
        path = os.path.abspath(os.path.join(export_dir, file_name))

        try:
            os.makedirs(export_dir, exist_ok=True)
            with FeedFile(path) as stream:
                stream.lock()
                try:
                    total = self.write_file(stream, store_id)
                finally:
                    stream.unlock()
        except OSError as e:
            raise ArtifactError(f"Cannot write feed file {path}: {e}") from e

        _logger.info(f"Feed file generated: {path} ({total} products)")
        return path
