# -*- coding: utf-8 -*-
"""
Registro de eventos de publicación de feeds
Proporciona trazabilidad de cada ejecución (incluidos los reintentos tolerados)
"""

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any

_logger = logging.getLogger(__name__)

OPERATIONS = ('resolve_feed', 'generate_feed', 'push_feed', 'publish', 'delete_product')
STATUSES = ('success', 'error', 'warning')


@dataclass
class PublishLogEntry:
    """Un evento del pipeline de publicación"""
    operation: str
    status: str
    message: str = ''
    error_details: Optional[str] = None
    store_id: Optional[str] = None
    feed_id: Optional[str] = None
    batch_id: Optional[str] = None
    response_data: Optional[Dict[str, Any]] = None
    execution_time: float = 0.0
    create_date: datetime = field(default_factory=datetime.now)

    @property
    def display_name(self) -> str:
        return f"[{self.operation.upper()}] {self.store_id or 'default'} - {self.status}"

    def to_dict(self) -> Dict[str, Any]:
        values = asdict(self)
        values['create_date'] = self.create_date.isoformat()
        return values


class PublishLog:
    """
    Registro de eventos de publicación

    Los eventos se guardan en memoria y, si se indica una ruta,
    también en un archivo JSON lines para auditoría.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self.entries: List[PublishLogEntry] = []

    # ========== Métodos de Creación ==========
    def log_operation(self, operation, status='success', message='', error_details=None,
                      store_id=None, feed_id=None, batch_id=None, response_data=None,
                      execution_time=0.0, exc_info=False) -> PublishLogEntry:
        """
        Registra un evento del pipeline

        Args:
            operation (str): Etapa ('resolve_feed', 'generate_feed', 'push_feed', ...)
            status (str): Estado ('success', 'error', 'warning')
            message (str): Mensaje descriptivo
            error_details (str, optional): Detalles técnicos del error
            store_id (str, optional): Tienda
            feed_id (str, optional): Feed remoto
            batch_id (str, optional): ID de la ejecución
            response_data (dict, optional): Respuesta del sistema remoto
            execution_time (float): Tiempo de ejecución
            exc_info (bool): Incluir la traza de la excepción en curso en el log

        Returns:
            PublishLogEntry: Evento creado
        """
        if operation not in OPERATIONS:
            raise ValueError(f"Unknown operation: {operation}")
        if status not in STATUSES:
            raise ValueError(f"Unknown status: {status}")

        entry = PublishLogEntry(
            operation=operation,
            status=status,
            message=message,
            error_details=error_details,
            store_id=store_id,
            feed_id=feed_id,
            batch_id=batch_id,
            response_data=response_data,
            execution_time=round(execution_time, 3),
        )
        self.entries.append(entry)

        if self.path:
            self._append(entry)

        log_message = f"[{operation.upper()}] {message}"
        if status == 'error':
            _logger.error(log_message, exc_info=exc_info)
        elif status == 'warning':
            _logger.warning(log_message)
        else:
            _logger.info(log_message)

        return entry

    def _append(self, entry: PublishLogEntry):
        # Un fallo al persistir el evento no interrumpe el pipeline
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)

            with open(self.path, 'a', encoding='utf-8') as fh:
                fh.write(json.dumps(entry.to_dict(), default=str) + '\n')
        except OSError:
            _logger.exception(f"Cannot write publish log entry to {self.path}")

    def log_success(self, operation, message='', **kwargs) -> PublishLogEntry:
        """Atajo para registrar operación exitosa"""
        return self.log_operation(operation=operation, status='success', message=message, **kwargs)

    def log_error(self, operation, message='', error_details=None, **kwargs) -> PublishLogEntry:
        """Atajo para registrar error"""
        return self.log_operation(
            operation=operation,
            status='error',
            message=message,
            error_details=error_details,
            **kwargs
        )

    def log_warning(self, operation, message='', **kwargs) -> PublishLogEntry:
        """Atajo para registrar advertencia"""
        return self.log_operation(operation=operation, status='warning', message=message, **kwargs)

    # ========== Métodos de Análisis ==========
    def get_statistics(self, batch_id=None, date_from=None, date_to=None) -> Dict[str, Any]:
        """
        Obtiene estadísticas de publicación

        Args:
            batch_id (str, optional): Filtrar por ejecución
            date_from (datetime, optional): Fecha desde
            date_to (datetime, optional): Fecha hasta

        Returns:
            dict: Estadísticas agregadas
        """
        logs = self.entries

        if batch_id:
            logs = [l for l in logs if l.batch_id == batch_id]
        if date_from:
            logs = [l for l in logs if l.create_date >= date_from]
        if date_to:
            logs = [l for l in logs if l.create_date <= date_to]

        total = len(logs)
        success = len([l for l in logs if l.status == 'success'])
        errors = len([l for l in logs if l.status == 'error'])
        warnings = len([l for l in logs if l.status == 'warning'])
        total_execution_time = sum(l.execution_time for l in logs)

        return {
            'total_operations': total,
            'success_count': success,
            'error_count': errors,
            'warning_count': warnings,
            'avg_execution_time': round(total_execution_time / total, 3) if total > 0 else 0,
            'total_execution_time': round(total_execution_time, 2),
            'success_rate': round((success / total * 100), 2) if total > 0 else 0,
        }

    def get_recent_errors(self, limit=10) -> List[PublishLogEntry]:
        """Los errores más recientes primero"""
        errors = [l for l in self.entries if l.status == 'error']
        errors.sort(key=lambda l: l.create_date, reverse=True)
        return errors[:limit]

    def cleanup_old_logs(self, days=30) -> int:
        """
        Elimina eventos antiguos de memoria (los errores se conservan)

        Returns:
            int: Número de eventos eliminados
        """
        cutoff_date = datetime.now() - timedelta(days=days)
        kept = [l for l in self.entries if l.create_date >= cutoff_date or l.status == 'error']

        count = len(self.entries) - len(kept)
        self.entries = kept

        _logger.info(f"Removed {count} publish log entries older than {days} days")
        return count
