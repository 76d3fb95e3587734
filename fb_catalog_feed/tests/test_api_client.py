# -*- coding: utf-8 -*-
"""
Tests para APIClient
Verifica reintentos, timeouts y manejo de errores HTTP
"""

import pytest
from unittest.mock import Mock, patch
import requests

from fb_catalog_feed.services.api_client import APIClient, RemoteAPIError


def _response(status_code, payload=None, text=''):
    response = Mock(status_code=status_code, text=text,
                    elapsed=Mock(total_seconds=Mock(return_value=0.1)))
    if payload is None:
        response.json.side_effect = ValueError("No JSON")
    else:
        response.json.return_value = payload
    return response


class TestAPIClient:
    """Test suite para APIClient"""

    def setup_method(self):
        self.base_url = "http://test-api:8000"
        self.client = APIClient(
            base_url=self.base_url,
            timeout=5,
            max_retries=3
        )

    def test_initialization(self):
        """Test: Cliente se inicializa correctamente"""
        assert self.client.base_url == self.base_url
        assert self.client.timeout == 5
        assert self.client.max_retries == 3
        assert 'Content-Type' not in self.client.session.headers

    def test_successful_get_request_with_params(self):
        """Test: GET request exitoso con query string"""
        with patch.object(self.client.session, 'request') as mock_request:
            mock_request.return_value = _response(200, {'items': []})

            result = self.client.get('/products', params={'skip': 0, 'limit': 10})

            assert result == {'items': []}
            mock_request.assert_called_once_with(
                method='GET',
                url=f'{self.base_url}/products',
                timeout=5,
                params={'skip': 0, 'limit': 10}
            )

    def test_successful_post_request(self):
        """Test: POST request exitoso"""
        with patch.object(self.client.session, 'request') as mock_request:
            mock_request.return_value = _response(201, {'id': 1, 'created': True})

            data = {'name': 'Test Product'}
            result = self.client.post('/products', data=data)

            assert result == {'id': 1, 'created': True}
            mock_request.assert_called_once_with(
                method='POST',
                url=f'{self.base_url}/products',
                timeout=5,
                json=data
            )

    def test_retry_on_500_error(self):
        """Test: Reintentos automáticos en error 500"""
        with patch.object(self.client.session, 'request') as mock_request:
            mock_request.side_effect = [
                _response(500),
                _response(500),
                _response(200, {'success': True}),
            ]

            with patch('time.sleep') as mock_sleep:
                result = self.client.get('/test')

            assert result == {'success': True}
            assert mock_request.call_count == 3
            assert [c.args[0] for c in mock_sleep.call_args_list] == [1, 2]

    def test_retry_on_429_rate_limit(self):
        """Test: Reintentos en rate limit (429)"""
        with patch.object(self.client.session, 'request') as mock_request:
            mock_request.side_effect = [_response(429), _response(200, {'data': 'ok'})]

            with patch('time.sleep'):
                result = self.client.get('/test')

            assert result == {'data': 'ok'}
            assert mock_request.call_count == 2

    def test_no_retry_on_400_error(self):
        """Test: NO reintenta en errores 4xx (excepto 429 y 408)"""
        with patch.object(self.client.session, 'request') as mock_request:
            mock_request.return_value = _response(400, text="Bad Request")

            with pytest.raises(RemoteAPIError) as exc_info:
                self.client.get('/test')

            assert 'Client error: 400' in str(exc_info.value)
            assert exc_info.value.status_code == 400
            assert mock_request.call_count == 1

    def test_max_retries_exceeded(self):
        """Test: Falla después de max_retries"""
        with patch.object(self.client.session, 'request') as mock_request:
            mock_request.return_value = _response(500)

            with patch('time.sleep'):
                with pytest.raises(RemoteAPIError) as exc_info:
                    self.client.get('/test')

            assert 'Client error: 500' in str(exc_info.value)
            assert mock_request.call_count == 3

    def test_exponential_backoff(self):
        """Test: Backoff exponencial con máximo de 60 segundos"""
        assert self.client._calculate_backoff(1) == 1
        assert self.client._calculate_backoff(2) == 2
        assert self.client._calculate_backoff(3) == 4
        assert self.client._calculate_backoff(5) == 16
        assert self.client._calculate_backoff(10) == 60

    def test_timeout_handling(self):
        """Test: Manejo de timeout"""
        with patch.object(self.client.session, 'request') as mock_request:
            mock_request.side_effect = requests.exceptions.Timeout("Timeout")

            with patch('time.sleep') as mock_sleep:
                with pytest.raises(RemoteAPIError) as exc_info:
                    self.client.get('/test')

            assert 'Request failed after 3 attempts' in str(exc_info.value)
            # No se espera después del último intento
            assert mock_sleep.call_count == 2

    def test_connection_error_handling(self):
        """Test: Manejo de error de conexión"""
        with patch.object(self.client.session, 'request') as mock_request:
            mock_request.side_effect = requests.exceptions.ConnectionError("Connection failed")

            with patch('time.sleep'):
                with pytest.raises(RemoteAPIError):
                    self.client.get('/test')

            assert mock_request.call_count == 3

    def test_files_rewound_between_attempts(self):
        """Test: Los archivos multipart se rebobinan en cada intento"""
        file_obj = Mock()
        with patch.object(self.client.session, 'request') as mock_request:
            mock_request.side_effect = [_response(503), _response(200, {'id': 'u1'})]

            with patch('time.sleep'):
                self.client._make_request('POST', '/upload', files={'file': ('feed.csv', file_obj, 'text/csv')})

        assert file_obj.seek.call_count == 2

    def test_health_check_success(self):
        """Test: Health check exitoso"""
        with patch.object(self.client.session, 'request') as mock_request:
            mock_request.return_value = _response(200, {'status': 'healthy'})

            assert self.client.health_check() is True

    def test_health_check_failure(self):
        """Test: Health check falla"""
        with patch.object(self.client.session, 'request') as mock_request:
            mock_request.side_effect = requests.exceptions.ConnectionError()

            with patch('time.sleep'):
                assert self.client.health_check() is False

    def test_delete_request_no_content(self):
        """Test: DELETE con 204 retorna None"""
        with patch.object(self.client.session, 'request') as mock_request:
            mock_request.return_value = _response(204)

            assert self.client.delete('/products/1') is None

    def test_invalid_json_response(self):
        """Test: Respuesta 200 sin JSON válido retorna None"""
        with patch.object(self.client.session, 'request') as mock_request:
            mock_request.return_value = _response(200)

            assert self.client.get('/test') is None
