# nosec B101


from decimal import Decimal
from unittest.mock import AsyncMock

import httpx
import pytest

from domain.exceptions.currency import SourceFetchError
from infrastructure.providers.fixerio import FixerIOProvider
from tests.conftest import http_status_error, make_response
from tests.fixtures.api_responses import FIXERIO_RESPONSES


@pytest.mark.asyncio
async def test_fetch_rates_success_returns_decimal():
    mock_client = AsyncMock(spec=httpx.AsyncClient)
    mock_client.get.return_value = make_response(FIXERIO_RESPONSES['success'])

    provider = FixerIOProvider(api_key='test_key', client=mock_client)

    rates = await provider.fetch_rates('USD')

    assert rates['EUR'] == Decimal('0.81')
    assert isinstance(rates['JPY'], Decimal)
    mock_client.get.assert_called_once()
    call_args = mock_client.get.call_args
    assert 'http://data.fixer.io/api/latest' in call_args[0][0]
    assert call_args[1]['params']['access_key'] == 'test_key'
    assert call_args[1]['params']['base'] == 'USD'


@pytest.mark.asyncio
async def test_fetch_rates_api_returns_error():
    mock_client = AsyncMock(spec=httpx.AsyncClient)
    mock_client.get.return_value = make_response(FIXERIO_RESPONSES['api_error'])

    provider = FixerIOProvider(api_key='test_key', client=mock_client)

    with pytest.raises(SourceFetchError) as exc_info:
        await provider.fetch_rates('USD')

    assert 'Fixer.io API error' in str(exc_info.value)
    assert 'usage limit' in str(exc_info.value)


@pytest.mark.asyncio
async def test_fetch_rates_unauthorized():
    mock_client = AsyncMock(spec=httpx.AsyncClient)
    response = make_response({}, status_code=401)
    response.raise_for_status.side_effect = http_status_error(401, 'Unauthorized')
    mock_client.get.return_value = response

    provider = FixerIOProvider(api_key='invalid_key', client=mock_client)

    with pytest.raises(SourceFetchError) as exc_info:
        await provider.fetch_rates('USD')

    assert 'HTTP error 401' in str(exc_info.value)
