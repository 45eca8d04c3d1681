from decimal import Decimal

from fastapi.testclient import TestClient

from api.main import app
from application.services import ServiceFactory
from config.settings import Settings
from tests.conftest import make_snapshot


def make_factory() -> ServiceFactory:
	factory = ServiceFactory(Settings(_env_file=None, REDIS_URL='', RATE_SOURCES='open_er_api'))
	factory.create_conversion_engine()
	return factory


def test_health_degraded_before_first_fetch(override_factory):
	override_factory(make_factory())

	response = TestClient(app).get('/health')

	assert response.status_code == 200
	data = response.json()
	assert data['status'] == 'degraded'
	assert data['rates']['state'] == 'EMPTY'
	assert data['sources']['open_er_api']['state'] == 'CLOSED'
	assert data['missing_rates'] == {}


def test_health_healthy_with_rates(override_factory):
	factory = make_factory()
	factory.coordinator._install(make_snapshot({'EGP': Decimal('30.5')}, source='open_er_api'))
	override_factory(factory)

	data = TestClient(app).get('/health').json()

	assert data['status'] == 'healthy'
	assert data['rates']['source'] == 'open_er_api'
	assert data['rates']['rates_count'] == 2
