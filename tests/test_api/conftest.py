import pytest
from fastapi.testclient import TestClient

from api.dependencies import (
	get_conversion_engine,
	get_coordinator,
	get_country_resolver,
	get_service_factory,
)
from api.main import app
from application.services import CountryCurrencyResolver
from tests.conftest import FakeSource, build_engine


@pytest.fixture
def source():
	return FakeSource('primary', {'USD': 1, 'EGP': 30.5, 'AED': 3.6725, 'EUR': 0.92})


@pytest.fixture
def engine_and_coordinator(source, clock):
	return build_engine([source], clock)


@pytest.fixture
def client(engine_and_coordinator):
	engine, coordinator = engine_and_coordinator
	# Override the real dependencies; the lifespan is not entered without a context manager
	app.dependency_overrides[get_conversion_engine] = lambda: engine
	app.dependency_overrides[get_coordinator] = lambda: coordinator
	app.dependency_overrides[get_country_resolver] = lambda: CountryCurrencyResolver()
	client = TestClient(app)
	yield client
	app.dependency_overrides.clear()


@pytest.fixture
def override_factory():
	def _override(factory):
		app.dependency_overrides[get_service_factory] = lambda: factory
	yield _override
	app.dependency_overrides.clear()
