import pytest

from instrument_lens.config import ServiceConfig
from instrument_lens.gateway.server import create_app


@pytest.fixture
def service_config():
    return ServiceConfig(openai_api_key="test-key")


@pytest.fixture
def mock_model(mocker):
    """
    Stands in for the external model. Set `complete.return_value` or
    `complete.side_effect` in the test.
    """
    model = mocker.Mock()
    model.provider = "openai"
    return model


@pytest.fixture
def app(service_config, mock_model):
    app = create_app(service_config, vision_client=mock_model)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def unconfigured_client():
    """
    A client for an app started without any credential.
    """
    app = create_app(ServiceConfig())
    app.config["TESTING"] = True
    return app.test_client()
