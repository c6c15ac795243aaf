import pytest

from vm_config_tagger.handler import NOT_ACTIONABLE_MESSAGE, AlarmTagHandler
from vm_config_tagger.lambda_handler import create_handler
from vm_config_tagger.main import create_app
from vm_config_tagger.settings import Settings
from vm_config_tagger.vsphere.connection import ConnectionManager
from tests.consts import CPU_CATEGORY_ID, TEST_VM_ID, cpu_tag_id
from tests.fixtures.events import make_event


def api_gateway_event(body: bytes, path: str = "/", method: str = "POST") -> dict:
    """API Gateway REST (v1) proxy event."""
    return {
        "resource": "/{proxy+}",
        "path": path,
        "httpMethod": method,
        "headers": {"Host": "abc123.execute-api.eu-west-1.amazonaws.com", "Content-Type": "application/json"},
        "multiValueHeaders": {},
        "queryStringParameters": None,
        "multiValueQueryStringParameters": None,
        "pathParameters": None,
        "stageVariables": None,
        "requestContext": {
            "resourcePath": "/{proxy+}",
            "httpMethod": method,
            "path": path,
            "stage": "prod",
            "identity": {"sourceIp": "10.0.0.1"},
        },
        "body": body.decode(),
        "isBase64Encoded": False,
    }


@pytest.fixture
def make_lambda(monkeypatch, connection_manager, vc_config):
    monkeypatch.setattr(ConnectionManager, "install_signal_handlers", lambda self: False)

    def _make(settings: Settings):
        handler = AlarmTagHandler(connection_manager=connection_manager, config_loader=lambda: vc_config)
        app = create_app(settings=settings, handler=handler, connection_manager=connection_manager)
        return create_handler(settings=settings, app=app)

    return _make


def test_red_cpu_alarm_through_api_gateway(make_lambda, fake_client):
    lambda_handler = make_lambda(Settings())

    response = lambda_handler(api_gateway_event(make_event("VM CPU Usage", "red")), {})

    assert response["statusCode"] == 200
    assert response["body"] == f"{TEST_VM_ID} was tagged with {cpu_tag_id(3)}, {CPU_CATEGORY_ID}"
    assert fake_client.tagging.attach_calls[0][0] == cpu_tag_id(3)


def test_base_path_is_stripped(make_lambda):
    lambda_handler = make_lambda(Settings(api_gateway_base_path="/tagger"))

    response = lambda_handler(api_gateway_event(make_event("VM CPU Usage", "green"), path="/tagger/"), {})

    assert response["statusCode"] == 200
    assert response["body"] == NOT_ACTIONABLE_MESSAGE


def test_error_status_reaches_api_gateway(make_lambda):
    lambda_handler = make_lambda(Settings())

    response = lambda_handler(api_gateway_event(b"{not json"), {})

    assert response["statusCode"] == 500
    assert response["body"].startswith("parsing cloud event data")
