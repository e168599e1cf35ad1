import io
import json
import time
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from whatsnew.clients.bedrock_client import BedrockClient, BedrockError, classify_error


def _payload(text):
    body = json.dumps({"content": [{"type": "text", "text": text}]}).encode("utf-8")
    return {"body": io.BytesIO(body)}


def _client_error(code, message=""):
    return ClientError({"Error": {"Code": code, "Message": message}}, "InvokeModel")


@pytest.fixture
def runtime():
    return MagicMock()


@pytest.fixture
def client(runtime, monkeypatch):
    monkeypatch.setattr("whatsnew.clients.bedrock_client.time.sleep", lambda s: None)
    return BedrockClient(model_id="test-model", max_output_tokens=256, runtime=runtime)


def test_complete_returns_assistant_text(client, runtime):
    runtime.invoke_model.return_value = _payload('{"categories": []}')

    assert client.complete("prompt") == '{"categories": []}'

    kwargs = runtime.invoke_model.call_args[1]
    assert kwargs["modelId"] == "test-model"
    body = json.loads(kwargs["body"])
    assert body["max_tokens"] == 256
    assert body["messages"][0]["content"][0]["text"] == "prompt"


def test_throttling_retried(client, runtime):
    runtime.invoke_model.side_effect = [_client_error("ThrottlingException", "slow down"), _payload("ok")]
    assert client.complete("prompt") == "ok"
    assert runtime.invoke_model.call_count == 2


def test_access_denied_not_retried(client, runtime):
    runtime.invoke_model.side_effect = _client_error("AccessDeniedException")
    with pytest.raises(BedrockError) as exc:
        client.complete("prompt")
    assert exc.value.code == "UNAUTHORIZED"
    assert runtime.invoke_model.call_count == 1


def test_gives_up_after_max_attempts(client, runtime):
    runtime.invoke_model.side_effect = _client_error("ThrottlingException")
    with pytest.raises(BedrockError) as exc:
        client.complete("prompt")
    assert exc.value.code == "RATE_LIMIT"
    assert runtime.invoke_model.call_count == 3


def test_classify_unknown():
    assert classify_error(_client_error("ValidationException", "bad input")) == "UNKNOWN"
    assert classify_error(ValueError("x")) == "UNKNOWN"


def test_deadline_cuts_retries(client, runtime):
    runtime.invoke_model.side_effect = _client_error("ThrottlingException")
    with pytest.raises(BedrockError) as exc:
        client.complete("prompt", deadline=time.monotonic())
    assert exc.value.code == "RATE_LIMIT"
    assert runtime.invoke_model.call_count == 1
