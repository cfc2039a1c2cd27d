import httpx
import openai
import pytest
from langchain_core.messages import AIMessage, HumanMessage

import model_gateway
from errors import ConfigurationError, GatewayError, TransportError
from model_gateway import ModelGateway, OpenAIModelGateway, message_text, to_messages
from models import ConversationTurn


class FakeChatOpenAI:
    instances = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.tools = None
        self.invocations = []
        self.reply = AIMessage(content=f"reply from {kwargs['model']}")
        FakeChatOpenAI.instances.append(self)

    def bind_tools(self, tools):
        self.tools = tools
        return self

    def invoke(self, messages):
        self.invocations.append(messages)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


@pytest.fixture
def fake_llm(monkeypatch):
    FakeChatOpenAI.instances = []
    monkeypatch.setattr(model_gateway, "ChatOpenAI", FakeChatOpenAI)
    return FakeChatOpenAI


def _gateway():
    return OpenAIModelGateway(api_key="test", research_model="research-model", transform_model="transform-model")


def _request():
    return httpx.Request("POST", "https://api.openai.com/v1/responses")


def test_requires_api_key(fake_llm):
    with pytest.raises(ConfigurationError):
        OpenAIModelGateway(api_key="")


def test_grounded_and_plain_clients(fake_llm):
    gateway = _gateway()
    research, transform = fake_llm.instances

    assert research.kwargs["use_responses_api"] is True
    assert research.tools == [{"type": "web_search_preview"}]
    assert transform.tools is None
    assert research.kwargs["max_retries"] == 0

    assert gateway.generate("find positions") == "reply from research-model"
    assert gateway.generate("consolidate", use_grounding=False) == "reply from transform-model"


def test_history_precedes_prompt(fake_llm):
    gateway = _gateway()
    history = [ConversationTurn(role="user", text="q1"), ConversationTurn(role="model", text="a1")]
    gateway.generate("consolidate", use_grounding=False, history=history)

    messages = fake_llm.instances[1].invocations[0]
    assert [type(m) for m in messages] == [HumanMessage, AIMessage, HumanMessage]
    assert messages[-1].content == "consolidate"


def test_connection_errors_map_to_transport_error(fake_llm):
    gateway = _gateway()
    fake_llm.instances[0].reply = openai.APIConnectionError(request=_request())
    with pytest.raises(TransportError):
        gateway.generate("find positions")


def test_authentication_errors_map_to_configuration_error(fake_llm):
    gateway = _gateway()
    response = httpx.Response(401, request=_request())
    fake_llm.instances[0].reply = openai.AuthenticationError("bad key", response=response, body=None)
    with pytest.raises(ConfigurationError):
        gateway.generate("find positions")


def test_other_failures_and_empty_replies_map_to_gateway_error(fake_llm):
    gateway = _gateway()
    fake_llm.instances[0].reply = RuntimeError("unexpected")
    with pytest.raises(GatewayError):
        gateway.generate("find positions")

    fake_llm.instances[0].reply = AIMessage(content="   ")
    with pytest.raises(GatewayError):
        gateway.generate("find positions")


def test_message_text_flattens_content_blocks():
    message = AIMessage(content=[
        {"type": "web_search_call", "id": "ws_1"},
        {"type": "text", "text": '{"positions_up_for_election": '},
        {"type": "output_text", "text": "[]}"},
    ])
    assert message_text(message) == '{"positions_up_for_election": []}'
    assert message_text("plain") == "plain"


def test_to_messages_without_history():
    [message] = to_messages("hello")
    assert isinstance(message, HumanMessage)


def test_gateway_contract_requires_generate():
    with pytest.raises(TypeError):
        ModelGateway()

    class Incomplete(ModelGateway):
        pass

    with pytest.raises(TypeError):
        Incomplete()
