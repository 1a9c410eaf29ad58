import pathlib
import sys
from types import SimpleNamespace

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from utils.estimator import compute_estimate
from utils.proposal import ProposalGenerator


class FakeCompletions:
    def __init__(self, content=None, error=None, choices=None):
        self.content = content
        self.error = error
        self.choices = choices
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        if self.choices is not None:
            return SimpleNamespace(choices=self.choices)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_client(**kwargs):
    completions = FakeCompletions(**kwargs)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


ESTIMATE = compute_estimate({"width_ft": 20, "length_ft": 20}).to_dict()


def test_without_api_key_no_call_is_made():
    gen = ProposalGenerator(api_key=None)
    assert not gen.enabled
    assert gen.generate(ESTIMATE, "Acme") is None


def test_returns_generated_text():
    client, completions = fake_client(content="Scope: pour a 20x20 slab.")
    gen = ProposalGenerator(client=client, model="gpt-4o-mini")
    assert gen.generate(ESTIMATE, "Acme Builders") == "Scope: pour a 20x20 slab."

    assert len(completions.calls) == 1
    call = completions.calls[0]
    assert call["model"] == "gpt-4o-mini"
    assert call["messages"][0]["role"] == "system"
    prompt = call["messages"][1]["content"]
    assert "Acme Builders" in prompt
    assert '"total": 2925.46' in prompt


def test_client_name_defaults_to_client():
    client, completions = fake_client(content="ok")
    ProposalGenerator(client=client).generate(ESTIMATE, None)
    assert "proposal for Client based on" in completions.calls[0]["messages"][1]["content"]


def test_upstream_error_is_swallowed():
    client, completions = fake_client(error=RuntimeError("502 Bad Gateway"))
    gen = ProposalGenerator(client=client)
    assert gen.generate(ESTIMATE, "Acme") is None
    assert len(completions.calls) == 1


def test_empty_reply_is_no_proposal():
    client, _ = fake_client(content="   ")
    assert ProposalGenerator(client=client).generate(ESTIMATE) is None

    client, _ = fake_client(choices=[])
    assert ProposalGenerator(client=client).generate(ESTIMATE) is None
