import json

import pytest

from gemini_grounded_search import cli
from gemini_grounded_search.core import ModelInfo, Response
from gemini_grounded_search.errors import APIError
from gemini_grounded_search.grounding import GroundingAttribution, GroundingAttributionSegment


class FakeClient:
    instances = []
    error = None

    def __init__(self, api_key, **kwargs):
        self.api_key = api_key
        self.kwargs = kwargs
        self.queries = []
        FakeClient.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        pass

    def generate_grounded_content(self, query):
        self.queries.append(query)
        if FakeClient.error is not None:
            raise FakeClient.error
        return Response(
            generated_text="Spain won.",
            grounding_attributions=[GroundingAttribution(
                title="uefa.com", url="https://uefa.com/final",
                segments=[GroundingAttributionSegment(end_index=10)],
            )],
        )

    def list_models(self):
        if FakeClient.error is not None:
            raise FakeClient.error
        return [
            ModelInfo(name="models/gemini-2.5-flash", display_name="Gemini 2.5 Flash",
                      supported_actions=["generateContent", "countTokens"]),
            ModelInfo(name="models/embedding-001"),
        ]


@pytest.fixture(autouse=True)
def fake_client(monkeypatch, tmp_path):
    FakeClient.instances = []
    FakeClient.error = None
    monkeypatch.setattr(cli, "GroundedSearchClient", FakeClient)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_MODEL_ID", raising=False)
    monkeypatch.chdir(tmp_path)


def test_requires_api_key(capsys):
    assert cli.main(["who won?"]) == 1
    assert "API key is required" in capsys.readouterr().err


def test_requires_query(capsys):
    assert cli.main(["-k", "key-123456789"]) == 1
    assert "query argument is required" in capsys.readouterr().err


def test_prints_text_and_sources(capsys):
    assert cli.main(["-k", "key-123456789", "who won?"]) == 0
    out = capsys.readouterr().out
    assert "Spain won." in out
    assert "Sources:\n- uefa.com (https://uefa.com/final)" in out
    client = FakeClient.instances[0]
    assert client.queries == ["who won?"]
    assert client.kwargs["model_name"] == "gemini-2.5-flash"
    assert client.kwargs["no_redirection"] is False


def test_model_from_environment_and_flags(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "env-key-1234")
    monkeypatch.setenv("GEMINI_MODEL_ID", "gemini-3-flash-preview")
    assert cli.main(["-p", "q", "-t", "low", "--no-redirect"]) == 0
    client = FakeClient.instances[0]
    assert client.api_key == "env-key-1234"
    assert client.kwargs["model_name"] == "gemini-3-flash-preview"
    assert client.kwargs["thinking_level"] == "LOW"
    assert client.kwargs["no_redirection"] is True


def test_invalid_thinking_level_exits():
    with pytest.raises(SystemExit):
        cli.main(["-k", "key", "-t", "extreme", "q"])


def test_inline_citations_and_json_output(tmp_path, capsys):
    out_file = tmp_path / "out" / "result.json"
    assert cli.main(["-k", "key-123456789", "--inline-citations", "-o", str(out_file), "q"]) == 0
    assert "Spain won.[1](https://uefa.com/final)" in capsys.readouterr().out
    data = json.loads(out_file.read_text())
    assert data["query"] == "q"
    assert data["grounding_attributions"][0]["url"] == "https://uefa.com/final"


def test_search_failure_exits_nonzero(capsys):
    FakeClient.error = APIError(503, "unavailable", status="UNAVAILABLE")
    assert cli.main(["-k", "key-123456789", "q"]) == 1
    assert "Search failed" in capsys.readouterr().err


def test_mask():
    assert cli._mask("abcd1234efgh") == "abcd****efgh"
    assert cli._mask("short") == "****"


def test_no_verbose_suppresses_output_but_writes_json(tmp_path, capsys):
    out_file = tmp_path / "result.json"
    assert cli.main(["-k", "key-123456789", "--no-verbose", "-o", str(out_file), "q"]) == 0
    out = capsys.readouterr().out
    assert "Spain won." not in out
    assert "Sources:" not in out
    assert json.loads(out_file.read_text())["generated_text"] == "Spain won."


@pytest.mark.parametrize("argv, expected", [([], False), (["-v"], True)])
def test_progress_follows_verbose(argv, expected):
    assert cli.main(["-k", "key-123456789", *argv, "q"]) == 0
    assert FakeClient.instances[0].kwargs["show_progress"] is expected

# -----------------------------------------------------------------------------
# gemini-list-models
# -----------------------------------------------------------------------------

def test_list_models_prints_each_model(capsys):
    assert cli.list_models_main(["-k", "key-123456789"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("Available models:\n=================\n")
    assert "Model: models/gemini-2.5-flash\n  Display Name: Gemini 2.5 Flash" in out
    assert "Supported Actions: generateContent, countTokens" in out
    assert "Model: models/embedding-001\n" in out
    assert FakeClient.instances[0].kwargs["no_redirection"] is True


def test_list_models_requires_api_key(capsys):
    assert cli.list_models_main([]) == 1
    assert "GEMINI_API_KEY" in capsys.readouterr().err


def test_list_models_failure_exits_nonzero(capsys):
    FakeClient.error = APIError(403, "denied", status="PERMISSION_DENIED")
    assert cli.list_models_main(["-k", "key-123456789"]) == 1
    assert "Error listing models" in capsys.readouterr().err
