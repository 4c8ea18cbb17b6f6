import pytest

from formscan import cli
from formscan.models.config_models import ServiceConfig
from formscan.services.config_store import read_config

from tests.conftest import completion_body


@pytest.fixture
def patch_client(monkeypatch, mock_client):
    """Route the CLI's ExtractionClient through a mock transport."""
    def _patch(**kw):
        client = mock_client(**kw)

        def _factory(args):
            client.model = args.model
            return client
        monkeypatch.setattr(cli, "_client", _factory)
        return client
    return _patch


@pytest.fixture
def image(tmp_path):
    p = tmp_path / "form_composite.jpg"
    p.write_bytes(b"\xff\xd8jpeg")
    return p


def test_extract_prints_content_exactly(patch_client, image, env_file, capsys):
    patch_client(body=completion_body("X"))
    rc = cli.main(["extract", str(image), "--env-file", str(env_file)])
    assert rc == 0
    assert capsys.readouterr().out == "X\n"


def test_extract_http_error_prints_response_object(patch_client, image, env_file, capsys):
    patch_client(status=500, body={"error": {"message": "internal details"}})
    rc = cli.main(["extract", str(image), "--env-file", str(env_file)])
    out = capsys.readouterr().out
    assert rc == 1
    assert out == "<Response [500 Internal Server Error]>\n"
    assert "internal details" not in out


def test_extract_shape_error_goes_to_stderr(patch_client, image, env_file, capsys):
    patch_client(body={"choices": []})
    rc = cli.main(["extract", str(image), "--env-file", str(env_file)])
    captured = capsys.readouterr()
    assert rc == 1
    assert captured.out == ""
    assert "error: " in captured.err


def test_extract_uses_schema_file(patch_client, image, env_file, tmp_path):
    schema = tmp_path / "s.json"
    schema.write_text('{"policy_number": ""}')
    client = patch_client(body=completion_body("{}"))
    cli.main(["extract", str(image), "--env-file", str(env_file), "--schema", str(schema), "--model", "gpt-4o-mini"])
    body = client.requests[0].content.decode()
    assert "policy_number" in body
    assert '"model":"gpt-4o-mini"' in body.replace(" ", "")


def test_missing_env_file(image, tmp_path, capsys):
    rc = cli.main(["extract", str(image), "--env-file", str(tmp_path / "none.env")])
    assert rc == 1
    assert "config file not found" in capsys.readouterr().err


def test_rasterize_prints_path(make_pdf, capsys):
    pdf = make_pdf([(100, 100), (100, 100)])
    rc = cli.main(["rasterize", str(pdf)])
    assert rc == 0
    out = capsys.readouterr().out.strip()
    assert out == str(pdf.with_name("form_composite.jpg"))


def test_rasterize_corrupt_pdf(tmp_path, capsys):
    bad = tmp_path / "bad.pdf"
    bad.write_bytes(b"not a pdf at all")
    rc = cli.main(["rasterize", str(bad)])
    assert rc == 1
    assert "error: " in capsys.readouterr().err


def test_run_end_to_end(patch_client, make_pdf, env_file, capsys):
    client = patch_client(body=completion_body('{"form_title": "Claim"}'))
    pdf = make_pdf([(100, 80)])
    rc = cli.main(["run", str(pdf), "--env-file", str(env_file)])
    assert rc == 0
    assert capsys.readouterr().out == '{"form_title": "Claim"}\n'
    assert pdf.with_name("form_composite.jpg").exists()
    assert len(client.requests) == 1


def test_provision_writes_settings(monkeypatch, tmp_path, capsys):
    env = tmp_path / ".env"
    env.write_text("UNRELATED = 1\n")

    class FakeProvisioner:
        def __init__(self, template, parameters):
            self.args = (template, parameters)

        def deploy(self, location, environment_name, deployment_name=None):
            from formscan.services.provisioner import ProvisionResult
            return ProvisionResult("rg-x", "https://x.openai.azure.com/", "aoai-x", "gpt-4o", "k1")

        def write_config(self, result, env_file):
            from formscan.services.config_store import write_config
            return write_config(env_file, result.to_config_entries())

    monkeypatch.setattr(cli, "Provisioner", FakeProvisioner)
    rc = cli.main(["provision", "--location", "eastus", "--environment-name", "x", "--env-file", str(env)])
    assert rc == 0
    values = read_config(env)
    assert values["UNRELATED"] == "1"
    assert values["AZURE_OPENAI_API_KEY"] == "k1"
    assert ServiceConfig.from_mapping(values).deployment_name == "gpt-4o"


def test_extract_missing_image(patch_client, env_file, tmp_path, capsys):
    patch_client()
    rc = cli.main(["extract", str(tmp_path / "nope.jpg"), "--env-file", str(env_file)])
    captured = capsys.readouterr()
    assert rc == 1
    assert captured.out == ""
    assert "error: cannot read" in captured.err


def test_rasterize_missing_pdf(tmp_path, capsys):
    rc = cli.main(["rasterize", str(tmp_path / "nope.pdf")])
    assert rc == 1
    assert "error: cannot read" in capsys.readouterr().err


@pytest.mark.parametrize("dpi", ["0", "-10", "abc"])
def test_rasterize_rejects_bad_dpi(make_pdf, dpi):
    pdf = make_pdf([(50, 50)])
    with pytest.raises(SystemExit) as ei:
        cli.main(["rasterize", str(pdf), "--dpi", dpi])
    assert ei.value.code == 2
