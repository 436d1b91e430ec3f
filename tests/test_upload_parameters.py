"""Tests for the .env to Parameter Store upload script."""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError
from click.testing import CliRunner

from scripts.upload_env_to_parameter_store import (load_env_file, main, mask,
                                                   missing_required,
                                                   upload_parameters,
                                                   verify_parameters)

ENV_FILE = """
SAVEPLUS_PLAID_CLIENT_ID=client-123
SAVEPLUS_PLAID_SECRET=super-secret-value
SAVEPLUS_LLM_MODEL=
UNRELATED=ignored
"""


@pytest.fixture
def env_file(tmp_path):
    path = tmp_path / ".env"
    path.write_text(ENV_FILE)
    return str(path)


def put_response(*args, **kwargs):
    return {"Version": 1}


class TestLoadEnvFile:
    def test_reads_known_non_empty_values(self, env_file):
        assert load_env_file(env_file) == {
            "plaid/client-id": "client-123",
            "plaid/secret": "super-secret-value",
        }

    def test_missing_file_exits(self, tmp_path):
        with pytest.raises(SystemExit):
            load_env_file(str(tmp_path / "nope.env"))


class TestUpload:
    def test_secure_string_for_secrets(self):
        ssm = MagicMock()
        ssm.put_parameter.side_effect = put_response

        count = upload_parameters(
            {"plaid/client-id": "client-123", "plaid/secret": "shh"}, ssm=ssm
        )

        assert count == 2
        types = {c.kwargs["Name"]: c.kwargs["Type"] for c in ssm.put_parameter.call_args_list}
        assert types == {
            "/saveplus/plaid/client-id": "String",
            "/saveplus/plaid/secret": "SecureString",
        }

    def test_failed_upload_is_skipped(self):
        ssm = MagicMock()
        ssm.put_parameter.side_effect = ClientError(
            {"Error": {"Code": "AccessDeniedException", "Message": "denied"}}, "PutParameter"
        )

        assert upload_parameters({"plaid/secret": "shh"}, ssm=ssm) == 0

    def test_dry_run_writes_nothing(self):
        ssm = MagicMock()

        assert upload_parameters({"plaid/secret": "shh"}, dry_run=True, ssm=ssm) == 0
        ssm.put_parameter.assert_not_called()

    def test_verify_reports_missing(self):
        ssm = MagicMock()
        ssm.get_parameter.side_effect = ClientError(
            {"Error": {"Code": "ParameterNotFound", "Message": "missing"}}, "GetParameter"
        )

        assert verify_parameters({"plaid/secret": "shh"}, ssm=ssm) is False


class TestHelpers:
    def test_mask(self):
        assert mask("super-secret-value") == "supe..."
        assert mask("short") == "***"

    def test_missing_required(self):
        assert missing_required({"plaid/client-id": "x", "plaid/secret": "y"}) == [
            "alpha-vantage/api-key",
            "llm/api-key",
        ]


class TestCli:
    def test_dry_run(self, env_file):
        with patch("scripts.upload_env_to_parameter_store.boto3.client") as client:
            result = CliRunner().invoke(main, ["--env-file", env_file, "--dry-run"])

        assert result.exit_code == 0
        assert "Found 2 parameters" in result.output
        assert "/saveplus/plaid/secret = supe... (SecureString)" in result.output
        client.assert_not_called()

    def test_upload_and_verify(self, env_file):
        ssm = MagicMock()
        ssm.put_parameter.side_effect = put_response
        with patch("scripts.upload_env_to_parameter_store.boto3.client", return_value=ssm):
            result = CliRunner().invoke(main, ["--env-file", env_file, "--verify"])

        assert result.exit_code == 0
        assert ssm.put_parameter.call_count == 2
        assert ssm.get_parameter.call_count == 2

    def test_no_parameters_found(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text("UNRELATED=1\n")

        result = CliRunner().invoke(main, ["--env-file", str(path)])

        assert result.exit_code == 1
