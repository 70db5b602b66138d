"""CLI tests; the data service is the in-memory fake from conftest."""

import json
from unittest.mock import MagicMock

import pytest
import requests
from click.testing import CliRunner

from sfquery.cli import cli
from sfquery.exceptions import MissingCredentialsError, QueryExecutionError
from sfquery.service import RestDataService


@pytest.fixture
def runner():
    return CliRunner()


def test_cli_help_shows_usage(runner):
    """Bare invocation prints help listing every command."""
    result = runner.invoke(cli, [])

    assert result.exit_code == 0
    assert "SOQL query builder" in result.output
    for name in ("objects", "describe", "soql", "query", "record", "builder"):
        assert name in result.output


def test_cli_version_option(runner):
    """--version prints the program name."""
    result = runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert "sfquery" in result.output.lower()


def test_objects_filter(runner, fake_service):
    """objects --filter is a case-insensitive substring match."""
    result = runner.invoke(cli, ["objects", "--filter", "CON"])

    assert result.exit_code == 0
    assert result.output.split() == ["Contact"]
    assert fake_service.connected


def test_missing_credentials_message(runner, monkeypatch):
    """Missing credentials render the friendly setup help."""
    class NoCreds:
        def connect(self):
            raise MissingCredentialsError(["SF_CLIENT_ID", "SF_CLIENT_SECRET"])

    monkeypatch.setattr("sfquery.command_common.make_service", lambda cfg: NoCreds())

    result = runner.invoke(cli, ["objects"])

    assert result.exit_code == 1
    assert "Missing Salesforce credentials: SF_CLIENT_ID, SF_CLIENT_SECRET" in result.output
    assert "SFQUERY_BACKEND=sf-cli" in result.output


def test_invalid_builder_config(runner, monkeypatch):
    """Invalid SFQUERY_* settings are reported, not raised."""
    monkeypatch.setenv("SFQUERY_PAGE_SIZE", "42")

    result = runner.invoke(cli, ["objects"])

    assert result.exit_code == 1
    assert "SFQUERY_PAGE_SIZE" in result.output


class TestDescribe:
    def test_lists_fields_and_children(self, runner):
        """describe lists fields, reference targets and child relationships."""
        result = runner.invoke(cli, ["describe", "Account"])

        assert result.exit_code == 0
        assert "Account: 5 fields" in result.output
        assert "Owner -> User" in result.output
        assert "Child relationships: 2" in result.output
        assert "Opportunities" in result.output

    def test_filter_and_no_children(self, runner):
        """--filter narrows fields and --no-children hides relationships."""
        result = runner.invoke(cli, ["describe", "Account", "--filter", "owner", "--no-children"])

        assert result.exit_code == 0
        assert "OwnerId" in result.output
        assert "Industry" not in result.output
        assert "Child relationships" not in result.output

    def test_unknown_object(self, runner):
        """An object that cannot be described fails with a message."""
        result = runner.invoke(cli, ["describe", "Nope"])

        assert result.exit_code == 1
        assert "Failed to describe Nope" in result.output


class TestSoql:
    def test_default_selection(self, runner):
        """Without --field the seeded Id and Name are selected."""
        result = runner.invoke(cli, ["soql", "Account"])

        assert result.exit_code == 0
        assert result.output.strip() == "SELECT Id, Name FROM Account LIMIT 2000"

    def test_fields_replace_defaults_and_children_become_subqueries(self, runner):
        """Child relationship paths become sub-selects."""
        result = runner.invoke(cli, ["soql", "Account", "-f", "Name", "-f", "Contacts.LastName"])

        assert result.exit_code == 0
        assert result.output.strip() == (
            "SELECT Name,(SELECT LastName FROM Contacts) FROM Account LIMIT 2000"
        )

    def test_fields_follow_given_order(self, runner):
        """Explicit fields are selected in the order given, defaults included."""
        result = runner.invoke(cli, ["soql", "Account", "-f", "Name", "-f", "Id"])

        assert result.exit_code == 0
        assert result.output.strip() == "SELECT Name, Id FROM Account LIMIT 2000"

    def test_explicit_children_skip_describe(self, runner, fake_service):
        """--child builds the query without describing anything."""
        result = runner.invoke(
            cli,
            ["soql", "Widget__c", "-f", "Id", "-f", "Parts__r.Name"]
            + ["-c", "Parts__r", "--limit", "5"],
        )

        assert result.exit_code == 0
        assert result.output.strip() == (
            "SELECT Id,(SELECT Name FROM Parts__r) FROM Widget__c LIMIT 5"
        )
        assert fake_service.describe_calls == []

    def test_limit_from_env(self, runner, monkeypatch):
        """SFQUERY_QUERY_LIMIT sets the LIMIT clause."""
        monkeypatch.setenv("SFQUERY_QUERY_LIMIT", "10")

        result = runner.invoke(cli, ["soql", "Opportunity"])

        assert result.output.strip() == "SELECT Id FROM Opportunity LIMIT 10"

    def test_unknown_object(self, runner):
        """An object that cannot be described fails with a message."""
        result = runner.invoke(cli, ["soql", "Nope"])

        assert result.exit_code == 1
        assert "Failed to describe object 'Nope'" in result.output


class TestQuery:
    @pytest.fixture(autouse=True)
    def _records(self, fake_service, records):
        fake_service.records = records

    def test_table_output(self, runner, fake_service):
        """Table output flattens parents and summarises subqueries."""
        result = runner.invoke(cli, ["query", "SELECT Id, Name FROM Account"])

        assert result.exit_code == 0
        assert fake_service.queries == ["SELECT Id, Name FROM Account"]
        assert "Owner.Name" in result.output
        assert "Contacts (Subquery)" in result.output
        assert "2 records" in result.output
        assert "Showing 1-2 of 2 (Page 1 / 1)" in result.output

    def test_csv_to_stdout(self, runner):
        """CSV goes to stdout with doubled quotes."""
        result = runner.invoke(cli, ["query", "SELECT Id FROM Account", "--format", "csv"])

        assert result.exit_code == 0
        assert result.output.splitlines()[0] == "Id,Name,Owner.Name"
        assert result.output.splitlines()[2] == '"001B","He said ""hi""","Bob"'

    def test_json_output(self, runner, records):
        """JSON output is the raw record list."""
        result = runner.invoke(cli, ["query", "SELECT Id FROM Account", "--format", "json"])

        assert result.exit_code == 0
        assert json.loads(result.output) == records

    def test_tsv_to_file(self, runner, tmp_path):
        """--out writes the tab-delimited export to a file."""
        target = tmp_path / "export.xls"

        result = runner.invoke(
            cli, ["query", "SELECT Id FROM Account", "--format", "tsv", "--out", str(target)]
        )

        assert result.exit_code == 0
        assert f"Exported 2 records -> {target}" in result.output
        assert target.read_text(encoding="utf-8").startswith("Id\tName\tOwner.Name\n")

    def test_copy_to_clipboard(self, runner, monkeypatch):
        """--copy hands the CSV text to the clipboard."""
        copied = []
        monkeypatch.setattr("sfquery.export.clipboard_set", copied.append)

        result = runner.invoke(
            cli, ["query", "SELECT Id FROM Account", "--format", "csv", "--copy"]
        )

        assert result.exit_code == 0
        assert copied and copied[0].startswith("Id,Name,Owner.Name\n")
        assert "-> clipboard" in result.output

    def test_out_needs_delimited_format(self, runner, tmp_path):
        """--out with table format is a usage error."""
        result = runner.invoke(
            cli, ["query", "SELECT Id FROM Account", "--out", str(tmp_path / "x.csv")]
        )

        assert result.exit_code == 2

    def test_paging(self, runner, fake_service):
        """--page and --page-size pick the slice shown."""
        fake_service.records = [{"Id": f"{i:03d}"} for i in range(30)]

        result = runner.invoke(
            cli, ["query", "SELECT Id FROM Account", "--page-size", "10", "--page", "3"]
        )

        assert result.exit_code == 0
        assert "Showing 21-30 of 30 (Page 3 / 3)" in result.output
        assert "029" in result.output
        assert "009" not in result.output

    def test_no_results(self, runner, fake_service):
        """An empty result prints a no-results line."""
        fake_service.records = []

        result = runner.invoke(cli, ["query", "SELECT Id FROM Account"])

        assert result.exit_code == 0
        assert "No results found." in result.output

    def test_query_failure(self, runner, fake_service):
        """The remote query error is shown verbatim."""
        fake_service.query_error = QueryExecutionError("unexpected token: FORM")

        result = runner.invoke(cli, ["query", "SELECT Id FORM Account"])

        assert result.exit_code == 1
        assert "Query failed: unexpected token: FORM" in result.output


def test_record(runner, fake_service):
    """record prints the full record as JSON."""
    result = runner.invoke(cli, ["record", "Account", "001A"])

    assert result.exit_code == 0
    assert json.loads(result.output)["Id"] == "001A"
    assert fake_service.fetched == [("Account", "001A")]


def test_builder_launches_streamlit(runner, monkeypatch):
    """builder runs streamlit on the app with tooling passed through."""
    calls = []

    def fake_call(cmd, env=None):
        calls.append((cmd, env))
        return 0

    monkeypatch.setattr("sfquery.command_builder.subprocess.call", fake_call)

    result = runner.invoke(cli, ["builder", "--port", "9000", "--tooling"])

    assert result.exit_code == 0
    cmd, env = calls[0]
    assert cmd[1:4] == ["-m", "streamlit", "run"]
    assert cmd[4].endswith("app.py")
    assert "9000" in cmd
    assert env["SFQUERY_TOOLING"] == "1"


class TestRestErrorsReachTheUser:
    """REST failures become click errors with Salesforce's message, never tracebacks."""

    @pytest.fixture
    def api(self, monkeypatch):
        api = MagicMock()
        api.tooling = False
        api.access_token = "token"
        monkeypatch.setattr(
            "sfquery.command_common.make_service", lambda cfg: RestDataService(api)
        )
        return api

    @staticmethod
    def _expired_session():
        resp = MagicMock()
        resp.json.return_value = [
            {"message": "Session expired or invalid", "errorCode": "INVALID_SESSION_ID"}
        ]
        return requests.HTTPError("401 Client Error", response=resp)

    def test_objects_http_error(self, runner, api):
        """A 401 from describe_global is shown as Salesforce's own message."""
        api.describe_global.side_effect = self._expired_session()

        result = runner.invoke(cli, ["objects"])

        assert result.exit_code == 1
        assert not isinstance(result.exception, requests.RequestException)
        assert "Failed to list objects: Session expired or invalid" in result.output

    def test_record_connection_error(self, runner, api):
        """A dropped connection while fetching a record is reported, not raised."""
        api.get_record.side_effect = requests.ConnectionError("connection reset")

        result = runner.invoke(cli, ["record", "Account", "001"])

        assert result.exit_code == 1
        assert not isinstance(result.exception, requests.RequestException)
        assert "Failed to fetch record: connection reset" in result.output

    def test_connect_error(self, runner, api):
        """A network failure during login is reported by every command."""
        api.access_token = None
        api.connect.side_effect = requests.ConnectionError("name resolution failed")

        result = runner.invoke(cli, ["objects"])

        assert result.exit_code == 1
        assert "Failed to connect to Salesforce: name resolution failed" in result.output
