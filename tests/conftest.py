from typing import Any, Dict, List, Optional

import pytest

from sfquery.exceptions import SchemaFetchError
from sfquery.schema import parse_describe
from sfquery.service import QueryResult


def _field(name, type_="string", label=None, rel=None, to=None):
    f: Dict[str, Any] = {"name": name, "label": label or name, "type": type_}
    if rel:
        f["relationshipName"] = rel
        f["referenceTo"] = [to]
    return f


DESCRIBES: Dict[str, Dict[str, Any]] = {
    "Account": {
        "name": "Account",
        "fields": [
            _field("Name", label="Account Name"),
            _field("Id", "id", label="Account ID"),
            _field("OwnerId", "reference", "Owner ID", rel="Owner", to="User"),
            _field("ParentId", "reference", "Parent Account ID", rel="Parent", to="Account"),
            _field("Industry", "picklist"),
        ],
        "childRelationships": [
            {"relationshipName": "Opportunities", "childSObject": "Opportunity"},
            {"relationshipName": "Contacts", "childSObject": "Contact"},
            {"relationshipName": None, "childSObject": "AccountHistory"},
        ],
    },
    "Contact": {
        "name": "Contact",
        "fields": [
            _field("Id", "id"),
            _field("LastName"),
            _field("AccountId", "reference", rel="Account", to="Account"),
            _field("OwnerId", "reference", rel="Owner", to="User"),
        ],
        "childRelationships": [],
    },
    "User": {
        "name": "User",
        "fields": [
            _field("Id", "id"),
            _field("Name", label="Full Name"),
            _field("ManagerId", "reference", "Manager ID", rel="Manager", to="User"),
        ],
        "childRelationships": [],
    },
    "Opportunity": {
        "name": "Opportunity",
        "fields": [_field("Id", "id"), _field("Amount", "currency")],
        "childRelationships": [],
    },
    "Empty": {"name": "Empty", "fields": [], "childRelationships": []},
}


class FakeService:
    """In-memory data service: canned describes, scripted query results."""

    def __init__(self, describes: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        self.describes = describes if describes is not None else DESCRIBES
        self.tooling = False
        self.connected = False
        self.describe_calls: List[str] = []
        self.queries: List[str] = []
        self.fetched: List[tuple] = []
        self.records: List[Dict[str, Any]] = []
        self.query_error: Optional[Exception] = None

    def connect(self) -> None:
        self.connected = True

    def list_queryable_objects(self) -> List[str]:
        return sorted(self.describes)

    def describe_object(self, object_name: str):
        self.describe_calls.append(object_name)
        if object_name not in self.describes:
            raise SchemaFetchError(object_name, "INVALID_TYPE: sObject type not supported")
        return parse_describe(object_name, self.describes[object_name])

    def execute_query(self, soql: str) -> QueryResult:
        self.queries.append(soql)
        if self.query_error is not None:
            raise self.query_error
        return QueryResult(total_size=len(self.records), records=list(self.records))

    def fetch_single_record(self, object_name: str, record_id: str) -> Dict[str, Any]:
        self.fetched.append((object_name, record_id))
        return {"attributes": {"type": object_name}, "Id": record_id, "Name": "Full record"}

    def record_url(self, record_id: str) -> str:
        return f"https://example.my.salesforce.com/{record_id}"


def account_records() -> List[Dict[str, Any]]:
    return [
        {
            "attributes": {"type": "Account", "url": "/services/data/v60.0/sobjects/Account/001A"},
            "Id": "001A",
            "Name": "Acme",
            "Owner": {"attributes": {"type": "User"}, "Name": "Ann"},
            "Contacts": {
                "totalSize": 2,
                "done": True,
                "records": [
                    {"attributes": {"type": "Contact"}, "LastName": "Smith"},
                    {"attributes": {"type": "Contact"}, "LastName": "Jones"},
                ],
            },
        },
        {
            "attributes": {"type": "Account", "url": "/services/data/v60.0/sobjects/Account/001B"},
            "Id": "001B",
            "Name": 'He said "hi"',
            "Owner": {"attributes": {"type": "User"}, "Name": "Bob"},
            "Contacts": None,
        },
    ]


@pytest.fixture
def fake_service():
    return FakeService()


@pytest.fixture
def describes():
    return DESCRIBES


@pytest.fixture
def records():
    return account_records()


@pytest.fixture(autouse=True)
def dummy_service(monkeypatch, fake_service):
    """
    Global fake data service for CLI commands.
    Applies to ALL tests unless they patch make_service themselves.
    """
    monkeypatch.setattr("sfquery.command_common.make_service", lambda cfg: fake_service)
    for var in (
        "SFQUERY_BACKEND",
        "SFQUERY_PAGE_SIZE",
        "SFQUERY_QUERY_LIMIT",
        "SFQUERY_TOOLING",
        "SFQUERY_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)
    return fake_service

