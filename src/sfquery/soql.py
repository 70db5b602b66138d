from __future__ import annotations

from typing import Dict, Iterable, List

DEFAULT_LIMIT = 2000


def synthesize(
    root_object: str,
    selection: Iterable[str],
    child_relationships: Iterable[str] = (),
    limit: int = DEFAULT_LIMIT,
) -> str:
    """Build SOQL text for a root object and a set of selected field paths.

    Paths starting with one of the root's child relationship names become a
    nested ``(SELECT ... FROM <relationship>)``; everything else, dotted
    reference paths included, is selected directly in selection order.

    >>> synthesize("Account", ["Id", "Name", "Contacts.LastName"], ["Contacts"])
    'SELECT Id, Name,(SELECT LastName FROM Contacts) FROM Account LIMIT 2000'
    """
    child_names = set(child_relationships)
    direct: List[str] = []
    subqueries: Dict[str, List[str]] = {}

    for path in selection:
        head, _, rest = path.partition(".")
        if head in child_names:
            fields = subqueries.setdefault(head, [])
            sub = rest or "Id"
            if sub not in fields:
                fields.append(sub)
        elif path not in direct:
            direct.append(path)

    select = ", ".join(direct) or "Id"
    for rel, fields in subqueries.items():
        select += f",(SELECT {', '.join(fields)} FROM {rel})"
    return f"SELECT {select} FROM {root_object} LIMIT {limit}"
