from typing import Any, Dict, Iterable, List, Optional

REQUESTOR_SEARCH_FIELDS = ("name", "email", "phone")
RESPONDER_SEARCH_FIELDS = ("name", "email", "phone", "type")
EMERGENCY_SEARCH_FIELDS = ("type", "address", "status", "requestor_name", "description")


def matches(record: Dict[str, Any], query: str, fields: Iterable[str]) -> bool:
    """Case-insensitive substring match of query against any of the given fields"""
    needle = query.lower()
    for field in fields:
        value = record.get(field)
        if value is None:
            continue
        if needle in str(value).lower():
            return True
    return False


def filter_records(records: List[Dict[str, Any]], query: Optional[str], fields: Iterable[str]) -> List[Dict[str, Any]]:
    """
    Filter already-fetched records in memory, preserving source order.
    An empty query returns every record.
    """
    if not query:
        return list(records)
    fields = tuple(fields)
    return [r for r in records if matches(r, query, fields)]
