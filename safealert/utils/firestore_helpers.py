"""
Firestore query helpers.

NOTE: For firebase_admin SDK, we use positional arguments which still work.
The deprecation warning is just a warning - the functionality is still supported.
"""

from typing import Any, Dict, List, Tuple


def where_filter(query, field_path: str, op_string: str, value):
    """
    Apply a field filter to a Firestore query or collection.

    Usage:
        query = where_filter(collection, "status", "==", "approved")
    """
    return query.where(field_path, op_string, value)


def stream_documents(query) -> List[Tuple[str, Dict[str, Any]]]:
    """Run a query and return (document_id, data) pairs, skipping empty documents."""
    results = []
    for doc in query.stream():
        data = doc.to_dict()
        if data is None:
            continue
        results.append((doc.id, data))
    return results
