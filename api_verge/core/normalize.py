from collections.abc import Mapping


def normalize(decoded) -> list[dict]:
    """Force a decoded response into a list of records, whatever its shape."""
    if decoded is None:
        return []
    if isinstance(decoded, list):
        return decoded
    if isinstance(decoded, Mapping):
        return [decoded] if decoded else []
    # scalar payloads (ie a bare id) are not records
    return []


def drop_incomplete(records: list, key_field: str = "$key") -> list[dict]:
    """Drop the records missing their identifying key, the others are left untouched."""
    return [
        r for r in records if isinstance(r, Mapping) and r.get(key_field) not in (None, "")
    ]
