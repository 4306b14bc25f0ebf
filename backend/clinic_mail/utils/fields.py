"""
Dotted-path lookup into nested template data.
"""
from collections.abc import Mapping


def resolve(record, path: str, default=None):
    """
    Return the value at `path` (e.g. 'patient.first_name') inside `record`.

    Returns `default` when any segment is missing or an intermediate value
    is not a mapping. Never raises.
    """
    if not path or not isinstance(path, str):
        return default

    value = record
    for part in path.split('.'):
        if not isinstance(value, Mapping):
            return default
        value = value.get(part)
        if value is None:
            return default
    return value
