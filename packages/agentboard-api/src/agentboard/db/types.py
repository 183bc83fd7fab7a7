"""Custom SQLAlchemy column types."""

import json

from sqlalchemy import Text, TypeDecorator


class JSONType(TypeDecorator):
    """JSON document stored as TEXT.

    Snapshots are stored verbatim, so non-ASCII agent names and task text
    are kept unescaped.
    """

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return json.loads(value)
        return None
