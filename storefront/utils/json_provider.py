"""JSON provider rendering dates as ISO 8601 and money as strings."""
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from flask.json.provider import DefaultJSONProvider


class StorefrontJSONProvider(DefaultJSONProvider):

    @staticmethod
    def default(o):
        if isinstance(o, (datetime, date, time)):
            return o.isoformat()
        if isinstance(o, Decimal):
            return str(o)
        if isinstance(o, Enum):
            return o.value
        return DefaultJSONProvider.default(o)
