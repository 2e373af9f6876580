from datetime import timezone

from bson import json_util
from bson.errors import BSONError
from bson.json_util import JSONMode, JSONOptions

from docmodel.errors import UnexpectedError

JSON_OPTIONS = JSONOptions(json_mode=JSONMode.RELAXED, tz_aware=True, tzinfo=timezone.utc)
"""
Relaxed Extended JSON: numbers stay plain, ``$date`` is an ISO-8601 string,
and dates read back are timezone aware in UTC.
"""


def parse_json(json_string):
  """
  Parses an Extended JSON string into python values.
  Also parses :class:`bson.ObjectId`, :class:`datetime`, bytes and wrapped numbers.
  """
  return json_util.loads(json_string, json_options=JSON_OPTIONS)


def parse_json_or_none(json_string):
  try:
    return parse_json(json_string)
  except (ValueError, TypeError, BSONError):
    return None


def to_json(dct, pretty=False, sort_keys=False):
  """
  Opposite of parse_json.
  Converts :class:`bson.ObjectId`, datetimes and bytes to their Extended JSON wrappers.
  """
  try:
    if pretty:
      return json_util.dumps(
        dct, json_options=JSON_OPTIONS, sort_keys=True, indent=2, separators=(", ", ": "))
    return json_util.dumps(dct, json_options=JSON_OPTIONS, sort_keys=sort_keys, separators=(",", ":"))
  except TypeError as error:
    raise UnexpectedError("Unserializable value in %r: %s" % (dct, error), None)
