""":any:`Codec` and subclasses."""

from abc import abstractmethod

from bson import ObjectId


class Codec(object):
  """
  A Codec sits inside a :any:`Field` in a :any:`Model` and prepares data for storage.

  Encoded values must be Extended JSON data:
  dicts, lists, numbers, strings, :class:`~bson.objectid.ObjectId`, datetimes and bytes.

  A field without a Codec must store only such data.

  Input data may be sanitized (e.g. ObjectIdCodec converts hex strings to ObjectIds),
  so there is no guarantee that :samp:`codec.decode(codec.encode(value)) == value`.

  Encoding happens when an instance is saved, decoding when a record is hydrated.
  """

  @abstractmethod
  def decode(self, raw):
    """
    Converts a stored value into a python object.

    (The stored value will already have :class:`~bson.objectid.ObjectId` and dates converted.)
    """
    pass # pragma: no cover

  @abstractmethod
  def encode(self, value):
    """Converts a value to prepare for storage."""
    pass # pragma: no cover


class _ObjectIdCodecClass(Codec):
  def decode(self, raw):
    return raw

  def encode(self, value):
    # pylint: disable=import-outside-toplevel
    from .model import Model
    if value is None:
      return None
    elif isinstance(value, str):
      return ObjectId(value)
    elif isinstance(value, ObjectId):
      return value
    elif isinstance(value, Model):
      # A populated reference goes back to being an id.
      return value.get("_id")
    elif isinstance(value, list):
      return [self.encode(item) for item in value]
    else:
      raise TypeError("Expected an ObjectId, got: %s" % value)


ObjectIdCodec = _ObjectIdCodecClass()
"""
Codec for a field holding a reference (or a list of references) to other records.
Also converts hex strings and populated instances coming in to ObjectIds.
"""
