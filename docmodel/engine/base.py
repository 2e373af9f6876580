"""
The interface docmodel needs from a storage engine.

A :any:`StorageEngine` turns a collection name and schema into a :any:`CollectionHandle`;
every model operation goes through the handle of its model's collection.
Engine failures are raised as :any:`StorageError` and reach the caller unchanged.
"""
from abc import abstractmethod
from math import sqrt

from .._util import dict_dup, get_path, no_null_values, set_path
from ..errors import ValidationError


class StorageEngine(object):
  """Registers model schemas and hands out :any:`CollectionHandle` objects."""

  @abstractmethod
  def register(self, collection, schema, options):
    """
    :param collection: Physical collection name, shared by a model hierarchy.
    :param schema: Schema descriptor, {field_name: descriptor}.
    :param options:
      ``name`` (model name), ``discriminator_key``, ``version_key``, ``strict``.
    :return: :any:`CollectionHandle` for the model.
    """
    pass # pragma: no cover


class CollectionHandle(object):
  """
  Operations on one collection, on behalf of one model.

  Records are dicts; ``_id`` holds an :class:`~bson.objectid.ObjectId` once stored.
  :any:`map_reduce`, :any:`geo_near`, :any:`geo_search` and :any:`populate` have
  implementations here built on :any:`find`; engines override them when they can do better.
  """
  # pylint: disable=unused-argument

  def __init__(self, collection, schema, options):
    self.collection = collection
    self.schema = schema
    self.name = options["name"]
    self.discriminator_key = options.get("discriminator_key", "_type")
    self.version_key = options.get("version_key", "__v")
    self.strict = options.get("strict", False)

  #region Reads
  @abstractmethod
  def find(self, conditions, fields=None, options=None):
    """List of matching records. ``options``: ``sort``, ``skip``, ``limit``."""
    pass # pragma: no cover

  @abstractmethod
  def find_one(self, conditions, fields=None, options=None):
    """First matching record or None."""
    pass # pragma: no cover

  @abstractmethod
  def count(self, conditions):
    pass # pragma: no cover

  @abstractmethod
  def distinct(self, field, conditions):
    pass # pragma: no cover

  @abstractmethod
  def aggregate(self, pipeline):
    pass # pragma: no cover
  #endregion

  #region Writes
  @abstractmethod
  def create(self, doc):
    """Inserts ``doc`` and returns the stored record."""
    pass # pragma: no cover

  @abstractmethod
  def update(self, conditions, doc, options=None):
    """
    Updates the first match (every match with ``multi``).
    :return: ``{"matched": n, "modified": n}``.
    """
    pass # pragma: no cover

  @abstractmethod
  def find_one_and_update(self, conditions, update, options=None):
    """Original record (updated one with ``new``) or None."""
    pass # pragma: no cover

  @abstractmethod
  def find_one_and_remove(self, conditions, options=None):
    pass # pragma: no cover

  @abstractmethod
  def save(self, record, new=False, increment=False):
    """
    Inserts (``new``) or replaces ``record`` by ``_id``.

    With ``increment`` the stored version counter must equal the record's,
    and is bumped by one; otherwise :any:`VersionConflict`.

    :return: The stored record.
    """
    pass # pragma: no cover

  @abstractmethod
  def remove(self, record):
    """Deletes the stored record with ``record["_id"]``."""
    pass # pragma: no cover
  #endregion

  #region Built on find
  def map_reduce(self, spec):
    """
    ``spec``: ``map`` (record -> iterable of (key, value)), ``reduce`` ((key, values) -> value),
    optional ``query`` and ``limit``.
    """
    records = self.find(spec.get("query") or {}, None, {"limit": spec.get("limit")})
    emitted = {}
    order = []
    for record in records:
      for key, value in spec["map"](record):
        if key not in emitted:
          emitted[key] = []
          order.append(key)
        emitted[key].append(value)
    reduce_ = spec["reduce"]
    return [{"_id": key, "value": reduce_(key, emitted[key]) if len(emitted[key]) > 1 else emitted[key][0]}
            for key in order]

  def geo_near(self, point, options):
    """
    Records holding a ``[x, y]`` point under ``options["key"]`` (default ``"loc"``),
    closest first. ``max_distance``, ``query``, ``limit`` and ``distance_field`` are optional.
    """
    key = options.get("key", "loc")
    distance_field = options.get("distance_field", "dis")
    max_distance = options.get("max_distance")

    near = []
    for record in self.find(options.get("query") or {}):
      distance = _distance(point, get_path(key, record))
      if distance is None or (max_distance is not None and distance > max_distance):
        continue
      set_path(distance_field, distance, record)
      near.append((distance, record))
    near.sort(key=lambda pair: pair[0])

    limit = options.get("limit")
    return [record for _, record in (near[:limit] if limit else near)]

  def geo_search(self, conditions, options):
    """Matching records within ``options["max_distance"]`` of ``options["near"]``."""
    key = options.get("key", "loc")
    near = options["near"]
    max_distance = options["max_distance"]

    found = []
    for record in self.find(conditions):
      distance = _distance(near, get_path(key, record))
      if distance is not None and distance <= max_distance:
        found.append(record)
    limit = options.get("limit")
    return found[:limit] if limit else found

  def populate(self, records, options):
    """
    Replaces the ids under ``options["path"]`` with the records they refer to,
    looked up through ``options["source"]`` (default: this handle) narrowed by ``options["match"]``.
    Ids without a matching record are left as they are.
    """
    path = options["path"]
    source = options.get("source") or self
    records = [dict_dup(record) for record in records]

    ids = []
    for record in records:
      value = get_path(path, record)
      ids.extend(value if isinstance(value, list) else [value])
    ids = [oid for oid in ids if oid is not None]
    if not ids:
      return records

    conditions = dict(options.get("match") or {})
    conditions["_id"] = {"$in": ids}
    by_id = dict((found["_id"], found) for found in source.find(conditions))

    for record in records:
      value = get_path(path, record)
      if isinstance(value, list):
        set_path(path, [by_id.get(oid, oid) for oid in value], record)
      elif value is not None:
        set_path(path, by_id.get(value, value), record)
    return records
  #endregion

  def check_strict(self, record):
    """Raises :any:`ValidationError` if the schema is strict and ``record`` has unknown fields."""
    if not self.strict:
      return
    allowed = set(self.schema) | {"_id", self.discriminator_key, self.version_key}
    unknown = sorted(key for key in record if key not in allowed)
    if unknown:
      raise ValidationError(
        "Fields %s are not in the schema of %s" % (", ".join(unknown), self.name), unknown)

  def __repr__(self):
    return "%s(collection=%r, name=%r)" % (self.__class__.__name__, self.collection, self.name)


def geo_near_pipeline(point, options):
  """Aggregation pipeline running a ``$geoNear`` stage for :any:`CollectionHandle.geo_near` options."""
  stage = no_null_values({
    "near": list(point),
    "distanceField": options.get("distance_field", "dis"),
    "key": options.get("key"),
    "maxDistance": options.get("max_distance"),
    "query": options.get("query") or None,
  })
  pipeline = [{"$geoNear": stage}]
  if options.get("limit"):
    pipeline.append({"$limit": options["limit"]})
  return pipeline


def _distance(a, b):
  if not isinstance(b, (list, tuple)) or len(b) != 2:
    return None
  return sqrt((a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2)
