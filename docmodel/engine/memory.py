"""In-process storage engine. Records live in dicts, one per collection."""
import threading

from bson import ObjectId

from .._util import dict_dup, get_path
from ..errors import DocumentNotFound, DuplicateKey, VersionConflict
from ._matching import apply_update, matches, project, sort_records, upsert_seed
from .base import CollectionHandle, StorageEngine


class MemoryEngine(StorageEngine):
  """
  Keeps every collection in memory. Useful for tests and as the reference for other engines.

  Handles returned for one collection name share the same records,
  so models of one hierarchy see each other's records.
  All reads and writes go through one re-entrant lock.
  """

  def __init__(self):
    self.lock = threading.RLock()
    self.collections = {}
    """Dict {collection name: {_id: record}}; insertion ordered."""
    self.registered = []
    """(collection, model name) of every registration, in order."""

  def register(self, collection, schema, options):
    with self.lock:
      self.collections.setdefault(collection, {})
      self.registered.append((collection, options["name"]))
    return MemoryCollection(self, collection, schema, options)

  def records(self, collection):
    """Copies of all records of ``collection``."""
    with self.lock:
      return [dict_dup(record) for record in self.collections.get(collection, {}).values()]

  def drop(self, collection):
    with self.lock:
      self.collections.get(collection, {}).clear()


class MemoryCollection(CollectionHandle):
  """:any:`CollectionHandle` of the :any:`MemoryEngine`. Returned records are copies."""

  def __init__(self, engine, collection, schema, options):
    super(MemoryCollection, self).__init__(collection, schema, options)
    self.engine = engine

  @property
  def _records(self):
    return self.engine.collections[self.collection]

  def _matching(self, conditions, options=None):
    """Matching stored records (not copies), sorted and paged by ``options``."""
    options = options or {}
    found = [record for record in self._records.values() if matches(record, conditions)]
    if options.get("sort"):
      found = sort_records(found, options["sort"])
    skip = options.get("skip") or 0
    limit = options.get("limit")
    return found[skip:skip + limit] if limit else found[skip:]

  #region Reads
  def find(self, conditions, fields=None, options=None):
    with self.engine.lock:
      return [project(dict_dup(record), fields) for record in self._matching(conditions, options)]

  def find_one(self, conditions, fields=None, options=None):
    options = dict(options or {})
    options["limit"] = 1
    found = self.find(conditions, fields, options)
    return found[0] if found else None

  def count(self, conditions):
    with self.engine.lock:
      return len(self._matching(conditions))

  def distinct(self, field, conditions):
    values = []
    for record in self.find(conditions, [field]):
      value = get_path(field, record)
      for item in (value if isinstance(value, list) else [value]):
        if item is not None and item not in values:
          values.append(item)
    return values

  def aggregate(self, pipeline):
    """Supports the ``$match``, ``$sort``, ``$skip``, ``$limit`` and ``$count`` stages."""
    records = self.engine.records(self.collection)
    for stage in pipeline:
      (operator, arg), = stage.items()
      if operator == "$match":
        records = [record for record in records if matches(record, arg)]
      elif operator == "$sort":
        records = sort_records(records, arg)
      elif operator == "$skip":
        records = records[arg:]
      elif operator == "$limit":
        records = records[:arg]
      elif operator == "$count":
        records = [{arg: len(records)}]
      else:
        raise ValueError("Unsupported aggregation stage %s" % operator)
    return records
  #endregion

  #region Writes
  def _insert(self, record):
    record = dict_dup(record)
    if record.get("_id") is None:
      record["_id"] = ObjectId()
    if record["_id"] in self._records:
      raise DuplicateKey("Duplicate _id %s in collection %s" % (record["_id"], self.collection))
    record.setdefault(self.version_key, 0)
    self._records[record["_id"]] = record
    return dict_dup(record)

  def create(self, doc):
    self.check_strict(doc)
    with self.engine.lock:
      return self._insert(doc)

  def update(self, conditions, doc, options=None):
    options = options or {}
    with self.engine.lock:
      targets = self._matching(conditions, None if options.get("multi") else {"limit": 1})
      if not targets and options.get("upsert"):
        self._insert(apply_update(upsert_seed(conditions), doc, inserting=True))
        return {"matched": 0, "modified": 0, "upserted": 1}
      modified = 0
      for record in targets:
        before = dict_dup(record)
        apply_update(record, doc)
        if record != before:
          modified += 1
      return {"matched": len(targets), "modified": modified}

  def find_one_and_update(self, conditions, update, options=None):
    options = options or {}
    with self.engine.lock:
      found = self._matching(conditions, {"limit": 1, "sort": options.get("sort")})
      if not found:
        if options.get("upsert"):
          inserted = self._insert(apply_update(upsert_seed(conditions), update, inserting=True))
          return inserted if options.get("new") else None
        return None
      record = found[0]
      original = dict_dup(record)
      apply_update(record, update)
      return dict_dup(record) if options.get("new") else original

  def find_one_and_remove(self, conditions, options=None):
    options = options or {}
    with self.engine.lock:
      found = self._matching(conditions, {"limit": 1, "sort": options.get("sort")})
      if not found:
        return None
      return self._records.pop(found[0]["_id"])

  def save(self, record, new=False, increment=False):
    self.check_strict(record)
    with self.engine.lock:
      if new:
        return self._insert(record)

      stored = self._records.get(record.get("_id"))
      if stored is None:
        raise DocumentNotFound("No record with _id %s in collection %s" % (record.get("_id"), self.collection))
      replacement = dict_dup(record)
      version = stored.get(self.version_key, 0)
      if increment:
        if record.get(self.version_key, 0) != version:
          raise VersionConflict(
            "Record %s is at version %s, instance has %s" % (record["_id"], version, record.get(self.version_key)))
        version += 1
      replacement[self.version_key] = version
      self._records[record["_id"]] = replacement
      return dict_dup(replacement)

  def remove(self, record):
    with self.engine.lock:
      if self._records.pop(record.get("_id"), None) is None:
        raise DocumentNotFound("No record with _id %s in collection %s" % (record.get("_id"), self.collection))
  #endregion
